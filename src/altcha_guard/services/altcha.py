"""Adapters around the `altcha` library.

The service never builds or checks proofs itself. Challenge creation and
solution verification go through the two small interfaces below so that the
request pipeline can be exercised with test doubles.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol

from altcha import ChallengeOptions, create_challenge, verify_solution

# verify_solution reports a lapsed challenge as "Altcha payload expired".
EXPIRED_MARKER = "expired"

__all__ = [
    "ChallengeProvider",
    "SolutionVerifier",
    "AltchaChallengeProvider",
    "AltchaSolutionVerifier",
]


class ChallengeProvider(Protocol):
    def create(self, hmac_key: str, max_number: int, expires: datetime) -> dict[str, Any]: ...


class SolutionVerifier(Protocol):
    def verify(
        self, payload: str, hmac_key: str, check_expires: bool
    ) -> tuple[bool, str | None]: ...


def _challenge_to_dict(challenge: Any) -> dict[str, Any]:
    """Render an `altcha.Challenge` as the JSON body the widget expects."""
    max_number = getattr(challenge, "max_number", None)
    if max_number is None:
        max_number = getattr(challenge, "maxnumber", None)
    return {
        "algorithm": challenge.algorithm,
        "challenge": challenge.challenge,
        "maxnumber": max_number,
        "salt": challenge.salt,
        "signature": challenge.signature,
    }


class AltchaChallengeProvider:
    """Issues HMAC-signed proof-of-work challenges."""

    def create(self, hmac_key: str, max_number: int, expires: datetime) -> dict[str, Any]:
        options = ChallengeOptions(
            hmac_key=hmac_key,
            max_number=max_number,
            expires=expires,
        )
        return _challenge_to_dict(create_challenge(options))


class AltchaSolutionVerifier:
    """Checks a base64-encoded solved payload against the shared key.

    Returns `(verified, error)`; `error` is set when the payload could not be
    decoded or checked at all. An expired payload is an ordinary rejection,
    not an error.
    """

    def verify(
        self, payload: str, hmac_key: str, check_expires: bool
    ) -> tuple[bool, str | None]:
        verified, error = verify_solution(payload, hmac_key, check_expires)
        if error and EXPIRED_MARKER in error.lower():
            return False, None
        return bool(verified), error or None
