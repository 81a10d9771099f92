"""Challenge issuance and replay-gated verification of solved tokens."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

from altcha_guard.core.errors import (
    MissingPayloadError,
    ReplayError,
    UpstreamError,
    VerificationError,
)
from altcha_guard.services.altcha import ChallengeProvider, SolutionVerifier
from altcha_guard.services.replay import ReplayCache

INVALID_TOKEN_MESSAGE = "Invalid or expired token"
VERIFIER_FAILURE_DETAIL = "unable to check payload"

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VerificationService:
    """Sequences replay check, proof verification and redemption recording.

    One instance is built at startup and shared by every request. The cache
    is only written after the verifier accepts a token, so rejected tokens
    can be retried.
    """

    def __init__(
        self,
        cache: ReplayCache,
        provider: ChallengeProvider,
        verifier: SolutionVerifier,
        *,
        hmac_key: str,
        max_number: int,
        ttl_seconds: int,
        replay_detection_enabled: bool = True,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.cache = cache
        self.provider = provider
        self.verifier = verifier
        self._hmac_key = hmac_key
        self.max_number = max_number
        self.ttl_seconds = ttl_seconds
        self.replay_detection_enabled = replay_detection_enabled
        self._clock = clock

    def issue_challenge(self) -> dict[str, Any]:
        """Create a signed challenge that expires after the TTL window.

        Raises:
            UpstreamError: If the challenge provider fails.
        """
        expires = self._clock() + timedelta(seconds=self.ttl_seconds)
        try:
            return self.provider.create(self._hmac_key, self.max_number, expires)
        except Exception as exc:
            logger.error("Challenge provider failed: %s", exc)
            raise UpstreamError(f"Failed to create challenge: {exc}") from exc

    async def verify(self, token: str | None) -> None:
        """Accept a solved token or raise the reason it was rejected.

        Args:
            token: The raw `altcha` form value exactly as the client sent it.

        Raises:
            MissingPayloadError: If no token was supplied.
            ReplayError: If the token was already redeemed in its TTL window.
            VerificationError: If the verifier rejected the token or failed.
        """
        if not token:
            raise MissingPayloadError()

        if self.replay_detection_enabled and self.cache.contains_active(token):
            raise ReplayError()

        try:
            verified, error = await asyncio.to_thread(
                self.verifier.verify, token, self._hmac_key, True
            )
        except Exception:
            logger.exception("Solution verifier raised while checking a payload")
            raise VerificationError(f"Verification error: {VERIFIER_FAILURE_DETAIL}") from None

        if error:
            raise VerificationError(f"Verification error: {error}")
        if not verified:
            raise VerificationError(INVALID_TOKEN_MESSAGE)

        # A concurrent request may have redeemed the same token while this
        # one was verifying; only the first recorder wins.
        if self.replay_detection_enabled and not self.cache.add(token, self.ttl_seconds):
            raise ReplayError()
