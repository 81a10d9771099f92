"""Domain-specific exceptions raised while issuing and verifying challenges."""

from __future__ import annotations


class AltchaGuardError(Exception):
    """Base class for service failures."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ClientError(AltchaGuardError):
    """Raised when the request itself is malformed or incomplete."""

    status_code = 400


class MissingPayloadError(ClientError):
    """Raised when the solved token form field is absent or empty."""

    def __init__(self, message: str = "Altcha payload missing") -> None:
        super().__init__(message)


class ReplayError(AltchaGuardError):
    """Raised when a token was already redeemed inside its TTL window."""

    def __init__(self, message: str = "Replay detected: CAPTCHA already used") -> None:
        super().__init__(message)


class VerificationError(AltchaGuardError):
    """Raised when the verifier rejects a token or fails while checking it."""


class UpstreamError(AltchaGuardError):
    """Raised when the challenge provider cannot produce a challenge."""

    status_code = 500


class FatalError(AltchaGuardError):
    """Raised when a startup resource cannot be acquired."""


class CacheBackendError(FatalError):
    """Raised when the replay cache backend cannot be initialized."""


__all__ = [
    "AltchaGuardError",
    "ClientError",
    "MissingPayloadError",
    "ReplayError",
    "VerificationError",
    "UpstreamError",
    "FatalError",
    "CacheBackendError",
]
