# src/altcha_guard/services/__init__.py
"""Business logic services for the ALTCHA Guard service."""

from .altcha import AltchaChallengeProvider, AltchaSolutionVerifier
from .replay import BoundedReplayCache, MemoryReplayCache, ReplayCache, build_replay_cache
from .sweeper import CacheSweeper
from .verification import VerificationService

__all__ = [
    "AltchaChallengeProvider",
    "AltchaSolutionVerifier",
    "BoundedReplayCache",
    "CacheSweeper",
    "MemoryReplayCache",
    "ReplayCache",
    "VerificationService",
    "build_replay_cache",
]
