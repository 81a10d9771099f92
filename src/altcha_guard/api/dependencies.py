"""Shared API dependencies resolving the components built at startup."""

from typing import Annotated

from fastapi import Depends, Request

from altcha_guard.core.settings import Settings
from altcha_guard.services.replay import ReplayCache
from altcha_guard.services.verification import VerificationService


def get_app_settings(request: Request) -> Settings:
    """Return the settings the running app was created with."""
    return request.app.state.settings


def get_verification_service(request: Request) -> VerificationService:
    """Return the verification pipeline shared by all requests."""
    return request.app.state.verification_service


def get_replay_cache(request: Request) -> ReplayCache:
    """Return the replay cache owned by the running app."""
    return request.app.state.replay_cache


SettingsDep = Annotated[Settings, Depends(get_app_settings)]
VerificationServiceDep = Annotated[VerificationService, Depends(get_verification_service)]
ReplayCacheDep = Annotated[ReplayCache, Depends(get_replay_cache)]
