"""Challenge issuance and solution verification endpoints."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Form

from altcha_guard.api.dependencies import VerificationServiceDep
from altcha_guard.core.errors import ReplayError, VerificationError
from altcha_guard.schemas.captcha import VerifyResponse

router = APIRouter(tags=["captcha"])


@router.get("/challenge")
async def get_challenge(service: VerificationServiceDep) -> dict[str, Any]:
    """Issue a signed proof-of-work challenge for the widget to solve.

    Returns:
        The challenge fields (`algorithm`, `challenge`, `maxnumber`, `salt`,
        `signature`) as produced by the challenge provider.
    """
    return service.issue_challenge()


@router.post("/verify", response_model=VerifyResponse, response_model_exclude_none=True)
async def verify_solution(
    service: VerificationServiceDep,
    altcha: Annotated[str | None, Form()] = None,
) -> VerifyResponse:
    """Verify a solved challenge and redeem it.

    Replays and rejected proofs are reported in the body with
    `success=false`; a missing payload is a 400.
    """
    try:
        await service.verify(altcha)
    except (ReplayError, VerificationError) as exc:
        return VerifyResponse(success=False, message=exc.message)
    return VerifyResponse(success=True)
