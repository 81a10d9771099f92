"""API endpoint modules."""

from .captcha import router as captcha_router
from .system import router as system_router

__all__ = ["captcha_router", "system_router"]
