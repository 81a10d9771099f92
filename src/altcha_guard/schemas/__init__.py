# src/altcha_guard/schemas/__init__.py
"""
Pydantic schemas for API response models.
"""

from .captcha import HealthResponse, VerifyResponse

__all__ = ["HealthResponse", "VerifyResponse"]
