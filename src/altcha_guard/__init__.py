"""Proof-of-work CAPTCHA verification service with replay protection."""

__version__ = "0.1.0"
