"""Shared authentication utilities for API projects."""

from .dependencies import get_current_user, security
from .jwt_validator import JWTValidator, get_validator
from .models import User

__all__ = [
    "get_current_user",
    "security",
    "JWTValidator",
    "get_validator",
    "User",
]
