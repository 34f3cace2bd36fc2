"""Health check module"""

from .health import router

__all__ = ["router"]
