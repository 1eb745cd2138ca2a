"""
Core package: configuration, token verification, error types, dependencies and middleware.
Kept free of route and backend specifics so it can be tested in isolation.
"""

from core.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
