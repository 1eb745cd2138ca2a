"""
Route modules. Import and include in main app.
"""

from api.routes.auth import router as auth_router
from api.routes.health import router as health_router
from api.routes.metrics import router as metrics_router
from api.routes.notes import router as notes_router
from api.routes.profile import router as profile_router

__all__ = ["auth_router", "health_router", "metrics_router", "notes_router", "profile_router"]
