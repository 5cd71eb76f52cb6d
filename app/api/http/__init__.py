from app.api.http.health import router as health_router
from app.api.http.collaborations import router as collaborations_router
from app.api.http.shares import router as shares_router

__all__ = [
    "health_router",
    "collaborations_router",
    "shares_router"
]
