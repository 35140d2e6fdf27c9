from rifaria.routers.auth import router as auth_router
from rifaria.routers.raffles import router as raffles_router
from rifaria.routers.tickets import router as tickets_router
from rifaria.routers.payments import router as payments_router
from rifaria.routers.media import router as media_router

__all__ = [
    "auth_router",
    "raffles_router",
    "tickets_router",
    "payments_router",
    "media_router"
]
