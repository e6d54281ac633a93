from fastapi import FastAPI

from .admin import router as admin_router
from .batches import router as batches_router
from .notifications import router as notifications_router
from .preferences import router as preferences_router
from .push import router as push_router
from .scheduled import router as scheduled_router
from .templates import router as templates_router
from .websocket import router as websocket_router


def register_routes(app: FastAPI) -> None:
    """Register every API router on the FastAPI application.

    Routers with fixed ``/notifications/...`` prefixes go first so their
    paths are matched before ``/notifications/{notification_id}``.
    """

    app.include_router(websocket_router)
    app.include_router(preferences_router)
    app.include_router(templates_router)
    app.include_router(push_router)
    app.include_router(scheduled_router)
    app.include_router(batches_router)
    app.include_router(admin_router)
    app.include_router(notifications_router)
