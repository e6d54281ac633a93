"""HTTP and websocket API of the notification engine."""

from .routes import register_routes

__all__ = ["register_routes"]
