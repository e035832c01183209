from flask_socketio import SocketIO

from services.presence import PresenceTracker
from services.versus import GameRoomRegistry

socketio = SocketIO()
presence = PresenceTracker()
game_rooms = GameRoomRegistry()


def init_socketio(app):
    game_rooms.ttl_seconds = app.config.get("GAME_ROOM_TTL_SECONDS", 3600)
    socketio.init_app(
        app,
        cors_allowed_origins=app.config.get("CORS_ORIGINS") or "*",
        ping_timeout=60,
        ping_interval=25
    )


# Registers the event handlers on import
from sockets import events  # noqa: E402,F401
