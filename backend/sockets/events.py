import logging

from flask import request
from flask_jwt_extended import decode_token
from flask_jwt_extended.exceptions import JWTExtendedException
from flask_socketio import emit, join_room
from jwt.exceptions import PyJWTError

from sockets import socketio, presence, game_rooms
from services.versus import make_room_id

logger = logging.getLogger(__name__)


def _payload(data):
    return data if isinstance(data, dict) else {}


def _go_online(user_id):
    user_id = str(user_id)
    join_room(user_id)
    if presence.connect(user_id, request.sid):
        socketio.emit("presence_update", {"user_id": user_id, "online": True})
    return user_id


@socketio.on("connect")
def on_connect(auth=None):
    token = _payload(auth).get("token")
    if not token:
        logger.debug("Client connected: %s", request.sid)
        return
    try:
        identity = decode_token(token)["sub"]
    except (PyJWTError, JWTExtendedException):
        logger.warning("Rejected socket %s: invalid token", request.sid)
        return False
    _go_online(identity)
    logger.debug("User %s connected on %s", identity, request.sid)


@socketio.on("join_user")
def on_join_user(user_id):
    if isinstance(user_id, dict):
        user_id = user_id.get("user_id")
    if user_id in (None, ""):
        emit("error", {"message": "user_id is required"})
        return
    user_id = _go_online(user_id)
    logger.debug("User %s joined their room", user_id)


@socketio.on("join_game_room")
def on_join_game_room(room_id):
    if isinstance(room_id, dict):
        room_id = room_id.get("room_id")
    if not room_id:
        emit("error", {"message": "room_id is required"})
        return
    join_room(room_id)

    user_id = presence.user_for(request.sid)
    _, just_filled = game_rooms.join(room_id, user_id=user_id, sid=request.sid)
    logger.debug("Socket %s (user %s) joined game room %s", request.sid, user_id, room_id)

    if just_filled:
        emit("match_ready", {"room_id": room_id}, to=room_id)


def _send_invite(from_id, to_id, from_name, quiz_id):
    room_id = make_room_id(from_id, to_id)
    emit("game_invite", {
        "from_id": from_id,
        "from_name": from_name,
        "quiz_id": quiz_id,
        "room_id": room_id,
    }, to=str(to_id))
    # The sender needs the room id too
    emit("challenge_created", {"room_id": room_id, "to_id": to_id, "quiz_id": quiz_id})
    logger.info("Game invite sent from %s to %s (%s)", from_id, to_id, room_id)


@socketio.on("invite_friend")
def on_invite_friend(data):
    data = _payload(data)
    if not data.get("from_id") or not data.get("to_id"):
        emit("error", {"message": "from_id and to_id are required"})
        return
    _send_invite(data["from_id"], data["to_id"], data.get("from_name", "Friend"), data.get("quiz_id"))


@socketio.on("challenge_user")
def on_challenge_user(data):
    data = _payload(data)
    if not data.get("from") or not data.get("to"):
        emit("error", {"message": "from and to are required"})
        return
    _send_invite(data["from"], data["to"], data.get("from_name", "Friend"), data.get("quiz_id"))


@socketio.on("accept_invite")
def on_accept_invite(data):
    data = _payload(data)
    room_id = data.get("room_id")
    if not room_id or not data.get("from_id"):
        emit("error", {"message": "room_id and from_id are required"})
        return
    user_id = presence.user_for(request.sid) or data.get("user_id")
    emit("invite_accepted", {"room_id": room_id, "user_id": user_id}, to=str(data["from_id"]))
    on_join_game_room(room_id)


@socketio.on("decline_invite")
def on_decline_invite(data):
    data = _payload(data)
    if not data.get("from_id"):
        emit("error", {"message": "from_id is required"})
        return
    user_id = presence.user_for(request.sid) or data.get("user_id")
    emit("invite_declined", {"room_id": data.get("room_id"), "user_id": user_id}, to=str(data["from_id"]))


@socketio.on("update_progress")
def on_update_progress(data):
    data = _payload(data)
    room_id, user_id = data.get("room_id"), data.get("user_id")
    if not room_id or user_id is None:
        return
    emit("opponent_progress", {
        "user_id": user_id,
        "score": data.get("score", 0),
        "current_question": data.get("current_question"),
        "percentage": data.get("percentage"),
    }, to=room_id, include_self=False)
    game_rooms.update_progress(room_id, user_id, data.get("score", 0))


@socketio.on("quiz_completed")
def on_quiz_completed(data):
    data = _payload(data)
    room_id, user_id = data.get("room_id"), data.get("user_id")
    if not room_id or user_id is None:
        return
    result = game_rooms.complete(room_id, user_id, data.get("score", 0), data.get("time_taken", 0))
    if result:
        emit("game_over", result, to=room_id)
        logger.info("Game %s over: winner=%s draw=%s", room_id, result["winner_id"], result["is_draw"])


@socketio.on("disconnect")
def on_disconnect(reason=None):
    user_id = presence.disconnect(request.sid)
    if user_id:
        socketio.emit("presence_update", {"user_id": user_id, "online": False})
    logger.debug("Client disconnected: %s (%s)", request.sid, reason)
