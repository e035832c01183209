import logging
from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required
from sqlalchemy import or_
from models import (
    db, User, RoleEnum, Attempt, Badge, Challenge, ShopItem, FriendRequest,
    RequestStatusEnum, StudyCard, friendships, tournament_participants
)
from services.core_services import BadgeService, LeaderboardService
from services.shop_services import ShopService
from sockets import socketio
from utils.errors import ForbiddenError, NotFoundError, APIError
from utils.role_required import role_required, current_user_or_404
from utils.validators import get_json, require_fields, validate_email, validate_password, as_int

users_bp = Blueprint("users", __name__)
logger = logging.getLogger(__name__)


def _get_user_or_404(user_id):
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def _require_self_or_admin(current, user_id):
    if current.id != user_id and not current.is_admin:
        raise ForbiddenError("Forbidden")


# GET everything the client needs after login
@users_bp.route("/me/data", methods=["GET"])
@jwt_required()
def get_user_data():
    user = current_user_or_404()

    attempts = user.attempts.order_by(Attempt.completed_at.desc()).all()
    leaderboard = LeaderboardService.get_top_users(100)
    friends = user.friends.all()

    merged = {u.id: u for u in leaderboard + friends + [user]}

    challenges = (
        Challenge.query.filter(or_(Challenge.from_id == user.id, Challenge.to_id == user.id))
        .order_by(Challenge.created_at.desc())
        .limit(50)
        .all()
    )

    user_data = user.to_dict()
    user_data["rank"] = LeaderboardService.get_user_rank(user)
    user_data["unlocked_items"] = ShopService.unlocked_cosmetics(user)

    return jsonify({
        "user": user_data,
        "attempts": [a.to_dict() for a in attempts],
        "badges": [b.to_dict() for b in Badge.query.all()],
        "users": [u.to_public_dict() for u in merged.values()],
        "challenges": [c.to_dict() for c in challenges],
        "shop_items": [i.to_dict() for i in ShopItem.query.all()]
    }), 200


# UPDATE Profile
@users_bp.route("/<int:user_id>", methods=["PUT"])
@jwt_required()
def update_user(user_id):
    current = current_user_or_404()
    _require_self_or_admin(current, user_id)
    user = _get_user_or_404(user_id)
    data = get_json()
    require_fields(data)

    new_username = data.get("username")
    if new_username:
        if len(new_username) < 3:
            return jsonify({"error": "Username must be at least 3 characters"}), 400
        if User.query.filter(User.username == new_username, User.id != user.id).first():
            return jsonify({"error": "Username already taken"}), 409
        user.username = new_username

    if data.get("email"):
        new_email = validate_email(data["email"])
        if User.query.filter(User.email == new_email, User.id != user.id).first():
            return jsonify({"error": "Email already in use"}), 409
        user.email = new_email

    if "avatar" in data:
        if not isinstance(data["avatar"], dict):
            return jsonify({"error": "avatar must be an object"}), 400
        user.avatar = dict(data["avatar"])

    db.session.commit()
    return jsonify({"message": "Profile updated successfully", "user": user.to_dict()}), 200


# DELETE Account
@users_bp.route("/<int:user_id>", methods=["DELETE"])
@jwt_required()
def delete_user(user_id):
    current = current_user_or_404()
    _require_self_or_admin(current, user_id)
    user = _get_user_or_404(user_id)

    FriendRequest.query.filter(
        or_(FriendRequest.from_id == user.id, FriendRequest.to_id == user.id)
    ).delete(synchronize_session=False)
    Challenge.query.filter(
        or_(Challenge.from_id == user.id, Challenge.to_id == user.id)
    ).delete(synchronize_session=False)
    StudyCard.query.filter_by(created_by=user.id).update({"created_by": None})
    db.session.execute(friendships.delete().where(
        or_(friendships.c.user_id == user.id, friendships.c.friend_id == user.id)
    ))
    db.session.execute(tournament_participants.delete().where(
        tournament_participants.c.user_id == user.id
    ))

    db.session.delete(user)
    db.session.commit()
    logger.info("Deleted user %s (by %s)", user_id, current.username)
    return jsonify({"message": "User and associated attempts deleted successfully"}), 200


@users_bp.route("/search", methods=["GET"])
@jwt_required()
def search_users():
    current = current_user_or_404()
    query = (request.args.get("query") or "").strip()
    if len(query) < 3:
        return jsonify([]), 200

    pattern = f"%{query}%"
    users = (
        User.query.filter(
            or_(User.username.ilike(pattern), User.email.ilike(pattern)),
            User.id != current.id
        )
        .limit(10)
        .all()
    )
    return jsonify([
        {"id": u.id, "username": u.username, "total_score": u.total_score, "level": u.level}
        for u in users
    ]), 200


# ADMIN can View All Users
@users_bp.route("", methods=["GET"])
@jwt_required()
@role_required("admin")
def get_all_users():
    page = request.args.get("page", 1, type=int)
    per_page = request.args.get("per_page", 50, type=int)
    users = User.query.order_by(User.id).paginate(page=page, per_page=per_page, error_out=False)
    return jsonify({
        "users": [u.to_dict() for u in users.items],
        "page": page,
        "total_pages": users.pages,
        "total_users": users.total
    }), 200


@users_bp.route("/<int:user_id>/role", methods=["PUT"])
@jwt_required()
@role_required("admin")
def change_role(user_id):
    user = _get_user_or_404(user_id)
    data = get_json()
    require_fields(data)
    try:
        user.role = RoleEnum[data.get("role", "")]
    except KeyError:
        return jsonify({"error": "Invalid role"}), 400
    db.session.commit()
    return jsonify({"message": f"{user.username} is now {user.role.value}"}), 200


# Admin: reset a user's password
@users_bp.route("/<int:user_id>/password", methods=["PUT"])
@jwt_required()
@role_required("admin")
def set_user_password(user_id):
    user = _get_user_or_404(user_id)
    data = get_json()
    require_fields(data, "new_password")
    user.set_password(validate_password(data["new_password"]))
    db.session.commit()
    logger.info("Admin reset the password of %s", user.username)
    return jsonify({"message": f"Password updated for {user.username}"}), 200


# Friends
@users_bp.route("/friends", methods=["GET"])
@jwt_required()
def get_friends():
    user = current_user_or_404()
    incoming = FriendRequest.query.filter_by(to_id=user.id, status=RequestStatusEnum.pending).all()
    outgoing = FriendRequest.query.filter_by(from_id=user.id, status=RequestStatusEnum.pending).all()
    return jsonify({
        "friends": [f.to_public_dict() for f in user.friends],
        "incoming_requests": [r.to_dict() for r in incoming],
        "outgoing_requests": [r.to_dict() for r in outgoing]
    }), 200


@users_bp.route("/friends/request", methods=["POST"])
@jwt_required()
def send_friend_request():
    user = current_user_or_404()
    data = get_json()
    require_fields(data, "target_user_id")
    target_id = as_int(data["target_user_id"], "target_user_id")

    if target_id == user.id:
        return jsonify({"error": "Cannot friend yourself"}), 400
    target = _get_user_or_404(target_id)

    pending = FriendRequest.query.filter_by(
        from_id=user.id, to_id=target.id, status=RequestStatusEnum.pending
    ).first()
    if pending:
        return jsonify({"error": "Request already sent"}), 400
    if user.friends.filter(User.id == target.id).first():
        return jsonify({"error": "Already friends"}), 400

    db.session.add(FriendRequest(from_id=user.id, to_id=target.id))
    db.session.commit()

    socketio.emit("friend_request", {"from": user.username, "from_id": user.id}, to=str(target.id))
    return jsonify({"message": "Friend request sent"}), 201


@users_bp.route("/friends/respond", methods=["POST"])
@jwt_required()
def respond_to_friend_request():
    user = current_user_or_404()
    data = get_json()
    require_fields(data, "from_user_id", "action")
    action = data["action"]
    if action not in ("accept", "reject"):
        raise APIError("action must be 'accept' or 'reject'")

    friend_request = FriendRequest.query.filter_by(
        from_id=as_int(data["from_user_id"], "from_user_id"), to_id=user.id, status=RequestStatusEnum.pending
    ).first()
    if not friend_request:
        return jsonify({"error": "Request not found"}), 404

    new_badges = []
    if action == "accept":
        sender = friend_request.sender
        friend_request.status = RequestStatusEnum.accepted
        user.friends.append(sender)
        sender.friends.append(user)
        db.session.flush()
        new_badges = BadgeService.check_badges(user)
        BadgeService.check_badges(sender)
        socketio.emit(
            "friend_request_accepted",
            {"username": user.username, "user_id": user.id},
            to=str(sender.id)
        )
    else:
        friend_request.status = RequestStatusEnum.rejected

    db.session.commit()
    return jsonify({
        "message": f"Friend request {action}ed",
        "new_badges": [b.to_dict() for b in new_badges]
    }), 200
