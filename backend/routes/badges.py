import logging
from flask import Blueprint, jsonify
from flask_jwt_extended import jwt_required
from models import db, Badge, User, UserBadge
from services.core_services import BadgeService
from utils.errors import NotFoundError, ConflictError, APIError
from utils.role_required import role_required, current_user_or_404
from utils.validators import get_json, require_fields, as_int

badges_bp = Blueprint('badges_bp', __name__)
logger = logging.getLogger(__name__)


def _get_badge_or_404(badge_key):
    badge = Badge.query.filter_by(key=badge_key).first()
    if not badge:
        raise NotFoundError("Badge not found")
    return badge


#GET all badges
@badges_bp.route('', methods=['GET'])
def get_all_badges():
    return jsonify([b.to_dict() for b in Badge.query.order_by(Badge.id).all()]), 200


#GET user's earned badges & progress
@badges_bp.route('/my-badges', methods=['GET'])
@jwt_required()
def get_my_badges():
    user = current_user_or_404()
    earned = {ub.badge_id: ub.awarded_at for ub in user.badges}
    progress = BadgeService.get_user_badge_progress(user)

    badges = []
    for badge in Badge.query.order_by(Badge.id).all():
        data = badge.to_dict()
        data["earned"] = badge.id in earned
        data["awarded_at"] = earned[badge.id].isoformat() if earned.get(badge.id) else None
        data["progress"] = progress.get(badge.key)
        badges.append(data)

    return jsonify({
        "badges": badges,
        "earned_count": len(earned),
        "total_count": len(badges)
    }), 200


#GET single badge
@badges_bp.route('/<string:badge_key>', methods=['GET'])
def get_badge(badge_key):
    badge = _get_badge_or_404(badge_key)
    data = badge.to_dict()
    data["total_earners"] = UserBadge.query.filter_by(badge_id=badge.id).count()
    return jsonify(data), 200


# Admin: create a badge definition
@badges_bp.route('', methods=['POST'])
@jwt_required()
@role_required('admin')
def create_badge():
    data = get_json()
    require_fields(data, 'key', 'name')

    criteria = data.get('criteria') or {}
    criteria_type = data.get('criteria_type') or criteria.get('type') or 'manual'
    if not BadgeService.is_valid_criteria(criteria_type):
        raise APIError(f"Unknown criteria type: {criteria_type}")
    if Badge.query.filter_by(key=data['key']).first():
        raise ConflictError("Badge key already exists")

    badge = Badge(
        key=data['key'],
        name=data['name'],
        description=data.get('description', ''),
        icon=data.get('icon') or "🏅",
        criteria_type=criteria_type,
        threshold=as_int(data.get('threshold', criteria.get('threshold', 1)), 'threshold', minimum=0),
        reward_xp=as_int(data.get('reward_xp', 0), 'reward_xp', minimum=0),
        reward_coins=as_int(data.get('reward_coins', 0), 'reward_coins', minimum=0)
    )
    db.session.add(badge)
    db.session.commit()
    logger.info("Created badge %s", badge.key)
    return jsonify(badge.to_dict()), 201


@badges_bp.route('/<string:badge_key>', methods=['DELETE'])
@jwt_required()
@role_required('admin')
def delete_badge(badge_key):
    badge = _get_badge_or_404(badge_key)
    db.session.delete(badge)
    db.session.commit()
    return jsonify({"message": "Badge deleted"}), 200


# Admin: award a badge by hand
@badges_bp.route('/award', methods=['POST'])
@jwt_required()
@role_required('admin')
def award_badge():
    data = get_json()
    require_fields(data, 'user_id', 'badge_key')

    user = db.session.get(User, as_int(data['user_id'], 'user_id'))
    if not user:
        raise NotFoundError("User not found")
    badge = _get_badge_or_404(data['badge_key'])

    if not BadgeService.award_badge(user, badge):
        return jsonify({"error": "User already has this badge"}), 400
    db.session.commit()

    return jsonify({
        "message": f"Badge '{badge.name}' awarded to {user.username}",
        "user": user.to_public_dict()
    }), 200
