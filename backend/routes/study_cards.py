import logging
from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required
from sqlalchemy import func
from models import db, StudyCard
from utils.errors import NotFoundError, APIError
from utils.role_required import role_required, current_user_or_404
from utils.validators import get_json, require_fields

study_cards_bp = Blueprint("study_cards", __name__)
logger = logging.getLogger(__name__)


def _get_card_or_404(card_id):
    card = StudyCard.query.filter_by(card_id=card_id).first()
    if not card:
        raise NotFoundError("Study card not found")
    return card


def _clean_tags(tags):
    if tags is None:
        return []
    if not isinstance(tags, list):
        raise APIError("tags must be a list")
    return [str(t).strip() for t in tags if str(t).strip()]


@study_cards_bp.route("", methods=["GET"])
@jwt_required()
def list_cards():
    query = StudyCard.query
    category = request.args.get("category")
    if category:
        query = query.filter_by(category=category)
    cards = query.order_by(StudyCard.created_at.desc()).all()
    return jsonify([c.to_dict() for c in cards]), 200


@study_cards_bp.route("/stacks", methods=["GET"])
@jwt_required()
def list_stacks():
    rows = (
        db.session.query(StudyCard.category, func.count(StudyCard.id))
        .group_by(StudyCard.category)
        .order_by(StudyCard.category)
        .all()
    )
    return jsonify([{"category": category, "count": count} for category, count in rows]), 200


@study_cards_bp.route("", methods=["POST"])
@jwt_required()
@role_required("admin")
def create_card():
    user = current_user_or_404()
    data = get_json()
    require_fields(data, "title", "content")

    card = StudyCard(
        title=data["title"],
        content=data["content"],
        category=data.get("category") or "General",
        tags=_clean_tags(data.get("tags")),
        created_by=user.id
    )
    db.session.add(card)
    db.session.commit()
    return jsonify(card.to_dict()), 201


@study_cards_bp.route("/<string:card_id>", methods=["PUT"])
@jwt_required()
@role_required("admin")
def update_card(card_id):
    card = _get_card_or_404(card_id)
    data = get_json()
    require_fields(data)

    for field in ("title", "content", "category"):
        if data.get(field):
            setattr(card, field, data[field])
    if "tags" in data:
        card.tags = _clean_tags(data["tags"])

    db.session.commit()
    return jsonify(card.to_dict()), 200


@study_cards_bp.route("/<string:card_id>", methods=["DELETE"])
@jwt_required()
@role_required("admin")
def delete_card(card_id):
    card = _get_card_or_404(card_id)
    db.session.delete(card)
    db.session.commit()
    return jsonify({"message": "Study card deleted"}), 200


# Stacks are the cards' categories
@study_cards_bp.route("/stacks/<string:category>", methods=["DELETE"])
@jwt_required()
@role_required("admin")
def delete_stack(category):
    deleted = StudyCard.query.filter_by(category=category).delete(synchronize_session=False)
    db.session.commit()
    logger.info("Deleted stack %s (%s cards)", category, deleted)
    return jsonify({"message": f"Deleted {deleted} cards", "deleted": deleted}), 200


@study_cards_bp.route("/stacks/<string:category>", methods=["PUT"])
@jwt_required()
@role_required("admin")
def rename_stack(category):
    data = get_json()
    require_fields(data, "new_name")
    new_name = data["new_name"].strip()
    if not new_name:
        raise APIError("new_name cannot be blank")

    updated = StudyCard.query.filter_by(category=category).update(
        {"category": new_name}, synchronize_session=False
    )
    if not updated:
        raise NotFoundError("Stack not found")
    db.session.commit()
    return jsonify({"message": f"Renamed {updated} cards", "updated": updated}), 200
