from flask import Blueprint, jsonify
from flask_jwt_extended import jwt_required
from models import db, ShopItem
from services.shop_services import ShopService
from utils.errors import NotFoundError
from utils.role_required import role_required, current_user_or_404
from utils.validators import get_json, require_fields

shop_bp = Blueprint("shop", __name__)


def _get_item_or_404(item_id):
    item = ShopItem.query.filter_by(item_id=item_id).first()
    if not item:
        raise NotFoundError("Item not found")
    return item


@shop_bp.route("/items", methods=["GET"])
def list_items():
    ShopService.ensure_seed()
    items = ShopItem.query.order_by(ShopItem.price.asc()).all()
    return jsonify([i.to_dict() for i in items]), 200


@shop_bp.route("/purchase", methods=["POST"])
@jwt_required()
def purchase():
    user = current_user_or_404()
    data = get_json()
    require_fields(data, "item_id")

    item = ShopService.purchase(user, data["item_id"])
    return jsonify({
        "message": f"Purchased {item.name}",
        "item": item.to_dict(),
        "coins": user.coins,
        "inventory": [i.to_dict() for i in user.inventory],
        "power_ups": [p.to_dict() for p in user.power_ups],
        "unlocked_items": ShopService.unlocked_cosmetics(user)
    }), 200


@shop_bp.route("/inventory", methods=["GET"])
@jwt_required()
def my_inventory():
    user = current_user_or_404()
    return jsonify({
        "coins": user.coins,
        "inventory": [i.to_dict() for i in user.inventory],
        "power_ups": [p.to_dict() for p in user.power_ups],
        "unlocked_items": ShopService.unlocked_cosmetics(user)
    }), 200


# Admin routes
@shop_bp.route("/items", methods=["POST"])
@jwt_required()
@role_required("admin")
def create_item():
    data = get_json()
    require_fields(data)
    item = ShopService.create_item(data)
    return jsonify(item.to_dict()), 201


@shop_bp.route("/items/<string:item_id>", methods=["PUT"])
@jwt_required()
@role_required("admin")
def update_item(item_id):
    item = _get_item_or_404(item_id)
    data = get_json()
    require_fields(data)
    data.pop("item_id", None)
    ShopService.apply_payload(item, data)
    db.session.commit()
    return jsonify(item.to_dict()), 200


@shop_bp.route("/items/<string:item_id>", methods=["DELETE"])
@jwt_required()
@role_required("admin")
def delete_item(item_id):
    item = _get_item_or_404(item_id)
    db.session.delete(item)
    db.session.commit()
    return jsonify({"message": "Item deleted"}), 200
