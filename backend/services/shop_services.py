import logging
import uuid

from models import db, ShopItem, ShopItemTypeEnum, UserItem, PowerUp
from utils.constants import DEFAULT_SHOP_ITEMS
from utils.errors import APIError, NotFoundError

logger = logging.getLogger(__name__)

ITEM_FIELDS = ("name", "description", "price", "payload")


class ShopService:

    @staticmethod
    def ensure_seed():
        """Insert any missing default items; existing rows are left alone."""
        existing = {item_id for (item_id,) in db.session.query(ShopItem.item_id).all()}
        missing = [data for data in DEFAULT_SHOP_ITEMS if data["item_id"] not in existing]
        for data in missing:
            item = ShopService.apply_payload(ShopItem(item_id=data["item_id"]), data)
            db.session.add(item)
        if missing:
            db.session.commit()
            logger.info("Seeded %s shop items", len(missing))

    @staticmethod
    def apply_payload(item, data):
        for field in ITEM_FIELDS:
            if field in data:
                setattr(item, field, data[field])
        if "type" in data:
            try:
                item.type = ShopItemTypeEnum(data["type"])
            except ValueError:
                raise APIError("type must be one of: power-up, cosmetic, boost")
        if item.price is not None and item.price < 0:
            raise APIError("price cannot be negative")
        return item

    @staticmethod
    def create_item(data):
        if not data.get("name"):
            raise APIError("Name is required")
        item_id = data.get("item_id") or f"item_{uuid.uuid4().hex[:12]}"
        if ShopItem.query.filter_by(item_id=item_id).first():
            raise APIError("Item ID already exists", 409)
        item = ShopService.apply_payload(ShopItem(item_id=item_id, payload={}), data)
        db.session.add(item)
        db.session.commit()
        return item

    @staticmethod
    def _owns(user, item_id):
        return UserItem.query.filter_by(user_id=user.id, item_id=item_id).first()

    @staticmethod
    def purchase(user, item_id):
        item = ShopItem.query.filter_by(item_id=item_id).first()
        if not item:
            raise NotFoundError("Item not found")

        owned = ShopService._owns(user, item_id)
        if item.type == ShopItemTypeEnum.cosmetic and owned:
            raise APIError("Item already owned")

        if (user.coins or 0) < item.price:
            raise APIError("Not enough coins")

        user.coins = (user.coins or 0) - item.price

        if owned:
            owned.quantity += 1
        else:
            db.session.add(UserItem(user_id=user.id, item_id=item_id, quantity=1))

        payload = item.payload or {}
        power_up_type = payload.get("power_up_type")
        if item.type != ShopItemTypeEnum.cosmetic and power_up_type:
            uses = int(payload.get("uses", 1))
            power_up = PowerUp.query.filter_by(user_id=user.id, type=power_up_type).first()
            if power_up:
                power_up.quantity += uses
            else:
                db.session.add(PowerUp(user_id=user.id, type=power_up_type, quantity=uses))

        db.session.commit()
        logger.info("%s bought %s for %s coins", user.username, item_id, item.price)
        return item

    @staticmethod
    def unlocked_cosmetics(user):
        cosmetic_ids = {
            i.item_id for i in ShopItem.query.filter_by(type=ShopItemTypeEnum.cosmetic).all()
        }
        return [ui.item_id for ui in user.inventory if ui.item_id in cosmetic_ids]
