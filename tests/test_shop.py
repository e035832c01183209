from models import db, User, ShopItem, UserItem, PowerUp
from utils.constants import DEFAULT_SHOP_ITEMS


def _give_coins(user, coins):
    user.coins = coins
    db.session.commit()


def test_listing_seeds_default_catalogue_once(client):
    first = client.get("/api/shop/items").get_json()
    second = client.get("/api/shop/items").get_json()
    assert len(first) == len(second) == len(DEFAULT_SHOP_ITEMS)
    assert ShopItem.query.count() == len(DEFAULT_SHOP_ITEMS)


def test_buy_power_up_adds_inventory_and_uses(client, user, user_headers):
    client.get("/api/shop/items")
    _give_coins(user, 200)

    res = client.post("/api/shop/purchase", json={"item_id": "power-5050"}, headers=user_headers)
    assert res.status_code == 200
    assert res.get_json()["coins"] == 150
    client.post("/api/shop/purchase", json={"item_id": "power-5050"}, headers=user_headers)

    assert UserItem.query.filter_by(user_id=user.id, item_id="power-5050").one().quantity == 2
    assert PowerUp.query.filter_by(user_id=user.id, type="5050").one().quantity == 2
    assert db.session.get(User, user.id).coins == 100


def test_cosmetic_can_only_be_bought_once(client, user, user_headers):
    client.get("/api/shop/items")
    _give_coins(user, 1000)

    first = client.post("/api/shop/purchase", json={"item_id": "style-glasses"}, headers=user_headers)
    assert first.get_json()["unlocked_items"] == ["style-glasses"]

    again = client.post("/api/shop/purchase", json={"item_id": "style-glasses"}, headers=user_headers)
    assert again.status_code == 400
    assert again.get_json()["error"] == "Item already owned"
    assert db.session.get(User, user.id).coins == 800
    assert PowerUp.query.count() == 0


def test_purchase_errors(client, user, user_headers):
    client.get("/api/shop/items")
    assert client.post("/api/shop/purchase", json={"item_id": "nope"}, headers=user_headers).status_code == 404

    broke = client.post("/api/shop/purchase", json={"item_id": "style-crown"}, headers=user_headers)
    assert broke.status_code == 400
    assert broke.get_json()["error"] == "Not enough coins"


def test_admin_item_management(client, user_headers, admin_headers):
    assert client.post("/api/shop/items", json={"name": "Hat"}, headers=user_headers).status_code == 403

    created = client.post("/api/shop/items", json={
        "name": "Party Hat", "type": "cosmetic", "price": 30, "payload": {"cosmetic_type": "hat"}
    }, headers=admin_headers)
    assert created.status_code == 201
    item_id = created.get_json()["item_id"]
    assert item_id.startswith("item_")

    bad_type = client.post("/api/shop/items", json={"name": "X", "type": "weapon"}, headers=admin_headers)
    assert bad_type.status_code == 400

    updated = client.put(f"/api/shop/items/{item_id}", json={"price": 45}, headers=admin_headers)
    assert updated.get_json()["price"] == 45

    assert client.delete(f"/api/shop/items/{item_id}", headers=admin_headers).status_code == 200
    assert ShopItem.query.filter_by(item_id=item_id).first() is None
