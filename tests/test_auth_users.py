from datetime import date, timedelta

from conftest import make_user, auth_headers
from models import db, User, Attempt, FriendRequest, RequestStatusEnum


def test_register_returns_token_and_normalised_email(client):
    res = client.post("/api/auth/register", json={
        "username": "newbie", "email": "NewBie@Example.com", "password": "longenough"
    })
    assert res.status_code == 201
    body = res.get_json()
    assert body["token"]
    assert body["user"]["email"] == "newbie@example.com"
    assert body["user"]["level"] == 1


def test_register_validation(client, user):
    short = client.post("/api/auth/register", json={"username": "abc", "email": "a@b.co", "password": "short"})
    assert short.status_code == 400

    missing = client.post("/api/auth/register", json={"username": "abc"})
    assert missing.status_code == 400
    assert "password" in missing.get_json()["details"]["missing"]

    taken = client.post("/api/auth/register", json={
        "username": "someone", "email": "ALICE@example.com", "password": "password123"
    })
    assert taken.status_code == 400
    assert taken.get_json()["error"] == "Email already registered"


def test_login_by_username_or_email(client, user):
    by_name = client.post("/api/auth/login", json={"username": "alice", "password": "password123"})
    by_email = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "password123"})
    assert by_name.status_code == 200
    assert by_email.status_code == 200

    wrong = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "nope"})
    assert wrong.status_code == 401


def test_login_extends_streak(client, user):
    user.last_login_date = date.today() - timedelta(days=1)
    user.streak_days = 6
    db.session.commit()

    res = client.post("/api/auth/login", json={"username": "alice", "password": "password123"})
    assert res.status_code == 200
    assert res.get_json()["user"]["streak_days"] == 7


def test_me_requires_token(client, user_headers):
    assert client.get("/api/auth/me").status_code == 401
    res = client.get("/api/auth/me", headers=user_headers)
    assert res.status_code == 200
    assert res.get_json()["user"]["rank"] == 1


def test_me_data_aggregate(client, user, user_headers):
    res = client.get("/api/users/me/data", headers=user_headers)
    assert res.status_code == 200
    body = res.get_json()
    assert body["user"]["username"] == "alice"
    assert {"attempts", "badges", "users", "challenges", "shop_items"} <= set(body)


def test_update_profile_self_only(client, user, other_user, user_headers):
    res = client.put(f"/api/users/{user.id}", json={"username": "alice2", "avatar": {"hat": "crown"}},
                     headers=user_headers)
    assert res.status_code == 200
    assert res.get_json()["user"]["avatar"] == {"hat": "crown"}

    forbidden = client.put(f"/api/users/{other_user.id}", json={"username": "hacked"}, headers=user_headers)
    assert forbidden.status_code == 403


def test_update_ignores_role_and_counters(client, user, user_headers):
    client.put(f"/api/users/{user.id}", json={"role": "admin", "coins": 9999}, headers=user_headers)
    refreshed = db.session.get(User, user.id)
    assert refreshed.role.value == "learner"
    assert refreshed.coins == 0


def test_delete_user_removes_attempts(client, user, admin_headers):
    db.session.add(Attempt(user_id=user.id, quiz_title="Old quiz", score=1, max_score=2))
    db.session.commit()

    res = client.delete(f"/api/users/{user.id}", headers=admin_headers)
    assert res.status_code == 200
    assert db.session.get(User, user.id) is None
    assert Attempt.query.count() == 0


def test_search_rules(client, user, user_headers):
    make_user("alina")
    make_user("albert")
    assert client.get("/api/users/search?query=al", headers=user_headers).get_json() == []

    names = [u["username"] for u in client.get("/api/users/search?query=ali", headers=user_headers).get_json()]
    assert names == ["alina"]


def test_admin_user_list_and_role_change(client, user, user_headers, admin_headers):
    assert client.get("/api/users", headers=user_headers).status_code == 403

    res = client.get("/api/users", headers=admin_headers)
    assert res.get_json()["total_users"] == 2

    changed = client.put(f"/api/users/{user.id}/role", json={"role": "admin"}, headers=admin_headers)
    assert changed.status_code == 200
    assert db.session.get(User, user.id).is_admin

    bad = client.put(f"/api/users/{user.id}/role", json={"role": "overlord"}, headers=admin_headers)
    assert bad.status_code == 400


def test_friend_request_flow(client, user, other_user, user_headers):
    assert client.post("/api/users/friends/request", json={"target_user_id": user.id},
                       headers=user_headers).status_code == 400

    sent = client.post("/api/users/friends/request", json={"target_user_id": other_user.id}, headers=user_headers)
    assert sent.status_code == 201
    duplicate = client.post("/api/users/friends/request", json={"target_user_id": other_user.id},
                            headers=user_headers)
    assert duplicate.status_code == 400

    other_headers = auth_headers(other_user)
    incoming = client.get("/api/users/friends", headers=other_headers).get_json()["incoming_requests"]
    assert incoming[0]["from_username"] == "alice"

    accepted = client.post("/api/users/friends/respond", json={"from_user_id": user.id, "action": "accept"},
                           headers=other_headers)
    assert accepted.status_code == 200
    assert FriendRequest.query.one().status == RequestStatusEnum.accepted

    friends = client.get("/api/users/friends", headers=user_headers).get_json()["friends"]
    assert [f["username"] for f in friends] == ["bobby"]

    again = client.post("/api/users/friends/request", json={"target_user_id": other_user.id},
                        headers=user_headers)
    assert again.get_json()["error"] == "Already friends"


def test_respond_to_missing_request(client, user, other_user, user_headers):
    res = client.post("/api/users/friends/respond", json={"from_user_id": other_user.id, "action": "reject"},
                      headers=user_headers)
    assert res.status_code == 404


def test_friend_routes_reject_non_numeric_ids(client, user, user_headers):
    sent = client.post("/api/users/friends/request", json={"target_user_id": "bob"}, headers=user_headers)
    assert sent.status_code == 400
    assert sent.get_json()["error"] == "target_user_id must be an integer"

    answered = client.post("/api/users/friends/respond", json={"from_user_id": "bob", "action": "accept"},
                           headers=user_headers)
    assert answered.status_code == 400
    assert answered.get_json()["error"] == "from_user_id must be an integer"


def test_change_password_checks_current_one(client, user, user_headers):
    wrong = client.post("/api/auth/change-password", json={
        "current_password": "guess1234", "new_password": "brandnew123"
    }, headers=user_headers)
    assert wrong.status_code == 400

    short = client.post("/api/auth/change-password", json={
        "current_password": "password123", "new_password": "short"
    }, headers=user_headers)
    assert short.status_code == 400

    ok = client.post("/api/auth/change-password", json={
        "current_password": "password123", "new_password": "brandnew123"
    }, headers=user_headers)
    assert ok.status_code == 200

    old = client.post("/api/auth/login", json={"username": "alice", "password": "password123"})
    new = client.post("/api/auth/login", json={"username": "alice", "password": "brandnew123"})
    assert old.status_code == 401
    assert new.status_code == 200


def test_admin_resets_user_password(client, user, other_user, user_headers, admin_headers):
    url = f"/api/users/{other_user.id}/password"
    assert client.put(url, json={"new_password": "resetpass1"}, headers=user_headers).status_code == 403
    assert client.put(url, json={"new_password": "tiny"}, headers=admin_headers).status_code == 400
    assert client.put("/api/users/9999/password", json={"new_password": "resetpass1"},
                      headers=admin_headers).status_code == 404

    assert client.put(url, json={"new_password": "resetpass1"}, headers=admin_headers).status_code == 200
    login = client.post("/api/auth/login", json={"username": "bobby", "password": "resetpass1"})
    assert login.status_code == 200
