from datetime import date, datetime, timedelta

import pytest

from conftest import auth_headers, correct_answers, make_user
from models import db, User, DailyChallenge, SkillTrackProgress, XPLog
from services.quiz_services import QuizService

TRACK = {
    "track_id": "python-dev",
    "title": "Python Developer",
    "modules": [
        {"id": "intro", "title": "Intro", "xp_reward": 50,
         "sub_modules": [{"id": "install", "title": "Install"}, {"id": "repl", "title": "REPL"}]},
        {"id": "basics", "title": "Basics", "prerequisites": ["intro"], "quiz_ids": ["python-basics"]},
        {"id": "project", "title": "Project", "prerequisites": ["basics"]},
    ],
}


@pytest.fixture
def track(client, quiz, admin_headers):
    res = client.post("/api/skill-tracks", json=TRACK, headers=admin_headers)
    assert res.status_code == 201
    return res.get_json()


# Daily challenge
def test_dynamic_daily_challenge_is_stable_for_the_day(client, quiz, user_headers):
    first = client.get("/api/daily-challenge", headers=user_headers).get_json()
    second = client.get("/api/daily-challenge", headers=user_headers).get_json()
    assert first["quiz_id"] == second["quiz_id"] == "python-basics"
    assert first["reward_coins"] == 50
    assert first["completed"] is False


def test_no_daily_challenge_without_quizzes(client, user_headers):
    assert client.get("/api/daily-challenge", headers=user_headers).status_code == 404


def test_complete_daily_challenge_once_per_day(client, user, user_headers):
    res = client.post("/api/daily-challenge/complete", headers=user_headers).get_json()
    assert res["streak"] == 1
    assert res["coins"] == 20
    assert res["xp"] == 100

    again = client.post("/api/daily-challenge/complete", headers=user_headers).get_json()
    assert again["message"] == "Already completed today"
    assert db.session.get(User, user.id).coins == 20


def test_daily_streak_continues_or_resets(client, user, user_headers):
    user.daily_challenge_date = date.today() - timedelta(days=1)
    user.daily_challenge_streak = 4
    db.session.commit()
    assert client.post("/api/daily-challenge/complete", headers=user_headers).get_json()["streak"] == 5

    other = make_user("carol", daily_challenge_date=date.today() - timedelta(days=3), daily_challenge_streak=9)
    assert client.post("/api/daily-challenge/complete", headers=auth_headers(other)).get_json()["streak"] == 1


def test_scheduled_daily_challenge(client, quiz, user_headers, admin_headers):
    today = date.today().isoformat()
    created = client.post("/api/daily-challenge/admin", json={
        "date": today, "title": "Speed round", "description": "Beat the clock",
        "quiz_id": "python-basics", "reward_coins": 75, "reward_xp": 30
    }, headers=admin_headers)
    assert created.status_code == 201

    duplicate = client.post("/api/daily-challenge/admin", json={
        "date": today, "title": "Again", "description": "Again"
    }, headers=admin_headers)
    assert duplicate.status_code == 409

    current = client.get("/api/daily-challenge", headers=user_headers).get_json()
    assert current["title"] == "Speed round"
    assert current["quiz_id"] == "python-basics"

    done = client.post("/api/daily-challenge/complete", headers=user_headers).get_json()
    assert done["coins"] == 75

    updated = client.put(f"/api/daily-challenge/admin/{today}", json={"title": "Renamed"}, headers=admin_headers)
    assert updated.get_json()["title"] == "Renamed"
    assert len(client.get("/api/daily-challenge/admin/all", headers=admin_headers).get_json()) == 1
    assert DailyChallenge.query.count() == 1


# Skill tracks
def test_new_progress_unlocks_root_modules(client, track, user_headers):
    progress = client.get("/api/skill-tracks/python-dev/progress", headers=user_headers).get_json()
    assert progress["unlocked_modules"] == ["intro"]
    assert progress["completed_modules"] == []


def test_complete_module_unlocks_next_and_awards_xp(client, track, user, user_headers):
    res = client.post("/api/skill-tracks/python-dev/complete", json={"module_id": "intro"},
                      headers=user_headers).get_json()
    assert res["progress"]["completed_modules"] == ["intro"]
    assert "basics" in res["progress"]["unlocked_modules"]
    assert res["xp_gained"] == 50

    repeat = client.post("/api/skill-tracks/python-dev/complete", json={"module_id": "intro"},
                         headers=user_headers).get_json()
    assert repeat["xp_gained"] == 0
    assert db.session.get(User, user.id).xp == 50

    missing = client.post("/api/skill-tracks/python-dev/complete", json={"module_id": "nope"},
                          headers=user_headers)
    assert missing.status_code == 404


def test_sub_modules_complete_module_only_when_all_done(client, track, user_headers):
    url = "/api/skill-tracks/python-dev/modules/intro/submodules/complete"
    first = client.post(url, json={"sub_module_id": "install"}, headers=user_headers).get_json()
    assert first["progress"]["completed_sub_modules"] == ["intro:install"]
    assert first["progress"]["completed_modules"] == []

    second = client.post(url, json={"sub_module_id": "repl"}, headers=user_headers).get_json()
    assert second["progress"]["completed_modules"] == ["intro"]
    assert second["xp_gained"] == 50

    unknown = client.post(url, json={"sub_module_id": "ghost"}, headers=user_headers)
    assert unknown.status_code == 404


def test_passing_a_quiz_syncs_track_progress(client, track, quiz, user_headers):
    client.post("/api/skill-tracks/python-dev/complete", json={"module_id": "intro"}, headers=user_headers)

    res = client.post("/api/attempts", json={
        "quiz_id": "python-basics", "answers": correct_answers(quiz), "time_taken": 100
    }, headers=user_headers).get_json()
    assert res["synced_tracks"] == ["python-dev"]

    progress = client.get("/api/skill-tracks/python-dev/progress", headers=user_headers).get_json()
    assert progress["completed_modules"] == ["intro", "basics"]
    assert "project" in progress["unlocked_modules"]


def test_sync_heals_forward_only(client, track, quiz, user, user_headers, admin_headers):
    QuizService.record_attempt(user, quiz, correct_answers(quiz), time_taken=100)
    progress = SkillTrackProgress.query.filter_by(user_id=user.id).one()
    progress.completed_modules = []
    db.session.commit()

    res = client.post("/api/skill-tracks/python-dev/sync", headers=user_headers).get_json()
    assert res["changed"] is True
    # intro has sub-modules that were never done, project has nothing to check
    assert res["progress"]["completed_modules"] == ["basics"]

    again = client.post("/api/skill-tracks/python-dev/sync", headers=user_headers).get_json()
    assert again["changed"] is False


def test_admin_sets_progress(client, track, user, admin_headers):
    url = f"/api/skill-tracks/python-dev/progress/{user.id}"
    res = client.put(url, json={"completed_modules": ["intro", "basics"]}, headers=admin_headers)
    assert res.status_code == 200
    assert set(res.get_json()["unlocked_modules"]) >= {"basics", "project"}

    bad = client.put(url, json={"completed_modules": ["nope"]}, headers=admin_headers)
    assert bad.status_code == 400


def test_track_crud(client, track, user_headers, admin_headers):
    assert client.post("/api/skill-tracks", json=TRACK, headers=admin_headers).status_code == 409
    assert client.post("/api/skill-tracks", json=dict(TRACK, track_id="x"), headers=user_headers).status_code == 403

    edited = dict(TRACK)
    edited["modules"] = TRACK["modules"][:2] + [{"id": "capstone", "title": "Capstone", "prerequisites": ["basics"]}]
    res = client.put("/api/skill-tracks/python-dev", json=edited, headers=admin_headers)
    assert [m["module_id"] for m in res.get_json()["modules"]] == ["intro", "basics", "capstone"]

    bad_prereq = client.put("/api/skill-tracks/python-dev", json={
        "modules": [{"id": "a", "title": "A", "prerequisites": ["zzz"]}]
    }, headers=admin_headers)
    assert bad_prereq.status_code == 400

    assert len(client.get("/api/skill-tracks").get_json()) == 1
    assert client.delete("/api/skill-tracks/python-dev", headers=admin_headers).status_code == 200
    assert client.get("/api/skill-tracks/python-dev").status_code == 404


def test_track_completion_awards_pathfinder(client, quiz, user, user_headers, admin_headers, badges):
    client.post("/api/skill-tracks", json={
        "track_id": "tiny", "title": "Tiny", "modules": [{"id": "only", "title": "Only"}]
    }, headers=admin_headers)
    res = client.post("/api/skill-tracks/tiny/complete", json={"module_id": "only"}, headers=user_headers)
    assert "pathfinder" in {b["key"] for b in res.get_json()["new_badges"]}
    assert XPLog.query.filter_by(user_id=user.id, reason="badge:pathfinder").count() == 1


# Tournaments
def _tournament_payload(**overrides):
    now = datetime.utcnow()
    payload = {
        "name": "Weekly Cup",
        "starts_at": (now - timedelta(hours=1)).isoformat(),
        "ends_at": (now + timedelta(days=1)).isoformat() + "Z",
        "quiz_ids": ["python-basics"],
    }
    payload.update(overrides)
    return payload


def test_tournament_status_from_time(client, quiz, admin_headers):
    now = datetime.utcnow()
    client.post("/api/tournaments", json=_tournament_payload(name="Live"), headers=admin_headers)
    client.post("/api/tournaments", json=_tournament_payload(
        name="Later", starts_at=(now + timedelta(days=2)).isoformat(), ends_at=(now + timedelta(days=3)).isoformat()
    ), headers=admin_headers)
    client.post("/api/tournaments", json=_tournament_payload(
        name="Past", starts_at=(now - timedelta(days=3)).isoformat(), ends_at=(now - timedelta(days=2)).isoformat()
    ), headers=admin_headers)

    statuses = {t["name"]: t["status"] for t in client.get("/api/tournaments").get_json()}
    assert statuses == {"Live": "live", "Later": "scheduled", "Past": "completed"}


def test_tournament_validation(client, quiz, admin_headers):
    now = datetime.utcnow()
    backwards = _tournament_payload(starts_at=now.isoformat(), ends_at=(now - timedelta(days=1)).isoformat())
    assert client.post("/api/tournaments", json=backwards, headers=admin_headers).status_code == 400

    unknown_quiz = _tournament_payload(quiz_ids=["missing"])
    assert client.post("/api/tournaments", json=unknown_quiz, headers=admin_headers).status_code == 400


def test_join_and_standings(client, quiz, user, other_user, user_headers, admin_headers):
    tournament = client.post("/api/tournaments", json=_tournament_payload(), headers=admin_headers).get_json()
    tid = tournament["tournament_id"]

    joined = client.post(f"/api/tournaments/{tid}/join", headers=user_headers).get_json()
    assert joined == {"message": "Joined", "participants": 1}
    again = client.post(f"/api/tournaments/{tid}/join", headers=user_headers).get_json()
    assert again["message"] == "Already joined"
    client.post(f"/api/tournaments/{tid}/join", headers=auth_headers(other_user))

    QuizService.record_attempt(user, quiz, {}, time_taken=50)
    QuizService.record_attempt(user, quiz, correct_answers(quiz), time_taken=80)
    first = quiz.questions[0]
    QuizService.record_attempt(other_user, quiz, {str(first.id): first.correct_answer}, time_taken=10)

    standings = client.get(f"/api/tournaments/{tid}/standings").get_json()
    assert [(s["username"], s["score"], s["rank"]) for s in standings] == [("alice", 4, 1), ("bobby", 1, 2)]

    assert client.delete(f"/api/tournaments/{tid}", headers=admin_headers).status_code == 200
    assert client.get(f"/api/tournaments/{tid}").status_code == 404
