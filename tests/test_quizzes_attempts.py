from conftest import QUIZ_DATA, auth_headers, correct_answers
from models import db, User, Attempt, PowerUp, Quiz, TrackModule, Tournament


def test_learners_do_not_see_answers_or_tournament_quizzes(client, quiz, user_headers, admin_headers):
    hidden = dict(QUIZ_DATA, slug="cup-final", title="Cup Final", is_tournament_only=True)
    assert client.post("/api/quizzes", json=hidden, headers=admin_headers).status_code == 201

    learner_view = client.get("/api/quizzes", headers=user_headers).get_json()
    assert [q["slug"] for q in learner_view] == ["python-basics"]
    assert "correct_answer" not in learner_view[0]["questions"][0]

    admin_view = client.get("/api/quizzes", headers=admin_headers).get_json()
    assert len(admin_view) == 2
    assert "correct_answer" in admin_view[0]["questions"][0]


def test_category_filter(client, quiz, user_headers):
    assert client.get("/api/quizzes?category=Web", headers=user_headers).get_json() == []
    assert len(client.get("/api/quizzes?category=Programming", headers=user_headers).get_json()) == 1


def test_create_quiz_rules(client, quiz, user_headers, admin_headers):
    assert client.post("/api/quizzes", json=QUIZ_DATA, headers=user_headers).status_code == 403
    assert client.post("/api/quizzes", json=QUIZ_DATA, headers=admin_headers).status_code == 409

    bad_question = dict(QUIZ_DATA, slug="broken", questions=[{"text": "?", "options": ["only one"]}])
    res = client.post("/api/quizzes", json=bad_question, headers=admin_headers)
    assert res.status_code == 400
    assert Quiz.query.filter_by(slug="broken").first() is None


def test_import_upserts_by_slug(client, quiz, admin_headers):
    payload = [
        dict(QUIZ_DATA, title="Python Basics v2"),
        {"slug": "web", "title": "Web", "questions": []},
    ]
    res = client.post("/api/quizzes/import", json=payload, headers=admin_headers)
    assert res.get_json()["created"] == 1
    assert res.get_json()["updated"] == 1
    assert Quiz.query.filter_by(slug="python-basics").one().title == "Python Basics v2"

    not_a_list = client.post("/api/quizzes/import", json={"slug": "x"}, headers=admin_headers)
    assert not_a_list.status_code == 400


def test_delete_quiz_keeps_attempt_history(client, quiz, user, user_headers, admin_headers):
    client.post("/api/attempts", json={"quiz_id": quiz.slug, "answers": {}}, headers=user_headers)
    assert client.delete(f"/api/quizzes/{quiz.slug}", headers=admin_headers).status_code == 200

    attempt = Attempt.query.one()
    assert attempt.quiz_id is None
    assert attempt.quiz_title == "Python Basics"


def test_perfect_attempt_rewards(client, quiz, user, user_headers, badges):
    res = client.post("/api/attempts", json={
        "quiz_id": quiz.slug, "answers": correct_answers(quiz), "time_taken": 30
    }, headers=user_headers)
    assert res.status_code == 201
    body = res.get_json()

    assert body["attempt"]["score"] == 4
    assert body["attempt"]["percentage"] == 100
    assert body["attempt"]["passed"] is True
    # 4 * 10 + 50 perfect + 10 speed + 50 quiz reward
    assert body["xp_gained"] == 150
    assert body["coins_gained"] == 10
    assert {"first_quiz", "perfectionist", "speed_demon"} <= {b["key"] for b in body["new_badges"]}

    refreshed = db.session.get(User, user.id)
    assert refreshed.total_score == 4
    assert refreshed.total_attempts == 1
    # quiz XP plus the perfectionist and speed demon rewards
    assert refreshed.xp == 150 + 50 + 100
    assert refreshed.level == 2
    assert refreshed.coins == 10 + 50


def test_failed_attempt_gets_partial_xp_and_no_coins(client, quiz, user, user_headers):
    first = quiz.questions[0]
    res = client.post("/api/attempts", json={
        "quiz_id": quiz.slug, "answers": {str(first.id): first.correct_answer}, "time_taken": 300
    }, headers=user_headers)
    body = res.get_json()
    assert body["attempt"]["percentage"] == 25
    assert body["attempt"]["passed"] is False
    assert body["xp_gained"] == 10 + 5
    assert body["coins_gained"] == 0


def test_xp_boost_doubles_and_is_consumed(client, quiz, user, user_headers):
    db.session.add(PowerUp(user_id=user.id, type="xp_boost", quantity=1))
    db.session.commit()

    res = client.post("/api/attempts", json={
        "quiz_id": quiz.slug, "answers": correct_answers(quiz), "time_taken": 120,
        "power_ups_used": ["xp_boost"]
    }, headers=user_headers)
    assert res.get_json()["xp_gained"] == (40 + 50 + 50) * 2
    assert PowerUp.query.filter_by(user_id=user.id).one().quantity == 0


def test_missing_power_up_rejects_whole_attempt(client, quiz, user, user_headers):
    res = client.post("/api/attempts", json={
        "quiz_id": quiz.slug, "answers": correct_answers(quiz), "power_ups_used": ["5050"]
    }, headers=user_headers)
    assert res.status_code == 400
    assert Attempt.query.count() == 0
    assert db.session.get(User, user.id).total_attempts == 0


def test_attempt_visibility(client, quiz, user_headers, other_user, admin_headers):
    created = client.post("/api/attempts", json={"quiz_id": quiz.slug, "answers": {}}, headers=user_headers)
    attempt_id = created.get_json()["attempt"]["attempt_id"]

    assert client.get(f"/api/attempts/{attempt_id}", headers=user_headers).status_code == 200
    assert client.get(f"/api/attempts/{attempt_id}", headers=auth_headers(other_user)).status_code == 403
    assert client.get(f"/api/attempts/{attempt_id}", headers=admin_headers).status_code == 200

    assert len(client.get("/api/attempts/me", headers=user_headers).get_json()) == 1
    log = client.get(f"/api/attempts?quiz_id={quiz.slug}", headers=admin_headers).get_json()
    assert log["total"] == 1


def test_text_answers_go_to_review(client, user, user_headers, admin_headers):
    quiz_data = {
        "slug": "essay", "title": "Essay", "passing_score": 50,
        "questions": [
            {"text": "2 + 2?", "options": ["3", "4"], "correct_answer": 1},
            {"type": "text", "text": "Explain recursion.", "points": 3},
        ],
    }
    client.post("/api/quizzes", json=quiz_data, headers=admin_headers)
    quiz = Quiz.query.filter_by(slug="essay").one()
    mc, essay = quiz.questions

    created = client.post("/api/attempts", json={
        "quiz_id": "essay", "answers": {str(mc.id): 1, str(essay.id): "A function calling itself."}
    }, headers=user_headers).get_json()["attempt"]
    assert created["review_status"] == "pending"
    assert created["passed"] is False

    pending = client.get("/api/attempts/reviews/pending", headers=admin_headers).get_json()
    assert [a["attempt_id"] for a in pending] == [created["attempt_id"]]

    reviewed = client.post(f"/api/attempts/{created['attempt_id']}/review", json={
        "feedback": "Good explanation", "score_adjustment": 3
    }, headers=admin_headers).get_json()["attempt"]
    assert reviewed["score"] == 4
    assert reviewed["percentage"] == 100
    assert reviewed["passed"] is True
    assert reviewed["review_status"] == "reviewed"
    assert db.session.get(User, created["user_id"]).total_score == 4


def test_review_clamps_final_score(client, quiz, user_headers, admin_headers):
    created = client.post("/api/attempts", json={"quiz_id": quiz.slug, "answers": {}},
                          headers=user_headers).get_json()["attempt"]
    reviewed = client.post(f"/api/attempts/{created['attempt_id']}/review", json={"final_score": 99},
                           headers=admin_headers).get_json()["attempt"]
    assert reviewed["score"] == reviewed["max_score"] == 4


def test_delete_quiz_drops_it_from_tracks_and_tournaments(client, quiz, admin_headers):
    client.post("/api/skill-tracks", json={
        "track_id": "py", "title": "Python",
        "modules": [{"id": "basics", "title": "Basics", "quiz_ids": ["python-basics"]}]
    }, headers=admin_headers)
    client.post("/api/tournaments", json={
        "name": "Cup", "starts_at": "2030-01-01T00:00:00", "ends_at": "2030-01-02T00:00:00",
        "quiz_ids": ["python-basics"]
    }, headers=admin_headers)

    assert client.delete(f"/api/quizzes/{quiz.slug}", headers=admin_headers).status_code == 200

    track = client.get("/api/skill-tracks/py").get_json()
    assert track["modules"][0]["quiz_ids"] == []
    assert TrackModule.query.one().quiz_ids == []
    assert Tournament.query.one().quiz_ids == []
