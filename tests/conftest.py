import pytest
from flask_jwt_extended import create_access_token

from app import create_app
from models import db, User, RoleEnum, Badge
from services.quiz_services import QuizService
from sockets import presence, game_rooms
from utils.constants import DEFAULT_BADGES


@pytest.fixture
def app():
    app = create_app("testing")
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()
    presence.clear()
    game_rooms.clear()


@pytest.fixture
def client(app):
    return app.test_client()


def make_user(username, role=RoleEnum.learner, password="password123", **fields):
    user = User(username=username, email=f"{username}@example.com", role=role, **fields)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    return user


def auth_headers(user):
    token = create_access_token(identity=str(user.id), additional_claims={"role": user.role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user(app):
    return make_user("alice")


@pytest.fixture
def other_user(app):
    return make_user("bobby")


@pytest.fixture
def admin(app):
    return make_user("admin", role=RoleEnum.admin)


@pytest.fixture
def user_headers(user):
    return auth_headers(user)


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture
def badges(app):
    items = [Badge(**data) for data in DEFAULT_BADGES]
    db.session.add_all(items)
    db.session.commit()
    return items


QUIZ_DATA = {
    "slug": "python-basics",
    "title": "Python Basics",
    "category": "Programming",
    "passing_score": 60,
    "xp_reward": 50,
    "coins_reward": 10,
    "questions": [
        {"text": "Keyword for functions?", "options": ["func", "def"], "correct_answer": 1},
        {"text": "len([1, 2])?", "options": ["1", "2", "3"], "correct_answer": 1},
        {"text": "Immutable type?", "options": ["list", "tuple"], "correct_answer": 1, "points": 2},
    ],
}


@pytest.fixture
def quiz(app):
    return QuizService.create_quiz(dict(QUIZ_DATA))


def correct_answers(quiz):
    return {str(q.id): q.correct_answer for q in quiz.questions}
