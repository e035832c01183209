import logging
from datetime import datetime, timedelta
from models import (
    db, User, RoleEnum, Badge, Tournament, StudyCard
)
from services.quiz_services import QuizService, resolve_quiz_ids
from services.gamification import calculate_level
from services.shop_services import ShopService
from services.track_services import TrackService
from utils.constants import DEFAULT_BADGES

logger = logging.getLogger(__name__)

SAMPLE_QUIZZES = [
    {
        "slug": "python-basics",
        "title": "Python Basics",
        "description": "Variables, types and control flow.",
        "category": "Programming",
        "difficulty": "beginner",
        "time_limit": 10,
        "icon": "🐍",
        "questions": [
            {"text": "Which keyword defines a function?", "options": ["func", "def", "lambda", "fn"],
             "correct_answer": 1, "explanation": "def starts a function definition."},
            {"text": "What does len([1, 2, 3]) return?", "options": ["2", "3", "4"],
             "correct_answer": 1},
            {"text": "Which type is immutable?", "options": ["list", "dict", "tuple", "set"],
             "correct_answer": 2, "points": 2},
        ],
    },
    {
        "slug": "web-fundamentals",
        "title": "Web Fundamentals",
        "description": "HTTP, HTML and CSS essentials.",
        "category": "Web",
        "difficulty": "beginner",
        "icon": "🌐",
        "questions": [
            {"text": "Which HTTP method is idempotent?", "options": ["POST", "PUT", "PATCH"],
             "correct_answer": 1},
            {"text": "What status code means Not Found?", "options": ["200", "301", "404", "500"],
             "correct_answer": 2},
            {"type": "text", "text": "Explain what a CSS selector does.", "points": 3},
        ],
    },
    {
        "slug": "algorithms-cup",
        "title": "Algorithms Cup",
        "description": "Tournament round on complexity and sorting.",
        "category": "Programming",
        "difficulty": "advanced",
        "is_tournament_only": True,
        "xp_reward": 150,
        "coins_reward": 40,
        "questions": [
            {"text": "Average complexity of quicksort?", "options": ["O(n)", "O(n log n)", "O(n^2)"],
             "correct_answer": 1},
            {"text": "Which structure gives O(1) average lookup?", "options": ["list", "hash map", "tree"],
             "correct_answer": 1},
        ],
    },
]

SAMPLE_TRACK = {
    "track_id": "python-developer",
    "title": "Python Developer",
    "description": "From first script to tested web service.",
    "icon": "🐍",
    "category": "Programming",
    "modules": [
        {"id": "intro", "title": "Getting Started", "xp_reward": 50,
         "sub_modules": [{"id": "install", "title": "Install Python"}, {"id": "repl", "title": "Use the REPL"}]},
        {"id": "basics", "title": "Language Basics", "prerequisites": ["intro"], "quiz_ids": ["python-basics"]},
        {"id": "web", "title": "Web Services", "prerequisites": ["basics"], "quiz_ids": ["web-fundamentals"],
         "xp_reward": 150},
    ],
}

SAMPLE_CARDS = [
    ("List comprehensions", "`[x * 2 for x in items]` builds a new list.", "Python", ["syntax"]),
    ("Dictionaries", "Use `dict.get(key, default)` to avoid `KeyError`.", "Python", ["collections"]),
    ("HTTP verbs", "**GET** reads, **POST** creates, **PUT** replaces, **DELETE** removes.", "Web", ["http"]),
]


def run_seed(reset=True):
    if reset:
        db.drop_all()
    db.create_all()

    # USERS
    admin = User(username="admin", email="admin@quizplatform.dev", role=RoleEnum.admin)
    admin.set_password("admin12345")
    learners = []
    for name, score, xp, coins in (("ada", 120, 900, 300), ("linus", 80, 400, 150), ("grace", 40, 150, 60)):
        learner = User(username=name, email=f"{name}@quizplatform.dev", total_score=score,
                       xp=xp, level=calculate_level(xp), coins=coins)
        learner.set_password(f"{name}12345")
        learners.append(learner)
    db.session.add_all([admin] + learners)
    db.session.commit()

    # BADGES
    db.session.add_all([Badge(**data) for data in DEFAULT_BADGES])
    db.session.commit()

    # QUIZZES, SHOP, SKILL TRACK
    QuizService.import_quizzes(SAMPLE_QUIZZES)
    ShopService.ensure_seed()
    TrackService.create_track(SAMPLE_TRACK)

    # TOURNAMENT
    now = datetime.utcnow()
    tournament = Tournament(
        name="Weekly Algorithms Cup",
        starts_at=now - timedelta(hours=1),
        ends_at=now + timedelta(days=7),
        quiz_ids=resolve_quiz_ids(["algorithms-cup"])
    )
    db.session.add(tournament)
    db.session.flush()
    tournament.participants.append(learners[0])

    # STUDY CARDS
    for title, content, category, tags in SAMPLE_CARDS:
        db.session.add(StudyCard(title=title, content=content, category=category, tags=tags, created_by=admin.id))

    db.session.commit()
    logger.info("Seeded %s users, %s quizzes", len(learners) + 1, len(SAMPLE_QUIZZES))


if __name__ == "__main__":
    from app import create_app

    app = create_app()
    with app.app_context():
        run_seed()
        print("Database seeded successfully!")
