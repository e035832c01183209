from .auth import auth_bp
from .users import users_bp
from .quizzes import quizzes_bp
from .attempts import attempts_bp
from .challenges import challenges_bp
from .leaderboard import leaderboard_bp
from .badges import badges_bp
from .shop import shop_bp
from .engagement import engagement_bp
from .study_cards import study_cards_bp
from .analytics import analytics_bp
from .system import system_bp

API_PREFIX = "/api"


def register_blueprints(app):
    app.register_blueprint(auth_bp, url_prefix=f"{API_PREFIX}/auth")
    app.register_blueprint(users_bp, url_prefix=f"{API_PREFIX}/users")
    app.register_blueprint(quizzes_bp, url_prefix=f"{API_PREFIX}/quizzes")
    app.register_blueprint(attempts_bp, url_prefix=f"{API_PREFIX}/attempts")
    app.register_blueprint(challenges_bp, url_prefix=f"{API_PREFIX}/challenges")
    app.register_blueprint(leaderboard_bp, url_prefix=f"{API_PREFIX}/leaderboard")
    app.register_blueprint(badges_bp, url_prefix=f"{API_PREFIX}/badges")
    app.register_blueprint(shop_bp, url_prefix=f"{API_PREFIX}/shop")
    app.register_blueprint(engagement_bp, url_prefix=API_PREFIX)
    app.register_blueprint(study_cards_bp, url_prefix=f"{API_PREFIX}/study-cards")
    app.register_blueprint(analytics_bp, url_prefix=f"{API_PREFIX}/analytics")
    app.register_blueprint(system_bp, url_prefix=API_PREFIX)
