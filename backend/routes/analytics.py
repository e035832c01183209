from flask import Blueprint, jsonify
from flask_jwt_extended import jwt_required
from sqlalchemy import case, func
from models import db, User, Attempt, Quiz
from utils.role_required import current_user_or_404

analytics_bp = Blueprint("analytics", __name__)


@analytics_bp.route("/summary", methods=["GET"])
@jwt_required()
def get_summary():
    """Attempt statistics; admins see every user's attempts."""
    user = current_user_or_404()

    scope = []
    if not user.is_admin:
        scope.append(Attempt.user_id == user.id)

    total_attempts, average, passed = db.session.query(
        func.count(Attempt.id),
        func.avg(Attempt.percentage),
        func.sum(case((Attempt.passed.is_(True), 1), else_=0))
    ).filter(*scope).one()

    by_category = (
        db.session.query(
            Quiz.category,
            func.count(Attempt.id),
            func.avg(Attempt.percentage)
        )
        .select_from(Attempt)
        .join(Quiz, Quiz.id == Attempt.quiz_id)
        .filter(*scope)
        .group_by(Quiz.category)
        .order_by(Quiz.category)
        .all()
    )

    summary = {
        "scope": "all" if user.is_admin else "self",
        "total_attempts": total_attempts or 0,
        "average_percentage": round(float(average or 0), 1),
        "passed_attempts": int(passed or 0),
        "categories": [
            {
                "category": category,
                "attempts": count,
                "average_percentage": round(float(avg or 0), 1)
            } for category, count, avg in by_category
        ]
    }
    if user.is_admin:
        summary["total_users"] = User.query.count()
        summary["total_quizzes"] = Quiz.query.count()

    return jsonify(summary), 200
