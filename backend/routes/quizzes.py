import logging
from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required
from models import db, Quiz, Attempt, Challenge, DailyChallenge, TrackModule, Tournament
from services.quiz_services import QuizService
from utils.errors import NotFoundError, APIError
from utils.role_required import role_required, current_user_or_404
from utils.validators import get_json, require_fields

quizzes_bp = Blueprint("quizzes", __name__)
logger = logging.getLogger(__name__)


def _get_quiz_or_404(slug):
    quiz = Quiz.query.filter_by(slug=slug).first()
    if not quiz:
        raise NotFoundError("Quiz not found")
    return quiz


@quizzes_bp.route("", methods=["GET"])
@jwt_required()
def list_quizzes():
    user = current_user_or_404()
    query = Quiz.query
    if not user.is_admin:
        query = query.filter_by(is_tournament_only=False)
    category = request.args.get("category")
    if category:
        query = query.filter_by(category=category)
    quizzes = query.order_by(Quiz.created_at.desc()).all()
    return jsonify([q.to_dict(include_answers=user.is_admin) for q in quizzes]), 200


@quizzes_bp.route("/<string:slug>", methods=["GET"])
@jwt_required()
def get_quiz(slug):
    user = current_user_or_404()
    quiz = _get_quiz_or_404(slug)
    return jsonify(quiz.to_dict(include_answers=user.is_admin)), 200


# Admin routes
@quizzes_bp.route("", methods=["POST"])
@jwt_required()
@role_required("admin")
def create_quiz():
    data = get_json()
    require_fields(data, "slug", "title")
    quiz = QuizService.create_quiz(data)
    logger.info("Created quiz %s", quiz.slug)
    return jsonify({"message": "Quiz created", "quiz": quiz.to_dict(include_answers=True)}), 201


@quizzes_bp.route("/import", methods=["POST"])
@jwt_required()
@role_required("admin")
def import_quizzes():
    data = get_json()
    if not isinstance(data, list):
        raise APIError("Expected a list of quizzes")
    created, updated = QuizService.import_quizzes(data)
    logger.info("Imported quizzes: %s created, %s updated", created, updated)
    return jsonify({
        "message": f"Imported {created + updated} quizzes",
        "created": created,
        "updated": updated
    }), 200


@quizzes_bp.route("/<string:slug>", methods=["PUT"])
@jwt_required()
@role_required("admin")
def update_quiz(slug):
    quiz = _get_quiz_or_404(slug)
    data = get_json()
    require_fields(data)
    data.pop("slug", None)
    QuizService.apply_payload(quiz, data)
    db.session.commit()
    return jsonify({"message": "Quiz updated", "quiz": quiz.to_dict(include_answers=True)}), 200


@quizzes_bp.route("/<string:slug>", methods=["DELETE"])
@jwt_required()
@role_required("admin")
def delete_quiz(slug):
    quiz = _get_quiz_or_404(slug)

    # Attempts keep their quiz_title as history
    Attempt.query.filter_by(quiz_id=quiz.id).update({"quiz_id": None})
    Challenge.query.filter_by(quiz_id=quiz.id).update({"quiz_id": None})
    DailyChallenge.query.filter_by(quiz_id=quiz.id).update({"quiz_id": None})

    # JSON lists are reassigned so the change is flushed
    for holder in TrackModule.query.all() + Tournament.query.all():
        if quiz.id in (holder.quiz_ids or []):
            holder.quiz_ids = [qid for qid in holder.quiz_ids if qid != quiz.id]

    db.session.delete(quiz)
    db.session.commit()
    logger.info("Deleted quiz %s", slug)
    return jsonify({"message": "Quiz deleted"}), 200
