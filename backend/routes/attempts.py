from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required
from models import Quiz, Attempt, ReviewStatusEnum
from services.quiz_services import QuizService
from utils.errors import NotFoundError, ForbiddenError, APIError
from utils.role_required import role_required, current_user_or_404
from utils.validators import get_json, require_fields, as_int

attempts_bp = Blueprint("attempts", __name__)


def _get_attempt_or_404(attempt_id):
    attempt = Attempt.query.filter_by(attempt_id=attempt_id).first()
    if not attempt:
        raise NotFoundError("Attempt not found")
    return attempt


# Submit a quiz attempt
@attempts_bp.route("", methods=["POST"])
@jwt_required()
def submit_attempt():
    user = current_user_or_404()
    data = get_json()
    require_fields(data, "quiz_id")

    quiz = Quiz.query.filter_by(slug=data["quiz_id"]).first()
    if not quiz:
        raise NotFoundError("Quiz not found")

    answers = data.get("answers") or {}
    if not isinstance(answers, dict):
        raise APIError("answers must be an object keyed by question id")
    power_ups_used = data.get("power_ups_used") or []
    if not isinstance(power_ups_used, list):
        raise APIError("power_ups_used must be a list")

    result = QuizService.record_attempt(
        user,
        quiz,
        answers,
        time_taken=as_int(data.get("time_taken", 0), "time_taken", minimum=0),
        power_ups_used=power_ups_used
    )
    return jsonify(result), 201


@attempts_bp.route("/me", methods=["GET"])
@jwt_required()
def my_attempts():
    user = current_user_or_404()
    attempts = user.attempts.order_by(Attempt.completed_at.desc()).all()
    return jsonify([a.to_dict() for a in attempts]), 200


@attempts_bp.route("/<string:attempt_id>", methods=["GET"])
@jwt_required()
def get_attempt(attempt_id):
    user = current_user_or_404()
    attempt = _get_attempt_or_404(attempt_id)
    if attempt.user_id != user.id and not user.is_admin:
        raise ForbiddenError("Forbidden")
    return jsonify(attempt.to_dict()), 200


# Admin attempts log
@attempts_bp.route("", methods=["GET"])
@jwt_required()
@role_required("admin")
def list_attempts():
    page = request.args.get("page", 1, type=int)
    per_page = request.args.get("per_page", 50, type=int)

    query = Attempt.query
    quiz_slug = request.args.get("quiz_id")
    if quiz_slug:
        quiz = Quiz.query.filter_by(slug=quiz_slug).first()
        query = query.filter(Attempt.quiz_id == (quiz.id if quiz else None))
    user_id = request.args.get("user_id", type=int)
    if user_id:
        query = query.filter(Attempt.user_id == user_id)

    attempts = query.order_by(Attempt.completed_at.desc()).paginate(
        page=page, per_page=per_page, error_out=False
    )
    return jsonify({
        "attempts": [a.to_dict() for a in attempts.items],
        "page": page,
        "total_pages": attempts.pages,
        "total": attempts.total
    }), 200


# Manual review of text answers
@attempts_bp.route("/reviews/pending", methods=["GET"])
@jwt_required()
@role_required("admin")
def pending_reviews():
    attempts = (
        Attempt.query.filter_by(review_status=ReviewStatusEnum.pending)
        .order_by(Attempt.completed_at.asc())
        .all()
    )
    return jsonify([a.to_dict() for a in attempts]), 200


@attempts_bp.route("/<string:attempt_id>/review", methods=["POST"])
@jwt_required()
@role_required("admin")
def review_attempt(attempt_id):
    attempt = _get_attempt_or_404(attempt_id)
    data = get_json()
    require_fields(data)

    score_adjustment = data.get("score_adjustment")
    final_score = data.get("final_score")
    if score_adjustment is not None:
        score_adjustment = as_int(score_adjustment, "score_adjustment")
    if final_score is not None:
        final_score = as_int(final_score, "final_score", minimum=0)

    QuizService.review_attempt(
        attempt,
        feedback=data.get("feedback"),
        score_adjustment=score_adjustment,
        final_score=final_score
    )
    return jsonify({"message": "Review submitted", "attempt": attempt.to_dict()}), 200
