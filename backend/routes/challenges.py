import logging
import secrets
from flask import Blueprint, jsonify
from flask_jwt_extended import jwt_required
from sqlalchemy import or_
from models import db, Challenge, ChallengeStatusEnum, Quiz, User
from utils.errors import NotFoundError, ForbiddenError, APIError
from utils.role_required import current_user_or_404
from utils.validators import get_json, require_fields, as_int

challenges_bp = Blueprint('challenges_bp', __name__)
logger = logging.getLogger(__name__)


def _get_challenge_or_404(token):
    challenge = Challenge.query.filter_by(token=token).first()
    if not challenge:
        raise NotFoundError("Challenge not found")
    return challenge


def _participant_summary(user):
    if not user:
        return None
    return {"id": user.id, "username": user.username, "level": user.level}


# Create an asynchronous challenge
@challenges_bp.route('', methods=['POST'])
@jwt_required()
def create_challenge():
    user = current_user_or_404()
    data = get_json()
    require_fields(data, 'to_user_id', 'quiz_id')

    to_id = as_int(data['to_user_id'], 'to_user_id')
    if to_id == user.id:
        raise APIError("Cannot challenge yourself")
    opponent = db.session.get(User, to_id)
    if not opponent:
        raise NotFoundError("User not found")

    quiz = Quiz.query.filter_by(slug=data['quiz_id']).first()
    if not quiz:
        raise NotFoundError("Quiz not found")

    challenge = Challenge(
        token=secrets.token_hex(16),
        quiz_id=quiz.id,
        from_id=user.id,
        to_id=opponent.id
    )
    db.session.add(challenge)
    db.session.commit()
    logger.info("Challenge %s: %s vs %s on %s", challenge.token, user.username, opponent.username, quiz.slug)
    return jsonify(challenge.to_dict()), 201


@challenges_bp.route('/<string:token>', methods=['GET'])
@jwt_required()
def get_challenge(token):
    challenge = _get_challenge_or_404(token)
    data = challenge.to_dict()
    data.update({
        "quiz": challenge.quiz.to_summary() if challenge.quiz else None,
        "challenger": _participant_summary(challenge.challenger),
        "opponent": _participant_summary(challenge.opponent)
    })
    return jsonify(data), 200


@challenges_bp.route('/<string:token>/submit', methods=['POST'])
@jwt_required()
def submit_challenge_result(token):
    user = current_user_or_404()
    challenge = _get_challenge_or_404(token)
    if challenge.status == ChallengeStatusEnum.completed:
        raise APIError("Challenge already completed")
    data = get_json()
    require_fields(data, 'score')

    result = {
        "score": as_int(data['score'], 'score', minimum=0),
        "time_taken": as_int(data.get('time_taken', 0), 'time_taken', minimum=0)
    }
    if user.id == challenge.from_id:
        challenge.from_result = result
    elif user.id == challenge.to_id:
        challenge.to_result = result
    else:
        raise ForbiddenError("Not a participant in this challenge")

    if challenge.from_result and challenge.to_result:
        challenge.status = ChallengeStatusEnum.completed

    db.session.commit()
    return jsonify(challenge.to_dict()), 200


@challenges_bp.route('/me', methods=['GET'])
@jwt_required()
def my_challenges():
    user = current_user_or_404()
    challenges = (
        Challenge.query.filter(or_(Challenge.from_id == user.id, Challenge.to_id == user.id))
        .order_by(Challenge.created_at.desc())
        .limit(50)
        .all()
    )
    return jsonify([c.to_dict() for c in challenges]), 200
