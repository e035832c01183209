import logging
from flask import Blueprint, jsonify
from flask_jwt_extended import jwt_required
from models import db, User, DailyChallenge, SkillTrack, Tournament, tournament_participants
from services.engagement_services import (
    DailyChallengeService, TournamentService, parse_date
)
from services.progress_services import ProgressService
from services.track_services import TrackService
from utils.errors import NotFoundError, ConflictError
from utils.role_required import role_required, current_user_or_404
from utils.validators import get_json, require_fields

engagement_bp = Blueprint("engagement", __name__)
logger = logging.getLogger(__name__)


# Daily challenge
@engagement_bp.route("/daily-challenge", methods=["GET"])
@jwt_required()
def get_daily_challenge():
    user = current_user_or_404()
    return jsonify(DailyChallengeService.get_today(user)), 200


@engagement_bp.route("/daily-challenge/complete", methods=["POST"])
@jwt_required()
def complete_daily_challenge():
    user = current_user_or_404()
    already_done, reward = DailyChallengeService.complete(user)
    if already_done:
        return jsonify({"message": "Already completed today", "streak": user.daily_challenge_streak}), 200
    return jsonify({
        "message": "Daily challenge completed",
        "streak": user.daily_challenge_streak,
        "coins": user.coins,
        "xp": user.xp,
        "level": user.level,
        "leveled_up": reward["leveled_up"]
    }), 200


@engagement_bp.route("/daily-challenge/admin/all", methods=["GET"])
@jwt_required()
@role_required("admin")
def list_daily_challenges():
    challenges = DailyChallenge.query.order_by(DailyChallenge.date.desc()).limit(30).all()
    return jsonify([c.to_dict() for c in challenges]), 200


@engagement_bp.route("/daily-challenge/admin", methods=["POST"])
@jwt_required()
@role_required("admin")
def create_daily_challenge():
    data = get_json()
    require_fields(data, "date", "title", "description")
    challenge_date = parse_date(data["date"])
    if DailyChallenge.query.filter_by(date=challenge_date).first():
        raise ConflictError("Challenge already exists for this date")

    challenge = DailyChallengeService.apply_payload(DailyChallenge(date=challenge_date), data)
    db.session.add(challenge)
    db.session.commit()
    return jsonify(challenge.to_dict()), 201


@engagement_bp.route("/daily-challenge/admin/<string:challenge_date>", methods=["PUT"])
@jwt_required()
@role_required("admin")
def update_daily_challenge(challenge_date):
    challenge = DailyChallenge.query.filter_by(date=parse_date(challenge_date)).first()
    if not challenge:
        raise NotFoundError("Challenge not found")
    data = get_json()
    require_fields(data)
    DailyChallengeService.apply_payload(challenge, data)
    db.session.commit()
    return jsonify(challenge.to_dict()), 200


@engagement_bp.route("/daily-challenge/admin/<string:challenge_date>", methods=["DELETE"])
@jwt_required()
@role_required("admin")
def delete_daily_challenge(challenge_date):
    challenge = DailyChallenge.query.filter_by(date=parse_date(challenge_date)).first()
    if not challenge:
        raise NotFoundError("Challenge not found")
    db.session.delete(challenge)
    db.session.commit()
    return jsonify({"message": "Challenge deleted"}), 200


# Skill tracks
@engagement_bp.route("/skill-tracks", methods=["GET"])
def list_skill_tracks():
    tracks = SkillTrack.query.order_by(SkillTrack.created_at.asc()).all()
    return jsonify([t.to_dict() for t in tracks]), 200


@engagement_bp.route("/skill-tracks/<string:track_id>", methods=["GET"])
def get_skill_track(track_id):
    return jsonify(ProgressService.get_track_or_404(track_id).to_dict()), 200


@engagement_bp.route("/skill-tracks/progress", methods=["GET"])
@jwt_required()
def my_track_progress():
    user = current_user_or_404()
    return jsonify([p.to_dict() for p in user.track_progress]), 200


@engagement_bp.route("/skill-tracks/<string:track_id>/progress", methods=["GET"])
@jwt_required()
def get_track_progress(track_id):
    user = current_user_or_404()
    track = ProgressService.get_track_or_404(track_id)
    progress = ProgressService.get_progress(user, track)
    db.session.commit()
    return jsonify(progress.to_dict()), 200


def _progress_response(progress, reward, new_badges):
    return jsonify({
        "progress": progress.to_dict(),
        "xp_gained": reward["xp"] if reward else 0,
        "leveled_up": reward["leveled_up"] if reward else False,
        "new_badges": [b.to_dict() for b in new_badges]
    }), 200


@engagement_bp.route("/skill-tracks/<string:track_id>/complete", methods=["POST"])
@jwt_required()
def complete_module(track_id):
    user = current_user_or_404()
    data = get_json()
    require_fields(data, "module_id")
    track = ProgressService.get_track_or_404(track_id)
    progress, reward, new_badges = ProgressService.complete_module(user, track, data["module_id"])
    return _progress_response(progress, reward, new_badges)


@engagement_bp.route(
    "/skill-tracks/<string:track_id>/modules/<string:module_id>/submodules/complete",
    methods=["POST"]
)
@jwt_required()
def complete_sub_module(track_id, module_id):
    user = current_user_or_404()
    data = get_json()
    require_fields(data, "sub_module_id")
    track = ProgressService.get_track_or_404(track_id)
    progress, reward, new_badges = ProgressService.complete_sub_module(
        user, track, module_id, data["sub_module_id"]
    )
    return _progress_response(progress, reward, new_badges)


@engagement_bp.route("/skill-tracks/<string:track_id>/sync", methods=["POST"])
@jwt_required()
def sync_track(track_id):
    user = current_user_or_404()
    track = ProgressService.get_track_or_404(track_id)
    progress, changed = ProgressService.sync(user, track)
    return jsonify({"progress": progress.to_dict(), "changed": changed}), 200


@engagement_bp.route("/skill-tracks", methods=["POST"])
@jwt_required()
@role_required("admin")
def create_skill_track():
    data = get_json()
    require_fields(data, "track_id", "title")
    track = TrackService.create_track(data)
    return jsonify(track.to_dict()), 201


@engagement_bp.route("/skill-tracks/<string:track_id>", methods=["PUT"])
@jwt_required()
@role_required("admin")
def update_skill_track(track_id):
    track = ProgressService.get_track_or_404(track_id)
    data = get_json()
    require_fields(data)
    TrackService.apply_payload(track, data)
    db.session.commit()
    return jsonify(track.to_dict()), 200


@engagement_bp.route("/skill-tracks/<string:track_id>", methods=["DELETE"])
@jwt_required()
@role_required("admin")
def delete_skill_track(track_id):
    track = ProgressService.get_track_or_404(track_id)
    db.session.delete(track)
    db.session.commit()
    logger.info("Deleted skill track %s", track_id)
    return jsonify({"message": "Track deleted"}), 200


@engagement_bp.route("/skill-tracks/<string:track_id>/progress/<int:user_id>", methods=["PUT"])
@jwt_required()
@role_required("admin")
def set_user_progress(track_id, user_id):
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    track = ProgressService.get_track_or_404(track_id)
    data = get_json()
    require_fields(data)
    progress = ProgressService.set_progress(
        user, track,
        completed_modules=data.get("completed_modules"),
        unlocked_modules=data.get("unlocked_modules")
    )
    return jsonify(progress.to_dict()), 200


# Tournaments
@engagement_bp.route("/tournaments", methods=["GET"])
def list_tournaments():
    tournaments = Tournament.query.order_by(Tournament.starts_at.asc()).all()
    return jsonify([t.to_dict() for t in tournaments]), 200


@engagement_bp.route("/tournaments/<string:tournament_id>", methods=["GET"])
def get_tournament(tournament_id):
    tournament = TournamentService.get_or_404(tournament_id)
    data = tournament.to_dict()
    data["standings"] = TournamentService.standings(tournament)
    return jsonify(data), 200


@engagement_bp.route("/tournaments/<string:tournament_id>/standings", methods=["GET"])
def tournament_standings(tournament_id):
    tournament = TournamentService.get_or_404(tournament_id)
    return jsonify(TournamentService.standings(tournament)), 200


@engagement_bp.route("/tournaments/<string:tournament_id>/join", methods=["POST"])
@jwt_required()
def join_tournament(tournament_id):
    user = current_user_or_404()
    tournament = TournamentService.get_or_404(tournament_id)
    if not TournamentService.join(tournament, user):
        return jsonify({"message": "Already joined", "participants": tournament.participants.count()}), 200
    return jsonify({"message": "Joined", "participants": tournament.participants.count()}), 200


@engagement_bp.route("/tournaments", methods=["POST"])
@jwt_required()
@role_required("admin")
def create_tournament():
    data = get_json()
    require_fields(data, "name", "starts_at", "ends_at")
    tournament = TournamentService.create(data)
    return jsonify(tournament.to_dict()), 201


@engagement_bp.route("/tournaments/<string:tournament_id>", methods=["PUT"])
@jwt_required()
@role_required("admin")
def update_tournament(tournament_id):
    tournament = TournamentService.get_or_404(tournament_id)
    data = get_json()
    require_fields(data)
    TournamentService.apply_payload(tournament, data)
    db.session.commit()
    return jsonify(tournament.to_dict()), 200


@engagement_bp.route("/tournaments/<string:tournament_id>", methods=["DELETE"])
@jwt_required()
@role_required("admin")
def delete_tournament(tournament_id):
    tournament = TournamentService.get_or_404(tournament_id)
    db.session.execute(tournament_participants.delete().where(
        tournament_participants.c.tournament_id == tournament.id
    ))
    db.session.delete(tournament)
    db.session.commit()
    return jsonify({"message": "Tournament deleted"}), 200
