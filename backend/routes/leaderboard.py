from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required
from sqlalchemy import desc, func
from models import db, User, Attempt, Quiz
from services.core_services import LeaderboardService
from utils.role_required import current_user_or_404

leaderboard_bp = Blueprint('leaderboard_bp', __name__)


def _entry(user, rank):
    return {
        "rank": rank,
        "user_id": user.id,
        "username": user.username,
        "total_score": user.total_score,
        "xp": user.xp,
        "level": user.level,
        "streak_days": user.streak_days,
        "badges_count": user.badges.count(),
        "avatar": user.avatar or {}
    }


# GET Global Leaderboard
@leaderboard_bp.route('/global', methods=['GET'])
def get_global_leaderboard():
    page = request.args.get('page', 1, type=int)
    per_page = request.args.get('per_page', 20, type=int)

    leaderboard = LeaderboardService.get_leaderboard_page(page=page, per_page=per_page)

    return jsonify({
        "leaderboard": [
            _entry(user, LeaderboardService.get_user_rank(user)) for user in leaderboard.items
        ],
        "page": leaderboard.page,
        "total_pages": leaderboard.pages,
        "total_players": leaderboard.total
    }), 200


# GET Current User's Rank
@leaderboard_bp.route('/my-rank', methods=['GET'])
@jwt_required()
def get_my_rank():
    user = current_user_or_404()
    nearby_players = LeaderboardService.get_nearby_players(user)

    return jsonify({
        "rank": LeaderboardService.get_user_rank(user),
        "user": _entry(user, LeaderboardService.get_user_rank(user)),
        "nearby_players": [
            _entry(player, LeaderboardService.get_user_rank(player)) for player in nearby_players
        ]
    }), 200


# GET Top 10 Players
@leaderboard_bp.route('/top', methods=['GET'])
def get_top_players():
    limit = request.args.get('limit', 10, type=int)
    top_players = LeaderboardService.get_top_users(limit)
    return jsonify({
        "top_players": [
            _entry(user, LeaderboardService.get_user_rank(user)) for user in top_players
        ]
    }), 200


# GET Leaderboard by quiz category (sum of attempt scores)
@leaderboard_bp.route('/category/<string:category>', methods=['GET'])
def get_category_leaderboard(category):
    page = request.args.get('page', 1, type=int)
    per_page = request.args.get('per_page', 20, type=int)

    category_leaders = db.session.query(
        User.id,
        User.username,
        func.coalesce(func.sum(Attempt.score), 0).label('category_score')
    ).join(
        Attempt, Attempt.user_id == User.id
    ).join(
        Quiz, Quiz.id == Attempt.quiz_id
    ).filter(
        Quiz.category == category
    ).group_by(
        User.id, User.username
    ).order_by(
        desc('category_score'), User.id
    ).paginate(page=page, per_page=per_page, error_out=False)

    offset = (category_leaders.page - 1) * category_leaders.per_page
    return jsonify({
        "category": category,
        "leaderboard": [
            {
                "rank": offset + position,
                "user_id": user_id,
                "username": username,
                "score": int(score or 0)
            } for position, (user_id, username, score) in enumerate(category_leaders.items, start=1)
        ],
        "page": category_leaders.page,
        "total_pages": category_leaders.pages
    }), 200


# GET XP history for charts
@leaderboard_bp.route('/my-xp-history', methods=['GET'])
@jwt_required()
def get_my_xp_history():
    user = current_user_or_404()
    days = request.args.get('days', 30, type=int)
    return jsonify({
        "days": days,
        "history": LeaderboardService.get_xp_history(user.id, days)
    }), 200
