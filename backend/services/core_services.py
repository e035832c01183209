import logging
from datetime import datetime, timedelta
from sqlalchemy import func
from models import (
    db,
    User,
    Badge,
    UserBadge,
    XPLog,
    SkillTrackProgress,
)
from services.gamification import calculate_level, check_new_badges, BADGE_CRITERIA_TYPES

logger = logging.getLogger(__name__)


class XPService:
    """Handles awarding of XP and coins. Callers commit the session."""

    @staticmethod
    def award(user, xp=0, coins=0, reason=None):
        xp = int(xp or 0)
        coins = int(coins or 0)
        old_level = user.level or 1

        user.xp = max(0, (user.xp or 0) + xp)
        user.coins = max(0, (user.coins or 0) + coins)
        user.level = calculate_level(user.xp)

        if xp or coins:
            db.session.add(XPLog(
                user_id=user.id,
                xp_change=xp,
                coins_change=coins,
                reason=reason
            ))

        if user.level > old_level:
            logger.info("User %s reached level %s", user.username, user.level)

        return {
            "xp": xp,
            "coins": coins,
            "level": user.level,
            "leveled_up": user.level > old_level,
        }


class BadgeService:

    @staticmethod
    def user_stats(user):
        return {
            "total_attempts": user.total_attempts or 0,
            "total_score": user.total_score or 0,
            "streak": user.streak_days or 0,
            "level": user.level or 1,
            "completed_tracks": BadgeService._get_completed_tracks(user),
            "friend_count": user.friends.count(),
        }

    @staticmethod
    def _get_completed_tracks(user):
        completed = 0
        for progress in SkillTrackProgress.query.filter_by(user_id=user.id).all():
            module_ids = {m.module_id for m in progress.track.modules}
            if module_ids and module_ids.issubset(set(progress.completed_modules or [])):
                completed += 1
        return completed

    @staticmethod
    def owned_keys(user):
        rows = (
            db.session.query(Badge.key)
            .join(UserBadge, UserBadge.badge_id == Badge.id)
            .filter(UserBadge.user_id == user.id)
            .all()
        )
        return {key for (key,) in rows}

    @staticmethod
    def check_badges(user, attempt=None):
        """Award every badge the user now qualifies for and return them."""
        earned = check_new_badges(
            BadgeService.user_stats(user),
            Badge.query.all(),
            BadgeService.owned_keys(user),
            attempt,
        )
        for badge in earned:
            BadgeService.award_badge(user, badge)
        return earned

    @staticmethod
    def has_badge(user, badge_key):
        return (
            UserBadge.query.join(Badge)
            .filter(UserBadge.user_id == user.id, Badge.key == badge_key)
            .first()
            is not None
        )

    @staticmethod
    def award_badge(user, badge):
        """Grant a badge to a user. Returns False if it was already owned."""
        if BadgeService.has_badge(user, badge.key):
            return False

        db.session.add(UserBadge(
            user_id=user.id,
            badge_id=badge.id,
            awarded_at=datetime.utcnow()
        ))
        db.session.flush()

        # Rewards for earning a badge
        if badge.reward_xp or badge.reward_coins:
            XPService.award(user, badge.reward_xp, badge.reward_coins, f"badge:{badge.key}")

        logger.info("Badge %s awarded to %s", badge.key, user.username)
        return True

    @staticmethod
    def get_user_badge_progress(user):
        """Return a user's progress toward each automatic badge."""
        stats = BadgeService.user_stats(user)
        stat_for = {
            "total_attempts": stats["total_attempts"],
            "quiz_completion": stats["total_attempts"],
            "total_score": stats["total_score"],
            "streak": stats["streak"],
            "level": stats["level"],
            "track_completion": stats["completed_tracks"],
            "friend_count": stats["friend_count"],
        }
        progress = {}
        for badge in Badge.query.all():
            if badge.criteria_type not in stat_for:
                continue
            current = stat_for[badge.criteria_type]
            progress[badge.key] = {
                "current": current,
                "target": badge.threshold,
                "completed": current >= badge.threshold
            }
        return progress

    @staticmethod
    def is_valid_criteria(criteria_type):
        return criteria_type in BADGE_CRITERIA_TYPES


class LeaderboardService:
    @staticmethod
    def _ordered():
        return User.query.order_by(User.total_score.desc(), User.xp.desc(), User.id.asc())

    @staticmethod
    def get_user_rank(user):
        return User.query.filter(User.total_score > (user.total_score or 0)).count() + 1

    @staticmethod
    def get_top_users(limit=10):
        return LeaderboardService._ordered().limit(limit).all()

    @staticmethod
    def get_leaderboard_page(page=1, per_page=20):
        return LeaderboardService._ordered().paginate(page=page, per_page=per_page, error_out=False)

    @staticmethod
    def get_nearby_players(user, spread=2):
        position = (
            User.query.filter(
                (User.total_score > user.total_score)
                | ((User.total_score == user.total_score) & (User.xp > user.xp))
                | ((User.total_score == user.total_score) & (User.xp == user.xp) & (User.id < user.id))
            ).count()
        )
        start = max(0, position - spread)
        return LeaderboardService._ordered().offset(start).limit(spread * 2 + 1).all()

    @staticmethod
    def get_xp_history(user_id, days=30):
        start_date = datetime.utcnow() - timedelta(days=days)
        daily = (
            db.session.query(
                func.date(XPLog.created_at).label("day"),
                func.sum(XPLog.xp_change).label("daily_xp")
            )
            .filter(XPLog.user_id == user_id, XPLog.created_at >= start_date)
            .group_by(func.date(XPLog.created_at))
            .order_by("day")
            .all()
        )

        history = []
        running_total = 0
        for day, daily_xp in daily:
            running_total += daily_xp or 0
            history.append({
                "date": str(day),
                "daily_xp": daily_xp or 0,
                "cumulative_xp": running_total
            })
        return history
