"""Pure scoring, leveling and badge-unlock rules.

Nothing in this module touches the database, so it can be used from models,
services and tests alike.
"""
import math
from datetime import timedelta

XP_PER_QUIZ_POINT = 10
PERFECT_SCORE_BONUS = 50
SPEED_BONUS = 10
SPEED_BONUS_SECONDS = 60
XP_PER_LEVEL_STEP = 100
MODULE_PASSING_THRESHOLD = 70
FAILED_QUIZ_XP_SHARE = 0.1

BADGE_CRITERIA_TYPES = (
    "total_attempts",
    "total_score",
    "streak",
    "level",
    "perfect_score",
    "speed_demon",
    "quiz_completion",
    "track_completion",
    "friend_count",
    "manual",
)


def calculate_level(xp):
    """Level = floor(sqrt(xp / 100)) + 1, so level 2 starts at 100 XP,
    level 3 at 400, level 4 at 900 and so on."""
    xp = max(0, xp or 0)
    return int(math.floor(math.sqrt(xp / XP_PER_LEVEL_STEP))) + 1


def xp_for_level(level):
    """Minimum XP needed to reach ``level``."""
    level = max(1, level)
    return XP_PER_LEVEL_STEP * (level - 1) ** 2


def calculate_xp_for_quiz(score, max_score, time_seconds):
    score = max(0, score or 0)
    xp = score * XP_PER_QUIZ_POINT

    if max_score and max_score > 0 and score == max_score:
        xp += PERFECT_SCORE_BONUS

    if score > 0 and (time_seconds or 0) < SPEED_BONUS_SECONDS:
        xp += SPEED_BONUS

    return int(round(xp))


def calculate_streak(last_date, current_streak, today):
    """Return the streak after activity on ``today``."""
    if last_date is None:
        return 1
    if last_date == today:
        return current_streak or 1
    if last_date == today - timedelta(days=1):
        return (current_streak or 0) + 1
    return 1


def is_perfect(score, max_score):
    return bool(max_score) and max_score > 0 and score == max_score


def _criterion_met(criteria_type, threshold, stats, attempt):
    if criteria_type == "total_attempts" or criteria_type == "quiz_completion":
        return stats.get("total_attempts", 0) >= threshold
    if criteria_type == "total_score":
        return stats.get("total_score", 0) >= threshold
    if criteria_type == "streak":
        return stats.get("streak", 0) >= threshold
    if criteria_type == "level":
        return stats.get("level", 1) >= threshold
    if criteria_type == "track_completion":
        return stats.get("completed_tracks", 0) >= threshold
    if criteria_type == "friend_count":
        return stats.get("friend_count", 0) >= threshold
    if criteria_type == "perfect_score":
        return attempt is not None and is_perfect(attempt.get("score", 0), attempt.get("max_score", 0))
    if criteria_type == "speed_demon":
        if attempt is None:
            return False
        return attempt.get("score", 0) > 0 and attempt.get("time_taken", 0) < threshold
    # manual and unknown criteria are never unlocked automatically
    return False


def check_new_badges(stats, badges, owned_keys=(), attempt=None):
    """Return the badge definitions newly earned by a user.

    ``stats`` is a mapping with the user's totals (total_attempts, total_score,
    streak, level, completed_tracks, friend_count). ``badges`` is an iterable
    of objects or dicts exposing ``key``, ``criteria_type`` and ``threshold``.
    ``attempt`` optionally carries the score, max_score and time_taken of the
    attempt that triggered the check.
    """
    if not badges:
        return []

    owned = set(owned_keys or ())
    earned = []
    for badge in badges:
        key = _field(badge, "key")
        if key is None or key in owned:
            continue
        threshold = _field(badge, "threshold")
        if threshold is None:
            threshold = 1
        if _criterion_met(_field(badge, "criteria_type"), threshold, stats, attempt):
            earned.append(badge)
            owned.add(key)
    return earned


def _field(obj, name):
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)
