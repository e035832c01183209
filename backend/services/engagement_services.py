import logging
import random
from datetime import date, datetime, timedelta
from models import db, Attempt, DailyChallenge, Quiz, Tournament
from services.core_services import XPService
from services.quiz_services import resolve_quiz_ids
from utils.constants import DAILY_CHALLENGE_DEFAULTS
from utils.errors import APIError, NotFoundError

logger = logging.getLogger(__name__)


def parse_date(value, field="date"):
    try:
        return date.fromisoformat(str(value)[:10])
    except (TypeError, ValueError):
        raise APIError(f"{field} must be an ISO date (YYYY-MM-DD)")


def parse_datetime(value, field):
    text = str(value or "")
    if text.endswith("Z"):
        text = text[:-1]
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        raise APIError(f"{field} must be an ISO datetime")


class DailyChallengeService:
    CHALLENGE_FIELDS = ("title", "description", "criteria_type", "threshold", "reward_coins", "reward_xp")

    @staticmethod
    def _random_quiz(today):
        quizzes = Quiz.query.filter_by(is_tournament_only=False).order_by(Quiz.id).all()
        if not quizzes:
            return None
        # Same pick for the whole day
        return random.Random(today.toordinal()).choice(quizzes)

    @staticmethod
    def is_completed(user, today=None):
        today = today or date.today()
        return user.daily_challenge_date == today

    @staticmethod
    def get_today(user, today=None):
        today = today or date.today()
        challenge = DailyChallenge.query.filter_by(date=today).first()

        if challenge:
            quiz = challenge.quiz if challenge.quiz_id else DailyChallengeService._random_quiz(today)
            if not quiz:
                raise NotFoundError("Daily challenge quiz not found")
            data = challenge.to_dict()
        else:
            quiz = DailyChallengeService._random_quiz(today)
            if not quiz:
                raise NotFoundError("No daily challenge available")
            data = {
                "id": None,
                "date": today.isoformat(),
                "title": "Daily Random Quiz",
                "description": f"Complete the {quiz.title} quiz!",
                "criteria": {"type": "complete_quiz", "threshold": 1},
                "reward_coins": DAILY_CHALLENGE_DEFAULTS["dynamic_coins"],
                "reward_xp": DAILY_CHALLENGE_DEFAULTS["dynamic_xp"],
            }

        data.update({
            "quiz_id": quiz.slug,
            "quiz": quiz.to_summary(),
            "streak": user.daily_challenge_streak or 0,
            "completed": DailyChallengeService.is_completed(user, today),
        })
        return data

    @staticmethod
    def complete(user, today=None):
        """Record today's completion. Returns (already_done, reward)."""
        today = today or date.today()
        if DailyChallengeService.is_completed(user, today):
            return True, None

        challenge = DailyChallenge.query.filter_by(date=today).first()
        if challenge:
            coins, xp = challenge.reward_coins, challenge.reward_xp
        else:
            coins = DAILY_CHALLENGE_DEFAULTS["fallback_coins"]
            xp = DAILY_CHALLENGE_DEFAULTS["fallback_xp"]

        if user.daily_challenge_date == today - timedelta(days=1):
            user.daily_challenge_streak = (user.daily_challenge_streak or 0) + 1
        else:
            user.daily_challenge_streak = 1
        user.daily_challenge_date = today

        reward = XPService.award(user, xp, coins, f"daily:{today.isoformat()}")
        db.session.commit()
        logger.info("%s completed the daily challenge (streak %s)", user.username, user.daily_challenge_streak)
        return False, reward

    @staticmethod
    def apply_payload(challenge, data):
        for field in DailyChallengeService.CHALLENGE_FIELDS:
            if field in data:
                setattr(challenge, field, data[field])
        criteria = data.get("criteria")
        if isinstance(criteria, dict):
            challenge.criteria_type = criteria.get("type", challenge.criteria_type)
            challenge.threshold = criteria.get("threshold", challenge.threshold)
        if "quiz_id" in data:
            quiz_ids = resolve_quiz_ids([data["quiz_id"]] if data["quiz_id"] else [])
            challenge.quiz_id = quiz_ids[0] if quiz_ids else None
        return challenge


class TournamentService:

    @staticmethod
    def get_or_404(tournament_id):
        tournament = Tournament.query.filter_by(tournament_id=tournament_id).first()
        if not tournament:
            raise NotFoundError("Tournament not found")
        return tournament

    @staticmethod
    def apply_payload(tournament, data):
        if "name" in data:
            tournament.name = data["name"]
        if "starts_at" in data:
            tournament.starts_at = parse_datetime(data["starts_at"], "starts_at")
        if "ends_at" in data:
            tournament.ends_at = parse_datetime(data["ends_at"], "ends_at")
        if tournament.starts_at and tournament.ends_at and tournament.ends_at < tournament.starts_at:
            raise APIError("ends_at must be after starts_at")
        if "quiz_ids" in data:
            tournament.quiz_ids = resolve_quiz_ids(data["quiz_ids"])
        return tournament

    @staticmethod
    def create(data):
        if not data.get("name") or not data.get("starts_at") or not data.get("ends_at"):
            raise APIError("name, starts_at and ends_at are required")
        tournament = TournamentService.apply_payload(Tournament(quiz_ids=[]), data)
        db.session.add(tournament)
        db.session.commit()
        logger.info("Created tournament %s (%s)", tournament.name, tournament.tournament_id)
        return tournament

    @staticmethod
    def join(tournament, user):
        """Returns False when the user had already joined."""
        if tournament.participants.filter_by(id=user.id).first():
            return False
        tournament.participants.append(user)
        db.session.commit()
        return True

    @staticmethod
    def standings(tournament):
        """Rank participants by the sum of their best scores on the tournament quizzes."""
        quiz_ids = tournament.quiz_ids or []
        rows = []
        for user in tournament.participants:
            best = {}
            if quiz_ids:
                attempts = Attempt.query.filter(
                    Attempt.user_id == user.id,
                    Attempt.quiz_id.in_(quiz_ids),
                    Attempt.completed_at >= tournament.starts_at,
                    Attempt.completed_at <= tournament.ends_at
                ).all()
                for attempt in attempts:
                    current = best.get(attempt.quiz_id)
                    if current is None or (attempt.score, -attempt.time_taken) > (current.score, -current.time_taken):
                        best[attempt.quiz_id] = attempt
            rows.append({
                "user_id": user.id,
                "username": user.username,
                "score": sum(a.score for a in best.values()),
                "time_taken": sum(a.time_taken for a in best.values()),
                "quizzes_completed": len(best),
            })

        rows.sort(key=lambda r: (-r["score"], r["time_taken"], r["user_id"]))
        for rank, row in enumerate(rows, start=1):
            row["rank"] = rank
        return rows
