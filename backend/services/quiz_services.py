import logging
from collections import Counter
from datetime import datetime

from models import (
    db, Quiz, Question, Attempt, QuestionTypeEnum, ReviewStatusEnum
)
from services.core_services import XPService, BadgeService
from services.gamification import (
    calculate_xp_for_quiz, FAILED_QUIZ_XP_SHARE, MODULE_PASSING_THRESHOLD
)
from services.progress_services import ProgressService
from utils.constants import XP_BOOST_POWER_UP, XP_BOOST_MULTIPLIER
from utils.errors import APIError, ConflictError

logger = logging.getLogger(__name__)

QUIZ_FIELDS = (
    "title", "description", "category", "difficulty", "time_limit",
    "passing_score", "icon", "xp_reward", "coins_reward", "is_tournament_only",
)


def percentage_of(score, max_score):
    if not max_score:
        return 0
    return int(round(score / max_score * 100))


class QuizService:
    # Handles quiz authoring, grading, scoring and user progress updates.

    @staticmethod
    def _build_question(position, data):
        if not data.get("text") and not data.get("question"):
            raise APIError(f"Question {position + 1} has no text")
        try:
            q_type = QuestionTypeEnum(data.get("type", "multiple-choice"))
        except ValueError:
            raise APIError(f"Question {position + 1} has an invalid type")

        options = data.get("options") or []
        correct = data.get("correct_answer")
        if q_type == QuestionTypeEnum.multiple_choice:
            if len(options) < 2:
                raise APIError(f"Question {position + 1} needs at least two options")
            if not isinstance(correct, int) or not 0 <= correct < len(options):
                raise APIError(f"Question {position + 1} has an invalid correct_answer")

        points = data.get("points", 1)
        if not isinstance(points, int) or points < 1:
            raise APIError(f"Question {position + 1} points must be a positive integer")

        return Question(
            position=position,
            type=q_type,
            part=data.get("part", ""),
            text=data.get("text") or data.get("question"),
            options=list(options),
            correct_answer=correct if q_type == QuestionTypeEnum.multiple_choice else None,
            explanation=data.get("explanation", ""),
            points=points
        )

    @staticmethod
    def apply_payload(quiz, data):
        """Copy quiz fields and (when given) questions from a request body."""
        for field in QUIZ_FIELDS:
            if field in data:
                setattr(quiz, field, data[field])
        if quiz.passing_score is not None and not 0 <= quiz.passing_score <= 100:
            raise APIError("passing_score must be between 0 and 100")
        if "questions" in data:
            quiz.questions = [
                QuizService._build_question(i, q) for i, q in enumerate(data["questions"] or [])
            ]
        return quiz

    @staticmethod
    def create_quiz(data):
        if Quiz.query.filter_by(slug=data["slug"]).first():
            raise ConflictError("Quiz ID already exists")
        quiz = QuizService.apply_payload(Quiz(slug=data["slug"]), data)
        db.session.add(quiz)
        db.session.commit()
        return quiz

    @staticmethod
    def import_quizzes(items):
        created, updated = 0, 0
        for data in items:
            if not isinstance(data, dict) or not data.get("slug") or not data.get("title"):
                raise APIError("Every quiz needs a slug and a title")
            quiz = Quiz.query.filter_by(slug=data["slug"]).first()
            if quiz:
                updated += 1
            else:
                quiz = Quiz(slug=data["slug"])
                db.session.add(quiz)
                created += 1
            QuizService.apply_payload(quiz, data)
        db.session.commit()
        return created, updated

    @staticmethod
    def grade(quiz, answers):
        """Score the submitted answers. Text answers wait for manual review."""
        answers = answers or {}
        score = 0
        needs_review = False
        for question in quiz.questions:
            given = answers.get(str(question.id), answers.get(question.id))
            if question.type == QuestionTypeEnum.text:
                if given not in (None, ""):
                    needs_review = True
                continue
            if given is None:
                continue
            try:
                if int(given) == question.correct_answer:
                    score += question.points
            except (TypeError, ValueError):
                continue
        return score, needs_review

    @staticmethod
    def _consume_power_ups(user, power_ups_used):
        wanted = Counter(power_ups_used or [])
        owned = {p.type: p for p in user.power_ups}
        for p_type, count in wanted.items():
            power_up = owned.get(p_type)
            if not power_up or power_up.quantity < count:
                raise APIError(f"Insufficient power-up: {p_type}")
        for p_type, count in wanted.items():
            owned[p_type].quantity -= count

    @staticmethod
    def record_attempt(user, quiz, answers, time_taken=0, power_ups_used=None):
        power_ups_used = list(power_ups_used or [])
        time_taken = max(0, int(time_taken or 0))

        QuizService._consume_power_ups(user, power_ups_used)

        score, needs_review = QuizService.grade(quiz, answers)
        max_score = quiz.max_score
        percentage = percentage_of(score, max_score)
        passed = percentage >= quiz.passing_score

        xp = calculate_xp_for_quiz(score, max_score, time_taken)
        if passed:
            xp += quiz.xp_reward
        else:
            xp += int(quiz.xp_reward * FAILED_QUIZ_XP_SHARE)
        if XP_BOOST_POWER_UP in power_ups_used:
            xp *= XP_BOOST_MULTIPLIER
        coins = quiz.coins_reward if passed else 0

        attempt = Attempt(
            user_id=user.id,
            quiz_id=quiz.id,
            quiz_title=quiz.title,
            score=score,
            max_score=max_score,
            total_questions=len(quiz.questions),
            percentage=percentage,
            passed=passed,
            time_taken=time_taken,
            answers={str(k): v for k, v in (answers or {}).items()},
            power_ups_used=power_ups_used,
            xp_gained=xp,
            coins_gained=coins,
            review_status=ReviewStatusEnum.pending if needs_review else ReviewStatusEnum.auto,
            completed_at=datetime.utcnow()
        )
        db.session.add(attempt)

        user.total_score = (user.total_score or 0) + score
        user.total_attempts = (user.total_attempts or 0) + 1
        user.total_time = (user.total_time or 0) + time_taken
        reward = XPService.award(user, xp, coins, f"quiz:{quiz.slug}")
        db.session.flush()

        new_badges = BadgeService.check_badges(user, attempt={
            "score": score,
            "max_score": max_score,
            "time_taken": time_taken,
        })

        synced_tracks = []
        if percentage >= MODULE_PASSING_THRESHOLD:
            synced_tracks = ProgressService.sync_for_quiz(user, quiz.id)

        db.session.commit()
        logger.info(
            "Attempt %s: %s scored %s/%s on %s",
            attempt.attempt_id, user.username, score, max_score, quiz.slug
        )

        return {
            "attempt": attempt.to_dict(),
            "xp_gained": xp,
            "coins_gained": coins,
            "level": user.level,
            "leveled_up": reward["leveled_up"],
            "new_badges": [b.to_dict() for b in new_badges],
            "synced_tracks": synced_tracks,
        }

    @staticmethod
    def review_attempt(attempt, feedback=None, score_adjustment=None, final_score=None):
        old_score = attempt.score
        if score_adjustment is not None:
            attempt.score = attempt.score + int(score_adjustment)
        elif final_score is not None:
            attempt.score = int(final_score)
        attempt.score = max(0, min(attempt.score, attempt.max_score or attempt.score))

        attempt.feedback = feedback
        attempt.review_status = ReviewStatusEnum.reviewed
        attempt.percentage = percentage_of(attempt.score, attempt.max_score)
        if attempt.quiz:
            attempt.passed = attempt.percentage >= attempt.quiz.passing_score
        if attempt.user:
            attempt.user.total_score = max(0, (attempt.user.total_score or 0) + attempt.score - old_score)
        db.session.commit()
        return attempt


def resolve_quiz_ids(values):
    """Map quiz slugs (or primary keys) to primary keys, keeping order."""
    resolved = []
    for value in values or []:
        if isinstance(value, int):
            quiz = db.session.get(Quiz, value)
        else:
            quiz = Quiz.query.filter_by(slug=str(value)).first()
        if not quiz:
            raise APIError(f"Unknown quiz: {value}")
        if quiz.id not in resolved:
            resolved.append(quiz.id)
    return resolved
