from datetime import datetime, date
import enum
import uuid
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.orm import validates
from werkzeug.security import generate_password_hash, check_password_hash

from services.gamification import calculate_streak

db = SQLAlchemy()


# Enums
class RoleEnum(enum.Enum):
    admin = "admin"
    learner = "learner"


class QuestionTypeEnum(enum.Enum):
    multiple_choice = "multiple-choice"
    text = "text"


class ShopItemTypeEnum(enum.Enum):
    power_up = "power-up"
    cosmetic = "cosmetic"
    boost = "boost"


class ReviewStatusEnum(enum.Enum):
    auto = "auto"
    pending = "pending"
    reviewed = "reviewed"


class RequestStatusEnum(enum.Enum):
    pending = "pending"
    accepted = "accepted"
    rejected = "rejected"


class ChallengeStatusEnum(enum.Enum):
    pending = "pending"
    completed = "completed"


def _iso(value):
    return value.isoformat() if value else None


def _uuid():
    return str(uuid.uuid4())


# Association Tables
friendships = db.Table(
    "friendships",
    db.Column("user_id", db.Integer, db.ForeignKey("user.id"), primary_key=True),
    db.Column("friend_id", db.Integer, db.ForeignKey("user.id"), primary_key=True)
)

tournament_participants = db.Table(
    "tournament_participants",
    db.Column("tournament_id", db.Integer, db.ForeignKey("tournament.id"), primary_key=True),
    db.Column("user_id", db.Integer, db.ForeignKey("user.id"), primary_key=True)
)


# Core Models
class User(db.Model):
    __tablename__ = "user"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.Enum(RoleEnum), nullable=False, default=RoleEnum.learner)
    total_score = db.Column(db.Integer, default=0, nullable=False, index=True)
    total_attempts = db.Column(db.Integer, default=0, nullable=False)
    total_time = db.Column(db.Integer, default=0, nullable=False)
    xp = db.Column(db.Integer, default=0, nullable=False)
    level = db.Column(db.Integer, default=1, nullable=False)
    coins = db.Column(db.Integer, default=0, nullable=False)
    streak_days = db.Column(db.Integer, default=0, nullable=False)
    last_login_date = db.Column(db.Date, nullable=True)
    daily_challenge_streak = db.Column(db.Integer, default=0, nullable=False)
    daily_challenge_date = db.Column(db.Date, nullable=True)
    avatar = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    last_active = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    attempts = db.relationship("Attempt", back_populates="user", lazy="dynamic", cascade="all, delete-orphan")
    badges = db.relationship("UserBadge", back_populates="user", lazy="dynamic", cascade="all, delete-orphan")
    inventory = db.relationship("UserItem", back_populates="user", lazy="dynamic", cascade="all, delete-orphan")
    power_ups = db.relationship("PowerUp", back_populates="user", lazy="dynamic", cascade="all, delete-orphan")
    xp_logs = db.relationship("XPLog", back_populates="user", lazy="dynamic", cascade="all, delete-orphan")
    track_progress = db.relationship("SkillTrackProgress", back_populates="user", lazy="dynamic", cascade="all, delete-orphan")
    friends = db.relationship(
        "User",
        secondary=friendships,
        primaryjoin=id == friendships.c.user_id,
        secondaryjoin=id == friendships.c.friend_id,
        lazy="dynamic"
    )

    #  Methods
    def __repr__(self):
        return f"<User {self.username}>"

    @property
    def is_admin(self):
        return self.role == RoleEnum.admin

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def to_public_dict(self):
        return {
            "id": self.id,
            "username": self.username,
            "role": self.role.value,
            "total_score": self.total_score,
            "total_attempts": self.total_attempts,
            "xp": self.xp,
            "level": self.level,
            "streak_days": self.streak_days,
            "last_login_date": _iso(self.last_login_date),
            "badges": [ub.badge.key for ub in self.badges],
        }

    def to_dict(self):
        data = self.to_public_dict()
        data.update({
            "email": self.email,
            "total_time": self.total_time,
            "coins": self.coins,
            "daily_challenge_streak": self.daily_challenge_streak,
            "avatar": self.avatar or {},
            "inventory": [item.to_dict() for item in self.inventory],
            "power_ups": [p.to_dict() for p in self.power_ups],
            "created_at": _iso(self.created_at),
        })
        return data

    def update_streak(self, today=None):
        """Update the daily login streak. Caller commits."""
        today = today or date.today()
        self.streak_days = calculate_streak(self.last_login_date, self.streak_days, today)
        self.last_login_date = today

    @validates("email")
    def validate_email(self, key, email):
        if not email or "@" not in email:
            raise ValueError("Invalid email format.")
        return email.strip().lower()


class Quiz(db.Model):
    __tablename__ = "quiz"

    id = db.Column(db.Integer, primary_key=True)
    slug = db.Column(db.String(120), unique=True, nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, default="")
    category = db.Column(db.String(100), nullable=False, default="General", index=True)
    difficulty = db.Column(db.String(50), nullable=False, default="beginner")
    time_limit = db.Column(db.Integer, nullable=False, default=10)  # minutes
    passing_score = db.Column(db.Integer, nullable=False, default=70)  # percentage
    icon = db.Column(db.String(20), default="📝")
    xp_reward = db.Column(db.Integer, nullable=False, default=50)
    coins_reward = db.Column(db.Integer, nullable=False, default=10)
    is_tournament_only = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    questions = db.relationship(
        "Question",
        back_populates="quiz",
        order_by="Question.position",
        cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Quiz {self.slug}>"

    @property
    def max_score(self):
        return sum(q.points for q in self.questions)

    def to_summary(self):
        return {
            "id": self.id,
            "slug": self.slug,
            "title": self.title,
            "description": self.description,
            "icon": self.icon,
            "time_limit": self.time_limit,
        }

    def to_dict(self, include_answers=False):
        data = self.to_summary()
        data.update({
            "category": self.category,
            "difficulty": self.difficulty,
            "passing_score": self.passing_score,
            "xp_reward": self.xp_reward,
            "coins_reward": self.coins_reward,
            "is_tournament_only": self.is_tournament_only,
            "max_score": self.max_score,
            "questions": [q.to_dict(include_answers) for q in self.questions],
        })
        return data


class Question(db.Model):
    __tablename__ = "question"

    id = db.Column(db.Integer, primary_key=True)
    quiz_id = db.Column(db.Integer, db.ForeignKey("quiz.id"), nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)
    type = db.Column(db.Enum(QuestionTypeEnum), nullable=False, default=QuestionTypeEnum.multiple_choice)
    part = db.Column(db.String(100), default="")
    text = db.Column(db.Text, nullable=False)
    options = db.Column(db.JSON, default=list)
    correct_answer = db.Column(db.Integer, nullable=True)
    explanation = db.Column(db.Text, default="")
    points = db.Column(db.Integer, nullable=False, default=1)

    quiz = db.relationship("Quiz", back_populates="questions")

    def __repr__(self):
        return f"<Question {self.id}>"

    def to_dict(self, include_answers=False):
        data = {
            "id": self.id,
            "position": self.position,
            "type": self.type.value,
            "part": self.part,
            "text": self.text,
            "options": self.options or [],
            "points": self.points,
        }
        if include_answers:
            data["correct_answer"] = self.correct_answer
            data["explanation"] = self.explanation
        return data


class Attempt(db.Model):
    __tablename__ = "attempt"

    id = db.Column(db.Integer, primary_key=True)
    attempt_id = db.Column(db.String(36), unique=True, nullable=False, default=_uuid)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    quiz_id = db.Column(db.Integer, db.ForeignKey("quiz.id", ondelete="SET NULL"), nullable=True, index=True)
    quiz_title = db.Column(db.String(255), nullable=False)
    score = db.Column(db.Integer, nullable=False, default=0)
    max_score = db.Column(db.Integer, nullable=False, default=0)
    total_questions = db.Column(db.Integer, nullable=False, default=0)
    percentage = db.Column(db.Integer, nullable=False, default=0)
    passed = db.Column(db.Boolean, nullable=False, default=False)
    time_taken = db.Column(db.Integer, nullable=False, default=0)  # seconds
    answers = db.Column(db.JSON, default=dict)
    power_ups_used = db.Column(db.JSON, default=list)
    xp_gained = db.Column(db.Integer, nullable=False, default=0)
    coins_gained = db.Column(db.Integer, nullable=False, default=0)
    review_status = db.Column(db.Enum(ReviewStatusEnum), nullable=False, default=ReviewStatusEnum.auto)
    feedback = db.Column(db.Text, nullable=True)
    completed_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    user = db.relationship("User", back_populates="attempts")
    quiz = db.relationship("Quiz")

    def __repr__(self):
        return f"<Attempt user={self.user_id} quiz={self.quiz_id} score={self.score}>"

    def to_dict(self):
        return {
            "attempt_id": self.attempt_id,
            "user_id": self.user_id,
            "username": self.user.username if self.user else None,
            "quiz_id": self.quiz_id,
            "quiz_title": self.quiz_title,
            "score": self.score,
            "max_score": self.max_score,
            "total_questions": self.total_questions,
            "percentage": self.percentage,
            "passed": self.passed,
            "time_taken": self.time_taken,
            "answers": self.answers or {},
            "power_ups_used": self.power_ups_used or [],
            "xp_gained": self.xp_gained,
            "coins_gained": self.coins_gained,
            "review_status": self.review_status.value,
            "feedback": self.feedback,
            "completed_at": _iso(self.completed_at),
        }


class Badge(db.Model):
    __tablename__ = "badge"

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(100), unique=True, nullable=False)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    icon = db.Column(db.String(20), default="🏅")
    criteria_type = db.Column(db.String(50), nullable=False, default="manual")
    threshold = db.Column(db.Integer, nullable=False, default=1)
    reward_xp = db.Column(db.Integer, nullable=False, default=0)
    reward_coins = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    users = db.relationship("UserBadge", back_populates="badge", lazy="dynamic", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Badge {self.name}>"

    def to_dict(self):
        return {
            "id": self.id,
            "key": self.key,
            "name": self.name,
            "description": self.description,
            "icon": self.icon,
            "criteria": {"type": self.criteria_type, "threshold": self.threshold},
            "reward_xp": self.reward_xp,
            "reward_coins": self.reward_coins,
            "created_at": _iso(self.created_at),
        }


class UserBadge(db.Model):
    __tablename__ = "user_badge"
    __table_args__ = (db.UniqueConstraint("user_id", "badge_id"),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False)
    badge_id = db.Column(db.Integer, db.ForeignKey("badge.id"), nullable=False)
    awarded_at = db.Column(db.DateTime, default=datetime.utcnow)

    user = db.relationship("User", back_populates="badges")
    badge = db.relationship("Badge", back_populates="users")

    def __repr__(self):
        return f"<UserBadge user={self.user_id} badge={self.badge_id}>"


class XPLog(db.Model):
    __tablename__ = "xp_log"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    xp_change = db.Column(db.Integer, nullable=False, default=0)
    coins_change = db.Column(db.Integer, nullable=False, default=0)
    reason = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    user = db.relationship("User", back_populates="xp_logs")

    def __repr__(self):
        return f"<XPLog user={self.user_id} xp={self.xp_change}>"


# Shop
class ShopItem(db.Model):
    __tablename__ = "shop_item"

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.String(100), unique=True, nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, default="")
    type = db.Column(db.Enum(ShopItemTypeEnum), nullable=False, default=ShopItemTypeEnum.power_up)
    price = db.Column(db.Integer, nullable=False, default=0)
    payload = db.Column(db.JSON, default=dict)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<ShopItem {self.item_id}>"

    def to_dict(self):
        return {
            "item_id": self.item_id,
            "name": self.name,
            "description": self.description,
            "type": self.type.value,
            "price": self.price,
            "payload": self.payload or {},
        }


class UserItem(db.Model):
    __tablename__ = "user_item"
    __table_args__ = (db.UniqueConstraint("user_id", "item_id"),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False)
    item_id = db.Column(db.String(100), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    acquired_at = db.Column(db.DateTime, default=datetime.utcnow)

    user = db.relationship("User", back_populates="inventory")

    def to_dict(self):
        return {"item_id": self.item_id, "quantity": self.quantity}


class PowerUp(db.Model):
    __tablename__ = "power_up"
    __table_args__ = (db.UniqueConstraint("user_id", "type"),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False)
    type = db.Column(db.String(50), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=0)

    user = db.relationship("User", back_populates="power_ups")

    def to_dict(self):
        return {"type": self.type, "quantity": self.quantity}


# Social
class FriendRequest(db.Model):
    __tablename__ = "friend_request"

    id = db.Column(db.Integer, primary_key=True)
    from_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    to_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    status = db.Column(db.Enum(RequestStatusEnum), nullable=False, default=RequestStatusEnum.pending)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    sender = db.relationship("User", foreign_keys=[from_id])
    receiver = db.relationship("User", foreign_keys=[to_id])

    def to_dict(self):
        return {
            "id": self.id,
            "from_id": self.from_id,
            "from_username": self.sender.username if self.sender else None,
            "to_id": self.to_id,
            "status": self.status.value,
            "created_at": _iso(self.created_at),
        }


class Challenge(db.Model):
    __tablename__ = "challenge"

    id = db.Column(db.Integer, primary_key=True)
    token = db.Column(db.String(64), unique=True, nullable=False, index=True)
    quiz_id = db.Column(db.Integer, db.ForeignKey("quiz.id", ondelete="SET NULL"), nullable=True)
    from_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    to_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    status = db.Column(db.Enum(ChallengeStatusEnum), nullable=False, default=ChallengeStatusEnum.pending)
    from_result = db.Column(db.JSON, nullable=True)
    to_result = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    quiz = db.relationship("Quiz")
    challenger = db.relationship("User", foreign_keys=[from_id])
    opponent = db.relationship("User", foreign_keys=[to_id])

    def __repr__(self):
        return f"<Challenge {self.token} {self.status.value}>"

    @property
    def winner_id(self):
        if not (self.from_result and self.to_result):
            return None
        a, b = self.from_result, self.to_result
        if a.get("score", 0) != b.get("score", 0):
            return self.from_id if a.get("score", 0) > b.get("score", 0) else self.to_id
        if a.get("time_taken", 0) != b.get("time_taken", 0):
            return self.from_id if a.get("time_taken", 0) < b.get("time_taken", 0) else self.to_id
        return None

    def to_dict(self):
        return {
            "token": self.token,
            "quiz_id": self.quiz_id,
            "from_id": self.from_id,
            "to_id": self.to_id,
            "status": self.status.value,
            "from_result": self.from_result,
            "to_result": self.to_result,
            "winner_id": self.winner_id,
            "created_at": _iso(self.created_at),
        }


# Engagement
class DailyChallenge(db.Model):
    __tablename__ = "daily_challenge"

    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.Date, unique=True, nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False)
    quiz_id = db.Column(db.Integer, db.ForeignKey("quiz.id", ondelete="SET NULL"), nullable=True)
    criteria_type = db.Column(db.String(50), nullable=False, default="complete_quiz")
    threshold = db.Column(db.Integer, nullable=False, default=1)
    reward_coins = db.Column(db.Integer, nullable=False, default=50)
    reward_xp = db.Column(db.Integer, nullable=False, default=100)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    quiz = db.relationship("Quiz")

    def to_dict(self):
        return {
            "id": self.id,
            "date": _iso(self.date),
            "title": self.title,
            "description": self.description,
            "quiz_id": self.quiz_id,
            "criteria": {"type": self.criteria_type, "threshold": self.threshold},
            "reward_coins": self.reward_coins,
            "reward_xp": self.reward_xp,
        }


class Tournament(db.Model):
    __tablename__ = "tournament"

    id = db.Column(db.Integer, primary_key=True)
    tournament_id = db.Column(db.String(36), unique=True, nullable=False, default=_uuid, index=True)
    name = db.Column(db.String(255), nullable=False)
    starts_at = db.Column(db.DateTime, nullable=False, index=True)
    ends_at = db.Column(db.DateTime, nullable=False)
    quiz_ids = db.Column(db.JSON, default=list)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    participants = db.relationship("User", secondary=tournament_participants, lazy="dynamic")

    def __repr__(self):
        return f"<Tournament {self.name}>"

    def status_at(self, now=None):
        now = now or datetime.utcnow()
        if now < self.starts_at:
            return "scheduled"
        if now <= self.ends_at:
            return "live"
        return "completed"

    def to_dict(self, now=None):
        return {
            "tournament_id": self.tournament_id,
            "name": self.name,
            "starts_at": _iso(self.starts_at),
            "ends_at": _iso(self.ends_at),
            "quiz_ids": self.quiz_ids or [],
            "status": self.status_at(now),
            "participants": self.participants.count(),
        }


class StudyCard(db.Model):
    __tablename__ = "study_card"

    id = db.Column(db.Integer, primary_key=True)
    card_id = db.Column(db.String(36), unique=True, nullable=False, default=_uuid, index=True)
    title = db.Column(db.String(255), nullable=False)
    content = db.Column(db.Text, nullable=False)  # markdown
    category = db.Column(db.String(100), nullable=False, default="General", index=True)
    tags = db.Column(db.JSON, default=list)
    created_by = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            "card_id": self.card_id,
            "title": self.title,
            "content": self.content,
            "category": self.category,
            "tags": self.tags or [],
            "created_by": self.created_by,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class SkillTrack(db.Model):
    __tablename__ = "skill_track"

    id = db.Column(db.Integer, primary_key=True)
    track_id = db.Column(db.String(100), unique=True, nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, default="")
    icon = db.Column(db.String(20), default="🗺️")
    category = db.Column(db.String(100), default="General")
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    modules = db.relationship(
        "TrackModule",
        back_populates="track",
        order_by="TrackModule.position",
        cascade="all, delete-orphan"
    )
    progress_records = db.relationship("SkillTrackProgress", back_populates="track", lazy="dynamic", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<SkillTrack {self.track_id}>"

    def get_module(self, module_id):
        return next((m for m in self.modules if m.module_id == module_id), None)

    def to_dict(self):
        return {
            "track_id": self.track_id,
            "title": self.title,
            "description": self.description,
            "icon": self.icon,
            "category": self.category,
            "modules": [m.to_dict() for m in self.modules],
        }


class TrackModule(db.Model):
    __tablename__ = "track_module"
    __table_args__ = (db.UniqueConstraint("track_pk", "module_id"),)

    id = db.Column(db.Integer, primary_key=True)
    track_pk = db.Column(db.Integer, db.ForeignKey("skill_track.id"), nullable=False)
    module_id = db.Column(db.String(100), nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, default="")
    type = db.Column(db.String(50), default="core")
    xp_reward = db.Column(db.Integer, nullable=False, default=100)
    prerequisites = db.Column(db.JSON, default=list)
    quiz_ids = db.Column(db.JSON, default=list)
    sub_modules = db.Column(db.JSON, default=list)  # [{"id": ..., "title": ...}]

    track = db.relationship("SkillTrack", back_populates="modules")

    def to_dict(self):
        return {
            "module_id": self.module_id,
            "position": self.position,
            "title": self.title,
            "description": self.description,
            "type": self.type,
            "xp_reward": self.xp_reward,
            "prerequisites": self.prerequisites or [],
            "quiz_ids": self.quiz_ids or [],
            "sub_modules": self.sub_modules or [],
        }


class SkillTrackProgress(db.Model):
    __tablename__ = "skill_track_progress"
    __table_args__ = (db.UniqueConstraint("user_id", "track_pk"),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    track_pk = db.Column(db.Integer, db.ForeignKey("skill_track.id"), nullable=False)
    completed_modules = db.Column(db.JSON, default=list)
    unlocked_modules = db.Column(db.JSON, default=list)
    completed_sub_modules = db.Column(db.JSON, default=list)  # "module_id:sub_id"
    last_accessed = db.Column(db.DateTime, default=datetime.utcnow)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    user = db.relationship("User", back_populates="track_progress")
    track = db.relationship("SkillTrack", back_populates="progress_records")

    def __repr__(self):
        return f"<SkillTrackProgress user={self.user_id} track={self.track_pk}>"

    def to_dict(self):
        return {
            "track_id": self.track.track_id if self.track else None,
            "completed_modules": self.completed_modules or [],
            "unlocked_modules": self.unlocked_modules or [],
            "completed_sub_modules": self.completed_sub_modules or [],
            "last_accessed": _iso(self.last_accessed),
        }
