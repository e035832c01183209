import logging
from datetime import datetime
from models import db, Attempt, SkillTrack, SkillTrackProgress, TrackModule
from services.core_services import XPService, BadgeService
from services.gamification import MODULE_PASSING_THRESHOLD
from utils.errors import NotFoundError, APIError

logger = logging.getLogger(__name__)


def _sub_key(module_id, sub_id):
    return f"{module_id}:{sub_id}"


class ProgressService:
    """Skill track progress: completion, unlocking and self-healing sync.

    JSON list columns are always replaced with new lists so SQLAlchemy sees
    the change.
    """

    @staticmethod
    def get_track_or_404(track_id):
        track = SkillTrack.query.filter_by(track_id=track_id).first()
        if not track:
            raise NotFoundError("Track not found")
        return track

    @staticmethod
    def root_modules(track):
        roots = [m.module_id for m in track.modules if not m.prerequisites]
        if not roots and track.modules:
            roots = [track.modules[0].module_id]
        return roots

    @staticmethod
    def get_progress(user, track, create=True):
        progress = SkillTrackProgress.query.filter_by(user_id=user.id, track_pk=track.id).first()
        if not progress and create:
            progress = SkillTrackProgress(
                user_id=user.id,
                track_pk=track.id,
                completed_modules=[],
                unlocked_modules=ProgressService.root_modules(track),
                completed_sub_modules=[]
            )
            db.session.add(progress)
            db.session.flush()
        return progress

    @staticmethod
    def _apply_unlocks(progress, track):
        completed = set(progress.completed_modules or [])
        unlocked = list(progress.unlocked_modules or [])
        modules = track.modules

        for index, module in enumerate(modules):
            # Sequential unlock: finishing module i opens module i + 1
            if module.module_id in completed and index < len(modules) - 1:
                next_id = modules[index + 1].module_id
                if next_id not in unlocked:
                    unlocked.append(next_id)
            # Prerequisite unlock: every prerequisite finished
            prereqs = module.prerequisites or []
            if prereqs and all(p in completed for p in prereqs) and module.module_id not in unlocked:
                unlocked.append(module.module_id)

        progress.unlocked_modules = unlocked

    @staticmethod
    def passed_quiz_ids(user_id, quiz_ids):
        if not quiz_ids:
            return set()
        rows = (
            db.session.query(Attempt.quiz_id)
            .filter(
                Attempt.user_id == user_id,
                Attempt.quiz_id.in_(list(quiz_ids)),
                Attempt.percentage >= MODULE_PASSING_THRESHOLD
            )
            .distinct()
            .all()
        )
        return {quiz_id for (quiz_id,) in rows}

    @staticmethod
    def _mark_completed(user, progress, track, module):
        progress.completed_modules = list(progress.completed_modules or []) + [module.module_id]
        ProgressService._apply_unlocks(progress, track)
        progress.last_accessed = datetime.utcnow()
        reward = XPService.award(user, module.xp_reward, 0, f"module:{track.track_id}:{module.module_id}")
        logger.info("Module complete: %s/%s for %s", track.track_id, module.module_id, user.username)
        return reward

    @staticmethod
    def complete_module(user, track, module_id):
        """Mark a module complete and unlock what follows it."""
        module = track.get_module(module_id)
        if not module:
            raise NotFoundError("Module not found")

        progress = ProgressService.get_progress(user, track)
        if module_id in (progress.completed_modules or []):
            return progress, None, []

        reward = ProgressService._mark_completed(user, progress, track, module)
        new_badges = BadgeService.check_badges(user)
        db.session.commit()
        return progress, reward, new_badges

    @staticmethod
    def _module_requirements_met(user, progress, module):
        completed_subs = set(progress.completed_sub_modules or [])
        subs = module.sub_modules or []
        subs_done = all(_sub_key(module.module_id, s.get("id")) in completed_subs for s in subs)

        quiz_ids = set(module.quiz_ids or [])
        quizzes_done = quiz_ids.issubset(ProgressService.passed_quiz_ids(user.id, quiz_ids))
        return subs_done and quizzes_done

    @staticmethod
    def complete_sub_module(user, track, module_id, sub_module_id):
        module = track.get_module(module_id)
        if not module:
            raise NotFoundError("Module not found")
        if sub_module_id not in {s.get("id") for s in (module.sub_modules or [])}:
            raise NotFoundError("Sub-module not found")

        progress = ProgressService.get_progress(user, track)
        if module_id not in (progress.unlocked_modules or []):
            progress.unlocked_modules = list(progress.unlocked_modules or []) + [module_id]

        key = _sub_key(module_id, sub_module_id)
        if key not in (progress.completed_sub_modules or []):
            progress.completed_sub_modules = list(progress.completed_sub_modules or []) + [key]

        reward = None
        new_badges = []
        if module_id not in (progress.completed_modules or []):
            if ProgressService._module_requirements_met(user, progress, module):
                reward = ProgressService._mark_completed(user, progress, track, module)
                new_badges = BadgeService.check_badges(user)
            else:
                logger.debug("Module %s still pending for %s", module_id, user.username)

        progress.last_accessed = datetime.utcnow()
        db.session.commit()
        return progress, reward, new_badges

    @staticmethod
    def sync(user, track, commit=True):
        """Re-evaluate every module against attempts and sub-modules.

        Only heals forward: completed modules are never reverted. Modules with
        neither quizzes nor sub-modules are left for explicit completion.
        """
        progress = ProgressService.get_progress(user, track)
        changed = False
        for module in track.modules:
            if module.module_id in (progress.completed_modules or []):
                continue
            if not (module.quiz_ids or module.sub_modules):
                continue
            if ProgressService._module_requirements_met(user, progress, module):
                ProgressService._mark_completed(user, progress, track, module)
                changed = True

        if changed:
            BadgeService.check_badges(user)
        if commit:
            db.session.commit()
        return progress, changed

    @staticmethod
    def sync_for_quiz(user, quiz_id):
        """Sync every track that contains ``quiz_id``. Caller commits."""
        track_pks = {
            m.track_pk for m in TrackModule.query.all()
            if quiz_id in (m.quiz_ids or [])
        }
        synced = []
        for track in SkillTrack.query.filter(SkillTrack.id.in_(track_pks)).all():
            _, changed = ProgressService.sync(user, track, commit=False)
            if changed:
                synced.append(track.track_id)
        return synced

    @staticmethod
    def set_progress(user, track, completed_modules=None, unlocked_modules=None):
        """Overwrite progress (admin tooling); unlocks are re-derived."""
        known = {m.module_id for m in track.modules}
        progress = ProgressService.get_progress(user, track)
        if completed_modules is not None:
            unknown = set(completed_modules) - known
            if unknown:
                raise APIError(f"Unknown modules: {', '.join(sorted(unknown))}")
            progress.completed_modules = list(dict.fromkeys(completed_modules))
        if unlocked_modules is not None:
            progress.unlocked_modules = list(dict.fromkeys(unlocked_modules))
        ProgressService._apply_unlocks(progress, track)
        db.session.commit()
        return progress
