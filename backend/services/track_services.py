import logging
from models import db, SkillTrack, TrackModule
from services.quiz_services import resolve_quiz_ids
from utils.errors import APIError, ConflictError

logger = logging.getLogger(__name__)


class TrackService:
    """Authoring of skill tracks and their ordered modules."""

    TRACK_FIELDS = ("title", "description", "icon", "category")

    @staticmethod
    def _module_fields(position, data):
        if not isinstance(data, dict):
            raise APIError(f"Module {position + 1} must be an object")
        module_id = data.get("module_id") or data.get("id")
        if not module_id or not data.get("title"):
            raise APIError(f"Module {position + 1} needs an id and a title")

        sub_modules = []
        for sub in data.get("sub_modules") or []:
            if not isinstance(sub, dict) or not sub.get("id"):
                raise APIError(f"Sub-modules of {module_id} need an id")
            sub_modules.append({"id": str(sub["id"]), "title": sub.get("title", "")})

        return {
            "module_id": str(module_id),
            "position": position,
            "title": data["title"],
            "description": data.get("description", ""),
            "type": data.get("type", "core"),
            "xp_reward": int(data.get("xp_reward", 100)),
            "prerequisites": [str(p) for p in data.get("prerequisites") or []],
            "quiz_ids": resolve_quiz_ids(data.get("quiz_ids")),
            "sub_modules": sub_modules,
        }

    @staticmethod
    def apply_payload(track, data):
        for field in TrackService.TRACK_FIELDS:
            if field in data:
                setattr(track, field, data[field])
        if "modules" not in data:
            return track

        entries = [TrackService._module_fields(i, m) for i, m in enumerate(data["modules"] or [])]
        ids = [entry["module_id"] for entry in entries]
        if len(ids) != len(set(ids)):
            raise APIError("Module ids must be unique within a track")
        for entry in entries:
            unknown = set(entry["prerequisites"]) - set(ids)
            if unknown:
                raise APIError(f"Unknown prerequisites for {entry['module_id']}: {', '.join(sorted(unknown))}")

        # Existing rows are updated in place so (track, module_id) stays unique
        current = {m.module_id: m for m in track.modules}
        modules = []
        for entry in entries:
            module = current.get(entry["module_id"]) or TrackModule()
            for field, value in entry.items():
                setattr(module, field, value)
            modules.append(module)
        track.modules = modules
        return track

    @staticmethod
    def create_track(data):
        if SkillTrack.query.filter_by(track_id=data["track_id"]).first():
            raise ConflictError("Track with this ID already exists")
        track = TrackService.apply_payload(SkillTrack(track_id=data["track_id"]), data)
        db.session.add(track)
        db.session.commit()
        logger.info("Created skill track %s", track.track_id)
        return track
