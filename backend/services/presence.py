import threading


class PresenceTracker:
    """Maps user ids to their connected socket ids."""

    def __init__(self):
        self._sessions = {}
        self._users_by_sid = {}
        self._lock = threading.Lock()

    def connect(self, user_id, sid):
        """Returns True when this is the user's first live connection."""
        user_id = str(user_id)
        with self._lock:
            previous = self._users_by_sid.get(sid)
            if previous is not None and previous != user_id:
                self._drop(previous, sid)
            sids = self._sessions.setdefault(user_id, set())
            first = not sids
            sids.add(sid)
            self._users_by_sid[sid] = user_id
            return first

    def disconnect(self, sid):
        """Returns the user id that went offline, or None if still connected elsewhere."""
        with self._lock:
            user_id = self._users_by_sid.pop(sid, None)
            if user_id is None:
                return None
            return user_id if self._drop(user_id, sid) else None

    def _drop(self, user_id, sid):
        sids = self._sessions.get(user_id)
        if not sids:
            return False
        sids.discard(sid)
        if not sids:
            del self._sessions[user_id]
            return True
        return False

    def user_for(self, sid):
        return self._users_by_sid.get(sid)

    def is_online(self, user_id):
        return str(user_id) in self._sessions

    def online_users(self):
        with self._lock:
            return sorted(self._sessions)

    def clear(self):
        with self._lock:
            self._sessions.clear()
            self._users_by_sid.clear()
