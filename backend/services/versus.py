"""In-memory state for live 1v1 quiz games.

Rooms live only in the process that created them. Updates follow "last
message wins": a progress or completion message simply overwrites the
player's previous state.
"""
import threading
import time

PLAYERS_PER_MATCH = 2


def make_room_id(from_id, to_id, now_ms=None):
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"room_{from_id}_{to_id}_{now_ms}"


class GameRoom:
    def __init__(self, room_id, now=0.0):
        self.room_id = room_id
        # Sockets (or user ids) present in the room; decides match_ready
        self.members = set()
        # Per-user results; decides game_over
        self.players = {}
        self.finished_at = None
        self.last_active = now

    def ensure_player(self, user_id):
        return self.players.setdefault(
            str(user_id), {"finished": False, "score": 0, "time_taken": 0}
        )

    def all_finished(self):
        return len(self.players) >= PLAYERS_PER_MATCH and all(
            p["finished"] for p in self.players.values()
        )

    def result(self):
        ranked = sorted(
            self.players.items(),
            key=lambda item: (-item[1]["score"], item[1]["time_taken"])
        )
        (winner_id, winner), (_, runner_up) = ranked[0], ranked[1]
        is_draw = (
            winner["score"] == runner_up["score"]
            and winner["time_taken"] == runner_up["time_taken"]
        )
        return {
            "room_id": self.room_id,
            "winner_id": None if is_draw else winner_id,
            "is_draw": is_draw,
            "results": {uid: dict(stats) for uid, stats in self.players.items()},
        }


class GameRoomRegistry:
    def __init__(self, ttl_seconds=3600, clock=time.monotonic):
        self._rooms = {}
        self._lock = threading.Lock()
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def __len__(self):
        return len(self._rooms)

    def get(self, room_id):
        return self._rooms.get(room_id)

    def join(self, room_id, user_id=None, sid=None):
        """Add a socket (or user) to a room.

        Returns ``(room, just_filled)``; ``just_filled`` is True only for the
        join that brings the room to ``PLAYERS_PER_MATCH`` members.
        """
        with self._lock:
            now = self._clock()
            self._prune(now)
            room = self._rooms.get(room_id)
            if room is None:
                room = self._rooms[room_id] = GameRoom(room_id, now)
            before = len(room.members)
            member = sid if sid is not None else user_id
            if member is not None:
                room.members.add(str(member))
            if user_id is not None:
                room.ensure_player(user_id)
            room.last_active = now
            return room, before < PLAYERS_PER_MATCH <= len(room.members)

    def update_progress(self, room_id, user_id, score):
        with self._lock:
            room = self._rooms.get(room_id)
            if room is None:
                return None
            room.ensure_player(user_id)["score"] = score
            room.last_active = self._clock()
            return room

    def complete(self, room_id, user_id, score, time_taken):
        """Record a finished player; returns the game result once everyone is done."""
        with self._lock:
            room = self._rooms.get(room_id)
            if room is None:
                return None
            player = room.ensure_player(user_id)
            player.update(finished=True, score=score, time_taken=time_taken)
            room.last_active = self._clock()
            if not room.all_finished():
                return None
            if room.finished_at is None:
                room.finished_at = room.last_active
            return room.result()

    def _prune(self, now):
        # Finished rooms expire after the TTL, abandoned ones after the TTL of idleness
        expired = [
            rid for rid, room in self._rooms.items()
            if now - (room.finished_at if room.finished_at is not None else room.last_active) >= self.ttl_seconds
        ]
        for rid in expired:
            del self._rooms[rid]

    def clear(self):
        with self._lock:
            self._rooms.clear()
