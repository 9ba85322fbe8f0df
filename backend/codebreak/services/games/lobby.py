import threading
from typing import Optional, Sequence

from .continuity import SessionContinuityManager
from .registry import ConnectionDirectory, SessionRegistry
from .session import DEFAULT_MAX_ROUNDS, GameSession


class Lobby:
    """The stores shared by every room, handed to the Socket.IO handlers.

    `lock` serializes viewer actions and grace-timer expiries so that no two
    of them ever interleave against the same game.
    """

    def __init__(self, words: Sequence[str], max_rounds: int = DEFAULT_MAX_ROUNDS):
        self.registry = SessionRegistry(words, max_rounds)
        self.directory = ConnectionDirectory()
        self.continuity = SessionContinuityManager(self.registry, self.directory)
        self.lock = threading.RLock()

    def session_for(self, sid: str) -> Optional[GameSession]:
        return self.registry.get(self.directory.room_of(sid))

    def detach(self, sid: str) -> Optional[str]:
        """Remove a connection from its game seats and its room; returns the room left."""
        room_code = self.directory.room_of(sid)
        session = self.registry.get(room_code)
        if session is not None:
            session.leave_all_teams(sid)
        if sid in self.directory:
            self.directory.set_room(sid, None)
        return room_code

    def prune_room(self, room_code: Optional[str]) -> bool:
        """Drop a room's game once nobody, connected or held, is left in it."""
        if room_code is None or room_code not in self.registry:
            return False
        if self.directory.in_room(room_code) or room_code in self.continuity.pending_rooms():
            return False
        self.registry.remove(room_code)
        return True
