import logging
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from .session import DEFAULT_MAX_ROUNDS, GameSession

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Room code -> the single live GameSession for that room."""

    def __init__(self, words: Sequence[str], max_rounds: int = DEFAULT_MAX_ROUNDS):
        self.words = tuple(words)
        self.max_rounds = max_rounds
        self._sessions: Dict[str, GameSession] = {}

    def create(self, room_code: str) -> Tuple[GameSession, bool]:
        existing = self._sessions.get(room_code)
        if existing is not None:
            return existing, False
        session = GameSession(self.words, self.max_rounds, room_code=room_code)
        self._sessions[room_code] = session
        logger.info(f"[room-create] room={room_code} max_rounds={self.max_rounds}")
        return session, True

    def get(self, room_code: Optional[str]) -> Optional[GameSession]:
        if room_code is None:
            return None
        return self._sessions.get(room_code)

    def remove(self, room_code: str) -> Optional[GameSession]:
        session = self._sessions.pop(room_code, None)
        if session is not None:
            logger.info(f"[room-drop] room={room_code}")
        return session

    def room_codes(self) -> List[str]:
        return sorted(self._sessions)

    def __contains__(self, room_code) -> bool:
        return room_code in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)


@dataclass
class Connection:
    sid: str
    name: str
    room_code: Optional[str] = None
    reconnect_token: Optional[str] = None
    connected: bool = True


class ConnectionDirectory:
    """Active connection id -> display name and current room."""

    def __init__(self):
        self._connections: Dict[str, Connection] = {}

    def register(self, sid: str, reconnect_token: Optional[str] = None, name: Optional[str] = None) -> Connection:
        connection = Connection(sid=sid, name=name or sid, reconnect_token=reconnect_token)
        self._connections[sid] = connection
        return connection

    def get(self, sid: Optional[str]) -> Optional[Connection]:
        if sid is None:
            return None
        return self._connections.get(sid)

    def discard(self, sid: str) -> Optional[Connection]:
        return self._connections.pop(sid, None)

    def name_of(self, sid: Optional[str]) -> Optional[str]:
        connection = self.get(sid)
        return connection.name if connection else None

    def room_of(self, sid: str) -> Optional[str]:
        connection = self.get(sid)
        return connection.room_code if connection else None

    def set_name(self, sid: str, name: str) -> None:
        self._connections[sid].name = name

    def set_room(self, sid: str, room_code: Optional[str]) -> None:
        self._connections[sid].room_code = room_code

    def adopt(self, sid: str, prior: Connection) -> Connection:
        """Give `sid` the display name and room of a previous connection."""
        connection = self._connections[sid]
        connection.name = prior.name
        connection.room_code = prior.room_code
        return connection

    def in_room(self, room_code: str, connected_only: bool = False) -> List[Connection]:
        return [
            c for c in self._connections.values()
            if c.room_code == room_code and (c.connected or not connected_only)
        ]

    def describe(self, sid: Optional[str]) -> str:
        return f"({sid}:{self.name_of(sid)})"

    def __iter__(self) -> Iterator[Connection]:
        return iter(list(self._connections.values()))

    def __contains__(self, sid) -> bool:
        return sid in self._connections
