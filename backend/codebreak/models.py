from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class Team(str, Enum):
    RED = 'RED'
    BLUE = 'BLUE'
    SPECTATORS = 'SPECTATORS'
    # Only ever used as a winner value
    NONE = 'NONE'


PLAYING_TEAMS = (Team.RED, Team.BLUE)
SEATED_TEAMS = (Team.RED, Team.BLUE, Team.SPECTATORS)


def opponent_of(team: Team) -> Team:
    return {Team.RED: Team.BLUE, Team.BLUE: Team.RED}[team]


class Role(str, Enum):
    CALLER = 'CALLER'
    RECEIVER = 'RECEIVER'


class GameState(str, Enum):
    GAME_INIT = 'GAME_INIT'
    CREATE_HINTS = 'CREATE_HINTS'
    RED_REVEAL = 'RED_REVEAL'
    BLUE_REVEAL = 'BLUE_REVEAL'
    ROUND_END = 'ROUND_END'
    TIE_BREAK = 'TIE_BREAK'
    GAME_END = 'GAME_END'


class Transition(str, Enum):
    START_ROUND = 'START_ROUND'
    NEXT_ROUND_STEP = 'NEXT_ROUND_STEP'
    TIE_BREAK = 'TIE_BREAK'
    END_GAME = 'END_GAME'
    RESTART_GAME = 'RESTART_GAME'


DEFAULT_GUESS = (1, 1, 1)
CARD_POSITIONS = (1, 2, 3, 4)


@dataclass
class TeamRecord:
    """Per-team slice of a game. Spectators only use caller/receivers."""
    caller: Optional[str] = None
    receivers: List[str] = field(default_factory=list)
    target_words: Optional[List[str]] = None
    active_card: Optional[List[int]] = None
    active_hint: Optional[List[str]] = None
    active_guess: Optional[List[int]] = None
    tie_break_guess: Optional[List[str]] = None
    active_hint_submitted: bool = False
    active_guess_submitted: bool = False
    tie_break_guess_submitted: bool = False
    hint_history: List[Optional[List[str]]] = field(default_factory=list)
    guess_history_self: List[Optional[List[int]]] = field(default_factory=list)
    guess_history_other: List[Optional[List[int]]] = field(default_factory=list)
    card_history: List[List[int]] = field(default_factory=list)
    cracked_count: int = 0
    error_count: int = 0

    def is_member(self, sid: str) -> bool:
        return self.caller == sid or sid in self.receivers

    def net_score(self) -> int:
        return self.cracked_count - self.error_count


@dataclass(frozen=True)
class Winner:
    team: Team
    reason: str

    def to_dict(self):
        return {'team': self.team.value, 'reason': self.reason}
