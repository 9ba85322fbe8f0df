"""
codebreak.services.games.session: authoritative per-room game
=============================================================

GameSession owns the round state machine and the three team records of a
room. Every viewer action either fully applies or raises before touching
any state; membership changes are legal in every state.
"""

import logging
import random
from typing import Callable, Dict, List, Optional, Sequence

from codebreak.errors import MalformedPayload, ProtocolViolation
from codebreak.models import (
    CARD_POSITIONS,
    DEFAULT_GUESS,
    PLAYING_TEAMS,
    SEATED_TEAMS,
    GameState,
    Role,
    Team,
    TeamRecord,
    Transition,
    Winner,
    opponent_of,
)
from .sanitizer import project
from .scoring import evaluate_round_end, score_tie_break
from .state_machine import GameStateMachine

logger = logging.getLogger(__name__)

WORDS_PER_TEAM = 4
CARD_SIZE = 3
HINT_SIZE = 3
DEFAULT_MAX_ROUNDS = 6

REVEAL_STATES = {
    GameState.RED_REVEAL: Team.RED,
    GameState.BLUE_REVEAL: Team.BLUE,
}


def parse_team(value, action: str = 'set_role') -> Team:
    try:
        team = Team(value)
    except ValueError:
        raise MalformedPayload(action, value, 'unknown team') from None
    if team not in SEATED_TEAMS:
        raise MalformedPayload(action, value, 'not a joinable team')
    return team


def parse_role(value, action: str = 'set_role') -> Role:
    try:
        return Role(value)
    except ValueError:
        raise MalformedPayload(action, value, 'unknown role') from None


def _require_list(action: str, payload, size: int) -> list:
    if not isinstance(payload, (list, tuple)):
        raise MalformedPayload(action, payload, f'expected a list of {size}')
    if len(payload) != size:
        raise MalformedPayload(action, payload, f'expected exactly {size} entries')
    return list(payload)


def _require_card_guess(action: str, payload) -> List[int]:
    guess = _require_list(action, payload, CARD_SIZE)
    for position in guess:
        if isinstance(position, bool) or not isinstance(position, int) or position not in CARD_POSITIONS:
            raise MalformedPayload(action, payload, 'positions must be integers 1-4')
    return guess


def _require_words(action: str, payload, size: int) -> List[str]:
    words = _require_list(action, payload, size)
    if not all(isinstance(word, str) for word in words):
        raise MalformedPayload(action, payload, 'entries must be strings')
    return words


class GameSession:
    """One room's game: state machine, scoring and team membership."""

    def __init__(self, words: Sequence[str], max_rounds: int = DEFAULT_MAX_ROUNDS,
                 room_code: Optional[str] = None, rng: Optional[random.Random] = None):
        pool = tuple(dict.fromkeys(word.strip().upper() for word in words if word and word.strip()))
        if len(pool) < 2 * WORDS_PER_TEAM:
            raise ValueError(f"word pool needs at least {2 * WORDS_PER_TEAM} distinct words, got {len(pool)}")
        if max_rounds < 1:
            raise ValueError('max_rounds must be at least 1')
        self.words = pool
        self.max_rounds = max_rounds
        self.room_code = room_code
        self.round_count = 0
        self.winner: Optional[Winner] = None
        self.teams: Dict[Team, TeamRecord] = {}
        self._rng = rng or random.Random()
        self.machine = GameStateMachine(
            entry_actions={
                GameState.GAME_INIT: [self._on_game_init],
                GameState.CREATE_HINTS: [self._on_round_start],
                GameState.RED_REVEAL: [lambda: self._on_reveal(Team.RED)],
                GameState.BLUE_REVEAL: [lambda: self._on_reveal(Team.BLUE)],
                GameState.ROUND_END: [self._on_round_end],
                GameState.TIE_BREAK: [self._on_tie_break],
                GameState.GAME_END: [self._on_game_end],
            },
            exit_actions={
                GameState.GAME_INIT: [self._on_game_start],
                GameState.CREATE_HINTS: [self._on_hints_created],
                GameState.RED_REVEAL: [lambda: self._on_reveal_guesses(Team.RED)],
                GameState.BLUE_REVEAL: [lambda: self._on_reveal_guesses(Team.BLUE)],
                GameState.TIE_BREAK: [self._on_tie_break_guesses],
            },
        )
        self.machine.start()

    @property
    def state(self) -> GameState:
        return self.machine.state

    @property
    def reveal_all(self) -> bool:
        return self.state == GameState.GAME_END

    # ---- State machine hooks ----

    def _on_game_init(self):
        previous = self.teams
        self.teams = {team: TeamRecord() for team in SEATED_TEAMS}
        # Seats survive a restart; everything else starts over
        for team, record in previous.items():
            self.teams[team].caller = record.caller
            self.teams[team].receivers = list(record.receivers)
        self.round_count = 0
        self.winner = None

    def _on_game_start(self):
        sample = self._rng.sample(self.words, 2 * WORDS_PER_TEAM)
        self.teams[Team.RED].target_words = sample[:WORDS_PER_TEAM]
        self.teams[Team.BLUE].target_words = sample[WORDS_PER_TEAM:]

    def _on_round_start(self):
        self.round_count += 1
        for team in PLAYING_TEAMS:
            record = self.teams[team]
            record.active_card = self._rng.sample(CARD_POSITIONS, CARD_SIZE)
            record.active_hint = None
            record.active_hint_submitted = False
            record.active_guess_submitted = False

    def _on_hints_created(self):
        for team in PLAYING_TEAMS:
            record = self.teams[team]
            record.hint_history.append(list(record.active_hint) if record.active_hint is not None else None)

    def _on_reveal(self, revealing: Team):
        for team in PLAYING_TEAMS:
            self.teams[team].active_guess = list(DEFAULT_GUESS)
            self.teams[team].active_guess_submitted = False
        if self.round_count == 1:
            # No interception in the first round
            self.teams[opponent_of(revealing)].active_guess_submitted = True

    def _on_reveal_guesses(self, revealing: Team):
        owner = self.teams[revealing]
        interceptor = self.teams[opponent_of(revealing)]
        card = owner.active_card
        intercept_live = self.round_count > 1

        if intercept_live and interceptor.active_guess == card:
            interceptor.cracked_count += 1
        if owner.active_guess != card:
            owner.error_count += 1

        interceptor.guess_history_other.append(list(interceptor.active_guess))
        owner.guess_history_self.append(list(owner.active_guess))
        owner.card_history.append(list(card))
        owner.active_card = None

    def _on_round_end(self):
        outcome = evaluate_round_end(self.teams, self.round_count, self.max_rounds)
        if outcome.winner is not None:
            self.winner = outcome.winner
        logger.info(f"[round-end] room={self.room_code} round={self.round_count} next={outcome.transition.value}")
        self.machine.send(outcome.transition)

    def _on_tie_break(self):
        for team in PLAYING_TEAMS:
            self.teams[team].tie_break_guess = [''] * WORDS_PER_TEAM
            self.teams[team].tie_break_guess_submitted = False

    def _on_tie_break_guesses(self):
        self.winner = score_tie_break(self.teams)

    def _on_game_end(self):
        winner = self.winner.team.value if self.winner else None
        logger.info(f"[game-end] room={self.room_code} round={self.round_count} winner={winner}")

    # ---- Viewer actions ----

    def _require_state(self, action: str, *states: GameState):
        if self.state not in states:
            raise ProtocolViolation(action, self.state)

    def _require_player(self, action: str, sid: str) -> Team:
        team = self.get_team(sid)
        if team not in PLAYING_TEAMS:
            raise ProtocolViolation(action, self.state, 'only RED or BLUE members may do this')
        return team

    def start_game(self) -> GameState:
        self._require_state('start_game', GameState.GAME_INIT)
        return self.machine.send(Transition.START_ROUND)

    def restart_game(self) -> GameState:
        self._require_state('restart_game', GameState.GAME_END)
        return self.machine.send(Transition.RESTART_GAME)

    def submit_hint(self, sid: str, hint) -> GameState:
        self._require_state('hint_submit', GameState.CREATE_HINTS)
        hint = _require_words('hint_submit', hint, HINT_SIZE)
        team = self._require_player('hint_submit', sid)
        if not self.is_caller_of(team, sid):
            raise ProtocolViolation('hint_submit', self.state, 'only the caller submits hints')
        record = self.teams[team]
        record.active_hint = hint
        record.active_hint_submitted = True
        if all(self.teams[t].active_hint_submitted for t in PLAYING_TEAMS):
            self.machine.send(Transition.NEXT_ROUND_STEP)
        return self.state

    def _guessing_record(self, action: str, sid: str) -> TeamRecord:
        self._require_state(action, *REVEAL_STATES)
        team = self._require_player(action, sid)
        record = self.teams[team]
        # A caller knows its own card; it only guesses it when nobody else on the team can
        if team == REVEAL_STATES[self.state] and self.is_caller_of(team, sid) and record.receivers:
            raise ProtocolViolation(action, self.state, 'a caller cannot guess its own card')
        if record.active_guess_submitted:
            raise ProtocolViolation(action, self.state, 'guess already submitted')
        return record

    def change_guess(self, sid: str, guess) -> None:
        guess = _require_card_guess('guess_change', guess)
        self._guessing_record('guess_change', sid).active_guess = guess

    def submit_guess(self, sid: str) -> GameState:
        self._guessing_record('guess_submit', sid).active_guess_submitted = True
        if all(self.teams[t].active_guess_submitted for t in PLAYING_TEAMS):
            self.machine.send(Transition.NEXT_ROUND_STEP)
        return self.state

    def _tie_break_record(self, action: str, sid: str) -> TeamRecord:
        self._require_state(action, GameState.TIE_BREAK)
        record = self.teams[self._require_player(action, sid)]
        if record.tie_break_guess_submitted:
            raise ProtocolViolation(action, self.state, 'tie-break guess already submitted')
        return record

    def change_tie_break(self, sid: str, guess) -> None:
        guess = _require_words('tiebreak_change', guess, WORDS_PER_TEAM)
        self._tie_break_record('tiebreak_change', sid).tie_break_guess = guess

    def submit_tie_break(self, sid: str) -> GameState:
        self._tie_break_record('tiebreak_submit', sid).tie_break_guess_submitted = True
        if all(self.teams[t].tie_break_guess_submitted for t in PLAYING_TEAMS):
            self.machine.send(Transition.END_GAME)
        return self.state

    # ---- Membership ----

    def leave_team(self, team: Team, sid: str) -> None:
        record = self.teams[team]
        record.receivers = [r for r in record.receivers if r != sid]
        if record.caller == sid:
            record.caller = None

    def leave_all_teams(self, sid: str) -> None:
        for team in self.teams:
            self.leave_team(team, sid)

    def get_team(self, sid: str) -> Optional[Team]:
        for team, record in self.teams.items():
            if record.is_member(sid):
                return team
        return None

    def get_role(self, sid: str) -> Optional[Role]:
        for record in self.teams.values():
            if sid in record.receivers:
                return Role.RECEIVER
            if record.caller == sid:
                return Role.CALLER
        return None

    def is_caller_of(self, team: Team, sid: str) -> bool:
        return self.teams[team].caller == sid

    def is_receiver_of(self, team: Team, sid: str) -> bool:
        return sid in self.teams[team].receivers

    def make_caller(self, team: Team, sid: str) -> bool:
        if team not in self.teams:
            return False
        if self.teams[team].caller is not None:
            logger.info(f"[seat-taken] room={self.room_code} team={team.value} sid={sid}")
            return False
        self.leave_all_teams(sid)
        self.teams[team].caller = sid
        return True

    def make_receiver(self, team: Team, sid: str) -> bool:
        if team not in self.teams:
            return False
        if self.is_receiver_of(team, sid):
            return True
        self.leave_all_teams(sid)
        self.teams[team].receivers.append(sid)
        return True

    def make_role(self, team: Team, role: Role, sid: str) -> bool:
        if role == Role.CALLER:
            return self.make_caller(team, sid)
        return self.make_receiver(team, sid)

    def set_role(self, sid: str, team, role) -> bool:
        return self.make_role(parse_team(team), parse_role(role), sid)

    def members(self) -> List[str]:
        sids = []
        for record in self.teams.values():
            if record.caller is not None:
                sids.append(record.caller)
            sids.extend(record.receivers)
        return sids

    # ---- Projections ----

    def as_sanitized(self, team: Optional[Team], role: Optional[Role], name_of: Callable[[str], Optional[str]]) -> dict:
        return project(self, team, role, name_of)

    def summary(self) -> dict:
        """Public, non-secret room summary."""
        return {
            'room_code': self.room_code,
            'state': self.state.value,
            'round_count': self.round_count,
            'max_rounds': self.max_rounds,
            'members': len(self.members()),
            'winner': self.winner.to_dict() if self.winner else None,
        }
