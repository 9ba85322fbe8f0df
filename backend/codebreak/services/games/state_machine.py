"""
codebreak.services.games.state_machine: round state machine
===========================================================

Explicit transition table for a game plus a small dispatcher that runs
per-state exit and entry actions. Entry actions may send follow-up events;
those are queued and dispatched once the current transition completes.
"""

import logging
from collections import deque
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from codebreak.errors import InvariantViolation
from codebreak.models import GameState, Transition

logger = logging.getLogger(__name__)

Action = Callable[[], None]

# Valid state transitions: {current_state: {event: next_state}}
TRANSITIONS = {
    GameState.GAME_INIT: {
        Transition.START_ROUND: GameState.CREATE_HINTS,
    },
    GameState.CREATE_HINTS: {
        Transition.NEXT_ROUND_STEP: GameState.RED_REVEAL,
    },
    GameState.RED_REVEAL: {
        Transition.NEXT_ROUND_STEP: GameState.BLUE_REVEAL,
    },
    GameState.BLUE_REVEAL: {
        Transition.NEXT_ROUND_STEP: GameState.ROUND_END,
    },
    GameState.ROUND_END: {
        Transition.START_ROUND: GameState.CREATE_HINTS,
        Transition.TIE_BREAK: GameState.TIE_BREAK,
        Transition.END_GAME: GameState.GAME_END,
    },
    GameState.TIE_BREAK: {
        Transition.END_GAME: GameState.GAME_END,
    },
    GameState.GAME_END: {
        Transition.RESTART_GAME: GameState.GAME_INIT,
    },
}


class GameStateMachine:
    """Table-driven state machine with entry/exit hooks.

    Attributes:
        state: the current state, or None before start()
    """

    def __init__(
        self,
        entry_actions: Mapping[GameState, Sequence[Action]],
        exit_actions: Mapping[GameState, Sequence[Action]],
        initial: GameState = GameState.GAME_INIT,
    ):
        self.initial = initial
        self.state: Optional[GameState] = None
        self._entry: Dict[GameState, List[Action]] = {s: list(a) for s, a in entry_actions.items()}
        self._exit: Dict[GameState, List[Action]] = {s: list(a) for s, a in exit_actions.items()}
        self._queue: deque = deque()
        self._dispatching = False

    def start(self) -> GameState:
        self.state = self.initial
        self._run(self._entry.get(self.state, ()))
        return self.state

    def can_transition(self, event: Transition) -> bool:
        return event in TRANSITIONS.get(self.state, {})

    def send(self, event: Transition) -> GameState:
        """Queue an event and, unless already dispatching, drain the queue."""
        self._queue.append(event)
        if self._dispatching:
            return self.state
        self._dispatching = True
        try:
            while self._queue:
                self._step(self._queue.popleft())
        except Exception:
            self._queue.clear()
            raise
        finally:
            self._dispatching = False
        return self.state

    def _step(self, event: Transition) -> None:
        next_state = TRANSITIONS.get(self.state, {}).get(event)
        if next_state is None:
            raise InvariantViolation(
                'illegal state transition',
                {'state': self.state.value, 'event': event.value},
            )
        previous = self.state
        self._run(self._exit.get(previous, ()))
        self.state = next_state
        logger.debug(f"[transition] {previous.value} --{event.value}--> {next_state.value}")
        self._run(self._entry.get(next_state, ()))

    @staticmethod
    def _run(actions) -> None:
        for action in actions:
            action()
