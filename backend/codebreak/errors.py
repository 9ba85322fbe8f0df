"""
codebreak.errors: exception hierarchy for viewer actions
========================================================

Every rejection raised by the game services derives from CodebreakError.
The Socket.IO dispatch boundary decides how loudly each kind is logged;
none of them ever reaches the client as an error payload.
"""

from typing import Any, Dict, Optional


class CodebreakError(Exception):
    """Base exception for all game server errors."""
    pass


class ProtocolViolation(CodebreakError):
    """Raised when an action arrives while the game does not accept it."""

    def __init__(self, action: str, state: Any, detail: str = ''):
        self.action = action
        self.state = state
        self.detail = detail
        state_name = getattr(state, 'value', state)
        message = f"'{action}' not accepted in state {state_name}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class MalformedPayload(CodebreakError):
    """Raised when an action payload has the wrong shape or type."""

    def __init__(self, action: str, payload: Any, detail: str):
        self.action = action
        self.payload = payload
        self.detail = detail
        super().__init__(f"'{action}' payload rejected: {detail} (got {payload!r})")


class InvariantViolation(CodebreakError):
    """Raised on a programming-logic fault; carries context for the log."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        self.context = dict(context or {})
        super().__init__(message)

    def format_context(self) -> str:
        return ' '.join(f"{key}={value}" for key, value in sorted(self.context.items()))
