"""
codebreak.services.games.continuity: reconnect-token session recovery
====================================================================

When a seated viewer drops, its seat is held for a grace period keyed by
the client's reconnect token. A new connection presenting the same token
takes the seat back. Each disconnect draws a fresh instance number from a
lobby-wide counter; an expiry only applies if the number it was armed with
is still current, so a timer that was overtaken by a reconnect or by a
later disconnect on the same token simply does nothing.
"""

import itertools
import logging
from dataclasses import dataclass
from typing import Dict, Optional

from codebreak.errors import InvariantViolation
from codebreak.models import Role, Team
from .registry import ConnectionDirectory, SessionRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SavedSession:
    team: Team
    role: Role
    room_code: str
    prior_sid: str
    instance: int


class SessionContinuityManager:

    def __init__(self, registry: SessionRegistry, directory: ConnectionDirectory):
        self.registry = registry
        self.directory = directory
        self._saved: Dict[str, SavedSession] = {}
        self._instances = itertools.count(1)

    def saved(self, token: str) -> Optional[SavedSession]:
        return self._saved.get(token)

    def stash(self, sid: str) -> Optional[SavedSession]:
        """Hold the seat of a disconnecting connection.

        Returns the saved entry, or None when the connection has no token or
        is not seated in a live game (the caller should then detach it).
        """
        connection = self.directory.get(sid)
        if connection is None or not connection.reconnect_token:
            return None
        session = self.registry.get(connection.room_code)
        if session is None:
            return None
        team, role = session.get_team(sid), session.get_role(sid)
        if team is None or role is None:
            return None

        token = connection.reconnect_token
        previous = self._saved.get(token)
        if previous is not None and previous.prior_sid != sid:
            # Another connection sharing the token is already held; its timer is now stale
            self._release(previous)
        instance = next(self._instances)
        saved = SavedSession(team=team, role=role, room_code=connection.room_code, prior_sid=sid, instance=instance)
        self._saved[token] = saved
        connection.connected = False
        logger.info(f"[seat-hold] room={saved.room_code} sid={sid} team={team.value} role={role.value} instance={instance}")
        return saved

    def reattach(self, token: Optional[str], sid: str) -> Optional[SavedSession]:
        """Give `sid` the seat saved under `token`, if it is still recoverable."""
        if not token:
            return None
        saved = self._saved.pop(token, None)
        if saved is None:
            return None
        session = self.registry.get(saved.room_code)
        prior = self.directory.get(saved.prior_sid)
        if session is None or prior is None:
            logger.info(f"[reattach-skip] room={saved.room_code} prior={saved.prior_sid} game_live={session is not None}")
            return None

        session.leave_all_teams(saved.prior_sid)
        role = saved.role
        if not session.make_role(saved.team, saved.role, sid):
            role = Role.RECEIVER
            if not session.make_receiver(saved.team, sid):
                raise InvariantViolation(
                    'receiver seat unavailable during reattachment',
                    {'room': saved.room_code, 'team': saved.team.value, 'sid': sid, 'prior': saved.prior_sid},
                )
        self.directory.adopt(sid, prior)
        self.directory.discard(saved.prior_sid)
        logger.info(
            f"[reattach] room={saved.room_code} prior={saved.prior_sid} sid={sid} "
            f"team={saved.team.value} role={role.value}"
        )
        return saved

    def expire(self, token: str, instance: int) -> Optional[str]:
        """Release a held seat once its grace period is over.

        Returns the affected room code, or None when the entry was already
        superseded or reclaimed.
        """
        saved = self._saved.get(token)
        if saved is None or saved.instance != instance:
            logger.info(f"[grace-stale] instance={instance} current={saved.instance if saved else None}")
            return None
        del self._saved[token]
        self._release(saved)
        logger.info(f"[grace-expire] room={saved.room_code} sid={saved.prior_sid} instance={instance}")
        return saved.room_code

    def _release(self, saved: SavedSession) -> None:
        session = self.registry.get(saved.room_code)
        if session is not None:
            session.leave_all_teams(saved.prior_sid)
        self.directory.discard(saved.prior_sid)
        logger.info(f"[seat-release] room={saved.room_code} sid={saved.prior_sid} instance={saved.instance}")

    def pending_rooms(self):
        return {saved.room_code for saved in self._saved.values()}
