from flask import current_app, request
from flask_socketio import emit, join_room, leave_room

from codebreak import socketio
from codebreak.errors import InvariantViolation, MalformedPayload, ProtocolViolation
from codebreak.models import Team
from codebreak.realtime import NAMESPACE, emit_update_game, room_channel
from codebreak.services.games.scheduler import schedule_seat_expiry

MAX_NAME_LENGTH = 32


def _field(action: str, data, key: str):
    if not isinstance(data, dict) or key not in data:
        raise MalformedPayload(action, data, f"'{key}' is required")
    return data[key]


def _room_code(action: str, data) -> str:
    room_code = _field(action, data, 'room_code')
    if not isinstance(room_code, str) or not room_code.strip():
        raise MalformedPayload(action, data, 'room_code must be a non-empty string')
    return room_code.strip()


class GameEvents:
    """Socket.IO action surface for the game.

    Every handler goes through `_dispatch`, which serializes it against all
    other actions, isolates failures, and on success sends each viewer of
    the affected room its own projection.
    """

    def __init__(self, lobby):
        self.lobby = lobby

    def _dispatch(self, action: str, fn, *args) -> None:
        sid = request.sid
        with self.lobby.lock:
            try:
                room_code = fn(sid, *args)
            except (ProtocolViolation, MalformedPayload) as exc:
                current_app.logger.info(f"[reject] action={action} sid={sid} reason={exc}")
                return
            except InvariantViolation as exc:
                current_app.logger.error(f"[invariant] action={action} sid={sid} {exc} {exc.format_context()}")
                return
            except Exception:
                current_app.logger.exception(f"[action-error] action={action} sid={sid}")
                return
            emit_update_game(self.lobby, room_code)

    def _session(self, action: str, sid: str):
        connection = self.lobby.directory.get(sid)
        if connection is None:
            raise InvariantViolation('connection not registered', {'sid': sid, 'action': action})
        if connection.room_code is None:
            raise ProtocolViolation(action, None, 'not in a room')
        session = self.lobby.registry.get(connection.room_code)
        if session is None:
            raise ProtocolViolation(action, None, f"no game in room {connection.room_code}")
        return session

    # ---- Connection lifecycle ----

    def handle_connect(self, auth=None):
        token = auth.get('reconnect_token') if isinstance(auth, dict) else None
        self._dispatch('connect', self._connect, token)

    def _connect(self, sid, token):
        self.lobby.directory.register(sid, reconnect_token=token)
        saved = self.lobby.continuity.reattach(token, sid)
        emit('connected', {'message': 'Connected to /ws', 'reconnected': saved is not None})
        if saved is None:
            return None
        join_room(room_channel(saved.room_code))
        return saved.room_code

    def handle_disconnect(self, reason=None):
        self._dispatch('disconnect', self._disconnect)

    def _disconnect(self, sid):
        connection = self.lobby.directory.get(sid)
        token = connection.reconnect_token if connection else None
        superseded = self.lobby.continuity.saved(token) if token else None
        saved = self.lobby.continuity.stash(sid)
        if saved is not None:
            schedule_seat_expiry(current_app._get_current_object(), self.lobby, token, saved.instance)
            if superseded is None or superseded.prior_sid == sid:
                return None
            # The stash released an older seat held under the same token
            if superseded.room_code != saved.room_code:
                self.lobby.prune_room(superseded.room_code)
            return superseded.room_code
        room_code = self.lobby.detach(sid)
        self.lobby.directory.discard(sid)
        self.lobby.prune_room(room_code)
        current_app.logger.info(f"[disconnect] sid={sid} room={room_code}")
        return room_code

    # ---- Rooms and seats ----

    def handle_create_game(self, data=None):
        self._dispatch('create_game', self._create_game, data)

    def _create_game(self, sid, data):
        room_code = _room_code('create_game', data)
        session, created = self.lobby.registry.create(room_code)
        if not created:
            return None
        # Viewers already waiting in the room take spectator seats
        for connection in self.lobby.directory.in_room(room_code):
            if session.get_team(connection.sid) is None:
                session.make_receiver(Team.SPECTATORS, connection.sid)
        if self.lobby.prune_room(room_code):
            current_app.logger.info(f"[create-drop] user={self.lobby.directory.describe(sid)} room={room_code} reason=empty")
            return None
        current_app.logger.info(f"[create] user={self.lobby.directory.describe(sid)} room={room_code}")
        socketio.emit('game_created', {'room_code': room_code}, to=room_channel(room_code), namespace=NAMESPACE)
        return room_code

    def handle_join_game(self, data=None):
        self._dispatch('join_game', self._join_game, data)

    def _join_game(self, sid, data):
        room_code = _room_code('join_game', data)
        previous = self.lobby.directory.room_of(sid)
        if previous is not None and previous != room_code:
            self.lobby.detach(sid)
            leave_room(room_channel(previous))
            self.lobby.prune_room(previous)
            emit_update_game(self.lobby, previous)
        self.lobby.directory.set_room(sid, room_code)
        join_room(room_channel(room_code))
        session = self.lobby.registry.get(room_code)
        if session is not None and session.get_team(sid) is None:
            session.make_receiver(Team.SPECTATORS, sid)
        current_app.logger.info(f"[join] user={self.lobby.directory.describe(sid)} room={room_code}")
        return room_code

    def handle_leave_game(self, data=None):
        self._dispatch('leave_game', self._leave_game)

    def _leave_game(self, sid):
        if self.lobby.directory.room_of(sid) is None:
            raise ProtocolViolation('leave_game', None, 'not in a room')
        room_code = self.lobby.detach(sid)
        leave_room(room_channel(room_code))
        emit('update_game', None)
        self.lobby.prune_room(room_code)
        current_app.logger.info(f"[leave] user={self.lobby.directory.describe(sid)} room={room_code}")
        return room_code

    def handle_set_role(self, data=None):
        self._dispatch('set_role', self._set_role, data)

    def _set_role(self, sid, data):
        session = self._session('set_role', sid)
        team, role = _field('set_role', data, 'team'), _field('set_role', data, 'role')
        if not session.set_role(sid, team, role):
            current_app.logger.info(f"[seat-denied] user={self.lobby.directory.describe(sid)} team={team} role={role}")
            return None
        return session.room_code

    def handle_set_name(self, data=None):
        self._dispatch('set_name', self._set_name, data)

    def _set_name(self, sid, data):
        name = _field('set_name', data, 'name')
        if not isinstance(name, str) or not name.strip():
            raise MalformedPayload('set_name', data, 'name must be a non-empty string')
        current_app.logger.info(f"[name] user={self.lobby.directory.describe(sid)} name={name.strip()}")
        self.lobby.directory.set_name(sid, name.strip()[:MAX_NAME_LENGTH])
        return self.lobby.directory.room_of(sid)

    # ---- In-game actions ----

    def handle_start_game(self, data=None):
        self._dispatch('start_game', self._start_game)

    def _start_game(self, sid):
        session = self._session('start_game', sid)
        session.start_game()
        current_app.logger.info(f"[start] user={self.lobby.directory.describe(sid)} room={session.room_code}")
        return session.room_code

    def handle_restart_game(self, data=None):
        self._dispatch('restart_game', self._restart_game)

    def _restart_game(self, sid):
        session = self._session('restart_game', sid)
        session.restart_game()
        current_app.logger.info(f"[restart] user={self.lobby.directory.describe(sid)} room={session.room_code}")
        return session.room_code

    def handle_hint_submit(self, data=None):
        self._dispatch('hint_submit', self._hint_submit, data)

    def _hint_submit(self, sid, data):
        session = self._session('hint_submit', sid)
        session.submit_hint(sid, _field('hint_submit', data, 'hint'))
        return session.room_code

    def handle_guess_change(self, data=None):
        self._dispatch('guess_change', self._guess_change, data)

    def _guess_change(self, sid, data):
        session = self._session('guess_change', sid)
        session.change_guess(sid, _field('guess_change', data, 'guess'))
        return session.room_code

    def handle_guess_submit(self, data=None):
        self._dispatch('guess_submit', self._guess_submit)

    def _guess_submit(self, sid):
        session = self._session('guess_submit', sid)
        session.submit_guess(sid)
        return session.room_code

    def handle_tiebreak_change(self, data=None):
        self._dispatch('tiebreak_change', self._tiebreak_change, data)

    def _tiebreak_change(self, sid, data):
        session = self._session('tiebreak_change', sid)
        session.change_tie_break(sid, _field('tiebreak_change', data, 'guess'))
        return session.room_code

    def handle_tiebreak_submit(self, data=None):
        self._dispatch('tiebreak_submit', self._tiebreak_submit)

    def _tiebreak_submit(self, sid):
        session = self._session('tiebreak_submit', sid)
        session.submit_tie_break(sid)
        return session.room_code

    def handle_ping(self, data=None):
        emit('pong', data or {})

    def handlers(self):
        return {
            'connect': self.handle_connect,
            'disconnect': self.handle_disconnect,
            'create_game': self.handle_create_game,
            'join_game': self.handle_join_game,
            'leave_game': self.handle_leave_game,
            'set_role': self.handle_set_role,
            'set_name': self.handle_set_name,
            'start_game': self.handle_start_game,
            'restart_game': self.handle_restart_game,
            'hint_submit': self.handle_hint_submit,
            'guess_change': self.handle_guess_change,
            'guess_submit': self.handle_guess_submit,
            'tiebreak_change': self.handle_tiebreak_change,
            'tiebreak_submit': self.handle_tiebreak_submit,
            'ping': self.handle_ping,
        }


def register_socketio_handlers(lobby) -> GameEvents:
    """Register Socket.IO event handlers bound to `lobby` on namespace '/ws'."""
    events = GameEvents(lobby)
    for name, handler in events.handlers().items():
        socketio.on_event(name, handler, namespace=NAMESPACE)
    return events
