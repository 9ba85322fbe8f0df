from typing import Optional

from codebreak import socketio

NAMESPACE = '/ws'


def room_channel(room_code: str) -> str:
    return f"game:{room_code}"


def emit_update_game(lobby, room_code: Optional[str]) -> None:
    """Send every connected viewer in the room its own projection of the game.

    Projections differ per viewer, so each one goes to a single sid rather
    than to the room channel.
    """
    if room_code is None:
        return
    session = lobby.registry.get(room_code)
    for connection in lobby.directory.in_room(room_code, connected_only=True):
        if session is None:
            socketio.emit('update_game', None, to=connection.sid, namespace=NAMESPACE)
            continue
        team, role = session.get_team(connection.sid), session.get_role(connection.sid)
        projection = session.as_sanitized(team, role, lobby.directory.name_of)
        socketio.emit('update_game', projection, to=connection.sid, namespace=NAMESPACE)
        socketio.emit(
            'update_player_state',
            {'team': team.value if team else None, 'role': role.value if role else None},
            to=connection.sid,
            namespace=NAMESPACE,
        )
