from flask import Blueprint, current_app, jsonify

rooms = Blueprint('rooms', __name__)


def _lobby():
    return current_app.extensions['codebreak']


@rooms.route('', methods=['GET'])
def list_rooms():
    """
    Lists live rooms with their public, non-secret summary.
    """
    lobby = _lobby()
    with lobby.lock:
        summaries = [lobby.registry.get(code).summary() for code in lobby.registry.room_codes()]
    return jsonify(summaries), 200


@rooms.route('/<string:room_code>', methods=['GET'])
def get_room(room_code):
    """
    Returns the public summary of one room. Room codes are case-sensitive.
    """
    lobby = _lobby()
    with lobby.lock:
        session = lobby.registry.get(room_code)
        if session is None:
            return jsonify({'error': 'Room not found'}), 404
        summary = session.summary()
    return jsonify(summary), 200
