import os
import sys
import random
import pytest

# Ensure the backend root (containing the `codebreak` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from codebreak import create_app, socketio

WORDS = [
    'apple', 'bridge', 'castle', 'dragon', 'engine', 'forest',
    'garden', 'harbor', 'island', 'jungle', 'kettle', 'lantern',
]


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    CORS_ORIGINS = []
    MAX_ROUNDS = 6
    RECONNECT_GRACE_SEC = 1200
    WORDS = WORDS
    ENABLE_SCHEDULER_IN_TESTS = False
    SOCKETIO_ASYNC_MODE = 'threading'


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application


@pytest.fixture()
def lobby(flask_app):
    return flask_app.extensions['codebreak']


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def connect(flask_app):
    """Factory for Socket.IO test clients on /ws; all are disconnected on teardown."""
    clients = []

    def _connect(token=None):
        auth = {'reconnect_token': token} if token else None
        test_client = socketio.test_client(flask_app, namespace='/ws', auth=auth)
        clients.append(test_client)
        return test_client

    yield _connect
    for test_client in clients:
        try:
            if test_client.is_connected('/ws'):
                test_client.disconnect(namespace='/ws')
        except Exception:
            pass


@pytest.fixture()
def rng():
    return random.Random(1234)


@pytest.fixture()
def seated_session(rng):
    """A fresh game with r-caller/b-caller callers and r-recv/b-recv receivers."""
    from codebreak.models import Team
    from codebreak.services.games.session import GameSession

    session = GameSession(WORDS, max_rounds=6, room_code='ABCD', rng=rng)
    session.make_caller(Team.RED, 'r-caller')
    session.make_caller(Team.BLUE, 'b-caller')
    session.make_receiver(Team.RED, 'r-recv')
    session.make_receiver(Team.BLUE, 'b-recv')
    return session
