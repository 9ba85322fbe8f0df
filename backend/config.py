import os

basedir = os.path.abspath(os.path.dirname(__file__))


def _origins(raw):
    return [origin.strip() for origin in raw.split(',') if origin.strip()]


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    CORS_ORIGINS = _origins(os.environ.get(
        'CORS_ORIGINS',
        'http://localhost:5173,http://127.0.0.1:5173,http://localhost:5174,http://127.0.0.1:5174',
    ))
    # Rounds played before a forced tie-break
    MAX_ROUNDS = int(os.environ.get('MAX_ROUNDS', '6'))
    # How long a dropped viewer's seat is held for reconnection (seconds)
    RECONNECT_GRACE_SEC = float(os.environ.get('RECONNECT_GRACE_SEC', '1200'))
    WORDS_FILE = os.environ.get('WORDS_FILE') or os.path.join(basedir, 'words.txt')
    # Optional in-memory word list; takes precedence over WORDS_FILE
    WORDS = None
    ENABLE_SCHEDULER_IN_TESTS = False
    # None lets Flask-SocketIO pick eventlet, gevent or threading
    SOCKETIO_ASYNC_MODE = os.environ.get('SOCKETIO_ASYNC_MODE') or None
