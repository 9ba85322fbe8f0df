from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
import click
from config import Config

socketio = SocketIO(async_mode=None)


def _resolve_words(flask_app):
    from codebreak.words import load_words, normalize_words

    words = flask_app.config.get('WORDS')
    if words:
        return normalize_words(words)
    return load_words(flask_app.config['WORDS_FILE'])


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(
        flask_app,
        cors_allowed_origins=allowed_origins,
        async_mode=flask_app.config.get('SOCKETIO_ASYNC_MODE'),
    )

    from codebreak.services.games.lobby import Lobby
    words = _resolve_words(flask_app)
    lobby = Lobby(words, max_rounds=int(flask_app.config.get('MAX_ROUNDS', 6)))
    flask_app.extensions['codebreak'] = lobby
    flask_app.logger.info(f"Loaded {len(words)} words")

    # Import and register blueprints here
    from codebreak.main import main
    flask_app.register_blueprint(main)

    from codebreak.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/api/rooms')

    # Register Socket.IO event handlers against this app's lobby
    from codebreak.socketio_events import register_socketio_handlers
    register_socketio_handlers(lobby)

    @click.command('words-check')
    def words_check_command():
        """Loads the configured word pool and reports its size."""
        pool = _resolve_words(flask_app)
        click.echo(f'{len(pool)} distinct words available')
        if len(pool) < 8:
            raise click.ClickException('a game needs at least 8 distinct words')

    flask_app.cli.add_command(words_check_command)

    return flask_app
