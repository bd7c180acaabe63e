from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
socketio = SocketIO()

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []
    db.init_app(flask_app)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(
        flask_app,
        cors_allowed_origins=allowed_origins,
        async_mode=flask_app.config.get('SOCKETIO_ASYNC_MODE'),
    )

    # Import and register blueprints here
    from quizrelay.main import main
    flask_app.register_blueprint(main)

    from quizrelay.api.games import games
    flask_app.register_blueprint(games, url_prefix='/api/games')

    # One relay per app; event callbacks from the game client re-enter this app's context
    from quizrelay.services.relay import GameRelay
    flask_app.extensions['game_relay'] = GameRelay(flask_app)

    from quizrelay.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    with flask_app.app_context():
        import quizrelay.models  # noqa: F401
        db.create_all()

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from quizrelay.services import storage
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            storage.create_user('demo', 'password')
            print('Database has been reset and seeded!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
