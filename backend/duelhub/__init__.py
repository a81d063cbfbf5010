from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from config import Config

socketio = SocketIO(async_mode=None)


def _emit_to(event, payload, connection):
    sid, namespace = connection
    socketio.emit(event, payload, to=sid, namespace=namespace)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    allowed_origins = flask_app.config.get('CORS_ORIGINS', '*')
    CORS(flask_app, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # One registry and presence table per app; handlers look them up via current_app
    from duelhub.services.games import PRESENCE_KEY, REGISTRY_KEY
    from duelhub.services.games.presence import Presence
    from duelhub.services.games.registry import SessionRegistry
    flask_app.extensions[REGISTRY_KEY] = SessionRegistry()
    flask_app.extensions[PRESENCE_KEY] = Presence(_emit_to)

    from duelhub.main import main
    flask_app.register_blueprint(main)

    from duelhub.api.games import games
    flask_app.register_blueprint(games, url_prefix='/api/games')

    # Register Socket.IO event handlers
    from duelhub.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    from duelhub.services.games.sweeper import start_sweeper
    start_sweeper(flask_app)

    return flask_app
