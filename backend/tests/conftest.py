import os
import sys
import pytest

# Ensure the backend root (containing the `duelhub` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from duelhub import create_app, socketio
from duelhub.models import HORIZONTAL, VERTICAL, Ship


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    CORS_ORIGINS = '*'
    SESSION_RETENTION_SEC = 7200
    SWEEP_INTERVAL_SEC = 600


# A legal fleet: 1x4, 2x3, 3x2, 4x1, no two ships touching.
# Row 9 and column 9 stay free of ships.
FLEET_LAYOUT = [
    (0, 0, 4, HORIZONTAL),
    (5, 0, 3, HORIZONTAL),
    (0, 2, 3, HORIZONTAL),
    (4, 2, 2, HORIZONTAL),
    (7, 2, 2, HORIZONTAL),
    (0, 4, 2, HORIZONTAL),
    (3, 4, 1, HORIZONTAL),
    (5, 4, 1, HORIZONTAL),
    (7, 4, 1, HORIZONTAL),
    (0, 6, 1, VERTICAL),
]


@pytest.fixture()
def fleet():
    return [Ship(x=x, y=y, length=length, direction=d) for x, y, length, d in FLEET_LAYOUT]


@pytest.fixture()
def fleet_payload():
    return [{'x': x, 'y': y, 'length': length, 'direction': d} for x, y, length, d in FLEET_LAYOUT]


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def registry(flask_app):
    return flask_app.extensions['duelhub.registry']


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


@pytest.fixture()
def make_sio_client(flask_app):
    clients = []

    def _make():
        c = socketio.test_client(flask_app, namespace='/ws')
        c.get_received('/ws')  # flush 'connected'
        clients.append(c)
        return c

    yield _make
    for c in clients:
        if c.is_connected('/ws'):
            c.disconnect(namespace='/ws')
