import json
import os
import sys
import pytest

# Ensure the backend root (containing the `quizrelay` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from quizrelay import create_app, db, socketio
from quizrelay.clients import GameClient, GameClientError


class FakeGameClient(GameClient):
    """In-process stand-in for the external quiz client; tests fire its events."""

    instances = []
    fail_join = False

    def __init__(self):
        super().__init__()
        self.joined = None
        self.left = False
        self.closed = False
        self.answers = []
        FakeGameClient.instances.append(self)

    def join(self, game_pin, name):
        if FakeGameClient.fail_join:
            raise GameClientError('game not found')
        self.joined = (game_pin, name)

    def leave(self):
        self.left = True

    def close(self):
        self.closed = True

    def answer_question(self, choice):
        self.answers.append(choice)


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = ['http://localhost:5173']
    SOCKETIO_ASYNC_MODE = 'threading'
    GAME_CLIENT_FACTORY = FakeGameClient
    PLAYER_NAME_PREFIX = 'Player_'
    AUTO_ANSWER_DELAY_SEC = 0.5
    ANSWER_DELAY_MIN_SEC = 2
    ANSWER_DELAY_MAX_SEC = 5


@pytest.fixture()
def flask_app():
    FakeGameClient.instances = []
    FakeGameClient.fail_join = False
    application = create_app(TestConfig)
    with application.app_context():
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def fake_clients(flask_app):
    return FakeGameClient.instances


@pytest.fixture()
def make_sio_client(flask_app):
    created = []

    def _make():
        test_client = socketio.test_client(
            flask_app,
            flask_test_client=flask_app.test_client(),
            namespace='/ws'
        )
        created.append(test_client)
        return test_client

    yield _make
    for test_client in created:
        try:
            if test_client.is_connected('/ws'):
                test_client.disconnect(namespace='/ws')
        except Exception:
            pass


@pytest.fixture()
def sio_client(make_sio_client):
    return make_sio_client()


def send_command(test_client, **message):
    test_client.emit('message', json.dumps(message), namespace='/ws')


def received_messages(test_client):
    """Envelopes the server sent to this client since the last call."""
    return [
        pkt['args']
        for pkt in test_client.get_received('/ws')
        if pkt['name'] == 'message'
    ]
