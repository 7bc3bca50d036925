import os
import sys
from datetime import datetime, timedelta, timezone

import pytest

# Ensure the backend root (containing the `neurolink` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from neurolink import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    BCRYPT_LOG_ROUNDS = 4
    LEADERBOARD_FETCH_SIZE = 50
    DAILY_LEADERBOARD_FETCH_SIZE = 100
    DAILY_STALE_HOURS = 24
    ENFORCE_TIER_FIELDS = False
    PIN_LENGTH = 4


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import neurolink.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    if test_client.is_connected('/ws'):
        test_client.disconnect(namespace='/ws')


def deal(client, user_id='alice'):
    res = client.post('/api/rounds/generate', json={'userId': user_id})
    assert res.status_code == 200
    return res.get_json()


def correct_answer(round_data):
    return {
        'uShape': round_data['targetShape'],
        'uSat': round_data['satShape'],
        'uColor': round_data['satColorIdx'],
        'uDir': round_data['satDirIdx'],
    }


def submit(client, user_id, answer, speed, salt, mode=None, **extra):
    payload = {
        'userId': user_id,
        'answer': answer,
        'speed': speed,
        'manifest': {'salt': salt},
    }
    if mode is not None:
        payload['mode'] = mode
    payload.update(extra)
    return client.post('/api/rounds/submit', json=payload)


class FakeClock:
    """Manually advanced clock for the client engine."""

    def __init__(self, start=None):
        self.t = 0.0
        self.start = start or datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)

    def now(self):
        return self.t

    def utcnow(self):
        return self.start + timedelta(seconds=self.t)

    def advance(self, seconds):
        self.t += seconds
