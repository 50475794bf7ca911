import os
import sys
from datetime import datetime, timedelta, timezone

import pytest

# Ensure the backend root (containing the `blindclock` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from blindclock import create_app, db, socketio
from blindclock.services.timer import (
    IN_PROGRESS,
    GameSnapshot,
    TimerState,
    TimerStoreError,
    load_blind_structure,
)


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    BCRYPT_LOG_ROUNDS = 4
    TIMER_REJECT_STALE_WRITES = False
    TIMER_SAVE_EVERY_TICKS = 10
    POLL_IN_PROGRESS_SEC = 2
    POLL_PAUSED_SEC = 30
    POLL_REGISTERING_SEC = 43200
    POLL_FINISHED_SEC = 30


def make_levels(*durations):
    """Play levels with the given durations in minutes."""
    levels = []
    for i, minutes in enumerate(durations):
        levels.append({'smallBlind': 25 * (i + 1), 'bigBlind': 50 * (i + 1), 'duration': minutes})
    return levels


class FakeClock:
    def __init__(self, start=None):
        self.now = start or datetime(2026, 3, 6, 19, 30, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


class MemoryStore:
    """Stand-in for the game store; stamps writes with the fake clock."""

    def __init__(self, clock, creator='director', status=IN_PROGRESS, levels=None, timer=None):
        self.clock = clock
        self.creator = creator
        self.status = status
        self.levels = make_levels(10, 10) if levels is None else levels
        self.timer = timer or TimerState()
        self.saves = []
        self.fetches = 0
        self.fail_fetch = False
        self.fail_save = False

    def fetch(self, game_code):
        self.fetches += 1
        if self.fail_fetch:
            raise TimerStoreError('store unreachable')
        return GameSnapshot(
            game_code=game_code,
            creator=self.creator,
            status=self.status,
            structure=load_blind_structure(self.levels),
            timer=self.timer,
        )

    def save(self, game_code, state):
        if self.fail_save:
            raise TimerStoreError('store unreachable')
        self.timer = state.with_changes(last_update=self.clock(), version=(self.timer.version or 0) + 1)
        self.saves.append(self.timer)
        return self.timer


class _FlaskResponse:
    def __init__(self, response):
        self.status_code = response.status_code
        self._response = response

    def json(self):
        data = self._response.get_json(silent=True)
        if data is None:
            raise ValueError('response body is not JSON')
        return data


class FlaskSession:
    """Lets HttpTimerStore talk to a Flask test client as if it were requests."""

    def __init__(self, test_client):
        self.test_client = test_client

    def get(self, url, timeout=None, **kwargs):
        return _FlaskResponse(self.test_client.get(url, **kwargs))

    def post(self, url, timeout=None, **kwargs):
        return _FlaskResponse(self.test_client.post(url, **kwargs))


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    # Each request gets its own app context, so g (and the logged-in user) never
    # carries over between test clients
    with application.app_context():
        # Ensure models are imported so tables are created
        import blindclock.models  # noqa: F401
        db.create_all()
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def fake_clock():
    return FakeClock()


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


def register(test_client, username, password='password'):
    res = test_client.post('/register', json={'username': username, 'password': password})
    assert res.status_code == 201
    return res.get_json()['user']


@pytest.fixture()
def director(flask_app):
    """Logged-in test client for the user who creates games."""
    test_client = flask_app.test_client()
    register(test_client, 'director')
    return test_client


@pytest.fixture()
def player(flask_app):
    test_client = flask_app.test_client()
    register(test_client, 'player1')
    return test_client


def create_game(test_client, levels=None, name='Friday Freezeout'):
    res = test_client.post('/api/games', json={
        'name': name,
        'config': {'blindStructure': make_levels(10, 10) if levels is None else levels},
    })
    assert res.status_code == 201, res.get_json()
    return res.get_json()['game']['id']
