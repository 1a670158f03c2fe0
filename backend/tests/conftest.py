import os
import sys
import pytest
from flask import g
from flask.testing import FlaskClient

# Ensure the backend root (containing the `mathdash` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from mathdash import create_app, db, socketio
from mathdash.services.games.engine import SessionEngine
from mathdash.services.games.registry import clear_sessions


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    BCRYPT_LOG_ROUNDS = 4
    FEEDBACK_DISPLAY_SEC = 0
    SERVER_CLOCK = True
    TICK_INTERVAL_SEC = 0
    LEADERBOARD_LIMIT = 10
    SESSION_IDLE_TTL_SEC = 600


class MemoryProgressStore:
    def __init__(self, levels=None):
        self.levels = dict(levels or {})
        self.saved = []

    def load_saved_level(self, operation):
        return self.levels.get(operation.value, 0)

    def save_level(self, operation, level):
        self.levels[operation.value] = level
        self.saved.append((operation.value, level))


class RecordingReporter:
    def __init__(self):
        self.reports = []

    def report_final_score(self, score, operation):
        self.reports.append((score, operation.value))


class ManualScheduler:
    """Collects deferred calls so tests decide when they fire."""

    def __init__(self):
        self.pending = []

    def __call__(self, delay, fn):
        self.pending.append((delay, fn))


class FreshIdentityClient(FlaskClient):
    """Test client that drops Flask-Login's cached user around each request.

    The fixture keeps one app context pushed for the whole test, so every
    client would otherwise share the user Flask-Login caches on ``g``.
    """

    def open(self, *args, **kwargs):
        g.pop('_login_user', None)
        try:
            return super().open(*args, **kwargs)
        finally:
            g.pop('_login_user', None)


@pytest.fixture()
def progress_store():
    return MemoryProgressStore()


@pytest.fixture()
def reporter():
    return RecordingReporter()


@pytest.fixture()
def scheduler():
    return ManualScheduler()


@pytest.fixture()
def engine(progress_store, reporter, scheduler):
    return SessionEngine(progress_store, reporter, schedule=scheduler)


@pytest.fixture()
def make_app():
    created = []

    def _make(**overrides):
        config_class = type('OverrideConfig', (TestConfig,), overrides)
        application = create_app(config_class)
        application.test_client_class = FreshIdentityClient
        ctx = application.app_context()
        ctx.push()
        # Ensure models are imported so tables are created
        import mathdash.models  # noqa: F401
        db.create_all()
        created.append(ctx)
        return application

    yield _make
    for ctx in reversed(created):
        db.session.remove()
        db.drop_all()
        ctx.pop()
    clear_sessions()


@pytest.fixture()
def flask_app(make_app):
    return make_app()


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
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass
