import os
import sys
import pytest

# Ensure the backend root (containing the `codeclicker` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from codeclicker import create_app, db


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    JWT_SECRET = 'test-jwt-secret'
    JWT_ALGORITHM = 'HS256'
    TOKEN_EXPIRES_DAYS = 30
    # Minimum cost keeps the suite fast
    BCRYPT_LOG_ROUNDS = 4
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = ['http://localhost:3000', 'https://ericliucs.github.io']
    STATIC_FOLDER = None
    PORT = 3001
    DEFAULT_GAME_VERSION = '0.1'
    LEADERBOARD_LIMIT = 50
    LOG_LEVEL = 'DEBUG'


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import codeclicker.models  # noqa: F401
        db.create_all()
    # Requests push their own app context so `g` never carries over between them
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def app_ctx(flask_app):
    """App context for tests that call services or query models directly."""
    with flask_app.app_context():
        yield flask_app
        db.session.remove()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def register(client):
    """Register a player and return (response json, auth headers)."""
    def _register(username='alice', password='pw123'):
        res = client.post('/register', json={'username': username, 'password': password})
        assert res.status_code == 201, res.get_json()
        data = res.get_json()
        return data, {'Authorization': f"Bearer {data['token']}"}
    return _register
