import os
import sys
import pytest

# Ensure the project root (containing config.py and focus_arena) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from focus_arena import create_app, db  # noqa: E402
from focus_arena.models import User  # noqa: E402
from focus_arena.services import get_scoring_service  # noqa: E402
from focus_arena.services.memory_store import MemoryScoreStore  # noqa: E402
from focus_arena.services.scoring_service import ScoringService  # noqa: E402


@pytest.fixture()
def flask_app():
    application = create_app("testing")
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def app_ctx(flask_app):
    with flask_app.app_context():
        yield flask_app


@pytest.fixture()
def sql_service(app_ctx):
    return get_scoring_service()


@pytest.fixture()
def service():
    return ScoringService(MemoryScoreStore())


def _make_user(flask_app, username, is_admin=False):
    with flask_app.app_context():
        user = User(username=username, is_admin=is_admin)
        user.set_password("password123")
        db.session.add(user)
        db.session.commit()
        return user.id


@pytest.fixture()
def users(flask_app):
    """Ids of two players and an admin"""
    return {
        "alice": _make_user(flask_app, "alice"),
        "bob": _make_user(flask_app, "bob"),
        "admin": _make_user(flask_app, "admin", is_admin=True),
    }


@pytest.fixture()
def login(client):
    def _login(user_id):
        with client.session_transaction() as sess:
            sess["_user_id"] = str(user_id)
            sess["_fresh"] = True

    return _login

