import os
import sys
from datetime import datetime, timezone
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Override env vars for testing
os.environ["SECRET_KEY"] = "test-secret"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["FLASK_ENV"] = "testing"
os.environ.setdefault("RATELIMIT_STORAGE_URI", "memory://")
os.environ.setdefault("MODULES", "demosite.modules.demo")


sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import pytest
from demosite import create_app
from demosite.acl import anonymous
from demosite.extensions import db
from demosite.models import Resource


@pytest.fixture
def app():
    """Provide a Flask app with an empty in-memory database and an active app context."""
    flask_app = create_app({
        "TESTING": True,
        "WTF_CSRF_ENABLED": False,
        "RATELIMIT_ENABLED": False,
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
        "ENV": "testing",
        "SESSION_COOKIE_SECURE": False,
    })
    ctx = flask_app.app_context()
    ctx.push()
    db.create_all()
    yield flask_app
    db.session.remove()
    db.drop_all()
    ctx.pop()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def installed(app):
    """Core datamodel and all enabled modules installed."""
    from demosite.modules import install_modules
    return install_modules(anonymous())


@pytest.fixture
def make_resource(app):
    """Create a resource row directly, bypassing access control and hooks."""
    def _make_resource(**kwargs):
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        kwargs.setdefault("category", "text")
        kwargs.setdefault("title", "Test resource")
        kwargs.setdefault("created", now)
        kwargs.setdefault("modified", now)
        resource = Resource(**kwargs)
        db.session.add(resource)
        db.session.commit()
        return resource.id
    return _make_resource
