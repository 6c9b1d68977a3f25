# tests/conftest.py
import random
import pytest
from flask_jwt_extended import create_access_token
from werkzeug.security import generate_password_hash

from app import create_app, db as _db
from models import User, MonitoringPoint

PASSWORD = "secret123"

@pytest.fixture()
def app():
    # Fresh in-memory database per test; greetings are picked with a seeded rng
    app = create_app(
        {
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": "sqlite://",
            "SQLALCHEMY_ECHO": False,
            "JWT_SECRET_KEY": "test-secret",
            "LOG_LEVEL": "WARNING",
            "API_TITLE": "EnviroWatch API (tests)",
            "API_VERSION": "1.0-test",
        },
        rng=random.Random(0),
    )
    with app.app_context():
        yield app
        _db.session.remove()
        _db.drop_all()

@pytest.fixture()
def client(app):
    return app.test_client()

@pytest.fixture()
def db(app):
    return _db

def create_user(email, *, role="user", full_name="Test User", password=PASSWORD, is_active=True):
    user = User(
        email=email,
        password_hash=generate_password_hash(password),
        full_name=full_name,
        role=role,
        is_active=is_active,
    )
    _db.session.add(user)
    _db.session.commit()
    return user

def create_point(name="KLCC", *, type="air", status="active", latitude=3.1578, longitude=101.7118):
    point = MonitoringPoint(name=name, type=type, status=status, latitude=latitude, longitude=longitude)
    _db.session.add(point)
    _db.session.commit()
    return point

def make_token(user):
    """
    Create a JWT the way /api/auth/login does:
      - identity: the user id (as a string)
      - role: "admin" | "user"
    """
    claims = {"role": user.role, "email": user.email}
    return create_access_token(identity=str(user.id), additional_claims=claims)

def auth_header(token):
    return {"Authorization": f"Bearer {token}"}

@pytest.fixture()
def admin(app):
    return create_user("admin@example.com", role="admin", full_name="Admin")

@pytest.fixture()
def user(app):
    return create_user("user@example.com", full_name="Regular User")

@pytest.fixture()
def other_user(app):
    return create_user("other@example.com", full_name="Other User")

@pytest.fixture()
def admin_headers(admin):
    return auth_header(make_token(admin))

@pytest.fixture()
def user_headers(user):
    return auth_header(make_token(user))

@pytest.fixture()
def other_headers(other_user):
    return auth_header(make_token(other_user))
