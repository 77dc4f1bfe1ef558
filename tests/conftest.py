# tests/conftest.py
import pytest
from flask_login import FlaskLoginClient

from app import create_app
from config import Config
from extensions import db
from models import User
from order_import.ocr import OcrClient


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"  # separate DB for tests
    SECRET_KEY = "test"
    SENTRY_DSN = ""
    OCR_BACKEND = "tesseract"


class FakeOcr(OcrClient):
    """Returns canned text (or raises) instead of calling a real OCR engine."""

    def __init__(self, text="", error=None):
        self.text = text
        self.error = error
        self.calls = []

    def extract_text(self, data, mime):
        self.calls.append((data, mime))
        if self.error:
            raise self.error
        return self.text


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    app.test_client_class = FlaskLoginClient

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def _make_user(username, role="user"):
    u = User(username=username, role=role)
    u.set_password("secret")
    db.session.add(u)
    db.session.commit()
    return u


@pytest.fixture
def account(app):
    return _make_user("oficina")


@pytest.fixture
def other_account(app):
    return _make_user("outra-oficina")


@pytest.fixture
def viewer(app):
    return _make_user("leitor", role="viewer")


@pytest.fixture
def fake_ocr():
    return FakeOcr
