import mongomock
import pytest
from fastapi.testclient import TestClient

from auth import issue_token
from config import Settings
from database import Database
from main import create_app

SECRET = "test-secret"


class FakeGateway:
    def __init__(self):
        self.amounts = []

    def create_payment_intent(self, amount):
        self.amounts.append(amount)
        return f"pi_{amount}_secret_test"


@pytest.fixture
def settings():
    return Settings(access_token_secret=SECRET, enforce_roles=True, payment_currency="bdt")


@pytest.fixture
def db():
    return Database(mongomock.MongoClient(), "styleDecorTest")


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def app(settings, db, gateway):
    return create_app(settings, database=db, gateway=gateway)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_headers(settings):
    def _make(email="a@x.com", **claims):
        token = issue_token({"email": email, **claims}, settings)
        return {"Authorization": f"Bearer {token}"}
    return _make


@pytest.fixture
def user_headers(make_headers):
    return make_headers("a@x.com")


@pytest.fixture
def admin_headers(db, make_headers):
    db.users.insert_one({"email": "admin@x.com", "role": "admin"})
    return make_headers("admin@x.com")


@pytest.fixture
def decorator_headers(db, make_headers):
    db.users.insert_one({"email": "deco@x.com", "role": "decorator"})
    return make_headers("deco@x.com")
