"""
Pytest fixtures for shelfkeep backend tests.

Provides the test app (in-memory SQLite, HS256 identity tokens, rate limiting
off), a per-test clean database, token helpers, and an in-memory stand-in for
the Redis sorted-set commands the rate limiter uses.
"""

import time
import uuid

import pytest
import redis
from jose import jwt

from shelfkeep import create_app
from shelfkeep.extensions import db
from shelfkeep.models import Category
from shelfkeep.services import products_service

TEST_JWT_SECRET = "test-secret-do-not-use-in-production"

TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    'AUTH_JWT_KEY': TEST_JWT_SECRET,
    'AUTH_JWT_ALGORITHMS': ['HS256'],
    'RATE_LIMIT_ENABLED': False,
    'CORS_ALLOWED_ORIGINS': ['http://localhost:8081'],
}


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TEST_CONFIG)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def make_token(sub="user_a", *, secret=TEST_JWT_SECRET, expires_in=3600, **claims) -> str:
    """Mint an HS256 identity token like the external auth provider would."""
    now = int(time.time())
    payload = {"iat": now, "exp": now + expires_in}
    if sub is not None:
        payload["sub"] = sub
    payload.update(claims)
    return jwt.encode(payload, secret, algorithm="HS256")


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def headers_a():
    return auth_headers(make_token("user_a"))


@pytest.fixture(scope='function')
def headers_b():
    return auth_headers(make_token("user_b"))


@pytest.fixture(scope='function')
def snacks(db_session):
    category = Category(name="Snacks")
    db_session.add(category)
    db_session.commit()
    return category


@pytest.fixture(scope='function')
def drinks(db_session):
    category = Category(name="Drinks")
    db_session.add(category)
    db_session.commit()
    return category


def product_payload(barcode="4800016644290", category_id=None, **overrides) -> dict:
    payload = {
        "barcode": barcode,
        "name": "Piattos Cheese 85g",
        "category_id": category_id,
        "selling_price": "10.00",
    }
    payload.update(overrides)
    return payload


@pytest.fixture(scope='function')
def make_product(db_session, snacks):
    """Factory: create a product for an owner through the catalog service."""
    def _make(owner_id="user_a", barcode=None, **overrides):
        payload = product_payload(
            barcode=barcode or uuid.uuid4().hex[:13],
            category_id=overrides.pop("category_id", snacks.id),
            **overrides,
        )
        return products_service.upsert_product(owner_id, payload)

    return _make


class FakeRedis:
    """
    In-memory stand-in for the sorted-set subset of redis-py the rate
    limiter uses. Pipelines queue commands and apply them on execute().
    """

    def __init__(self):
        self.zsets: dict[str, dict[str, float]] = {}
        self.expiries: dict[str, int] = {}

    def pipeline(self, transaction=True):
        return FakePipeline(self)

    def _zremrangebyscore(self, key, min_score, max_score):
        members = self.zsets.get(key, {})
        doomed = [m for m, s in members.items() if min_score <= s <= max_score]
        for member in doomed:
            del members[member]
        return len(doomed)

    def _zcard(self, key):
        return len(self.zsets.get(key, {}))

    def _zrange(self, key, start, end, withscores=False):
        ordered = sorted(self.zsets.get(key, {}).items(), key=lambda item: (item[1], item[0]))
        stop = None if end == -1 else end + 1
        window = ordered[start:stop]
        if withscores:
            return [(m.encode(), float(s)) for m, s in window]
        return [m.encode() for m, _ in window]

    def _zadd(self, key, mapping):
        members = self.zsets.setdefault(key, {})
        added = sum(1 for m in mapping if m not in members)
        members.update(mapping)
        return added

    def _pexpire(self, key, ms):
        self.expiries[key] = ms
        return True


class FakePipeline:
    def __init__(self, client: FakeRedis):
        self.client = client
        self.commands = []

    def __getattr__(self, name):
        target = getattr(self.client, f"_{name}")

        def queue(*args, **kwargs):
            self.commands.append((target, args, kwargs))
            return self

        return queue

    def execute(self):
        results = [target(*args, **kwargs) for target, args, kwargs in self.commands]
        self.commands = []
        return results


class FailingRedis:
    """Every command fails the way an unreachable Redis does."""

    def pipeline(self, transaction=True):
        return FailingPipeline()


class FailingPipeline:
    def __getattr__(self, name):
        return lambda *args, **kwargs: self

    def execute(self):
        raise redis.ConnectionError("Error 111 connecting to localhost:6379. Connection refused.")


@pytest.fixture(scope='function')
def fake_redis():
    return FakeRedis()
