import os
import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError
from tortoise import Tortoise

from usersvc.config import settings
from usersvc.core import db as db_module
from usersvc.core.security import TokenIssuer
from usersvc.main import app
from usersvc.services.accounts import AccountService
from usersvc.services.credentials import User
from usersvc.services.factory import build_account_service
from usersvc.services.session_store import RedisSessionStore
from usersvc.services.user_cache import RedisUserCache
from usersvc.services.user_store_memory import InMemoryUserStore


TEST_DB_URL = "sqlite://:memory:?cache=shared"
os.environ["DATABASE_URL"] = TEST_DB_URL
db_module.DB_URL = TEST_DB_URL
db_module.TORTOISE_ORM["connections"]["default"] = TEST_DB_URL

TEST_SECRET = "test-secret-key-for-hs256-signing!"


class MockRedis:
    """
    In-memory stand-in for redis.asyncio.Redis (get / set ex nx / delete).

    Expiry follows `now`, which tests move forward with advance(). Setting
    `fail` makes every command raise a redis ConnectionError.
    """

    def __init__(self):
        self.now = 1_000_000.0
        self.fail = False
        self._data: dict[str, tuple[bytes, float | None]] = {}

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def _check(self) -> None:
        if self.fail:
            raise RedisConnectionError("redis is down")

    def _live(self, key: str):
        item = self._data.get(key)
        if item is None:
            return None
        value, expires_at = item
        if expires_at is not None and self.now >= expires_at:
            del self._data[key]
            return None
        return value

    def ttl_of(self, key: str) -> float | None:
        item = self._data.get(key)
        return None if item is None or item[1] is None else item[1] - self.now

    def keys_with_prefix(self, prefix: str) -> list[str]:
        return [k for k in list(self._data) if k.startswith(prefix) and self._live(k) is not None]

    async def get(self, key: str):
        self._check()
        return self._live(key)

    async def set(self, key: str, value, ex: int | None = None, nx: bool = False):
        self._check()
        if nx and self._live(key) is not None:
            return None
        if isinstance(value, str):
            value = value.encode()
        self._data[key] = (value, self.now + ex if ex else None)
        return True

    async def delete(self, *keys: str) -> int:
        self._check()
        removed = 0
        for key in keys:
            if self._live(key) is not None:
                removed += 1
            self._data.pop(key, None)
        return removed

    async def aclose(self) -> None:
        pass


@pytest.fixture
def fake_redis():
    return MockRedis()


@pytest.fixture
def token_issuer():
    return TokenIssuer(secret=TEST_SECRET)


@pytest.fixture
def user_store():
    return InMemoryUserStore()


@pytest.fixture
def accounts(user_store, fake_redis, token_issuer):
    """AccountService wired to the in-memory durable store and the Redis double."""
    return AccountService(
        user_store=user_store,
        user_cache=RedisUserCache(fake_redis),
        session_store=RedisSessionStore(fake_redis),
        token_issuer=token_issuer,
        session_ttl=3600,
    )


@pytest.fixture
def make_candidate():
    """Factory for unsaved candidates with a unique email."""

    def _make(password: str = "secret1", role: str = "user", **overrides) -> User:
        fields = {
            "email": f"user_{uuid.uuid4().hex[:8]}@example.com",
            "first_name": "Ada",
            "last_name": "Lovelace",
            "password": password,
            "role": role,
        }
        fields.update(overrides)
        return User(**fields)

    return _make


async def _init_test_db() -> None:
    """
    Initialize a clean in-memory SQLite database for every test.
    Ensures tables are recreated from scratch.
    """
    if Tortoise._inited:
        await Tortoise.close_connections()
    await Tortoise.init(config=db_module.TORTOISE_ORM)
    await Tortoise.generate_schemas()


@pytest_asyncio.fixture
async def db():
    """Fresh SQLite schema for tests that use the Tortoise store directly."""
    await _init_test_db()
    yield
    await Tortoise.close_connections()


@pytest_asyncio.fixture
async def client(db, fake_redis):
    """
    Provide an HTTPX AsyncClient bound to the FastAPI app with a fresh DB.
    The app's AccountService uses the Tortoise store and the Redis double.
    """
    app.state.accounts = build_account_service(settings, fake_redis)
    # Use ASGITransport without lifespan parameter (not supported in all httpx versions)
    try:
        transport = ASGITransport(app=app, lifespan="off")
    except TypeError:
        # Fallback for httpx versions that don't support lifespan parameter
        transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as async_client:
        yield async_client


@pytest_asyncio.fixture
async def create_admin(client):
    """
    Factory fixture to create admin users through the account service.
    """

    async def _create_admin(password: str = "AdminPass!23") -> tuple[User, str]:
        user = await app.state.accounts.register(User(
            email=f"admin_{uuid.uuid4().hex[:6]}@example.com",
            first_name="Root",
            last_name="Admin",
            password=password,
            role="admin",
        ))
        return user, password

    return _create_admin


@pytest_asyncio.fixture
async def auth_header_factory(client):
    """
    Helper fixture to obtain Authorization headers via the login endpoint.
    """

    async def _get_headers(email: str, password: str) -> dict[str, str]:
        resp = await client.post(
            "/api/v1/users/login",
            json={"email": email, "password": password},
        )
        assert resp.status_code == 201, resp.text
        # Rely on the explicit header only, not the login cookie
        client.cookies.clear()
        token = resp.json()["data"]["access_token"]
        return {"Authorization": f"Bearer {token}"}

    return _get_headers
