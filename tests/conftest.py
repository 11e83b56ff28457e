"""
Test infrastructure for the farmers-market API.

Strategy
--------
- SQLite in-memory via aiosqlite eliminates the need for a running Postgres
  instance in CI, keeping the suite fast and self-contained.
- StaticPool forces all async tasks to share the same in-memory database
  connection, which is required because SQLite in-memory databases are
  connection-scoped; a new connection would see an empty database.
- The app's get_db dependency is overridden so every test-time request uses
  the test session factory rather than the production one.
- All tables are created fresh before each test and dropped after.
- A throwaway RSA key pair is generated once and installed into ``settings``
  so tokens can be issued and verified exactly as in production.
- Outbound webhook calls go through an ``httpx.MockTransport`` that records
  every request instead of touching the network.
"""
import base64
import json

import httpx
import pytest
import pytest_asyncio
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from farmers_market.config import settings
from farmers_market.database import Base, get_db
from farmers_market.main import app
from farmers_market.middleware import install_query_counter
from farmers_market.services.webhook_service import WebhookNotifier, get_webhook_notifier

# ---------------------------------------------------------------------------
# Test database engine — SQLite in-memory with aiosqlite
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

install_query_counter(engine_test)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def override_get_db():
    async with async_session_test() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


app.dependency_overrides[get_db] = override_get_db


# ---------------------------------------------------------------------------
# Signing keys
# ---------------------------------------------------------------------------

def _generate_key_pair() -> tuple[str, str]:
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_pem = key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return base64.b64encode(private_pem).decode(), base64.b64encode(public_pem).decode()


settings.ACCESS_TOKEN_SECRET_PRIVATE, settings.ACCESS_TOKEN_SECRET_PUBLIC = _generate_key_pair()


# ---------------------------------------------------------------------------
# Webhook recording
# ---------------------------------------------------------------------------

class RecordingWebhooks:
    """Collects outbound webhook POSTs; URLs listed in ``failing`` get a 500."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, dict]] = []
        self.failing: set[str] = set()

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.calls.append((url, json.loads(request.content)))
        if url in self.failing:
            return httpx.Response(500)
        return httpx.Response(200, json={"ok": True})


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """Yield a live AsyncSession for tests that drive repositories directly."""
    async with async_session_test() as session:
        yield session


@pytest.fixture
def webhook_calls() -> RecordingWebhooks:
    """Route webhook delivery through a recording MockTransport."""
    recorder = RecordingWebhooks()
    notifier = WebhookNotifier(transport=httpx.MockTransport(recorder.handler))
    app.dependency_overrides[get_webhook_notifier] = lambda: notifier
    yield recorder
    app.dependency_overrides.pop(get_webhook_notifier, None)


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    """Yield an httpx.AsyncClient wired to the FastAPI app via ASGITransport."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


# ---------------------------------------------------------------------------
# Helpers shared by the endpoint tests
# ---------------------------------------------------------------------------

MEMBER_PASSWORD = "s3cret-password"


async def create_member(client: AsyncClient, email: str = "farmer@example.com", **overrides) -> dict:
    payload = {
        "name": "Farmer Joe",
        "location": "tulum",
        "phone": "12345678",
        "email": email,
        "password": MEMBER_PASSWORD,
    }
    payload.update(overrides)
    resp = await client.post("/api/v1/members", json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()["_embedded"]["member"]


async def login(client: AsyncClient, email: str, password: str = MEMBER_PASSWORD) -> dict:
    resp = await client.post("/api/v1/members/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


@pytest_asyncio.fixture
async def member(async_client: AsyncClient) -> dict:
    return await create_member(async_client)


@pytest_asyncio.fixture
async def auth_headers(async_client: AsyncClient, member: dict) -> dict:
    return await login(async_client, member["email"])


@pytest_asyncio.fixture
async def farm(async_client: AsyncClient, member: dict, auth_headers: dict) -> dict:
    resp = await async_client.post(
        f"/api/v1/members/{member['id']}/farms", json={"name": "Green Acres"}, headers=auth_headers
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["_embedded"]["farm"]
