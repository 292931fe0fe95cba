import sys
from pathlib import Path

import pytest
import pytest_asyncio
from fakeredis.aioredis import FakeRedis
from httpx import ASGITransport, AsyncClient

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from walkbuddy.api.deps import get_match_service
from walkbuddy.domain.matching.models import SafeLocation, User
from walkbuddy.infra import postgres
from walkbuddy.main import app
from walkbuddy.settings import settings

from tests.fakes import StubRoutingProvider, build_service


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	from walkbuddy.infra.redis import redis_client, set_redis_client

	original = redis_client._client
	client = FakeRedis(decode_responses=True)
	set_redis_client(client)
	try:
		yield client
	finally:
		set_redis_client(original)
		await client.flushall()


@pytest.fixture(autouse=True)
def patch_postgres(monkeypatch):
	async def _noop():
		return None

	monkeypatch.setattr(postgres, "init_pool", _noop)
	monkeypatch.setattr(postgres, "close_pool", _noop)


@pytest.fixture(autouse=True)
def force_test_settings():
	"""API tests authenticate via the X-User-Id header, which is only accepted in dev mode."""
	original_env = settings.environment
	settings.environment = "dev"
	try:
		yield
	finally:
		settings.environment = original_env


@pytest.fixture
def catalog_locations():
	return [
		SafeLocation(id="30th-street-station", name="30th Street Station", lat=39.955615, lng=-75.181923),
		SafeLocation(id="penn-museum", name="Penn Museum", lat=39.94933, lng=-75.1910),
		SafeLocation(id="houston-hall", name="Houston Hall", lat=39.9515, lng=-75.1925),
		SafeLocation(id="rittenhouse-square", name="Rittenhouse Square", lat=39.9489, lng=-75.1710),
	]


@pytest.fixture
def wired(catalog_locations):
	"""Match service over in-memory collaborators, installed on the app."""
	users = [User(id="alice", name="Alice"), User(id="bob", name="Bob", rating_average=4.0, rating_count=2)]
	bundle = build_service(users=users, locations=catalog_locations, router=StubRoutingProvider())
	app.dependency_overrides[get_match_service] = lambda: bundle[0]
	try:
		yield bundle
	finally:
		app.dependency_overrides.pop(get_match_service, None)


@pytest_asyncio.fixture
async def api_client():
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client
