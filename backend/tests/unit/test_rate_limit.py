import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from walkbuddy.infra import rate_limit
from walkbuddy.infra.rate_limit import RateLimitExceeded, enforce, limit_for
from walkbuddy.settings import settings


@pytest.fixture
def search_limit(monkeypatch):
	def _set(value):
		monkeypatch.setattr(settings, "search_rate_limit_per_minute", value)

	return _set


@pytest.mark.asyncio
async def test_search_budget_comes_from_settings(search_limit):
	search_limit(3)
	for _ in range(3):
		await enforce("match_search", "alice", now=1_000.0)
	with pytest.raises(RateLimitExceeded) as excinfo:
		await enforce("match_search", "alice", now=1_000.0)
	assert excinfo.value.kind == "match_search"


@pytest.mark.asyncio
async def test_new_window_resets_budget(search_limit):
	search_limit(1)
	await enforce("match_search", "alice", now=1_000.0)
	with pytest.raises(RateLimitExceeded):
		await enforce("match_search", "alice", now=1_010.0)
	await enforce("match_search", "alice", now=1_060.0)


@pytest.mark.asyncio
async def test_budgets_are_per_actor_and_kind(search_limit, monkeypatch):
	search_limit(1)
	monkeypatch.setattr(settings, "mutation_rate_limit_per_minute", 1)
	await enforce("match_search", "alice", now=1_000.0)
	await enforce("match_search", "bob", now=1_000.0)
	await enforce("match_mutation", "alice", now=1_000.0)
	await enforce("trip_create", "alice", now=1_000.0)


@pytest.mark.asyncio
async def test_zero_limit_blocks(search_limit):
	search_limit(0)
	with pytest.raises(RateLimitExceeded):
		await enforce("match_search", "alice")


def test_mutation_kinds_share_the_mutation_limit(monkeypatch):
	monkeypatch.setattr(settings, "mutation_rate_limit_per_minute", 7)
	assert {limit_for(kind) for kind in ("trip_create", "match_mutation", "user_rate")} == {7}


def test_unknown_kind_is_rejected():
	with pytest.raises(ValueError):
		limit_for("bulk_export")


@pytest.mark.asyncio
async def test_redis_outage_lets_requests_through(search_limit, monkeypatch, caplog):
	search_limit(1)

	async def _unreachable(kind, actor_id, now):
		raise RedisConnectionError("connection refused")

	monkeypatch.setattr(rate_limit, "_count_hit", _unreachable)
	with caplog.at_level("WARNING", logger="walkbuddy.infra.rate_limit"):
		await enforce("match_search", "alice")
		await enforce("match_search", "alice")
	assert any(getattr(record, "event", None) == "rate_limit_unavailable" for record in caplog.records)
