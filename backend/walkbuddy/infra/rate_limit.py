"""Per-user request budgets for the matching API.

Each budget kind maps to a per-minute limit in settings and is counted in a
fixed one-minute window in Redis. A Redis outage lets requests through.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from redis.exceptions import RedisError

from walkbuddy.infra.redis import redis_client
from walkbuddy.settings import settings

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60

# budget kind -> settings attribute holding its per-minute limit
LIMIT_SETTINGS: dict[str, str] = {
	"trip_create": "mutation_rate_limit_per_minute",
	"match_search": "search_rate_limit_per_minute",
	"match_mutation": "mutation_rate_limit_per_minute",
	"user_rate": "mutation_rate_limit_per_minute",
}


class RateLimitExceeded(Exception):
	"""Raised when a user has spent their budget for the current window."""

	def __init__(self, kind: str) -> None:
		super().__init__(kind)
		self.kind = kind


def limit_for(kind: str) -> int:
	try:
		attribute = LIMIT_SETTINGS[kind]
	except KeyError:
		raise ValueError(f"unknown rate limit kind: {kind}") from None
	return int(getattr(settings, attribute))


async def _count_hit(kind: str, actor_id: str, now: float) -> int:
	slot = int(now // WINDOW_SECONDS)
	key = f"rl:{kind}:{actor_id}:{slot}"
	async with redis_client.pipeline(transaction=True) as pipe:
		pipe.incr(key)
		pipe.expire(key, WINDOW_SECONDS)
		count, _ = await pipe.execute()
	return int(count)


async def enforce(kind: str, actor_id: str, *, now: Optional[float] = None) -> None:
	"""Count one ``kind`` request for ``actor_id``; raise once the window's limit is spent."""
	limit = limit_for(kind)
	if limit <= 0:
		raise RateLimitExceeded(kind)
	try:
		hits = await _count_hit(kind, actor_id, time.time() if now is None else now)
	except RedisError as exc:
		logger.warning(
			"rate limiter unavailable, allowing request",
			extra={"event": "rate_limit_unavailable", "kind": kind, "error": type(exc).__name__},
		)
		return
	if hits > limit:
		raise RateLimitExceeded(kind)


__all__ = ["LIMIT_SETTINGS", "RateLimitExceeded", "WINDOW_SECONDS", "enforce", "limit_for"]
