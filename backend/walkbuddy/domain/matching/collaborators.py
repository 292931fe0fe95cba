"""Interfaces the matching service depends on, plus the guarded call helper.

The service never talks to a driver directly: the trip store, user directory,
trip history log, safe-location catalog and routing provider are passed in at
construction time, so tests can swap in in-memory versions.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Mapping, Optional, Protocol, Sequence, TypeVar

from walkbuddy.domain.matching.exceptions import StoreUnavailable
from walkbuddy.domain.matching.models import (
	GeoPoint,
	RatingSummary,
	SafeLocation,
	Trip,
	TripHistoryRecord,
	TripStatus,
	User,
)
from walkbuddy.domain.matching.segmenter import RouteLeg
from walkbuddy.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TripStore(Protocol):
	async def create_trip(self, fields: Mapping[str, Any]) -> Trip:
		...

	async def get_trip(self, trip_id: str) -> Optional[Trip]:
		...

	async def list_trips(
		self,
		*,
		status: Optional[TripStatus] = None,
		user_id: Optional[str] = None,
	) -> list[Trip]:
		...

	async def update_trip_fields(
		self,
		trip_id: str,
		fields: Mapping[str, Any],
		*,
		add_to_set: Optional[Mapping[str, Sequence[str]]] = None,
		expected_status: Optional[TripStatus] = None,
	) -> Optional[Trip]:
		"""Apply ``fields`` and set-additions in one atomic write.

		Returns ``None`` when ``expected_status`` no longer holds and raises
		``TripNotFound`` when the trip does not exist.
		"""
		...

	async def commit_match(
		self,
		trip_id: str,
		other_user_id: str,
		history: Sequence[TripHistoryRecord],
	) -> Optional[Trip]:
		"""Move a searching trip to matched and append ``history`` in one transaction.

		Nothing is written unless every part succeeds. Returns ``None`` when the
		trip is no longer searching.
		"""
		...


class UserDirectory(Protocol):
	async def get_user(self, user_id: str) -> Optional[User]:
		...

	async def rate_user(self, user_id: str, rating: int) -> RatingSummary:
		...


class TripHistoryLog(Protocol):
	async def list_for_user(self, user_id: str) -> list[TripHistoryRecord]:
		...


class SafeLocationCatalog(Protocol):
	async def list_safe_locations(self) -> list[SafeLocation]:
		...


class RoutingProvider(Protocol):
	async def route(
		self,
		origin: GeoPoint,
		destination: GeoPoint,
		waypoints: Sequence[GeoPoint] = (),
	) -> list[RouteLeg]:
		"""Return one leg per consecutive pair of points; raise ``RouteUnavailable`` on failure."""
		...


async def call_store(operation: str, awaitable: Awaitable[T], *, timeout: float) -> T:
	"""Await a collaborator call under ``timeout`` and normalise its failures."""
	try:
		return await asyncio.wait_for(awaitable, timeout=timeout)
	except asyncio.TimeoutError as exc:
		obs_metrics.inc_store_failure(operation)
		logger.warning("store call timed out", extra={"event": "store_timeout", "operation": operation, "timeout_s": timeout})
		raise StoreUnavailable(operation, "store_timeout") from exc
	except StoreUnavailable:
		obs_metrics.inc_store_failure(operation)
		logger.warning("store call failed", extra={"event": "store_unavailable", "operation": operation})
		raise


__all__ = [
	"RoutingProvider",
	"SafeLocationCatalog",
	"TripHistoryLog",
	"TripStore",
	"UserDirectory",
	"call_store",
]
