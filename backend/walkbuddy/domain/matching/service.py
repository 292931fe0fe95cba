"""Service orchestration for trip matching, transitions and route planning."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from walkbuddy.domain.matching import finder
from walkbuddy.domain.matching.collaborators import (
	RoutingProvider,
	SafeLocationCatalog,
	TripHistoryLog,
	TripStore,
	UserDirectory,
	call_store,
)
from walkbuddy.domain.matching.exceptions import (
	CandidateNoLongerAvailable,
	InvalidRating,
	InvalidTransition,
	NotTripOwner,
	RouteUnavailable,
	TripNotFound,
	UserNotFound,
)
from walkbuddy.domain.matching.meeting_point import choose_meeting_point
from walkbuddy.domain.matching.models import (
	MatchCandidate,
	MatchMode,
	RatingSummary,
	SafeLocation,
	Trip,
	TripHistoryRecord,
	TripStatus,
	User,
)
from walkbuddy.domain.matching.segmenter import RouteSegmentation, segment_route, unavailable
from walkbuddy.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


def _now() -> datetime:
	return datetime.now(timezone.utc)


@dataclass(slots=True)
class RejectionOutcome:
	trip: Trip
	candidates: list[MatchCandidate]


class MatchService:
	"""Runs searches and applies the searching -> matched -> completed lifecycle.

	Collaborators are injected; every store call is bounded by ``store_timeout``
	(or a per-call override) and failures surface as ``StoreUnavailable``.
	"""

	def __init__(
		self,
		*,
		trips: TripStore,
		users: UserDirectory,
		history: TripHistoryLog,
		safe_locations: SafeLocationCatalog,
		router: Optional[RoutingProvider] = None,
		store_timeout: float = 5.0,
		defaults: finder.SearchOptions = finder.SearchOptions(),
	) -> None:
		self._trips = trips
		self._users = users
		self._history = history
		self._safe_locations = safe_locations
		self._router = router
		self._timeout = store_timeout
		self._defaults = defaults

	def _deadline(self, timeout: Optional[float]) -> float:
		return self._timeout if timeout is None else timeout

	async def get_trip(self, trip_id: str, *, timeout: Optional[float] = None) -> Trip:
		trip = await call_store("get_trip", self._trips.get_trip(trip_id), timeout=self._deadline(timeout))
		if trip is None:
			raise TripNotFound()
		return trip

	async def _owned_trip(self, trip_id: str, actor_id: str, timeout: Optional[float]) -> Trip:
		trip = await self.get_trip(trip_id, timeout=timeout)
		if trip.user_id != actor_id:
			raise NotTripOwner()
		return trip

	async def create_trip(
		self,
		user_id: str,
		*,
		origin: Mapping[str, Any],
		destination: Mapping[str, Any],
		match_mode: Optional[MatchMode] = None,
		planned_start_time: Optional[datetime] = None,
		timeout: Optional[float] = None,
	) -> Trip:
		fields = {
			"user_id": user_id,
			"origin": dict(origin),
			"destination": dict(destination),
			"match_mode": match_mode or MatchMode.IN_PERSON,
			"planned_start_time": planned_start_time or _now(),
			"status": TripStatus.SEARCHING,
			"active_match_user_id": None,
			"excluded_user_ids": [],
		}
		trip = await call_store("create_trip", self._trips.create_trip(fields), timeout=self._deadline(timeout))
		logger.info("trip created", extra={"event": "trip_created", "trip_id": trip.id, "user_id": user_id})
		return trip

	def _options(
		self,
		max_results: Optional[int],
		min_score: Optional[float],
		time_window_minutes: Optional[float],
	) -> finder.SearchOptions:
		return finder.SearchOptions(
			max_results=self._defaults.max_results if max_results is None else max_results,
			min_score=self._defaults.min_score if min_score is None else min_score,
			time_window_minutes=self._defaults.time_window_minutes if time_window_minutes is None else time_window_minutes,
		)

	async def search(
		self,
		trip_id: str,
		*,
		actor_id: Optional[str] = None,
		max_results: Optional[int] = None,
		min_score: Optional[float] = None,
		time_window_minutes: Optional[float] = None,
		timeout: Optional[float] = None,
	) -> list[MatchCandidate]:
		trip = await self.get_trip(trip_id, timeout=timeout)
		if actor_id is not None and trip.user_id != actor_id:
			raise NotTripOwner()
		options = self._options(max_results, min_score, time_window_minutes)
		candidates = await finder.find_candidates(trip, self._trips, options, timeout=self._deadline(timeout))
		obs_metrics.observe_search(len(candidates))
		return candidates

	async def accept(
		self,
		trip_id: str,
		other_user_id: str,
		*,
		actor_id: str,
		candidate_trip_id: Optional[str] = None,
		timeout: Optional[float] = None,
	) -> Trip:
		deadline = self._deadline(timeout)
		trip = await self._owned_trip(trip_id, actor_id, timeout)
		if trip.status is not TripStatus.SEARCHING:
			raise InvalidTransition()
		if other_user_id == trip.user_id:
			raise InvalidTransition("cannot_match_self")
		if trip.is_excluded(other_user_id):
			raise InvalidTransition("user_excluded")

		candidate = await self._live_candidate(other_user_id, candidate_trip_id, deadline)

		trip_date = trip.planned_start_time or _now()
		history = [
			TripHistoryRecord(
				user_id=trip.user_id,
				other_user_id=other_user_id,
				start_location=trip.origin.text or "Unknown start",
				end_location=trip.destination.text or "Unknown end",
				trip_date=trip_date,
			),
			TripHistoryRecord(
				user_id=other_user_id,
				other_user_id=trip.user_id,
				start_location=candidate.origin.text or "Unknown start",
				end_location=candidate.destination.text or "Unknown end",
				trip_date=candidate.planned_start_time or trip_date,
			),
		]
		updated = await call_store(
			"commit_match",
			self._trips.commit_match(trip.id, other_user_id, history),
			timeout=deadline,
		)
		if updated is None:
			raise InvalidTransition("trip_state_changed")

		obs_metrics.inc_transition("accept")
		logger.info(
			"match accepted",
			extra={"event": "match_accepted", "trip_id": trip.id, "candidate_trip_id": candidate.id},
		)
		return updated

	async def _live_candidate(self, other_user_id: str, candidate_trip_id: Optional[str], timeout: float) -> Trip:
		if candidate_trip_id:
			candidate = await call_store("get_trip", self._trips.get_trip(candidate_trip_id), timeout=timeout)
			if candidate is not None and candidate.user_id != other_user_id:
				raise InvalidTransition("candidate_user_mismatch")
		else:
			open_trips = await call_store(
				"list_trips",
				self._trips.list_trips(status=TripStatus.SEARCHING, user_id=other_user_id),
				timeout=timeout,
			)
			candidate = open_trips[0] if open_trips else None
		if candidate is None or candidate.status is not TripStatus.SEARCHING:
			obs_metrics.inc_acceptance_race()
			raise CandidateNoLongerAvailable()
		return candidate

	async def reject(
		self,
		trip_id: str,
		other_user_id: str,
		*,
		actor_id: str,
		max_results: Optional[int] = None,
		min_score: Optional[float] = None,
		time_window_minutes: Optional[float] = None,
		timeout: Optional[float] = None,
	) -> RejectionOutcome:
		deadline = self._deadline(timeout)
		trip = await self._owned_trip(trip_id, actor_id, timeout)
		if trip.status is not TripStatus.SEARCHING:
			raise InvalidTransition()
		if other_user_id == trip.user_id:
			raise InvalidTransition("cannot_exclude_self")

		updated = await call_store(
			"update_trip_fields",
			self._trips.update_trip_fields(
				trip.id,
				{},
				add_to_set={"excluded_user_ids": [other_user_id]},
				expected_status=TripStatus.SEARCHING,
			),
			timeout=deadline,
		)
		if updated is None:
			raise InvalidTransition("trip_state_changed")
		obs_metrics.inc_transition("reject")

		options = self._options(max_results, min_score, time_window_minutes)
		candidates = await finder.find_candidates(updated, self._trips, options, timeout=deadline)
		obs_metrics.observe_search(len(candidates))
		return RejectionOutcome(trip=updated, candidates=candidates)

	async def complete(
		self,
		trip_id: str,
		*,
		actor_id: str,
		rating: Optional[int] = None,
		timeout: Optional[float] = None,
	) -> Trip:
		_check_rating(rating)
		deadline = self._deadline(timeout)
		trip = await self._owned_trip(trip_id, actor_id, timeout)
		if trip.status is not TripStatus.MATCHED:
			raise InvalidTransition()

		updated = await call_store(
			"update_trip_fields",
			self._trips.update_trip_fields(
				trip.id,
				{"status": TripStatus.COMPLETED, "completed_at": _now()},
				expected_status=TripStatus.MATCHED,
			),
			timeout=deadline,
		)
		if updated is None:
			raise InvalidTransition("trip_state_changed")
		obs_metrics.inc_transition("complete")

		if rating is not None and trip.active_match_user_id:
			await self.rate_user(trip.active_match_user_id, rating, timeout=timeout)
		return updated

	async def get_user(self, user_id: str, *, timeout: Optional[float] = None) -> User:
		user = await call_store("get_user", self._users.get_user(user_id), timeout=self._deadline(timeout))
		if user is None:
			raise UserNotFound()
		return user

	async def rate_user(self, user_id: str, rating: int, *, timeout: Optional[float] = None) -> RatingSummary:
		_check_rating(rating)
		summary = await call_store("rate_user", self._users.rate_user(user_id, rating), timeout=self._deadline(timeout))
		obs_metrics.inc_rating_submitted()
		return summary

	async def past_trips(self, user_id: str, *, timeout: Optional[float] = None) -> list[TripHistoryRecord]:
		return await call_store(
			"list_trip_history",
			self._history.list_for_user(user_id),
			timeout=self._deadline(timeout),
		)

	async def meeting_point(self, trip_id: str, *, timeout: Optional[float] = None) -> Optional[SafeLocation]:
		trip = await self.get_trip(trip_id, timeout=timeout)
		return await self._meeting_point_for(trip, self._deadline(timeout))

	async def _meeting_point_for(self, trip: Trip, timeout: float) -> Optional[SafeLocation]:
		if trip.match_mode is MatchMode.VIRTUAL_ONLY:
			return None
		if trip.origin.point is None or trip.destination.point is None:
			return None
		locations = await call_store("list_safe_locations", self._safe_locations.list_safe_locations(), timeout=timeout)
		return choose_meeting_point(trip, locations)

	async def plan_route(self, trip_id: str, *, timeout: Optional[float] = None) -> RouteSegmentation:
		"""Meeting point plus solo/together legs; degrades to ``unavailable`` instead of raising."""
		trip = await self.get_trip(trip_id, timeout=timeout)
		origin = trip.origin.point
		destination = trip.destination.point
		if origin is None or destination is None:
			segmentation = unavailable("missing_coordinates")
		elif self._router is None:
			segmentation = unavailable("routing_disabled")
		else:
			meeting = await self._meeting_point_for(trip, self._deadline(timeout))
			waypoints = [meeting.point] if meeting is not None else []
			try:
				legs = await self._router.route(origin, destination, waypoints)
			except RouteUnavailable as exc:
				logger.warning("routing failed", extra={"event": "route_unavailable", "trip_id": trip.id, "reason": exc.detail})
				segmentation = unavailable(exc.detail, meeting_point=meeting)
			else:
				segmentation = segment_route(legs, match_mode=trip.match_mode, meeting_point=meeting)
		obs_metrics.inc_route_outcome(segmentation.status.value)
		return segmentation


def _check_rating(rating: Optional[int]) -> None:
	if rating is None:
		return
	if isinstance(rating, bool) or not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
		raise InvalidRating()


__all__ = ["MAX_RATING", "MIN_RATING", "MatchService", "RejectionOutcome"]
