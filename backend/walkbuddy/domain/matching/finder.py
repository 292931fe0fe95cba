"""Candidate search over the pool of open trips."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from walkbuddy.domain.matching import scoring
from walkbuddy.domain.matching.collaborators import TripStore, call_store
from walkbuddy.domain.matching.models import MatchCandidate, Trip, TripStatus

logger = logging.getLogger(__name__)

DEFAULT_MAX_RESULTS = 5
DEFAULT_MIN_SCORE = 0.2
DEFAULT_TIME_WINDOW_MINUTES = 60


@dataclass(slots=True, frozen=True)
class SearchOptions:
	max_results: int = DEFAULT_MAX_RESULTS
	min_score: float = DEFAULT_MIN_SCORE
	time_window_minutes: float = DEFAULT_TIME_WINDOW_MINUTES


def is_eligible(mine: Trip, other: Trip, *, time_window_minutes: float) -> bool:
	if other.user_id == mine.user_id:
		return False
	if mine.is_excluded(other.user_id):
		return False
	if mine.match_mode is not None and other.match_mode is not None and mine.match_mode != other.match_mode:
		return False
	if mine.planned_start_time is not None and other.planned_start_time is not None:
		gap_s = abs((mine.planned_start_time - other.planned_start_time).total_seconds())
		if gap_s > time_window_minutes * 60:
			return False
	return True


def rank_candidates(mine: Trip, pool: Iterable[Trip], options: SearchOptions = SearchOptions()) -> list[MatchCandidate]:
	"""Filter, score and order ``pool`` against ``mine``.

	Equal scores keep the order in which the pool was supplied, so the result
	is reproducible for a fixed snapshot.
	"""
	if options.max_results <= 0:
		return []
	scored: list[MatchCandidate] = []
	for other in pool:
		if other.status is not TripStatus.SEARCHING or other.id == mine.id:
			continue
		if not is_eligible(mine, other, time_window_minutes=options.time_window_minutes):
			continue
		value = scoring.score(mine, other)
		if value >= options.min_score:
			scored.append(MatchCandidate(trip=other, score=value))
	scored.sort(key=lambda candidate: -candidate.score)
	return scored[: options.max_results]


async def find_candidates(
	mine: Trip,
	trips: TripStore,
	options: SearchOptions = SearchOptions(),
	*,
	timeout: float,
) -> list[MatchCandidate]:
	pool = await call_store("list_trips", trips.list_trips(status=TripStatus.SEARCHING), timeout=timeout)
	candidates = rank_candidates(mine, pool, options)
	logger.info(
		"candidate search finished",
		extra={
			"event": "match_search",
			"trip_id": mine.id,
			"pool_size": len(pool),
			"returned": len(candidates),
		},
	)
	return candidates


__all__ = [
	"DEFAULT_MAX_RESULTS",
	"DEFAULT_MIN_SCORE",
	"DEFAULT_TIME_WINDOW_MINUTES",
	"SearchOptions",
	"find_candidates",
	"is_eligible",
	"rank_candidates",
]
