"""Split a provider route into the walk-alone and walk-together parts.

Pure functions only: the routing call happens in the service and whatever it
produced (including nothing) is handed in here. Nothing in this module raises.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from walkbuddy.domain.matching.models import GeoPoint, MatchMode, SafeLocation


class SegmentationStatus(str, enum.Enum):
	SHARED = "shared"
	SOLO_ONLY = "solo_only"
	UNAVAILABLE = "unavailable"


@dataclass(slots=True)
class RouteLeg:
	distance_m: float
	duration_s: float
	start: Optional[GeoPoint] = None
	end: Optional[GeoPoint] = None


@dataclass(slots=True)
class RouteSegmentation:
	status: SegmentationStatus
	solo: Optional[RouteLeg] = None
	together: Optional[RouteLeg] = None
	meeting_point: Optional[SafeLocation] = None
	reason: Optional[str] = None
	legs: list[RouteLeg] = field(default_factory=list)

	@property
	def together_empty(self) -> bool:
		return self.together is None


def unavailable(reason: str, *, meeting_point: Optional[SafeLocation] = None) -> RouteSegmentation:
	return RouteSegmentation(status=SegmentationStatus.UNAVAILABLE, meeting_point=meeting_point, reason=reason)


def _usable(legs: Optional[Iterable[Optional[RouteLeg]]]) -> list[RouteLeg]:
	if not legs:
		return []
	return [leg for leg in legs if isinstance(leg, RouteLeg)]


def merge_legs(legs: Sequence[RouteLeg]) -> RouteLeg:
	return RouteLeg(
		distance_m=sum(leg.distance_m or 0.0 for leg in legs),
		duration_s=sum(leg.duration_s or 0.0 for leg in legs),
		start=legs[0].start,
		end=legs[-1].end,
	)


def segment_route(
	legs: Optional[Sequence[Optional[RouteLeg]]],
	*,
	match_mode: Optional[MatchMode] = None,
	meeting_point: Optional[SafeLocation] = None,
) -> RouteSegmentation:
	"""Classify provider legs.

	* in person, two or more legs: first leg is solo, the rest is walked together
	* one leg (virtual trips, or no meeting point to route through): solo only
	* nothing usable: unavailable
	"""
	usable = _usable(legs)
	if not usable:
		return unavailable("no_route_legs", meeting_point=meeting_point)

	if match_mode is MatchMode.VIRTUAL_ONLY:
		return RouteSegmentation(
			status=SegmentationStatus.SOLO_ONLY,
			solo=merge_legs(usable),
			legs=usable,
		)

	if len(usable) == 1:
		return RouteSegmentation(
			status=SegmentationStatus.SOLO_ONLY,
			solo=usable[0],
			meeting_point=meeting_point,
			legs=usable,
		)

	return RouteSegmentation(
		status=SegmentationStatus.SHARED,
		solo=usable[0],
		together=merge_legs(usable[1:]),
		meeting_point=meeting_point,
		legs=usable,
	)


__all__ = [
	"RouteLeg",
	"RouteSegmentation",
	"SegmentationStatus",
	"merge_legs",
	"segment_route",
	"unavailable",
]
