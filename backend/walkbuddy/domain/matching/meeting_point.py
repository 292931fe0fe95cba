"""Safe meeting point selection."""

from __future__ import annotations

from typing import Optional, Sequence

from walkbuddy.domain.matching.geo import distance_meters, midpoint
from walkbuddy.domain.matching.models import SafeLocation, Trip


def choose_meeting_point(trip: Trip, locations: Sequence[SafeLocation]) -> Optional[SafeLocation]:
	"""Nearest catalog entry to the midpoint of the trip; first one wins on ties."""
	origin = trip.origin.point
	destination = trip.destination.point
	if origin is None or destination is None or not locations:
		return None
	centre = midpoint(origin, destination)
	best: Optional[SafeLocation] = None
	best_distance = float("inf")
	for location in locations:
		distance = distance_meters(centre, location.point)
		if best is None or distance < best_distance:
			best = location
			best_distance = distance
	return best


__all__ = ["choose_meeting_point"]
