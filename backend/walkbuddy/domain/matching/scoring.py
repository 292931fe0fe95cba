"""Compatibility scoring between two trips."""

from __future__ import annotations

from walkbuddy.domain.matching.geo import distance_meters
from walkbuddy.domain.matching.models import Trip

DESTINATION_TEXT_WEIGHT = 0.4
START_PROXIMITY_WEIGHT = 0.3
END_PROXIMITY_WEIGHT = 0.3
SAME_MODE_BONUS = 0.1
PROXIMITY_FALLOFF_KM = 2.0


def proximity_similarity(distance_m: float) -> float:
	"""1.0 at zero distance, falling linearly to 0.0 at the falloff radius."""
	return max(0.0, 1.0 - (distance_m / 1000.0) / PROXIMITY_FALLOFF_KM)


def destination_texts_overlap(a: str, b: str) -> bool:
	left = (a or "").lower()
	right = (b or "").lower()
	if not left or not right:
		return False
	return left in right or right in left


def score(mine: Trip, other: Trip) -> float:
	total = 0.0
	if destination_texts_overlap(mine.destination.text, other.destination.text):
		total += DESTINATION_TEXT_WEIGHT

	points = (mine.origin.point, mine.destination.point, other.origin.point, other.destination.point)
	if all(point is not None for point in points):
		start_sim = proximity_similarity(distance_meters(points[0], points[2]))
		end_sim = proximity_similarity(distance_meters(points[1], points[3]))
		total += START_PROXIMITY_WEIGHT * start_sim + END_PROXIMITY_WEIGHT * end_sim

	if mine.match_mode is not None and mine.match_mode == other.match_mode:
		total += SAME_MODE_BONUS

	return min(1.0, max(0.0, total))


__all__ = ["destination_texts_overlap", "proximity_similarity", "score"]
