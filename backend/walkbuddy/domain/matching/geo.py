"""Geodesic helpers."""

from __future__ import annotations

import math
from typing import Optional

from walkbuddy.domain.matching.models import GeoPoint

EARTH_RADIUS_M = 6_371_000.0


def distance_meters(a: Optional[GeoPoint], b: Optional[GeoPoint]) -> float:
	"""Great-circle distance in metres; infinite when either side is unknown."""
	if a is None or b is None:
		return math.inf
	phi1 = math.radians(a.lat)
	phi2 = math.radians(b.lat)
	d_phi = math.radians(b.lat - a.lat)
	d_lambda = math.radians(b.lng - a.lng)
	h = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
	return 2 * EARTH_RADIUS_M * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def midpoint(a: GeoPoint, b: GeoPoint) -> GeoPoint:
	# arithmetic mean; trips span a few km at most
	return GeoPoint(lat=(a.lat + b.lat) / 2, lng=(a.lng + b.lng) / 2)


__all__ = ["EARTH_RADIUS_M", "distance_meters", "midpoint"]
