"""Walking directions through the OpenRouteService HTTP API."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence

import httpx

from walkbuddy.domain.matching.exceptions import RouteUnavailable
from walkbuddy.domain.matching.models import GeoPoint
from walkbuddy.domain.matching.segmenter import RouteLeg
from walkbuddy.settings import settings

logger = logging.getLogger(__name__)


def _as_float(value: Any) -> float:
	try:
		return float(value)
	except (TypeError, ValueError):
		return 0.0


@dataclass
class OpenRouteServiceProvider:
	"""Routing provider returning one leg per consecutive pair of input points."""

	http: httpx.AsyncClient
	api_key: Optional[str]
	base_url: str = "https://api.openrouteservice.org"
	profile: str = "foot-walking"
	request_timeout: float = 6.0

	@classmethod
	def from_settings(cls, http: httpx.AsyncClient) -> "OpenRouteServiceProvider":
		return cls(
			http=http,
			api_key=settings.routing_api_key,
			base_url=settings.routing_base_url,
			profile=settings.routing_profile,
			request_timeout=settings.routing_timeout_seconds,
		)

	async def route(
		self,
		origin: GeoPoint,
		destination: GeoPoint,
		waypoints: Sequence[GeoPoint] = (),
	) -> list[RouteLeg]:
		if not self.api_key:
			raise RouteUnavailable("routing_not_configured")
		points = [origin, *waypoints, destination]
		url = f"{self.base_url.rstrip('/')}/v2/directions/{self.profile}"
		body = {"coordinates": [[point.lng, point.lat] for point in points]}
		try:
			response = await self.http.post(
				url,
				json=body,
				headers={"Authorization": self.api_key, "Accept": "application/json"},
				timeout=self.request_timeout,
			)
		except httpx.TimeoutException as exc:
			raise RouteUnavailable("route_timeout") from exc
		except httpx.HTTPError as exc:
			raise RouteUnavailable("route_transport_error") from exc
		if response.status_code >= 400:
			logger.warning(
				"routing provider rejected request",
				extra={"event": "route_provider_error", "status": response.status_code},
			)
			raise RouteUnavailable("route_provider_error")
		try:
			payload = response.json()
		except ValueError as exc:
			raise RouteUnavailable("route_malformed") from exc
		return self._legs(payload, points)

	@staticmethod
	def _legs(payload: Any, points: Sequence[GeoPoint]) -> list[RouteLeg]:
		if not isinstance(payload, dict):
			raise RouteUnavailable("route_malformed")
		routes = payload.get("routes")
		if not isinstance(routes, list) or not routes or not isinstance(routes[0], dict):
			raise RouteUnavailable("route_malformed")
		segments = routes[0].get("segments") or []
		legs: list[RouteLeg] = []
		for index, segment in enumerate(segments):
			if not isinstance(segment, dict):
				continue
			start = points[index] if index < len(points) else None
			end = points[index + 1] if index + 1 < len(points) else None
			legs.append(
				RouteLeg(
					distance_m=_as_float(segment.get("distance")),
					duration_s=_as_float(segment.get("duration")),
					start=start,
					end=end,
				)
			)
		return legs


__all__ = ["OpenRouteServiceProvider"]
