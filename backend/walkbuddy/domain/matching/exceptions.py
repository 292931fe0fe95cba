"""Custom exceptions for the matching services."""

from __future__ import annotations

from fastapi import status

if hasattr(status, "HTTP_422_UNPROCESSABLE_CONTENT"):
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_CONTENT
else:  # pragma: no cover - older Starlette builds
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_ENTITY


class MatchingError(Exception):
	"""Base class for matching related errors."""

	status_code: int = status.HTTP_400_BAD_REQUEST
	detail: str = "matching_error"

	def __init__(self, detail: str | None = None) -> None:
		super().__init__(detail or self.detail)
		if detail:
			self.detail = detail


class StoreUnavailable(MatchingError):
	"""A collaborator store failed or did not answer within the timeout."""

	status_code = status.HTTP_503_SERVICE_UNAVAILABLE
	detail = "store_unavailable"

	def __init__(self, operation: str | None = None, detail: str | None = None) -> None:
		super().__init__(detail)
		self.operation = operation


class TripNotFound(MatchingError):
	status_code = status.HTTP_404_NOT_FOUND
	detail = "trip_not_found"


class UserNotFound(MatchingError):
	status_code = status.HTTP_404_NOT_FOUND
	detail = "user_not_found"


class CandidateNoLongerAvailable(MatchingError):
	"""The chosen candidate trip left the searching state before acceptance."""

	status_code = status.HTTP_409_CONFLICT
	detail = "candidate_no_longer_available"


class InvalidTransition(MatchingError):
	"""Raised when an action is not allowed from the trip's current status."""

	status_code = status.HTTP_409_CONFLICT
	detail = "invalid_transition"


class NotTripOwner(MatchingError):
	status_code = status.HTTP_403_FORBIDDEN
	detail = "not_trip_owner"


class InvalidRating(MatchingError):
	status_code = _HTTP_422
	detail = "invalid_rating"


class RouteUnavailable(MatchingError):
	"""The routing provider errored, timed out or returned an unusable body."""

	status_code = status.HTTP_502_BAD_GATEWAY
	detail = "route_unavailable"
