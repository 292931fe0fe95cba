"""Pydantic schemas for the matching API. JSON field names are camelCase."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from walkbuddy.domain.matching.models import (
	GeoPoint,
	MatchCandidate,
	MatchMode,
	RatingSummary,
	SafeLocation,
	Trip,
	TripHistoryRecord,
	TripStatus,
	User,
)
from walkbuddy.domain.matching.segmenter import RouteLeg, RouteSegmentation


class CamelModel(BaseModel):
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class PlacePayload(CamelModel):
	text: str = Field(default="", max_length=300)
	lat: Optional[float] = Field(default=None, ge=-90.0, le=90.0)
	lng: Optional[float] = Field(default=None, ge=-180.0, le=180.0)


class TripCreateRequest(CamelModel):
	origin: PlacePayload
	destination: PlacePayload
	match_mode: Optional[MatchMode] = None
	planned_start_time: Optional[datetime] = None


class TripResponse(CamelModel):
	id: str
	user_id: str
	origin: PlacePayload
	destination: PlacePayload
	match_mode: Optional[MatchMode] = None
	planned_start_time: Optional[datetime] = None
	status: TripStatus
	active_match_user_id: Optional[str] = None
	excluded_user_ids: List[str] = Field(default_factory=list)
	created_at: Optional[datetime] = None
	completed_at: Optional[datetime] = None

	@classmethod
	def from_trip(cls, trip: Trip) -> "TripResponse":
		return cls.model_validate(trip.model_dump())


class MatchSearchRequest(CamelModel):
	trip_id: str
	max_results: Optional[int] = Field(default=None, ge=1, le=50)
	min_score: Optional[float] = Field(default=None, ge=0.0, le=1.0)
	time_window_minutes: Optional[float] = Field(default=None, ge=0.0, le=24 * 60)


class MatchCandidateResponse(CamelModel):
	trip: TripResponse
	score: float

	@classmethod
	def from_candidate(cls, candidate: MatchCandidate) -> "MatchCandidateResponse":
		return cls(trip=TripResponse.from_trip(candidate.trip), score=candidate.score)


class AcceptRequest(CamelModel):
	other_user_id: str = Field(..., min_length=1)
	candidate_trip_id: Optional[str] = None


class RejectRequest(CamelModel):
	other_user_id: str = Field(..., min_length=1)


class RejectResponse(TripResponse):
	next_candidates: List[MatchCandidateResponse] = Field(default_factory=list)


class CompleteRequest(CamelModel):
	rating: Optional[int] = None


class SafeLocationResponse(CamelModel):
	id: str
	name: str
	lat: float
	lng: float
	address: Optional[str] = None

	@classmethod
	def from_location(cls, location: Optional[SafeLocation]) -> Optional["SafeLocationResponse"]:
		if location is None:
			return None
		return cls.model_validate(location.model_dump())


class PointResponse(CamelModel):
	lat: float
	lng: float


class RouteLegResponse(CamelModel):
	distance_m: float
	duration_s: float
	start: Optional[PointResponse] = None
	end: Optional[PointResponse] = None

	@classmethod
	def from_leg(cls, leg: Optional[RouteLeg]) -> Optional["RouteLegResponse"]:
		if leg is None:
			return None
		return cls(
			distance_m=leg.distance_m,
			duration_s=leg.duration_s,
			start=_point(leg.start),
			end=_point(leg.end),
		)


def _point(point: Optional[GeoPoint]) -> Optional[PointResponse]:
	return PointResponse(lat=point.lat, lng=point.lng) if point is not None else None


class RouteSegmentationResponse(CamelModel):
	status: str
	solo: Optional[RouteLegResponse] = None
	together: Optional[RouteLegResponse] = None
	together_empty: bool
	meeting_point: Optional[SafeLocationResponse] = None
	reason: Optional[str] = None

	@classmethod
	def from_segmentation(cls, segmentation: RouteSegmentation) -> "RouteSegmentationResponse":
		return cls(
			status=segmentation.status.value,
			solo=RouteLegResponse.from_leg(segmentation.solo),
			together=RouteLegResponse.from_leg(segmentation.together),
			together_empty=segmentation.together_empty,
			meeting_point=SafeLocationResponse.from_location(segmentation.meeting_point),
			reason=segmentation.reason,
		)


class UserResponse(CamelModel):
	id: str
	name: Optional[str] = None
	rating_average: Optional[float] = None
	rating_count: int = 0

	@classmethod
	def from_user(cls, user: User) -> "UserResponse":
		return cls(id=user.id, name=user.name, rating_average=user.rating_average, rating_count=user.rating_count)


class RateRequest(CamelModel):
	rating: int


class RatingResponse(CamelModel):
	rating_average: float
	rating_count: int

	@classmethod
	def from_summary(cls, summary: RatingSummary) -> "RatingResponse":
		return cls(rating_average=summary.rating_average, rating_count=summary.rating_count)


class PastTripResponse(CamelModel):
	user_id: str
	other_user_id: str
	start_location: str
	end_location: str
	trip_date: datetime

	@classmethod
	def from_record(cls, record: TripHistoryRecord) -> "PastTripResponse":
		return cls.model_validate(record.model_dump())
