"""Domain models for trips, users and the places they walk between."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class MatchMode(str, enum.Enum):
	IN_PERSON = "in_person"
	VIRTUAL_ONLY = "virtual_only"


class TripStatus(str, enum.Enum):
	SEARCHING = "searching"
	MATCHED = "matched"
	COMPLETED = "completed"


def parse_timestamp(value: Any) -> Optional[datetime]:
	"""Best-effort conversion of stored start times to aware datetimes.

	Returns ``None`` for anything that cannot be read as an instant; naive
	values are taken to be UTC.
	"""
	if value is None:
		return None
	if isinstance(value, datetime):
		parsed = value
	elif isinstance(value, str):
		text = value.strip()
		if not text:
			return None
		if text.endswith("Z"):
			text = text[:-1] + "+00:00"
		try:
			parsed = datetime.fromisoformat(text)
		except ValueError:
			return None
	else:
		return None
	if parsed.tzinfo is None:
		parsed = parsed.replace(tzinfo=timezone.utc)
	return parsed


@dataclass(frozen=True, slots=True)
class GeoPoint:
	lat: float
	lng: float


class Place(BaseModel):
	"""Free-text label plus optional coordinates.

	Coordinates are either both present or treated as absent; use ``point``
	rather than reading ``lat``/``lng`` directly.
	"""

	model_config = ConfigDict(from_attributes=True, frozen=True)

	text: str = ""
	lat: Optional[float] = Field(default=None, ge=-90.0, le=90.0)
	lng: Optional[float] = Field(default=None, ge=-180.0, le=180.0)

	@field_validator("text", mode="before")
	@classmethod
	def _coerce_text(cls, value: Any) -> str:
		return "" if value is None else str(value)

	@property
	def point(self) -> Optional[GeoPoint]:
		if self.lat is None or self.lng is None:
			return None
		return GeoPoint(lat=self.lat, lng=self.lng)


class Trip(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: str
	user_id: str
	origin: Place = Field(default_factory=Place)
	destination: Place = Field(default_factory=Place)
	match_mode: Optional[MatchMode] = None
	planned_start_time: Optional[datetime] = None
	status: TripStatus = TripStatus.SEARCHING
	active_match_user_id: Optional[str] = None
	excluded_user_ids: list[str] = Field(default_factory=list)
	created_at: Optional[datetime] = None
	completed_at: Optional[datetime] = None

	@field_validator("planned_start_time", mode="before")
	@classmethod
	def _lenient_start(cls, value: Any) -> Optional[datetime]:
		return parse_timestamp(value)

	@field_validator("excluded_user_ids", mode="before")
	@classmethod
	def _dedupe_exclusions(cls, value: Any) -> list[str]:
		if not value:
			return []
		return list(dict.fromkeys(str(item) for item in value))

	@model_validator(mode="after")
	def _check_pairing(self) -> "Trip":
		if self.status is TripStatus.MATCHED and not self.active_match_user_id:
			raise ValueError("matched trips require active_match_user_id")
		if self.status is TripStatus.SEARCHING and self.active_match_user_id:
			raise ValueError("searching trips cannot hold an active match")
		return self

	def is_excluded(self, user_id: str) -> bool:
		return user_id in self.excluded_user_ids


class User(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: str
	name: Optional[str] = None
	rating_average: Optional[float] = None
	rating_count: int = 0
	profile: dict[str, Any] = Field(default_factory=dict)


class RatingSummary(BaseModel):
	rating_average: float
	rating_count: int


class SafeLocation(BaseModel):
	model_config = ConfigDict(from_attributes=True, frozen=True)

	id: str
	name: str
	lat: float = Field(ge=-90.0, le=90.0)
	lng: float = Field(ge=-180.0, le=180.0)
	address: Optional[str] = None

	@property
	def point(self) -> GeoPoint:
		return GeoPoint(lat=self.lat, lng=self.lng)


class TripHistoryRecord(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	user_id: str
	other_user_id: str
	start_location: str
	end_location: str
	trip_date: datetime
	id: Optional[int] = None
	created_at: Optional[datetime] = None


@dataclass(slots=True)
class MatchCandidate:
	trip: Trip
	score: float


__all__ = [
	"GeoPoint",
	"MatchCandidate",
	"MatchMode",
	"Place",
	"RatingSummary",
	"SafeLocation",
	"Trip",
	"TripHistoryRecord",
	"TripStatus",
	"User",
	"parse_timestamp",
]
