"""Async repository helpers for the matching domain."""

from __future__ import annotations

import contextlib
import enum
import json
from typing import Any, Iterator, Mapping, Optional, Sequence
from uuid import uuid4

import asyncpg

from walkbuddy.domain.matching.exceptions import StoreUnavailable, TripNotFound, UserNotFound
from walkbuddy.domain.matching.models import (
	Place,
	RatingSummary,
	SafeLocation,
	Trip,
	TripHistoryRecord,
	TripStatus,
	User,
)
from walkbuddy.infra.postgres import get_pool

SCHEMA_STATEMENTS: tuple[str, ...] = (
	"""
	CREATE TABLE IF NOT EXISTS trips (
		id TEXT PRIMARY KEY,
		user_id TEXT NOT NULL,
		origin_text TEXT NOT NULL DEFAULT '',
		origin_lat DOUBLE PRECISION,
		origin_lng DOUBLE PRECISION,
		destination_text TEXT NOT NULL DEFAULT '',
		destination_lat DOUBLE PRECISION,
		destination_lng DOUBLE PRECISION,
		match_mode TEXT,
		planned_start_time TIMESTAMPTZ,
		status TEXT NOT NULL DEFAULT 'searching',
		active_match_user_id TEXT,
		excluded_user_ids TEXT[] NOT NULL DEFAULT '{}',
		created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
		updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
		completed_at TIMESTAMPTZ
	)
	""",
	"CREATE INDEX IF NOT EXISTS idx_trips_status_created ON trips (status, created_at, id)",
	"CREATE INDEX IF NOT EXISTS idx_trips_user ON trips (user_id)",
	"""
	CREATE TABLE IF NOT EXISTS users (
		id TEXT PRIMARY KEY,
		name TEXT,
		rating_average DOUBLE PRECISION,
		rating_count INTEGER NOT NULL DEFAULT 0,
		profile JSONB NOT NULL DEFAULT '{}'::jsonb,
		created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
	)
	""",
	"""
	CREATE TABLE IF NOT EXISTS trip_history (
		id BIGSERIAL PRIMARY KEY,
		user_id TEXT NOT NULL,
		other_user_id TEXT NOT NULL,
		start_location TEXT NOT NULL,
		end_location TEXT NOT NULL,
		trip_date TIMESTAMPTZ NOT NULL,
		created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
	)
	""",
	"CREATE INDEX IF NOT EXISTS idx_trip_history_user ON trip_history (user_id, trip_date DESC)",
	"""
	CREATE TABLE IF NOT EXISTS safe_locations (
		id TEXT PRIMARY KEY,
		name TEXT NOT NULL,
		lat DOUBLE PRECISION NOT NULL,
		lng DOUBLE PRECISION NOT NULL,
		address TEXT,
		position INTEGER NOT NULL DEFAULT 0
	)
	""",
)

DEFAULT_SAFE_LOCATIONS: tuple[SafeLocation, ...] = (
	SafeLocation(id="30th-street-station", name="30th Street Station", lat=39.955615, lng=-75.181923, address="2955 Market St, Philadelphia, PA"),
	SafeLocation(id="penn-museum", name="Penn Museum", lat=39.94933, lng=-75.1910, address="3260 South St, Philadelphia, PA"),
	SafeLocation(id="houston-hall", name="Houston Hall", lat=39.9515, lng=-75.1925, address="3417 Spruce St, Philadelphia, PA"),
	SafeLocation(id="rittenhouse-square", name="Rittenhouse Square", lat=39.9489, lng=-75.1710, address="210 W Rittenhouse Sq, Philadelphia, PA"),
)

_MUTABLE_TRIP_COLUMNS = frozenset(
	{"status", "active_match_user_id", "completed_at", "match_mode", "planned_start_time"}
)
_SET_TRIP_COLUMNS = frozenset({"excluded_user_ids"})


@contextlib.contextmanager
def _store_errors(operation: str) -> Iterator[None]:
	try:
		yield
	except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as exc:
		raise StoreUnavailable(operation) from exc


def _db_value(value: Any) -> Any:
	if isinstance(value, enum.Enum):
		return value.value
	return value


def _place(record: Mapping[str, Any], prefix: str) -> Place:
	return Place(
		text=record[f"{prefix}_text"] or "",
		lat=record[f"{prefix}_lat"],
		lng=record[f"{prefix}_lng"],
	)


def _trip_from_record(record: Mapping[str, Any]) -> Trip:
	return Trip(
		id=record["id"],
		user_id=record["user_id"],
		origin=_place(record, "origin"),
		destination=_place(record, "destination"),
		match_mode=record["match_mode"],
		planned_start_time=record["planned_start_time"],
		status=record["status"],
		active_match_user_id=record["active_match_user_id"],
		excluded_user_ids=list(record["excluded_user_ids"] or []),
		created_at=record["created_at"],
		completed_at=record["completed_at"],
	)


def _user_from_record(record: Mapping[str, Any]) -> User:
	profile = record["profile"]
	if isinstance(profile, str):
		profile = json.loads(profile or "{}")
	return User(
		id=record["id"],
		name=record["name"],
		rating_average=record["rating_average"],
		rating_count=record["rating_count"] or 0,
		profile=profile or {},
	)


async def ensure_schema() -> None:
	with _store_errors("ensure_schema"):
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				for statement in SCHEMA_STATEMENTS:
					await conn.execute(statement)


class PostgresTripStore:
	"""Trip persistence with targeted field updates."""

	async def create_trip(self, fields: Mapping[str, Any]) -> Trip:
		origin = Place.model_validate(fields.get("origin") or {})
		destination = Place.model_validate(fields.get("destination") or {})
		with _store_errors("create_trip"):
			pool = await get_pool()
			async with pool.acquire() as conn:
				record = await conn.fetchrow(
					"""
					INSERT INTO trips (id, user_id, origin_text, origin_lat, origin_lng,
						destination_text, destination_lat, destination_lng, match_mode,
						planned_start_time, status, active_match_user_id, excluded_user_ids)
					VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13)
					RETURNING *
					""",
					str(fields.get("id") or uuid4()),
					str(fields["user_id"]),
					origin.text,
					origin.lat,
					origin.lng,
					destination.text,
					destination.lat,
					destination.lng,
					_db_value(fields.get("match_mode")),
					fields.get("planned_start_time"),
					_db_value(fields.get("status") or TripStatus.SEARCHING),
					fields.get("active_match_user_id"),
					list(fields.get("excluded_user_ids") or []),
				)
		return _trip_from_record(record)

	async def get_trip(self, trip_id: str) -> Optional[Trip]:
		with _store_errors("get_trip"):
			pool = await get_pool()
			async with pool.acquire() as conn:
				record = await conn.fetchrow("SELECT * FROM trips WHERE id=$1", trip_id)
		return _trip_from_record(record) if record else None

	async def list_trips(
		self,
		*,
		status: Optional[TripStatus] = None,
		user_id: Optional[str] = None,
	) -> list[Trip]:
		clauses: list[str] = []
		args: list[Any] = []
		if status is not None:
			args.append(_db_value(status))
			clauses.append(f"status = ${len(args)}")
		if user_id is not None:
			args.append(user_id)
			clauses.append(f"user_id = ${len(args)}")
		where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
		with _store_errors("list_trips"):
			pool = await get_pool()
			async with pool.acquire() as conn:
				records = await conn.fetch(f"SELECT * FROM trips {where} ORDER BY created_at, id", *args)
		return [_trip_from_record(record) for record in records]

	async def update_trip_fields(
		self,
		trip_id: str,
		fields: Mapping[str, Any],
		*,
		add_to_set: Optional[Mapping[str, Sequence[str]]] = None,
		expected_status: Optional[TripStatus] = None,
	) -> Optional[Trip]:
		args: list[Any] = [trip_id]
		assignments = ["updated_at = NOW()"]
		for column, value in fields.items():
			if column not in _MUTABLE_TRIP_COLUMNS:
				raise ValueError(f"unsupported trip field: {column}")
			args.append(_db_value(value))
			assignments.append(f"{column} = ${len(args)}")
		for column, values in (add_to_set or {}).items():
			if column not in _SET_TRIP_COLUMNS:
				raise ValueError(f"unsupported set field: {column}")
			args.append([str(value) for value in values])
			# atomic set-add; existing entries keep their order
			assignments.append(
				f"{column} = {column} || ARRAY(SELECT DISTINCT v FROM unnest(${len(args)}::text[]) AS v "
				f"WHERE NOT (v = ANY({column})))"
			)
		where = "id = $1"
		if expected_status is not None:
			args.append(_db_value(expected_status))
			where += f" AND status = ${len(args)}"

		with _store_errors("update_trip_fields"):
			pool = await get_pool()
			async with pool.acquire() as conn:
				record = await conn.fetchrow(
					f"UPDATE trips SET {', '.join(assignments)} WHERE {where} RETURNING *",
					*args,
				)
				if record is None:
					exists = await conn.fetchval("SELECT 1 FROM trips WHERE id=$1", trip_id)
					if not exists:
						raise TripNotFound()
					return None
		return _trip_from_record(record)

	async def commit_match(
		self,
		trip_id: str,
		other_user_id: str,
		history: Sequence[TripHistoryRecord],
	) -> Optional[Trip]:
		with _store_errors("commit_match"):
			pool = await get_pool()
			async with pool.acquire() as conn:
				async with conn.transaction():
					record = await conn.fetchrow(
						"""
						UPDATE trips
						SET status = $2, active_match_user_id = $3, updated_at = NOW()
						WHERE id = $1 AND status = $4
						RETURNING *
						""",
						trip_id,
						TripStatus.MATCHED.value,
						other_user_id,
						TripStatus.SEARCHING.value,
					)
					if record is None:
						exists = await conn.fetchval("SELECT 1 FROM trips WHERE id=$1", trip_id)
						if not exists:
							raise TripNotFound()
						return None
					await conn.executemany(
						"""
						INSERT INTO trip_history (user_id, other_user_id, start_location, end_location, trip_date)
						VALUES ($1, $2, $3, $4, $5)
						""",
						[
							(entry.user_id, entry.other_user_id, entry.start_location, entry.end_location, entry.trip_date)
							for entry in history
						],
					)
		return _trip_from_record(record)


class PostgresUserDirectory:
	async def get_user(self, user_id: str) -> Optional[User]:
		with _store_errors("get_user"):
			pool = await get_pool()
			async with pool.acquire() as conn:
				record = await conn.fetchrow(
					"SELECT id, name, rating_average, rating_count, profile FROM users WHERE id=$1",
					user_id,
				)
		return _user_from_record(record) if record else None

	async def rate_user(self, user_id: str, rating: int) -> RatingSummary:
		with _store_errors("rate_user"):
			pool = await get_pool()
			async with pool.acquire() as conn:
				record = await conn.fetchrow(
					"""
					UPDATE users
					SET rating_average = (COALESCE(rating_average, 0) * rating_count + $2::double precision)
							/ (rating_count + 1),
						rating_count = rating_count + 1
					WHERE id = $1
					RETURNING rating_average, rating_count
					""",
					user_id,
					rating,
				)
		if record is None:
			raise UserNotFound()
		return RatingSummary(rating_average=record["rating_average"], rating_count=record["rating_count"])


class PostgresTripHistory:
	"""Read side of the past-trips log; rows are written by ``PostgresTripStore.commit_match``."""

	async def list_for_user(self, user_id: str) -> list[TripHistoryRecord]:
		with _store_errors("list_trip_history"):
			pool = await get_pool()
			async with pool.acquire() as conn:
				records = await conn.fetch(
					"""
					SELECT id, user_id, other_user_id, start_location, end_location, trip_date, created_at
					FROM trip_history
					WHERE user_id = $1
					ORDER BY trip_date DESC, id DESC
					""",
					user_id,
				)
		return [TripHistoryRecord.model_validate(dict(record)) for record in records]


class PostgresSafeLocationCatalog:
	async def list_safe_locations(self) -> list[SafeLocation]:
		with _store_errors("list_safe_locations"):
			pool = await get_pool()
			async with pool.acquire() as conn:
				records = await conn.fetch(
					"SELECT id, name, lat, lng, address FROM safe_locations ORDER BY position, id"
				)
		return [SafeLocation.model_validate(dict(record)) for record in records]

	async def upsert_many(self, locations: Sequence[SafeLocation]) -> int:
		with _store_errors("upsert_safe_locations"):
			pool = await get_pool()
			async with pool.acquire() as conn:
				async with conn.transaction():
					await conn.executemany(
						"""
						INSERT INTO safe_locations (id, name, lat, lng, address, position)
						VALUES ($1, $2, $3, $4, $5, $6)
						ON CONFLICT (id) DO UPDATE
						SET name = EXCLUDED.name, lat = EXCLUDED.lat, lng = EXCLUDED.lng,
							address = EXCLUDED.address, position = EXCLUDED.position
						""",
						[
							(location.id, location.name, location.lat, location.lng, location.address, index)
							for index, location in enumerate(locations)
						],
					)
		return len(locations)


__all__ = [
	"DEFAULT_SAFE_LOCATIONS",
	"PostgresSafeLocationCatalog",
	"PostgresTripHistory",
	"PostgresTripStore",
	"PostgresUserDirectory",
	"ensure_schema",
]
