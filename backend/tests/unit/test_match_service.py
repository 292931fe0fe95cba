from datetime import datetime, timezone

import pytest

from walkbuddy.domain.matching.exceptions import (
	CandidateNoLongerAvailable,
	InvalidRating,
	InvalidTransition,
	NotTripOwner,
	StoreUnavailable,
	TripNotFound,
	UserNotFound,
)
from walkbuddy.domain.matching.models import MatchMode, TripStatus, User
from walkbuddy.domain.matching.segmenter import SegmentationStatus
from tests.fakes import StubRoutingProvider, build_service, make_trip

ORIGIN = (39.9500, -75.1900)
DEST = (39.9530, -75.1950)
START = datetime(2026, 3, 14, 18, 0, tzinfo=timezone.utc)


def _trip(trip_id, user_id, **fields):
	fields.setdefault("origin", ORIGIN)
	fields.setdefault("destination", DEST)
	fields.setdefault("origin_text", f"{user_id} dorm")
	fields.setdefault("destination_text", "Houston Hall")
	fields.setdefault("match_mode", MatchMode.IN_PERSON)
	fields.setdefault("planned_start_time", START)
	return make_trip(trip_id, user_id, **fields)


def _users():
	return [User(id=name, name=name.title()) for name in ("alice", "bob", "carol")]


@pytest.mark.asyncio
async def test_search_returns_ranked_candidates():
	service, *_ = build_service(trips=[_trip("a1", "alice"), _trip("b1", "bob"), _trip("c1", "carol")])
	candidates = await service.search("a1", actor_id="alice")
	assert [c.trip.id for c in candidates] == ["b1", "c1"]
	assert all(c.score == 1.0 for c in candidates)


@pytest.mark.asyncio
async def test_search_unknown_trip_raises():
	service, *_ = build_service()
	with pytest.raises(TripNotFound):
		await service.search("missing")


@pytest.mark.asyncio
async def test_search_by_non_owner_is_rejected():
	service, *_ = build_service(trips=[_trip("a1", "alice")])
	with pytest.raises(NotTripOwner):
		await service.search("a1", actor_id="bob")


@pytest.mark.asyncio
async def test_accept_matches_trip_and_records_history_for_both():
	service, store, _, history, _ = build_service(trips=[_trip("a1", "alice"), _trip("b1", "bob")], users=_users())
	trip = await service.accept("a1", "bob", actor_id="alice")
	assert trip.status is TripStatus.MATCHED
	assert trip.active_match_user_id == "bob"
	assert store.peek("b1").status is TripStatus.SEARCHING
	assert [(r.user_id, r.other_user_id) for r in history.records] == [("alice", "bob"), ("bob", "alice")]
	assert history.records[1].start_location == "bob dorm"
	assert history.records[0].trip_date == START


@pytest.mark.asyncio
async def test_failed_history_write_leaves_trip_searching_and_retry_succeeds():
	service, store, _, history, _ = build_service(trips=[_trip("a1", "alice"), _trip("b1", "bob")], users=_users())
	history.fail = True
	with pytest.raises(StoreUnavailable):
		await service.accept("a1", "bob", actor_id="alice")
	assert store.peek("a1").status is TripStatus.SEARCHING
	assert store.peek("a1").active_match_user_id is None
	assert history.records == []

	history.fail = False
	trip = await service.accept("a1", "bob", actor_id="alice")
	assert trip.status is TripStatus.MATCHED
	assert [(r.user_id, r.other_user_id) for r in history.records] == [("alice", "bob"), ("bob", "alice")]


@pytest.mark.asyncio
async def test_accept_fails_when_candidate_is_no_longer_searching():
	taken = _trip("b1", "bob", status=TripStatus.MATCHED, active_match_user_id="carol")
	service, store, _, history, _ = build_service(trips=[_trip("a1", "alice"), taken])
	with pytest.raises(CandidateNoLongerAvailable):
		await service.accept("a1", "bob", actor_id="alice")
	with pytest.raises(CandidateNoLongerAvailable):
		await service.accept("a1", "bob", actor_id="alice", candidate_trip_id="b1")
	assert store.peek("a1").status is TripStatus.SEARCHING
	assert history.records == []


@pytest.mark.asyncio
async def test_accept_with_unknown_candidate_trip():
	service, *_ = build_service(trips=[_trip("a1", "alice")])
	with pytest.raises(CandidateNoLongerAvailable):
		await service.accept("a1", "bob", actor_id="alice", candidate_trip_id="nope")


@pytest.mark.asyncio
async def test_accept_requires_owner_and_searching_state():
	service, *_ = build_service(trips=[_trip("a1", "alice"), _trip("b1", "bob"), _trip("c1", "carol")])
	with pytest.raises(NotTripOwner):
		await service.accept("a1", "bob", actor_id="carol")
	await service.accept("a1", "bob", actor_id="alice")
	with pytest.raises(InvalidTransition):
		await service.accept("a1", "carol", actor_id="alice")


@pytest.mark.asyncio
async def test_accept_cannot_pair_with_self():
	service, *_ = build_service(trips=[_trip("a1", "alice"), _trip("a2", "alice")])
	with pytest.raises(InvalidTransition) as excinfo:
		await service.accept("a1", "alice", actor_id="alice")
	assert excinfo.value.detail == "cannot_match_self"


@pytest.mark.asyncio
async def test_reject_excludes_user_and_searches_again():
	service, store, *_ = build_service(trips=[_trip("a1", "alice"), _trip("b1", "bob"), _trip("c1", "carol")])
	outcome = await service.reject("a1", "bob", actor_id="alice")
	assert outcome.trip.status is TripStatus.SEARCHING
	assert outcome.trip.excluded_user_ids == ["bob"]
	assert [c.trip.user_id for c in outcome.candidates] == ["carol"]

	again = await service.search("a1")
	assert "bob" not in {c.trip.user_id for c in again}


@pytest.mark.asyncio
async def test_reject_is_idempotent_and_trip_scoped():
	service, store, *_ = build_service(trips=[_trip("a1", "alice"), _trip("b1", "bob"), _trip("a2", "alice")])
	await service.reject("a1", "bob", actor_id="alice")
	await service.reject("a1", "bob", actor_id="alice")
	assert store.peek("a1").excluded_user_ids == ["bob"]
	# the other trip of the same owner still sees bob, and bob still sees alice
	assert [c.trip.user_id for c in await service.search("a2")] == ["bob"]
	assert {c.trip.id for c in await service.search("b1")} == {"a1", "a2"}


@pytest.mark.asyncio
async def test_reject_never_undoes_a_match():
	service, store, *_ = build_service(trips=[_trip("a1", "alice"), _trip("b1", "bob")])
	await service.accept("a1", "bob", actor_id="alice")
	with pytest.raises(InvalidTransition):
		await service.reject("a1", "bob", actor_id="alice")
	assert store.peek("a1").active_match_user_id == "bob"


@pytest.mark.asyncio
async def test_reject_surfaces_store_failure():
	service, store, *_ = build_service(trips=[_trip("a1", "alice"), _trip("b1", "bob")])
	store.fail_operations.add("update_trip_fields")
	with pytest.raises(StoreUnavailable):
		await service.reject("a1", "bob", actor_id="alice")


@pytest.mark.asyncio
async def test_complete_with_rating_updates_partner_average():
	service, store, directory, *_ = build_service(
		trips=[_trip("a1", "alice"), _trip("b1", "bob")],
		users=[User(id="bob", rating_average=4.0, rating_count=2)],
	)
	await service.accept("a1", "bob", actor_id="alice")
	trip = await service.complete("a1", actor_id="alice", rating=5)
	assert trip.status is TripStatus.COMPLETED
	assert trip.completed_at is not None
	bob = await service.get_user("bob")
	assert bob.rating_count == 3
	assert bob.rating_average == pytest.approx(13 / 3)


@pytest.mark.asyncio
async def test_completed_is_terminal():
	service, *_ = build_service(trips=[_trip("a1", "alice"), _trip("b1", "bob")], users=_users())
	await service.accept("a1", "bob", actor_id="alice")
	await service.complete("a1", actor_id="alice")
	with pytest.raises(InvalidTransition):
		await service.complete("a1", actor_id="alice")
	with pytest.raises(InvalidTransition):
		await service.accept("a1", "bob", actor_id="alice")
	with pytest.raises(InvalidTransition):
		await service.reject("a1", "bob", actor_id="alice")


@pytest.mark.asyncio
async def test_complete_requires_matched_trip():
	service, *_ = build_service(trips=[_trip("a1", "alice")])
	with pytest.raises(InvalidTransition):
		await service.complete("a1", actor_id="alice")


@pytest.mark.asyncio
@pytest.mark.parametrize("rating", [0, 6, -1])
async def test_out_of_range_rating_is_rejected_before_any_write(rating):
	service, store, *_ = build_service(trips=[_trip("a1", "alice"), _trip("b1", "bob")], users=_users())
	await service.accept("a1", "bob", actor_id="alice")
	with pytest.raises(InvalidRating):
		await service.complete("a1", actor_id="alice", rating=rating)
	assert store.peek("a1").status is TripStatus.MATCHED


@pytest.mark.asyncio
async def test_rate_unknown_user():
	service, *_ = build_service()
	with pytest.raises(UserNotFound):
		await service.rate_user("ghost", 4)


@pytest.mark.asyncio
async def test_get_user_surfaces_directory_failure():
	service, _, directory, *_ = build_service(users=_users())
	directory.fail = True
	with pytest.raises(StoreUnavailable):
		await service.get_user("alice")


@pytest.mark.asyncio
async def test_past_trips_lists_newest_first():
	service, *_ = build_service(
		trips=[_trip("a1", "alice"), _trip("b1", "bob"), _trip("a2", "alice"), _trip("c1", "carol")],
	)
	await service.accept("a1", "bob", actor_id="alice")
	await service.accept("a2", "carol", actor_id="alice")
	past = await service.past_trips("alice")
	assert [record.other_user_id for record in past] == ["carol", "bob"]


@pytest.mark.asyncio
async def test_create_trip_applies_defaults():
	service, *_ = build_service()
	trip = await service.create_trip("alice", origin={"text": "Home"}, destination={"text": "Penn Museum"})
	assert trip.status is TripStatus.SEARCHING
	assert trip.match_mode is MatchMode.IN_PERSON
	assert trip.excluded_user_ids == []
	assert trip.active_match_user_id is None
	assert trip.planned_start_time is not None


@pytest.mark.asyncio
async def test_meeting_point_for_in_person_trip(catalog_locations):
	service, *_ = build_service(trips=[_trip("a1", "alice")], locations=catalog_locations)
	location = await service.meeting_point("a1")
	assert location.id == "houston-hall"


@pytest.mark.asyncio
async def test_virtual_trip_has_no_meeting_point(catalog_locations):
	service, _, _, _, catalog = build_service(
		trips=[_trip("a1", "alice", match_mode=MatchMode.VIRTUAL_ONLY)],
		locations=catalog_locations,
	)
	assert await service.meeting_point("a1") is None
	assert catalog.calls == 0


@pytest.mark.asyncio
async def test_plan_route_routes_through_meeting_point(catalog_locations):
	router = StubRoutingProvider()
	service, *_ = build_service(trips=[_trip("a1", "alice")], locations=catalog_locations, router=router)
	result = await service.plan_route("a1")
	assert result.status is SegmentationStatus.SHARED
	assert result.meeting_point.id == "houston-hall"
	_, _, waypoints = router.requests[0]
	assert waypoints == [result.meeting_point.point]


@pytest.mark.asyncio
async def test_plan_route_without_catalog_is_solo_only():
	service, *_ = build_service(trips=[_trip("a1", "alice")], router=StubRoutingProvider())
	result = await service.plan_route("a1")
	assert result.status is SegmentationStatus.SOLO_ONLY
	assert result.together_empty


@pytest.mark.asyncio
async def test_plan_route_provider_failure_keeps_meeting_point(catalog_locations):
	router = StubRoutingProvider(error="route_timeout")
	service, *_ = build_service(trips=[_trip("a1", "alice")], locations=catalog_locations, router=router)
	result = await service.plan_route("a1")
	assert result.status is SegmentationStatus.UNAVAILABLE
	assert result.reason == "route_timeout"
	assert result.meeting_point.id == "houston-hall"


@pytest.mark.asyncio
async def test_plan_route_without_coordinates_or_router():
	service, *_ = build_service(trips=[_trip("a1", "alice", origin=None), _trip("a2", "alice")])
	assert (await service.plan_route("a1")).reason == "missing_coordinates"
	assert (await service.plan_route("a2")).reason == "routing_disabled"
