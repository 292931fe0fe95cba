from walkbuddy.domain.matching.geo import distance_meters, midpoint
from walkbuddy.domain.matching.meeting_point import choose_meeting_point
from walkbuddy.domain.matching.models import MatchMode, SafeLocation
from tests.fakes import make_trip


def test_picks_location_at_the_midpoint(catalog_locations):
	trip = make_trip("t1", "alice", origin=(39.9500, -75.1900), destination=(39.9530, -75.1950))
	chosen = choose_meeting_point(trip, catalog_locations)
	assert chosen is not None
	assert chosen.id == "houston-hall"


def test_chosen_location_is_nearest_to_midpoint(catalog_locations):
	trip = make_trip("t1", "alice", origin=(39.9522, -75.1932), destination=(39.955615, -75.181923))
	chosen = choose_meeting_point(trip, catalog_locations)
	centre = midpoint(trip.origin.point, trip.destination.point)
	best = distance_meters(centre, chosen.point)
	assert all(best <= distance_meters(centre, location.point) for location in catalog_locations)


def test_is_deterministic(catalog_locations):
	trip = make_trip("t1", "alice", origin=(39.9489, -75.1710), destination=(39.955615, -75.181923))
	picks = {choose_meeting_point(trip, catalog_locations).id for _ in range(5)}
	assert len(picks) == 1


def test_ties_go_to_first_catalog_entry():
	trip = make_trip("t1", "alice", origin=(0.0, -0.5), destination=(0.0, 0.5))
	north = SafeLocation(id="north", name="North Gate", lat=0.01, lng=0.0)
	south = SafeLocation(id="south", name="South Gate", lat=-0.01, lng=0.0)
	assert choose_meeting_point(trip, [north, south]).id == "north"
	assert choose_meeting_point(trip, [south, north]).id == "south"


def test_empty_catalog_returns_none():
	trip = make_trip("t1", "alice", origin=(39.95, -75.19), destination=(39.953, -75.195))
	assert choose_meeting_point(trip, []) is None


def test_missing_coordinates_return_none(catalog_locations):
	virtual = make_trip("t1", "alice", destination=(39.953, -75.195), match_mode=MatchMode.VIRTUAL_ONLY)
	assert choose_meeting_point(virtual, catalog_locations) is None
