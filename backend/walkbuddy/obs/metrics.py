"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram, Summary


REQUEST_COUNTER = Counter(
	"walkbuddy_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"walkbuddy_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

MATCH_SEARCHES = Counter(
	"walkbuddy_match_searches_total",
	"Candidate searches executed",
	["outcome"],
)

MATCH_CANDIDATES = Histogram(
	"walkbuddy_match_candidates_returned",
	"Candidates returned per search",
	buckets=(0, 1, 2, 3, 5, 10, 20),
)

MATCH_TRANSITIONS = Counter(
	"walkbuddy_match_transitions_total",
	"Trip state machine transitions applied",
	["action"],
)

MATCH_RACES = Counter(
	"walkbuddy_match_acceptance_races_total",
	"Acceptances refused because the candidate trip was no longer searching",
)

STORE_FAILURES = Counter(
	"walkbuddy_store_failures_total",
	"Collaborator store calls that failed or timed out",
	["operation"],
)

ROUTE_OUTCOMES = Counter(
	"walkbuddy_route_outcomes_total",
	"Route segmentation outcomes",
	["outcome"],
)

RATINGS_SUBMITTED = Counter(
	"walkbuddy_ratings_submitted_total",
	"Ratings submitted for walking buddies",
)

REDIS_UP = Gauge("walkbuddy_redis_up", "Redis availability (1=up,0=down)")
REDIS_LATENCY = Summary("walkbuddy_redis_latency_seconds", "Redis ping latency (seconds)")

POSTGRES_UP = Gauge("walkbuddy_postgres_up", "Postgres availability (1=up,0=down)")
POSTGRES_LATENCY = Summary("walkbuddy_postgres_latency_seconds", "Postgres ping latency (seconds)")


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def observe_search(returned: int) -> None:
	MATCH_SEARCHES.labels(outcome="found" if returned else "empty").inc()
	MATCH_CANDIDATES.observe(returned)


def inc_transition(action: str) -> None:
	MATCH_TRANSITIONS.labels(action=action).inc()


def inc_acceptance_race() -> None:
	MATCH_RACES.inc()


def inc_store_failure(operation: str) -> None:
	STORE_FAILURES.labels(operation=operation).inc()


def inc_route_outcome(outcome: str) -> None:
	ROUTE_OUTCOMES.labels(outcome=outcome).inc()


def inc_rating_submitted() -> None:
	RATINGS_SUBMITTED.inc()


def mark_redis(ok: bool, *, latency_seconds: float | None = None) -> None:
	REDIS_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		REDIS_LATENCY.observe(latency_seconds)


def mark_postgres(ok: bool, *, latency_seconds: float | None = None) -> None:
	POSTGRES_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		POSTGRES_LATENCY.observe(latency_seconds)
