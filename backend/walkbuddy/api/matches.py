"""Matching routes: candidate search, accept/reject/complete and route planning."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends

from walkbuddy.api.deps import get_match_service
from walkbuddy.api.errors import to_http_error
from walkbuddy.domain.matching import schemas
from walkbuddy.domain.matching.exceptions import MatchingError
from walkbuddy.domain.matching.service import MatchService
from walkbuddy.infra.auth import AuthenticatedUser, get_current_user
from walkbuddy.infra import rate_limit
from walkbuddy.infra.rate_limit import RateLimitExceeded

router = APIRouter(prefix="/matches", tags=["matches"])


@router.post("/search", response_model=List[schemas.MatchCandidateResponse])
async def search_endpoint(
	payload: schemas.MatchSearchRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: MatchService = Depends(get_match_service),
) -> List[schemas.MatchCandidateResponse]:
	try:
		await rate_limit.enforce("match_search", auth_user.id)
		candidates = await service.search(
			payload.trip_id,
			actor_id=auth_user.id,
			max_results=payload.max_results,
			min_score=payload.min_score,
			time_window_minutes=payload.time_window_minutes,
		)
	except (MatchingError, RateLimitExceeded) as exc:
		raise to_http_error(exc) from exc
	return [schemas.MatchCandidateResponse.from_candidate(candidate) for candidate in candidates]


@router.post("/{trip_id}/accept", response_model=schemas.TripResponse)
async def accept_endpoint(
	trip_id: str,
	payload: schemas.AcceptRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: MatchService = Depends(get_match_service),
) -> schemas.TripResponse:
	try:
		await rate_limit.enforce("match_mutation", auth_user.id)
		trip = await service.accept(
			trip_id,
			payload.other_user_id,
			actor_id=auth_user.id,
			candidate_trip_id=payload.candidate_trip_id,
		)
	except (MatchingError, RateLimitExceeded) as exc:
		raise to_http_error(exc) from exc
	return schemas.TripResponse.from_trip(trip)


@router.post("/{trip_id}/reject", response_model=schemas.RejectResponse)
async def reject_endpoint(
	trip_id: str,
	payload: schemas.RejectRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: MatchService = Depends(get_match_service),
) -> schemas.RejectResponse:
	try:
		await rate_limit.enforce("match_mutation", auth_user.id)
		outcome = await service.reject(trip_id, payload.other_user_id, actor_id=auth_user.id)
	except (MatchingError, RateLimitExceeded) as exc:
		raise to_http_error(exc) from exc
	base = schemas.TripResponse.from_trip(outcome.trip)
	return schemas.RejectResponse(
		**base.model_dump(),
		next_candidates=[schemas.MatchCandidateResponse.from_candidate(item) for item in outcome.candidates],
	)


@router.post("/{trip_id}/complete", response_model=schemas.TripResponse)
async def complete_endpoint(
	trip_id: str,
	payload: Optional[schemas.CompleteRequest] = None,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: MatchService = Depends(get_match_service),
) -> schemas.TripResponse:
	rating = payload.rating if payload is not None else None
	try:
		await rate_limit.enforce("match_mutation", auth_user.id)
		trip = await service.complete(trip_id, actor_id=auth_user.id, rating=rating)
	except (MatchingError, RateLimitExceeded) as exc:
		raise to_http_error(exc) from exc
	return schemas.TripResponse.from_trip(trip)


@router.post("/{trip_id}/meeting-point", response_model=Optional[schemas.SafeLocationResponse])
async def meeting_point_endpoint(
	trip_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: MatchService = Depends(get_match_service),
) -> Optional[schemas.SafeLocationResponse]:
	try:
		location = await service.meeting_point(trip_id)
	except MatchingError as exc:
		raise to_http_error(exc) from exc
	return schemas.SafeLocationResponse.from_location(location)


@router.post("/{trip_id}/route", response_model=schemas.RouteSegmentationResponse)
async def route_endpoint(
	trip_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: MatchService = Depends(get_match_service),
) -> schemas.RouteSegmentationResponse:
	try:
		segmentation = await service.plan_route(trip_id)
	except MatchingError as exc:
		raise to_http_error(exc) from exc
	return schemas.RouteSegmentationResponse.from_segmentation(segmentation)
