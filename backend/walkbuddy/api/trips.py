"""Trip creation and lookup routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from walkbuddy.api.deps import get_match_service
from walkbuddy.api.errors import to_http_error
from walkbuddy.domain.matching import schemas
from walkbuddy.domain.matching.exceptions import MatchingError
from walkbuddy.domain.matching.service import MatchService
from walkbuddy.infra.auth import AuthenticatedUser, get_current_user
from walkbuddy.infra import rate_limit
from walkbuddy.infra.rate_limit import RateLimitExceeded

router = APIRouter(prefix="/trips", tags=["trips"])


@router.post("", response_model=schemas.TripResponse, status_code=201)
async def create_trip_endpoint(
	payload: schemas.TripCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: MatchService = Depends(get_match_service),
) -> schemas.TripResponse:
	try:
		await rate_limit.enforce("trip_create", auth_user.id)
		trip = await service.create_trip(
			auth_user.id,
			origin=payload.origin.model_dump(),
			destination=payload.destination.model_dump(),
			match_mode=payload.match_mode,
			planned_start_time=payload.planned_start_time,
		)
	except (MatchingError, RateLimitExceeded) as exc:
		raise to_http_error(exc) from exc
	return schemas.TripResponse.from_trip(trip)


@router.get("/{trip_id}", response_model=schemas.TripResponse)
async def get_trip_endpoint(
	trip_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: MatchService = Depends(get_match_service),
) -> schemas.TripResponse:
	try:
		trip = await service.get_trip(trip_id)
	except MatchingError as exc:
		raise to_http_error(exc) from exc
	return schemas.TripResponse.from_trip(trip)
