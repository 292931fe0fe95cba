"""User directory routes: profile summary, ratings and past trips."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from walkbuddy.api.deps import get_match_service
from walkbuddy.api.errors import to_http_error
from walkbuddy.domain.matching import schemas
from walkbuddy.domain.matching.exceptions import MatchingError
from walkbuddy.domain.matching.service import MatchService
from walkbuddy.infra.auth import AuthenticatedUser, get_current_user
from walkbuddy.infra import rate_limit
from walkbuddy.infra.rate_limit import RateLimitExceeded

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/{user_id}", response_model=schemas.UserResponse)
async def get_user_endpoint(
	user_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: MatchService = Depends(get_match_service),
) -> schemas.UserResponse:
	try:
		user = await service.get_user(user_id)
	except MatchingError as exc:
		raise to_http_error(exc) from exc
	return schemas.UserResponse.from_user(user)


@router.post("/{user_id}/rate", response_model=schemas.RatingResponse)
async def rate_user_endpoint(
	user_id: str,
	payload: schemas.RateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: MatchService = Depends(get_match_service),
) -> schemas.RatingResponse:
	if user_id == auth_user.id:
		raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="cannot_rate_self")
	try:
		await rate_limit.enforce("user_rate", auth_user.id)
		summary = await service.rate_user(user_id, payload.rating)
	except (MatchingError, RateLimitExceeded) as exc:
		raise to_http_error(exc) from exc
	return schemas.RatingResponse.from_summary(summary)


@router.get("/{user_id}/trips", response_model=List[schemas.PastTripResponse])
async def past_trips_endpoint(
	user_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: MatchService = Depends(get_match_service),
) -> List[schemas.PastTripResponse]:
	if user_id != auth_user.id:
		raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="forbidden")
	try:
		records = await service.past_trips(user_id)
	except MatchingError as exc:
		raise to_http_error(exc) from exc
	return [schemas.PastTripResponse.from_record(record) for record in records]
