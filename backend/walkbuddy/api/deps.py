"""Shared FastAPI dependencies for the matching routers."""

from __future__ import annotations

from fastapi import Request

from walkbuddy.domain.matching.service import MatchService


def get_match_service(request: Request) -> MatchService:
	service = getattr(request.app.state, "match_service", None)
	if service is None:
		raise RuntimeError("match service not initialised")
	return service
