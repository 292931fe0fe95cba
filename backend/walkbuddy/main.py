"""FastAPI application entrypoint."""

from __future__ import annotations

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from walkbuddy.api import matches, ops, trips, users
from walkbuddy.api.errors import install_error_handlers
from walkbuddy.domain.matching import finder
from walkbuddy.domain.matching.repo import (
	PostgresSafeLocationCatalog,
	PostgresTripHistory,
	PostgresTripStore,
	PostgresUserDirectory,
	ensure_schema,
)
from walkbuddy.domain.matching.service import MatchService
from walkbuddy.infra import postgres
from walkbuddy.infra.routing import OpenRouteServiceProvider
from walkbuddy.obs import init as obs_init
from walkbuddy.settings import settings


def build_match_service(http: httpx.AsyncClient) -> MatchService:
	return MatchService(
		trips=PostgresTripStore(),
		users=PostgresUserDirectory(),
		history=PostgresTripHistory(),
		safe_locations=PostgresSafeLocationCatalog(),
		router=OpenRouteServiceProvider.from_settings(http),
		store_timeout=settings.store_timeout_seconds,
		defaults=finder.SearchOptions(
			max_results=settings.match_max_results,
			min_score=settings.match_min_score,
			time_window_minutes=settings.match_time_window_minutes,
		),
	)


@asynccontextmanager
async def lifespan(app: FastAPI):
	await postgres.init_pool()
	await ensure_schema()
	http = httpx.AsyncClient(timeout=settings.routing_timeout_seconds)
	app.state.match_service = build_match_service(http)
	try:
		yield
	finally:
		await http.aclose()
		await postgres.close_pool()


app = FastAPI(title="WalkBuddy Matching API", lifespan=lifespan)
install_error_handlers(app)

allow_origins = list(getattr(settings, "cors_allow_origins", []))
if not allow_origins:
	allow_origins = ["http://localhost:3000"] if settings.is_dev() else []

# Starlette disallows wildcard '*' with allow_credentials=True.
if "*" in allow_origins:
	allow_origins = ["http://localhost:3000", "http://127.0.0.1:3000"] if settings.is_dev() else []

app.add_middleware(
	CORSMiddleware,
	allow_origins=allow_origins,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)
obs_init(app)

app.include_router(trips.router)
app.include_router(matches.router)
app.include_router(users.router)
app.include_router(ops.router)


def run() -> None:
	import uvicorn

	uvicorn.run("walkbuddy.main:app", host="0.0.0.0", port=8000)
