from __future__ import annotations

import asyncio
import contextlib
import logging
import os
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from .analytics.aggregator import compute_analytics
from .analytics.store import EventStore
from .cache.config import DEFAULT_CACHE_CONFIG
from .cache.store import CacheRegistry
from .dependencies import (
    close_http_client,
    get_caches,
    get_coordinator,
    get_events,
    get_profiles,
    get_service,
)
from .llm.config import DEFAULT_LLM_CONFIG
from .personalization.profile import InteractionRequest, PersonalizationProfile, ProfileStore
from .providers.config import DEFAULT_PROVIDER_CONFIG
from .recommendations.config import DEFAULT_SEARCH_CONFIG
from .recommendations.fallback import fallback_response
from .recommendations.models import RecommendationRequest, RecommendationResponse, SearchIntent
from .recommendations.service import EmptyQueryError, RecommendationService
from .sessions.coordinator import SessionCoordinator
from .sessions.errors import SessionError
from .sessions.models import (
    CreateRoomRequest,
    CreateRoomResponse,
    JoinRoomRequest,
    JoinRoomResponse,
    MatchResult,
    PoolResponse,
    RetryResponse,
    SwipeRequest,
    SwipeResponse,
)

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


async def _sweep_forever(interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        removed = get_caches().sweep()
        expired = get_coordinator().sweep_expired()
        if removed or expired:
            logger.debug("Sweep removed %d cache entries and %d rooms", removed, expired)


@asynccontextmanager
async def lifespan(app: FastAPI):
    sweeper = asyncio.create_task(_sweep_forever(DEFAULT_CACHE_CONFIG.sweep_interval))
    try:
        yield
    finally:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
        await close_http_client()


app = FastAPI(title="Food Finder API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(SessionError)
async def session_error_handler(request: Request, exc: SessionError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})


@app.exception_handler(EmptyQueryError)
async def empty_query_handler(request: Request, exc: EmptyQueryError) -> JSONResponse:
    return JSONResponse(
        status_code=400, content={"error": str(exc), "suggestions": exc.suggestions}
    )


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict:
    return {
        "status": "ok",
        "env_check": {
            "groq_key": bool(DEFAULT_LLM_CONFIG.api_key),
            "google_key": bool(DEFAULT_PROVIDER_CONFIG.google_api_key),
            "foursquare_key": bool(DEFAULT_PROVIDER_CONFIG.foursquare_api_key),
            "yelp_key": bool(DEFAULT_PROVIDER_CONFIG.yelp_api_key),
        },
    }


@app.post("/recommend", response_model=RecommendationResponse)
async def recommend(
    body: RecommendationRequest,
    service: RecommendationService = Depends(get_service),
) -> RecommendationResponse:
    return await service.recommend(body)


@app.get("/fallback")
def fallback() -> dict:
    return fallback_response()


# ── Personalization ──────────────────────────────────────────────────────


@app.post("/interactions", response_model=PersonalizationProfile)
def record_interaction(
    body: InteractionRequest,
    profiles: ProfileStore = Depends(get_profiles),
) -> PersonalizationProfile:
    return profiles.record_interaction(body.user_id, body.venue, body.action, body.intent)


@app.get("/profiles/{user_id}", response_model=PersonalizationProfile)
def get_profile(
    user_id: str,
    profiles: ProfileStore = Depends(get_profiles),
) -> PersonalizationProfile:
    profile = profiles.get(user_id)
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return profile


# ── Swipe rooms ──────────────────────────────────────────────────────────


@app.post("/rooms", response_model=CreateRoomResponse, status_code=201)
async def create_room(
    body: CreateRoomRequest,
    coordinator: SessionCoordinator = Depends(get_coordinator),
) -> CreateRoomResponse:
    filters = SearchIntent(
        **body.filters.model_dump(),
        location=body.location or DEFAULT_SEARCH_CONFIG.default_location,
    )
    session = coordinator.create(body.group_size, filters, body.coordinates)
    return CreateRoomResponse(room_code=session.room_code, pool_size=session.pool_size)


@app.post("/rooms/{room_code}/join", response_model=JoinRoomResponse)
async def join_room(
    room_code: str,
    body: JoinRoomRequest,
    coordinator: SessionCoordinator = Depends(get_coordinator),
) -> JoinRoomResponse:
    session = await coordinator.join(room_code, body.participant_id)
    return JoinRoomResponse(
        current_participants=list(session.participants), status=session.status
    )


@app.get("/rooms/{room_code}/restaurants", response_model=PoolResponse)
async def room_restaurants(
    room_code: str,
    participant_id: str = Query(..., min_length=1),
    coordinator: SessionCoordinator = Depends(get_coordinator),
) -> PoolResponse:
    restaurants, remaining = await coordinator.get_pool(room_code, participant_id)
    return PoolResponse(restaurants=restaurants, remaining=remaining)


@app.post("/rooms/{room_code}/swipes", response_model=SwipeResponse)
async def room_swipe(
    room_code: str,
    body: SwipeRequest,
    coordinator: SessionCoordinator = Depends(get_coordinator),
) -> SwipeResponse:
    success = await coordinator.record_swipe(
        room_code, body.participant_id, body.candidate_id, body.action
    )
    return SwipeResponse(success=success)


@app.get("/rooms/{room_code}/matches", response_model=MatchResult)
async def room_matches(
    room_code: str,
    coordinator: SessionCoordinator = Depends(get_coordinator),
) -> MatchResult:
    return await coordinator.check_matches(room_code)


@app.post("/rooms/{room_code}/retry", response_model=RetryResponse)
async def room_retry(
    room_code: str,
    coordinator: SessionCoordinator = Depends(get_coordinator),
) -> RetryResponse:
    session = await coordinator.retry(room_code)
    return RetryResponse(pool_size=session.pool_size, attempts=session.attempts)


# ── Operations ───────────────────────────────────────────────────────────


@app.get("/analytics")
def analytics(events: EventStore = Depends(get_events)) -> dict:
    return compute_analytics(events.all())


@app.get("/cache/stats")
def cache_stats(
    caches: CacheRegistry = Depends(get_caches),
    coordinator: SessionCoordinator = Depends(get_coordinator),
) -> dict:
    return {**caches.stats(), "rooms": {"active": len(coordinator)}}
