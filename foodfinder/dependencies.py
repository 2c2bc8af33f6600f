from __future__ import annotations

import httpx

from .analytics.store import EventStore
from .cache.store import CacheRegistry
from .personalization.profile import ProfileStore
from .providers.config import DEFAULT_PROVIDER_CONFIG
from .recommendations.aggregator import SourceAggregator, build_default_providers
from .recommendations.scoring import ScoringEngine
from .recommendations.service import RecommendationService
from .sessions.coordinator import SessionCoordinator

_caches: CacheRegistry | None = None
_events: EventStore | None = None
_profiles: ProfileStore | None = None
_http_client: httpx.AsyncClient | None = None
_service: RecommendationService | None = None
_coordinator: SessionCoordinator | None = None


def get_caches() -> CacheRegistry:
    global _caches
    if _caches is None:
        _caches = CacheRegistry()
    return _caches


def get_events() -> EventStore:
    global _events
    if _events is None:
        _events = EventStore()
    return _events


def get_profiles() -> ProfileStore:
    global _profiles
    if _profiles is None:
        _profiles = ProfileStore(get_caches().profiles)
    return _profiles


def get_http_client() -> httpx.AsyncClient:
    """Shared client for every provider adapter, created on first use."""
    global _http_client
    if _http_client is None or _http_client.is_closed:
        _http_client = httpx.AsyncClient(
            timeout=DEFAULT_PROVIDER_CONFIG.timeout,
            headers={"Accept": "application/json"},
        )
    return _http_client


def get_service() -> RecommendationService:
    global _service
    if _service is None:
        aggregator = SourceAggregator(build_default_providers(get_http_client()))
        _service = RecommendationService(
            aggregator,
            ScoringEngine(),
            get_caches(),
            get_profiles(),
            get_events(),
        )
    return _service


def get_coordinator() -> SessionCoordinator:
    global _coordinator
    if _coordinator is None:
        _coordinator = SessionCoordinator(get_service().build_pool, get_events())
    return _coordinator


async def close_http_client() -> None:
    """Close the shared client; the service is rebuilt around a fresh one on next use."""
    global _http_client, _service, _coordinator
    if _http_client is not None and not _http_client.is_closed:
        await _http_client.aclose()
    _http_client = None
    _service = None
    _coordinator = None
