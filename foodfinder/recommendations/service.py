from __future__ import annotations

import asyncio
import dataclasses
import logging
import time
from collections.abc import Sequence

from ..analytics.store import EventStore
from ..cache.store import CacheRegistry, make_key
from ..geo import haversine_km
from ..intent.extraction import extract_intent_async, update_conversation_state
from ..intent.models import ConversationState, FallbackIntent, IntentResult
from ..llm.config import DEFAULT_LLM_CONFIG, LLMConfig
from ..llm.describer import DESCRIPTION_FIELDS, describe_candidates, fallback_description
from ..personalization.profile import PersonalizationProfile, ProfileStore
from ..providers.config import DEFAULT_PROVIDER_CONFIG
from .aggregator import AggregationResult, SourceAggregator
from .config import DEFAULT_SEARCH_CONFIG, SearchConfig
from .merge import merge_candidates
from .models import (
    Candidate,
    Coordinates,
    RankedCandidate,
    RecommendationMetadata,
    RecommendationRequest,
    RecommendationResponse,
    SearchIntent,
)
from .scoring import ScoringEngine

logger = logging.getLogger(__name__)

QUERY_SUGGESTIONS = [
    "Try: 'good food near me'",
    "Try: 'korean bbq'",
    "Try: 'cheap lunch'",
]
BROADEN_SEARCH = "broaden_search"


class EmptyQueryError(ValueError):
    def __init__(self) -> None:
        super().__init__("Query is required")
        self.suggestions = list(QUERY_SUGGESTIONS)


def seed_for(random_seed: int | None, refresh_count: int) -> str:
    return f"{random_seed if random_seed is not None else ''}:{refresh_count}"


def filter_candidates(
    candidates: Sequence[Candidate],
    intent: SearchIntent,
    origin: Coordinates | None,
    *,
    distance_tolerance: float,
    rating_floor: float = 0.0,
    avoid_ids: Sequence[str] = (),
) -> list[Candidate]:
    """Drop avoided candidates, those below the quality bar and those past the tolerance band."""
    avoid = set(avoid_ids)
    max_distance = intent.radius_km * distance_tolerance
    kept: list[Candidate] = []
    for c in candidates:
        if c.identity_key in avoid or avoid.intersection(c.source_ids.values()):
            continue
        if rating_floor > 0 and (c.rating is None or c.rating < rating_floor):
            continue
        if intent.min_rating and (c.rating is None or c.rating < intent.min_rating):
            continue
        if intent.min_reviews and c.review_count < intent.min_reviews:
            continue
        if origin is not None and c.coordinates is not None:
            distance = haversine_km(
                origin.latitude, origin.longitude, c.coordinates.latitude, c.coordinates.longitude
            )
            if distance > max_distance:
                continue
        kept.append(c)
    return kept


class RecommendationService:
    """Aggregate → merge → filter → rank → describe."""

    def __init__(
        self,
        aggregator: SourceAggregator,
        scorer: ScoringEngine,
        caches: CacheRegistry,
        profiles: ProfileStore,
        events: EventStore,
        search_config: SearchConfig = DEFAULT_SEARCH_CONFIG,
        llm_config: LLMConfig = DEFAULT_LLM_CONFIG,
        authority_order: Sequence[str] = DEFAULT_PROVIDER_CONFIG.authority_order,
    ) -> None:
        self.aggregator = aggregator
        self.scorer = scorer
        self.caches = caches
        self.profiles = profiles
        self.events = events
        self.search_config = search_config
        self.llm_config = llm_config
        self.authority_order = tuple(authority_order)

    # ── Intent ──────────────────────────────────────────────────────────

    async def resolve_intent(
        self, request: RecommendationRequest, user_id: str | None
    ) -> IntentResult:
        conversation: ConversationState | None = (
            self.caches.conversations.get(user_id) if user_id else None
        )
        result = await extract_intent_async(
            request.query,
            request.user_location,
            conversation,
            self.llm_config,
            self.search_config.default_location,
        )
        return dataclasses.replace(result, intent=self.apply_modifiers(result.intent, request))

    def apply_modifiers(self, intent: SearchIntent, request: RecommendationRequest) -> SearchIntent:
        update: dict = {}
        price = self.search_config.price_modes.get((request.price_mode or "").lower())
        if price:
            update["price_range"] = price
        mode = self.search_config.modes.get((request.search_type or "").lower())
        if mode:
            update["radius_km"] = mode.radius_km
            if mode.min_rating is not None:
                update["min_rating"] = max(intent.min_rating or 0.0, mode.min_rating)
        return intent.model_copy(update=update) if update else intent

    def tolerance_for(self, search_type: str | None) -> float:
        mode = self.search_config.modes.get((search_type or "").lower())
        return mode.distance_tolerance if mode else self.search_config.distance_tolerance

    # ── Candidate search ────────────────────────────────────────────────

    async def search(
        self, intent: SearchIntent, origin: Coordinates | None
    ) -> tuple[AggregationResult, list[Candidate]]:
        """Aggregate and merge, broadening the query while nothing comes back."""
        attempts = [intent]
        if intent.cuisine_type and intent.cuisine_type not in ("any", intent.search_term):
            attempts.append(intent.model_copy(update={"search_term": intent.cuisine_type}))
        if intent.domain and intent.domain not in ("food", intent.search_term):
            attempts.append(intent.model_copy(update={"search_term": intent.domain}))

        aggregation = AggregationResult()
        for attempt in attempts:
            aggregation = await self.aggregator.aggregate(attempt, origin)
            if aggregation.total:
                break
            logger.info("No candidates for %r, broadening", attempt.search_term)

        merged = merge_candidates(aggregation.results, origin, self.authority_order)
        return aggregation, merged

    async def build_pool(
        self,
        intent: SearchIntent,
        origin: Coordinates | None,
        seed: str,
        limit: int,
        rating_floor: float = 0.0,
    ) -> list[RankedCandidate]:
        _, merged = await self.search(intent, origin)
        filtered = filter_candidates(
            merged,
            intent,
            origin,
            distance_tolerance=self.search_config.distance_tolerance,
            rating_floor=rating_floor,
        )
        return self.scorer.rank(filtered, intent, seed, origin)[:limit]

    # ── Descriptions ────────────────────────────────────────────────────

    async def describe(self, top: list[RankedCandidate], intent: SearchIntent) -> list[RankedCandidate]:
        store = self.caches.descriptions
        keys = {c.identity_key: make_key([c.identity_key, intent.search_term]) for c in top}
        cached = {cid: store.get(key) for cid, key in keys.items()}
        missing = [c for c in top if cached[c.identity_key] is None]

        fresh: dict[str, dict[str, str]] = {}
        if missing:
            try:
                fresh = await asyncio.wait_for(
                    asyncio.to_thread(describe_candidates, intent, missing, self.llm_config),
                    timeout=self.llm_config.timeout + 1.0,
                )
            except asyncio.TimeoutError:
                logger.warning("Description generation timed out; using fallbacks")
            for cid, fields in fresh.items():
                store.set(keys[cid], fields)

        described = []
        for c in top:
            fields = cached[c.identity_key] or fresh.get(c.identity_key) or fallback_description(c, intent)
            described.append(c.model_copy(update={f: fields.get(f) for f in DESCRIPTION_FIELDS}))
        return described

    # ── Single-user recommendations ─────────────────────────────────────

    async def recommend(self, request: RecommendationRequest) -> RecommendationResponse:
        if not request.query or not request.query.strip():
            raise EmptyQueryError()

        start_time = time.time()
        coords = request.user_coordinates
        user_id = coords.user_id if coords else None
        origin = Coordinates(latitude=coords.latitude, longitude=coords.longitude) if coords else None

        result = await self.resolve_intent(request, user_id)
        intent = result.intent
        aggregation, merged = await self.search(intent, origin)
        filtered = filter_candidates(
            merged,
            intent,
            origin,
            distance_tolerance=self.tolerance_for(request.search_type),
            rating_floor=self.search_config.rating_floor,
            avoid_ids=request.avoid_place_ids,
        )

        profile: PersonalizationProfile | None = self.profiles.get(user_id)
        seed = seed_for(request.random_seed, request.refresh_count)
        ranked = self.scorer.rank(filtered, intent, seed, origin, profile)
        top = await self.describe(ranked[: self.search_config.top_k], intent)

        metadata = RecommendationMetadata(
            total_found=len(filtered),
            sources_used=aggregation.sources_used,
            source_counts=aggregation.source_counts,
            confidence=result.confidence,
            intent_source="fallback" if isinstance(result, FallbackIntent) else "parsed",
            search_location=intent.location,
        )
        message = None
        if not top:
            metadata.suggestions = [BROADEN_SEARCH]
            message = "No places matched that search. Try a wider area or fewer filters."

        if user_id:
            state = self.caches.conversations.get(user_id) or ConversationState()
            reply = message or f"Found {len(top)} places for {intent.search_term}"
            self.caches.conversations.set(
                user_id,
                update_conversation_state(
                    state, request.query, reply, intent, [c.identity_key for c in top]
                ),
            )

        elapsed_ms = round((time.time() - start_time) * 1000, 1)
        self.events.record("search", {
            "query": request.query,
            "search_term": intent.search_term,
            "location": intent.location,
            "search_type": request.search_type,
            "price_range": intent.price_range,
            "intent_source": metadata.intent_source,
            "sources_used": aggregation.sources_used,
            "source_errors": sorted(aggregation.errors),
            "total_found": metadata.total_found,
            "results_returned": len(top),
            "response_time_ms": elapsed_ms,
        })

        return RecommendationResponse(
            recommendations=top, intent=intent, metadata=metadata, message=message
        )
