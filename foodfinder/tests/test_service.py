import asyncio
from unittest.mock import patch

from foodfinder.analytics.store import EventStore
from foodfinder.cache.store import CacheRegistry
from foodfinder.llm.config import LLMConfig
from foodfinder.personalization.profile import ProfileStore, VenueSnapshot
from foodfinder.recommendations.aggregator import SourceAggregator
from foodfinder.recommendations.models import (
    Coordinates,
    RecommendationRequest,
    SearchIntent,
    UserCoordinates,
)
from foodfinder.recommendations.scoring import ScoringEngine
from foodfinder.recommendations.service import (
    EmptyQueryError,
    RecommendationService,
    filter_candidates,
    seed_for,
)
from foodfinder.tests.fakes import FakeProvider, make_candidate

ORIGIN = Coordinates(latitude=1.300, longitude=103.836)


def _service(providers, llm_config=None):
    caches = CacheRegistry()
    return RecommendationService(
        SourceAggregator(providers),
        ScoringEngine(),
        caches,
        ProfileStore(caches.profiles),
        EventStore(),
        llm_config=llm_config or LLMConfig(api_key="", enabled=False),
    )


def test_seed_combines_random_seed_and_refresh():
    assert seed_for(7, 0) == "7:0"
    assert seed_for(7, 1) != seed_for(7, 0)
    assert seed_for(None, 2) == ":2"


def test_filter_drops_candidates_past_tolerance_band():
    intent = SearchIntent(radius_km=1.0)
    near = make_candidate("Near", latitude=1.305, longitude=103.836)      # ~0.56 km
    edge = make_candidate("Edge", latitude=1.312, longitude=103.836)      # ~1.33 km
    far = make_candidate("Far", latitude=1.320, longitude=103.836)        # ~2.2 km
    unknown = make_candidate("Unknown")

    kept = filter_candidates([near, edge, far, unknown], intent, ORIGIN, distance_tolerance=1.5)
    assert [c.name for c in kept] == ["Near", "Edge", "Unknown"]


def test_filter_applies_rating_floor_and_review_minimum():
    intent = SearchIntent(min_reviews=100)
    strong = make_candidate("Strong", rating=4.6, review_count=500)
    thin = make_candidate("Thin", rating=4.9, review_count=20)
    weak = make_candidate("Weak", rating=4.0, review_count=900)
    unrated = make_candidate("Unrated", review_count=900)

    kept = filter_candidates(
        [strong, thin, weak, unrated], intent, None, distance_tolerance=1.5, rating_floor=4.4
    )
    assert [c.name for c in kept] == ["Strong"]


def test_search_broadens_with_cuisine_when_empty():
    class CuisineOnly(FakeProvider):
        async def search(self, query, location, radius_km):
            self.queries.append(query)
            return list(self.results) if query.startswith("thai") else []

    provider = CuisineOnly("google", [make_candidate("Thai Express", rating=4.5)])
    service = _service([provider])
    intent = SearchIntent(search_term="green curry", cuisine_type="thai")

    aggregation, merged = asyncio.run(service.search(intent, None))

    assert provider.queries == ["green curry thai", "thai"]
    assert [c.name for c in merged] == ["Thai Express"]
    assert aggregation.sources_used == ["google"]


def test_build_pool_uses_session_floor_and_limit():
    places = [make_candidate(f"Stall {i}", rating=3.0 + i * 0.2, review_count=10) for i in range(8)]
    service = _service([FakeProvider("google", places)])

    pool = asyncio.run(service.build_pool(SearchIntent(), None, "ROOM01:0", limit=5))

    assert len(pool) == 5
    assert any(c.rating < 4.4 for c in pool)
    again = asyncio.run(service.build_pool(SearchIntent(), None, "ROOM01:0", limit=5))
    assert [c.identity_key for c in pool] == [c.identity_key for c in again]


def test_recommend_rejects_empty_query():
    service = _service([])
    try:
        asyncio.run(service.recommend(RecommendationRequest(query="  ")))
    except EmptyQueryError as exc:
        assert exc.suggestions
    else:
        raise AssertionError("empty query should be rejected")


def test_recommend_stores_conversation_for_user():
    places = [make_candidate("Din Tai Fung", rating=4.6, review_count=100)]
    service = _service([FakeProvider("google", places)])
    request = RecommendationRequest(
        query="halal dumplings",
        user_coordinates=UserCoordinates(latitude=1.3, longitude=103.8, user_id="u1"),
    )

    asyncio.run(service.recommend(request))

    state = service.caches.conversations.get("u1")
    assert state is not None
    assert state.turns[0].content == "halal dumplings"
    assert state.accumulated_intent["dietary_restrictions"] == ["halal"]


def test_recommend_applies_profile():
    places = [
        make_candidate("Alpha Grill", rating=4.5, review_count=100),
        make_candidate("Beta Grill", rating=4.5, review_count=100),
    ]
    service = _service([FakeProvider("google", places)])
    service.profiles.record_interaction("u1", VenueSnapshot(name="Beta Grill"), "favorite")
    service.profiles.record_interaction("u1", VenueSnapshot(name="Alpha Grill"), "dislike")
    request = RecommendationRequest(
        query="grill",
        user_coordinates=UserCoordinates(latitude=1.3, longitude=103.8, user_id="u1"),
    )

    response = asyncio.run(service.recommend(request))

    assert response.recommendations[0].name == "Beta Grill"
    assert "One of your favourites" in response.recommendations[0].why_factors


@patch("foodfinder.recommendations.service.describe_candidates")
def test_descriptions_are_cached(mock_describe):
    mock_describe.return_value = {
        "din tai fung": {"reason": "Dumplings.", "unique_selling_point": "Pleats."},
    }
    places = [make_candidate("Din Tai Fung", rating=4.6, review_count=100)]
    service = _service([FakeProvider("google", places)], LLMConfig(api_key="k", enabled=True))
    intent = SearchIntent(search_term="dumplings")
    ranked = service.scorer.rank(places, intent, "s")

    first = asyncio.run(service.describe(ranked, intent))
    second = asyncio.run(service.describe(ranked, intent))

    assert mock_describe.call_count == 1
    assert first[0].reason == second[0].reason == "Dumplings."
    assert first[0].dietary_match is None
