from foodfinder.cache.store import TTLStore
from foodfinder.personalization.profile import (
    MAX_HISTORY,
    ProfileStore,
    VenueSnapshot,
    personalization_score,
)
from foodfinder.recommendations.models import SearchIntent
from foodfinder.tests.fakes import make_candidate

RAMEN = VenueSnapshot(name="Ippudo", category_tags=["Ramen", "Japanese"], price_level=2)


def _store() -> ProfileStore:
    return ProfileStore(TTLStore("profiles", ttl=3600))


def test_unknown_user_has_no_profile():
    store = _store()
    assert store.get("nobody") is None
    assert store.get(None) is None


def test_like_updates_cuisine_and_price_weights():
    store = _store()
    profile = store.record_interaction("u1", RAMEN, "like")

    assert profile.weight("cuisine", "ramen") == 1.0
    assert profile.weight("cuisine", "Japanese") == 1.0
    assert profile.weight("price", "moderate") == 1.0
    assert store.get("u1").weights == profile.weights


def test_intent_context_updates_mood_and_occasion():
    store = _store()
    intent = SearchIntent(mood="cozy", special_occasions=["date_night"], dietary_restrictions=["halal"])
    profile = store.record_interaction("u1", RAMEN, "visit", intent)

    assert profile.weight("mood", "cozy") == 0.5
    assert profile.weight("occasion", "date_night") == 0.5
    assert profile.weight("dietary", "halal") == 0.5


def test_favorite_and_dislike_are_exclusive():
    store = _store()
    store.record_interaction("u1", RAMEN, "favorite")
    assert store.get("u1").favorites == ["ippudo"]

    profile = store.record_interaction("u1", RAMEN, "dislike")
    assert profile.favorites == []
    assert profile.disliked == ["ippudo"]


def test_weights_are_bounded():
    store = _store()
    for _ in range(10):
        profile = store.record_interaction("u1", RAMEN, "favorite")
    assert profile.weight("cuisine", "ramen") == 10.0


def test_history_keeps_newest_entries():
    store = _store()
    for i in range(MAX_HISTORY + 5):
        profile = store.record_interaction("u1", VenueSnapshot(name=f"Venue {i}"), "visit")

    assert len(profile.history) == MAX_HISTORY
    assert profile.history[0].venue == "Venue 5"
    assert profile.history[-1].venue == f"Venue {MAX_HISTORY + 4}"


def test_stored_profile_is_not_mutated_in_place():
    store = _store()
    first = store.record_interaction("u1", RAMEN, "like")
    store.record_interaction("u1", RAMEN, "like")
    assert first.weight("cuisine", "ramen") == 1.0
    assert store.get("u1").weight("cuisine", "ramen") == 2.0


def test_personalization_score_without_profile_is_neutral():
    assert personalization_score(None, make_candidate("Ippudo")) == (0.0, [])


def test_personalization_score_rewards_learned_tags():
    store = _store()
    for _ in range(5):
        profile = store.record_interaction("u1", RAMEN, "like")

    similar = make_candidate("Menya", category_tags=["ramen"], price_level=2)
    unrelated = make_candidate("Taco Stand", category_tags=["mexican"], price_level=4)

    score, factors = personalization_score(profile, similar)
    assert score > personalization_score(profile, unrelated)[0]
    assert "Similar to places you liked" in factors
