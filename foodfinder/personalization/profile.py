from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from threading import Lock
from typing import Literal

from pydantic import BaseModel, Field

from ..cache.store import TTLStore
from ..providers.normalize import normalize_name
from ..recommendations.models import Candidate, SearchIntent, price_category

logger = logging.getLogger(__name__)

InteractionAction = Literal["like", "dislike", "favorite", "visit"]

MAX_HISTORY = 100
_WEIGHT_LIMIT = 10.0
_ACTION_DELTAS: dict[str, float] = {
    "like": 1.0,
    "favorite": 2.0,
    "visit": 0.5,
    "dislike": -1.0,
}


class VenueSnapshot(BaseModel):
    name: str = Field(..., min_length=1)
    category_tags: list[str] = Field(default_factory=list)
    price_level: int | None = Field(default=None, ge=0, le=4)


class Interaction(BaseModel):
    venue: str
    action: InteractionAction
    timestamp: float


class PersonalizationProfile(BaseModel):
    user_id: str
    # category -> tag -> learned weight
    weights: dict[str, dict[str, float]] = Field(default_factory=dict)
    favorites: list[str] = Field(default_factory=list)
    disliked: list[str] = Field(default_factory=list)
    history: list[Interaction] = Field(default_factory=list)

    def weight(self, category: str, tag: str | None) -> float:
        if not tag:
            return 0.0
        return self.weights.get(category, {}).get(tag.lower(), 0.0)


class InteractionRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    venue: VenueSnapshot
    action: InteractionAction
    intent: SearchIntent | None = None


class ProfileStore:
    """Personalization profiles on top of a TTL store, with per-user locking."""

    def __init__(self, store: TTLStore) -> None:
        self.store = store
        self._locks: dict[str, Lock] = {}
        self._locks_guard = Lock()

    @contextmanager
    def _locked(self, user_id: str) -> Iterator[None]:
        with self._locks_guard:
            lock = self._locks.setdefault(user_id, Lock())
        with lock:
            yield

    def get(self, user_id: str | None) -> PersonalizationProfile | None:
        if not user_id:
            return None
        return self.store.get(user_id)

    def record_interaction(
        self,
        user_id: str,
        venue: VenueSnapshot,
        action: InteractionAction,
        intent: SearchIntent | None = None,
    ) -> PersonalizationProfile:
        with self._locked(user_id):
            current = self.store.get(user_id)
            profile = (
                current.model_copy(deep=True)
                if current
                else PersonalizationProfile(user_id=user_id)
            )
            _apply(profile, venue, action, intent)
            self.store.set(user_id, profile)
        logger.debug("Recorded %s for user %s on %r", action, user_id, venue.name)
        return profile


def _bump(profile: PersonalizationProfile, category: str, tag: str | None, delta: float) -> None:
    if not tag:
        return
    table = profile.weights.setdefault(category, {})
    key = tag.lower()
    table[key] = max(-_WEIGHT_LIMIT, min(_WEIGHT_LIMIT, table.get(key, 0.0) + delta))


def _apply(
    profile: PersonalizationProfile,
    venue: VenueSnapshot,
    action: InteractionAction,
    intent: SearchIntent | None,
) -> None:
    delta = _ACTION_DELTAS[action]
    for tag in venue.category_tags:
        _bump(profile, "cuisine", tag, delta)
    _bump(profile, "price", price_category(venue.price_level), delta)
    if intent is not None:
        _bump(profile, "mood", intent.mood, delta)
        for occasion in intent.special_occasions:
            _bump(profile, "occasion", occasion, delta)
        for dietary in intent.dietary_restrictions:
            _bump(profile, "dietary", dietary, delta)

    name = normalize_name(venue.name)
    if action == "favorite" and name not in profile.favorites:
        profile.favorites.append(name)
        if name in profile.disliked:
            profile.disliked.remove(name)
    elif action == "dislike" and name not in profile.disliked:
        profile.disliked.append(name)
        if name in profile.favorites:
            profile.favorites.remove(name)

    profile.history.append(Interaction(venue=venue.name, action=action, timestamp=time.time()))
    if len(profile.history) > MAX_HISTORY:
        profile.history = profile.history[-MAX_HISTORY:]


def personalization_score(
    profile: PersonalizationProfile | None,
    candidate: Candidate,
    intent: SearchIntent | None = None,
) -> tuple[float, list[str]]:
    """Bounded ``[-1, 1]`` affinity of a profile for a candidate, plus reasons."""
    if profile is None:
        return 0.0, []

    score = 0.0
    factors: list[str] = []
    name = normalize_name(candidate.name)
    if name in profile.favorites:
        score += 0.5
        factors.append("One of your favourites")
    if name in profile.disliked:
        score -= 0.8

    cuisine_weights = [profile.weight("cuisine", t) for t in candidate.category_tags]
    cuisine_weights = [w for w in cuisine_weights if w]
    if cuisine_weights:
        learned = sum(cuisine_weights) / len(cuisine_weights) / _WEIGHT_LIMIT
        score += 0.3 * learned
        if learned > 0.1:
            factors.append("Similar to places you liked")
    score += 0.2 * profile.weight("price", price_category(candidate.price_level)) / _WEIGHT_LIMIT
    if intent is not None:
        score += 0.1 * profile.weight("mood", intent.mood) / _WEIGHT_LIMIT

    return max(-1.0, min(1.0, score)), factors
