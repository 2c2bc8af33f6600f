from __future__ import annotations

import hashlib
import math
from collections.abc import Sequence

from ..geo import distance_score, format_distance, haversine_km
from ..personalization.profile import PersonalizationProfile, personalization_score
from .config import DEFAULT_SCORING_CONFIG, ScoringConfig
from .models import (
    PRICE_TIERS,
    Candidate,
    Coordinates,
    RankedCandidate,
    SearchIntent,
    price_category,
)

# Textual evidence accepted for each dietary tag.
DIETARY_EVIDENCE: dict[str, tuple[str, ...]] = {
    "halal": ("halal", "muslim"),
    "vegetarian": ("vegetarian", "veggie", "vegan"),
    "vegan": ("vegan", "plant based"),
    "gluten-free": ("gluten",),
    "kosher": ("kosher",),
    "dairy-free": ("dairy free", "vegan"),
    "keto": ("keto", "low carb"),
}

_GENERIC_TERMS = {"restaurant", "restaurants", "food", "any", "place", "places", "eat", "dining"}

_LOW_RATING_NOTES = [
    "Slightly lower rating but known for consistent quality and friendly service",
    "Good option with solid reviews and unique local charm",
    "Has a dedicated following despite mixed reviews, often down to specific tastes",
    "Offers something unique that higher-rated places nearby don't have",
]


def seed_noise(name: str, seed: str) -> float:
    """Deterministic value in ``[0, 1)`` derived from ``name + seed``."""
    digest = hashlib.sha256(f"{name}{seed}".encode()).digest()
    return int.from_bytes(digest[:8], "big") / 2**64


def quality_score(candidate: Candidate) -> float:
    """Rating weighted by log review volume."""
    if candidate.rating is None:
        return 0.0
    return candidate.rating * math.log(candidate.review_count + 1)


def price_match(intent: SearchIntent, candidate: Candidate) -> float:
    if not intent.price_range:
        return 0.0
    tier = price_category(candidate.price_level)
    if tier is None:
        return 0.5
    gap = abs(PRICE_TIERS.index(tier) - PRICE_TIERS.index(intent.price_range))
    if gap == 0:
        return 1.0
    return 0.5 if gap == 1 else 0.0


def _evidence_text(candidate: Candidate) -> str:
    return " ".join([candidate.name, *candidate.category_tags]).lower().replace("-", " ")


def dietary_match(intent: SearchIntent, candidate: Candidate) -> tuple[float, list[str]]:
    """Fraction of requested dietary tags evidenced on the candidate."""
    if not intent.dietary_restrictions:
        return 0.0, []
    text = _evidence_text(candidate)
    matched = []
    for restriction in intent.dietary_restrictions:
        key = restriction.lower()
        words = DIETARY_EVIDENCE.get(key, (key.replace("-", " "),))
        if any(w in text for w in words):
            matched.append(restriction)
    return len(matched) / len(intent.dietary_restrictions), matched


def cuisine_terms(intent: SearchIntent) -> set[str]:
    terms = set()
    for value in (intent.search_term, intent.cuisine_type):
        if value:
            for word in value.lower().split():
                if word not in _GENERIC_TERMS:
                    terms.add(word)
    return terms


def cuisine_match(intent: SearchIntent, candidate: Candidate) -> float:
    terms = cuisine_terms(intent)
    if not terms:
        return 0.0
    text = _evidence_text(candidate)
    return 1.0 if any(term in text for term in terms) else 0.0


class ScoringEngine:
    """Seed-perturbed composite scoring; higher is better.

    The same ``(candidates, intent, seed)`` always yields the same ordering;
    changing only the seed may reorder candidates but never changes the set.
    """

    def __init__(self, config: ScoringConfig = DEFAULT_SCORING_CONFIG) -> None:
        self.config = config

    def score(
        self,
        candidate: Candidate,
        intent: SearchIntent,
        seed: str,
        origin: Coordinates | None = None,
        profile: PersonalizationProfile | None = None,
    ) -> RankedCandidate:
        cfg = self.config
        why: list[str] = []

        distance_km = None
        if origin is not None and candidate.coordinates is not None:
            distance_km = haversine_km(
                origin.latitude,
                origin.longitude,
                candidate.coordinates.latitude,
                candidate.coordinates.longitude,
            )
        d_score = distance_score(
            distance_km,
            intent.radius_km,
            floor=cfg.distance_floor,
            beyond_radius=cfg.distance_beyond_radius,
            unknown=cfg.distance_unknown,
        )

        total = 0.0
        if candidate.is_open:
            total += cfg.open_now_bonus
            why.append("Open now")

        quality = quality_score(candidate)
        total += cfg.quality_weight * quality
        if candidate.rating is not None and candidate.review_count:
            why.append(f"Rated {candidate.rating:.1f} from {candidate.review_count:,} reviews")

        total += cfg.distance_weight * d_score
        if distance_km is not None:
            why.append(f"{format_distance(distance_km)} away")

        p_score = price_match(intent, candidate)
        total += cfg.price_weight * p_score
        if p_score == 1.0:
            why.append(f"Matches your {intent.price_range} budget")

        diet_score, diet_tags = dietary_match(intent, candidate)
        total += cfg.dietary_weight * diet_score
        if diet_tags:
            why.append(f"Likely has {', '.join(diet_tags)} options")

        c_score = cuisine_match(intent, candidate)
        total += cfg.cuisine_weight * c_score
        if c_score:
            why.append(f"Serves {intent.cuisine_type or intent.search_term}")

        # Placeholder until mood has real evidence behind it.
        total += cfg.mood_weight * cfg.mood_default

        affinity, personal_why = personalization_score(profile, candidate, intent)
        affinity = max(-cfg.personalization_clamp, min(cfg.personalization_clamp, affinity))
        total += cfg.personalization_weight * affinity
        why.extend(personal_why)

        noise = seed_noise(candidate.name, seed)
        total += cfg.noise_weight * noise

        if not math.isfinite(total):
            total = 0.0

        low_rating_note = None
        if candidate.rating is not None and candidate.rating < 4.6:
            low_rating_note = _LOW_RATING_NOTES[int(noise * len(_LOW_RATING_NOTES))]

        return RankedCandidate(
            **candidate.model_dump(),
            distance_km=round(distance_km, 3) if distance_km is not None else None,
            distance_formatted=format_distance(distance_km),
            distance_score=round(d_score, 4),
            composite_score=round(total, 4),
            why_factors=why,
            low_rating_note=low_rating_note,
        )

    def rank(
        self,
        candidates: Sequence[Candidate],
        intent: SearchIntent,
        seed: str,
        origin: Coordinates | None = None,
        profile: PersonalizationProfile | None = None,
    ) -> list[RankedCandidate]:
        if not candidates:
            return []
        ranked = [self.score(c, intent, seed, origin, profile) for c in candidates]
        ranked.sort(key=lambda r: (-r.composite_score, r.identity_key))
        return ranked
