from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

PriceRange = Literal["budget", "moderate", "expensive", "luxury"]

PRICE_TIERS: tuple[str, ...] = ("budget", "moderate", "expensive", "luxury")
_LEVEL_TO_TIER = {0: "budget", 1: "budget", 2: "moderate", 3: "expensive", 4: "luxury"}


def price_category(price_level: int | None) -> str | None:
    """Map a 0-4 provider price level onto a named tier."""
    if price_level is None:
        return None
    return _LEVEL_TO_TIER.get(price_level, "moderate")


class Coordinates(BaseModel):
    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)


class UserCoordinates(Coordinates):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str | None = Field(default=None, alias="userId")


class SearchIntent(BaseModel):
    model_config = ConfigDict(frozen=True)

    search_term: str = "restaurant"
    location: str = ""
    radius_km: float = Field(default=5.0, gt=0.0)
    dietary_restrictions: list[str] = Field(default_factory=list)
    price_range: PriceRange | None = "moderate"
    min_rating: float | None = Field(default=None, ge=0.0, le=5.0)
    mood: str | None = None
    special_occasions: list[str] = Field(default_factory=list)
    cuisine_type: str | None = None
    min_reviews: int = Field(default=0, ge=0)
    domain: str = "food"


class Candidate(BaseModel):
    identity_key: str = Field(..., min_length=1)
    name: str
    location_text: str = ""
    coordinates: Coordinates | None = None
    price_level: int | None = Field(default=None, ge=0, le=4)
    rating: float | None = Field(default=None, ge=0.0, le=5.0)
    review_count: int = Field(default=0, ge=0)
    category_tags: list[str] = Field(default_factory=list)
    photo_refs: list[str] = Field(default_factory=list)
    provenance: list[str] = Field(default_factory=list)
    source_ids: dict[str, str] = Field(default_factory=dict)
    is_open: bool | None = None


class RankedCandidate(Candidate):
    distance_km: float | None = None
    distance_formatted: str = "N/A"
    distance_score: float = 0.0
    composite_score: float = 0.0
    why_factors: list[str] = Field(default_factory=list)
    low_rating_note: str | None = None
    reason: str | None = None
    dietary_match: str | None = None
    occasion_fit: str | None = None
    unique_selling_point: str | None = None


class RecommendationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    query: str = Field(default="", max_length=1000)
    user_location: str | None = Field(default=None, alias="userLocation")
    search_type: str | None = Field(
        default=None,
        alias="searchType",
        description='"super-nearby", "imma-walk" or "surprise-me"',
    )
    price_mode: str | None = Field(default=None, alias="priceMode", description='"broke" or "ballin"')
    user_coordinates: UserCoordinates | None = Field(default=None, alias="userCoordinates")
    random_seed: int | None = Field(default=None, alias="randomSeed")
    refresh_count: int = Field(default=0, ge=0, alias="refreshCount")
    avoid_place_ids: list[str] = Field(default_factory=list, alias="avoidPlaceIds")


class RecommendationMetadata(BaseModel):
    total_found: int
    sources_used: list[str] = Field(default_factory=list)
    source_counts: dict[str, int] = Field(default_factory=dict)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    intent_source: Literal["parsed", "fallback"] = "parsed"
    search_location: str = ""
    suggestions: list[str] = Field(default_factory=list)


class RecommendationResponse(BaseModel):
    recommendations: list[RankedCandidate]
    intent: SearchIntent
    metadata: RecommendationMetadata
    message: str | None = None
