from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, Field

from ..recommendations.models import PriceRange, SearchIntent


class ExtractedIntent(BaseModel):
    """Raw JSON shape the LLM is asked to return."""

    search_term: str | None = None
    location: str | None = None
    dietary_restrictions: list[str] = Field(default_factory=list)
    special_occasions: list[str] = Field(default_factory=list)
    price_range: PriceRange | None = None
    mood: str | None = None
    cuisine_type: str | None = None
    min_rating: float | None = Field(default=None, ge=0.0, le=5.0)
    min_reviews: int | None = Field(default=None, ge=0)
    domain: str | None = None
    confidence: float = Field(default=0.8, ge=0.0, le=1.0)


@dataclass(frozen=True)
class ParsedIntent:
    intent: SearchIntent
    confidence: float

    source = "parsed"


@dataclass(frozen=True)
class FallbackIntent:
    intent: SearchIntent
    reason: str
    confidence: float = 0.3

    source = "fallback"


IntentResult = ParsedIntent | FallbackIntent


class ConversationTurn(BaseModel):
    role: str
    content: str


class ConversationState(BaseModel):
    turns: list[ConversationTurn] = Field(default_factory=list)
    accumulated_intent: dict = Field(default_factory=dict)
    last_results_ids: list[str] = Field(default_factory=list)
