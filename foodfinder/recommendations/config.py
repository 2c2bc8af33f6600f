from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class ScoringConfig:
    # Dominates the other factors: "can I go now?"
    open_now_bonus: float = float(os.getenv("OPEN_NOW_BONUS", 50.0))
    quality_weight: float = 1.0
    distance_weight: float = 20.0
    price_weight: float = 10.0
    dietary_weight: float = 10.0
    cuisine_weight: float = 15.0
    mood_weight: float = 5.0
    mood_default: float = 0.5
    personalization_weight: float = 10.0
    personalization_clamp: float = 1.0
    noise_weight: float = float(os.getenv("SCORING_NOISE_WEIGHT", 3.0))
    distance_floor: float = 0.3
    distance_beyond_radius: float = 0.1
    distance_unknown: float = 0.5


@dataclass(frozen=True)
class SearchMode:
    radius_km: float
    distance_tolerance: float = 1.5
    min_rating: float | None = None


def _default_modes() -> dict[str, SearchMode]:
    return {
        "super-nearby": SearchMode(radius_km=0.3),
        "imma-walk": SearchMode(radius_km=0.5),
        "surprise-me": SearchMode(radius_km=10.0, min_rating=4.5),
    }


@dataclass(frozen=True)
class SearchConfig:
    default_radius_km: float = 5.0
    distance_tolerance: float = float(os.getenv("DISTANCE_TOLERANCE", 1.5))
    rating_floor: float = 4.4
    top_k: int = 3
    default_location: str = os.getenv("DEFAULT_SEARCH_LOCATION", "Singapore")
    modes: dict[str, SearchMode] = field(default_factory=_default_modes)
    price_modes: dict[str, str] = field(
        default_factory=lambda: {"broke": "budget", "ballin": "luxury"}
    )


DEFAULT_SCORING_CONFIG = ScoringConfig()
DEFAULT_SEARCH_CONFIG = SearchConfig()
