from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class ProviderConfig:
    google_api_key: str = os.getenv("GOOGLE_MAPS_API_KEY", "")
    google_base_url: str = "https://maps.googleapis.com/maps/api/place"
    foursquare_api_key: str = os.getenv("FOURSQUARE_API_KEY", "")
    foursquare_base_url: str = "https://api.foursquare.com/v3/places"
    yelp_api_key: str = os.getenv("YELP_API_KEY", "")
    yelp_base_url: str = "https://api.yelp.com/v3/businesses"
    timeout: float = float(os.getenv("PROVIDER_TIMEOUT_SECONDS", 8.0))
    result_limit: int = 20
    photo_limit: int = 5
    # Most authoritative first; merge keeps the earliest provider's coordinates.
    authority_order: tuple[str, ...] = ("google", "foursquare", "yelp")


DEFAULT_PROVIDER_CONFIG = ProviderConfig()
