from __future__ import annotations

import logging

from ..recommendations.models import Candidate
from .base import ProviderAdapter, ProviderError, SearchLocation
from .config import DEFAULT_PROVIDER_CONFIG, ProviderConfig
from .normalize import build_candidate

logger = logging.getLogger(__name__)

_OK_STATUSES = {"OK", "ZERO_RESULTS"}


class GooglePlacesProvider(ProviderAdapter):
    name = "google"

    def __init__(self, client, config: ProviderConfig = DEFAULT_PROVIDER_CONFIG) -> None:
        super().__init__(client, timeout=config.timeout)
        self.config = config

    @property
    def is_configured(self) -> bool:
        return bool(self.config.google_api_key)

    async def search(
        self, query: str, location: SearchLocation, radius_km: float
    ) -> list[Candidate]:
        if not self.is_configured:
            raise ProviderError("GOOGLE_MAPS_API_KEY is not configured")

        text = f"{query} near {location.text}" if location.text else query
        params: dict[str, str | int] = {
            "query": text,
            "type": "restaurant",
            "key": self.config.google_api_key,
        }
        if location.coordinates:
            params["location"] = (
                f"{location.coordinates.latitude},{location.coordinates.longitude}"
            )
            params["radius"] = int(radius_km * 1000)

        data = await self._get_json(f"{self.config.google_base_url}/textsearch/json", params=params)
        status = data.get("status")
        if status not in _OK_STATUSES:
            raise ProviderError(f"Google Places status {status}: {data.get('error_message', '')}")

        candidates = self._parse_records(data.get("results") or [], self._parse)
        candidates = candidates[: self.config.result_limit]
        logger.debug("Google Places returned %d candidates for %r", len(candidates), text)
        return candidates

    def _parse(self, place: dict) -> Candidate | None:
        if place.get("business_status") == "CLOSED_PERMANENTLY":
            return None
        geo = (place.get("geometry") or {}).get("location") or {}
        photos = place.get("photos") or []
        return build_candidate(
            source=self.name,
            name=place.get("name"),
            location_text=place.get("vicinity") or place.get("formatted_address"),
            native_id=place.get("place_id"),
            latitude=geo.get("lat"),
            longitude=geo.get("lng"),
            price_level=place.get("price_level"),
            rating=place.get("rating"),
            review_count=place.get("user_ratings_total"),
            category_tags=place.get("types") or [],
            photo_refs=[p.get("photo_reference") for p in photos[: self.config.photo_limit]],
            is_open=(place.get("opening_hours") or {}).get("open_now"),
        )
