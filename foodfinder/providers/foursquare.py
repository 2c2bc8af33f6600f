from __future__ import annotations

import logging

from ..recommendations.models import Candidate
from .base import ProviderAdapter, ProviderError, SearchLocation
from .config import DEFAULT_PROVIDER_CONFIG, ProviderConfig
from .normalize import build_candidate

logger = logging.getLogger(__name__)

_FIELDS = "fsq_id,name,location,geocodes,categories,rating,stats,price,photos,hours,closed_bucket"
_MAX_RADIUS_M = 100_000


class FoursquareProvider(ProviderAdapter):
    name = "foursquare"

    def __init__(self, client, config: ProviderConfig = DEFAULT_PROVIDER_CONFIG) -> None:
        super().__init__(client, timeout=config.timeout)
        self.config = config

    @property
    def is_configured(self) -> bool:
        return bool(self.config.foursquare_api_key)

    async def search(
        self, query: str, location: SearchLocation, radius_km: float
    ) -> list[Candidate]:
        if not self.is_configured:
            raise ProviderError("FOURSQUARE_API_KEY is not configured")

        params: dict[str, str | int] = {
            "query": query,
            "limit": self.config.result_limit,
            "fields": _FIELDS,
        }
        if location.coordinates:
            params["ll"] = f"{location.coordinates.latitude},{location.coordinates.longitude}"
            params["radius"] = min(_MAX_RADIUS_M, int(radius_km * 1000))
        elif location.text:
            params["near"] = location.text

        data = await self._get_json(
            f"{self.config.foursquare_base_url}/search",
            params=params,
            headers={"Authorization": self.config.foursquare_api_key, "Accept": "application/json"},
        )

        candidates = self._parse_records(data.get("results") or [], self._parse)
        logger.debug("Foursquare returned %d candidates for %r", len(candidates), query)
        return candidates

    def _parse(self, place: dict) -> Candidate | None:
        if place.get("closed_bucket") == "VeryLikelyClosed":
            return None
        loc = place.get("location") or {}
        geo = (place.get("geocodes") or {}).get("main") or {}
        rating = place.get("rating")
        return build_candidate(
            source=self.name,
            name=place.get("name"),
            location_text=loc.get("formatted_address") or loc.get("address"),
            native_id=place.get("fsq_id"),
            latitude=geo.get("latitude"),
            longitude=geo.get("longitude"),
            price_level=place.get("price"),
            # Foursquare rates on a 0-10 scale.
            rating=rating / 2 if rating is not None else None,
            review_count=(place.get("stats") or {}).get("total_ratings"),
            category_tags=[c.get("name", "") for c in place.get("categories") or []],
            photo_refs=[
                f"{p.get('prefix', '')}original{p.get('suffix', '')}"
                for p in (place.get("photos") or [])[: self.config.photo_limit]
            ],
            is_open=(place.get("hours") or {}).get("open_now"),
        )
