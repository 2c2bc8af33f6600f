from __future__ import annotations

import logging

from ..recommendations.models import Candidate
from .base import ProviderAdapter, ProviderError, SearchLocation
from .config import DEFAULT_PROVIDER_CONFIG, ProviderConfig
from .normalize import build_candidate

logger = logging.getLogger(__name__)

_MAX_RADIUS_M = 40_000
_MAX_LIMIT = 50


class YelpProvider(ProviderAdapter):
    name = "yelp"

    def __init__(self, client, config: ProviderConfig = DEFAULT_PROVIDER_CONFIG) -> None:
        super().__init__(client, timeout=config.timeout)
        self.config = config

    @property
    def is_configured(self) -> bool:
        return bool(self.config.yelp_api_key)

    async def search(
        self, query: str, location: SearchLocation, radius_km: float
    ) -> list[Candidate]:
        if not self.is_configured:
            raise ProviderError("YELP_API_KEY is not configured")
        if not location.coordinates and not location.text:
            # Yelp rejects searches without a location.
            return []

        params: dict[str, str | int] = {
            "term": query,
            "categories": "restaurants,food",
            "limit": min(_MAX_LIMIT, self.config.result_limit),
            "radius": min(_MAX_RADIUS_M, int(radius_km * 1000)),
        }
        if location.coordinates:
            params["latitude"] = location.coordinates.latitude
            params["longitude"] = location.coordinates.longitude
        else:
            params["location"] = location.text

        data = await self._get_json(
            f"{self.config.yelp_base_url}/search",
            params=params,
            headers={"Authorization": f"Bearer {self.config.yelp_api_key}"},
        )

        candidates = self._parse_records(data.get("businesses") or [], self._parse)
        logger.debug("Yelp returned %d candidates for %r", len(candidates), query)
        return candidates

    def _parse(self, biz: dict) -> Candidate | None:
        if biz.get("is_closed"):
            return None
        loc = biz.get("location") or {}
        coords = biz.get("coordinates") or {}
        price = biz.get("price")
        return build_candidate(
            source=self.name,
            name=biz.get("name"),
            location_text=", ".join(loc.get("display_address") or []) or loc.get("address1"),
            native_id=biz.get("id"),
            latitude=coords.get("latitude"),
            longitude=coords.get("longitude"),
            price_level=len(price) if price else None,
            rating=biz.get("rating"),
            review_count=biz.get("review_count"),
            category_tags=[c.get("title", "") for c in biz.get("categories") or []],
            photo_refs=[biz["image_url"]] if biz.get("image_url") else [],
        )
