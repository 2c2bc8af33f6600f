from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

import httpx

from ..providers.base import ProviderAdapter, ProviderError, SearchLocation
from ..providers.config import DEFAULT_PROVIDER_CONFIG, ProviderConfig
from ..providers.foursquare import FoursquareProvider
from ..providers.google_places import GooglePlacesProvider
from ..providers.yelp import YelpProvider
from .models import Candidate, Coordinates, SearchIntent

logger = logging.getLogger(__name__)


@dataclass
class AggregationResult:
    results: dict[str, list[Candidate]] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def sources_used(self) -> list[str]:
        return [name for name, items in self.results.items() if items]

    @property
    def source_counts(self) -> dict[str, int]:
        return {name: len(items) for name, items in self.results.items()}

    @property
    def total(self) -> int:
        return sum(len(items) for items in self.results.values())


class SourceAggregator:
    """Concurrent fan-out over every configured provider.

    Each provider runs under its own timeout; a failing provider contributes
    an empty list so the remaining providers still produce a result.
    """

    def __init__(self, providers: Sequence[ProviderAdapter]) -> None:
        self.providers = list(providers)

    def available(self) -> list[ProviderAdapter]:
        return [p for p in self.providers if p.is_configured]

    async def aggregate(
        self,
        intent: SearchIntent,
        coordinates: Coordinates | None = None,
    ) -> AggregationResult:
        providers = self.available()
        result = AggregationResult()
        if not providers:
            logger.warning("No place providers configured; aggregation is empty")
            return result

        location = SearchLocation(text=intent.location, coordinates=coordinates)
        query = _build_query(intent)
        outcomes = await asyncio.gather(
            *(self._run(p, query, location, intent.radius_km) for p in providers)
        )
        for provider, (candidates, error) in zip(providers, outcomes):
            result.results[provider.name] = candidates
            if error:
                result.errors[provider.name] = error

        logger.info(
            "Aggregated %d candidates for %r (sources=%s, failed=%s)",
            result.total,
            query,
            result.sources_used,
            sorted(result.errors),
        )
        return result

    async def _run(
        self,
        provider: ProviderAdapter,
        query: str,
        location: SearchLocation,
        radius_km: float,
    ) -> tuple[list[Candidate], str | None]:
        try:
            candidates = await asyncio.wait_for(
                provider.search(query, location, radius_km), timeout=provider.timeout
            )
            return candidates, None
        except asyncio.TimeoutError:
            logger.warning("Provider %s timed out after %.1fs", provider.name, provider.timeout)
            return [], "timeout"
        except ProviderError as exc:
            logger.warning("Provider %s failed: %s", provider.name, exc)
            return [], str(exc) or exc.__class__.__name__
        except Exception as exc:
            # Failures stay local to the provider that raised them.
            logger.warning("Provider %s raised unexpectedly", provider.name, exc_info=True)
            return [], str(exc) or exc.__class__.__name__


def _build_query(intent: SearchIntent) -> str:
    parts = [intent.search_term]
    if intent.cuisine_type and intent.cuisine_type != "any" and intent.cuisine_type not in intent.search_term:
        parts.append(intent.cuisine_type)
    parts.extend(intent.dietary_restrictions)
    return " ".join(p for p in parts if p).strip() or "restaurant"


def build_default_providers(
    client: httpx.AsyncClient, config: ProviderConfig = DEFAULT_PROVIDER_CONFIG
) -> list[ProviderAdapter]:
    by_name: dict[str, ProviderAdapter] = {
        "google": GooglePlacesProvider(client, config),
        "foursquare": FoursquareProvider(client, config),
        "yelp": YelpProvider(client, config),
    }
    return [by_name[name] for name in config.authority_order if name in by_name]
