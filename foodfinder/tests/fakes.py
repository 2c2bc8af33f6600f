"""Shared test doubles: in-memory providers, pool builders and candidate factories."""
from __future__ import annotations

import asyncio

from foodfinder.providers.base import ProviderAdapter, SearchLocation
from foodfinder.providers.normalize import build_candidate
from foodfinder.recommendations.models import Candidate, RankedCandidate


def make_candidate(
    name: str,
    location_text: str = "",
    source: str = "google",
    **fields,
) -> Candidate:
    candidate = build_candidate(
        source=source,
        name=name,
        location_text=location_text,
        native_id=fields.pop("native_id", f"{source}-{name.lower().replace(' ', '-')}"),
        **fields,
    )
    assert candidate is not None
    return candidate


def make_pool(count: int, prefix: str = "venue") -> list[RankedCandidate]:
    return [
        RankedCandidate(
            identity_key=f"{prefix}-{i}",
            name=f"{prefix.title()} {i}",
            composite_score=float(count - i),
        )
        for i in range(count)
    ]


class FakeProvider(ProviderAdapter):
    def __init__(
        self,
        name: str,
        results: list[Candidate] | None = None,
        *,
        delay: float = 0.0,
        error: Exception | None = None,
        timeout: float = 1.0,
        configured: bool = True,
    ) -> None:
        super().__init__(client=None, timeout=timeout)
        self.name = name
        self.results = results or []
        self.delay = delay
        self.error = error
        self.configured = configured
        self.queries: list[str] = []

    @property
    def is_configured(self) -> bool:
        return self.configured

    async def search(
        self, query: str, location: SearchLocation, radius_km: float
    ) -> list[Candidate]:
        self.queries.append(query)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return list(self.results)


class FakePoolBuilder:
    """Returns successive pools, one per build, truncated to the requested size."""

    def __init__(self, *pools: list[RankedCandidate]) -> None:
        self.pools = list(pools)
        self.calls: list[dict] = []

    async def __call__(self, intent, origin, seed, limit, rating_floor):
        self.calls.append(
            {"seed": seed, "limit": limit, "rating_floor": rating_floor, "intent": intent}
        )
        pool = self.pools[min(len(self.calls), len(self.pools)) - 1]
        return pool[:limit]
