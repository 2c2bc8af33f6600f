from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import httpx

from ..recommendations.models import Candidate, Coordinates

logger = logging.getLogger(__name__)


class ProviderError(RuntimeError):
    """A provider could not produce a usable response."""


@dataclass(frozen=True)
class SearchLocation:
    text: str = ""
    coordinates: Coordinates | None = None


class ProviderAdapter(ABC):
    """One place-search backend.

    Adapters share the aggregator's ``httpx.AsyncClient`` and translate their
    payloads into Candidates. Any transport or payload problem is raised as
    ``ProviderError``; the aggregator decides what a failure means.
    """

    name: str = "provider"

    def __init__(self, client: httpx.AsyncClient, timeout: float = 8.0) -> None:
        self.client = client
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return True

    @abstractmethod
    async def search(
        self, query: str, location: SearchLocation, radius_km: float
    ) -> list[Candidate]:
        ...

    async def _get_json(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        try:
            response = await self.client.get(
                url, params=params, headers=headers, timeout=self.timeout
            )
        except httpx.HTTPError as exc:
            raise ProviderError(f"{self.name} request failed: {exc}") from exc
        if response.status_code >= 400:
            raise ProviderError(
                f"{self.name} error {response.status_code}: {response.text[:200]}"
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderError(f"Invalid JSON from {self.name}") from exc
        if not isinstance(payload, dict):
            raise ProviderError(f"Unexpected payload shape from {self.name}")
        return payload

    def _parse_records(
        self, items: Any, parse: Callable[[dict[str, Any]], Candidate | None]
    ) -> list[Candidate]:
        """Map raw records onto Candidates, skipping records with an unexpected shape."""
        if not isinstance(items, list):
            raise ProviderError(f"Unexpected result list from {self.name}")
        candidates: list[Candidate] = []
        for item in items:
            try:
                candidate = parse(item)
            except (AttributeError, TypeError, ValueError, KeyError):
                logger.warning("Skipping malformed %s record", self.name, exc_info=True)
                continue
            if candidate is not None:
                candidates.append(candidate)
        return candidates
