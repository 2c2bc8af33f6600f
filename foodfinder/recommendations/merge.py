"""Two-pass reconciliation of provider results.

Pass one folds every provider's list under ``identity_key`` and combines the
colliding records. Pass two catches residual duplicates
that pass one keys apart: entries with the same case-normalized name whose
addresses agree word for word up to the end of the shorter one. It keeps the
best of each colliding group.
"""
from __future__ import annotations

from collections.abc import Mapping, Sequence

from ..geo import haversine_km
from ..providers.normalize import location_tokens, strict_name
from .models import Candidate, Coordinates

_MIN_PREFIX_WORDS = 2


def _combine(existing: Candidate, incoming: Candidate) -> Candidate:
    ratings = [r for r in (existing.rating, incoming.rating) if r is not None]
    tags = list(existing.category_tags)
    tags.extend(t for t in incoming.category_tags if t not in tags)
    photos = list(existing.photo_refs)
    photos.extend(p for p in incoming.photo_refs if p not in photos)
    provenance = list(existing.provenance)
    provenance.extend(s for s in incoming.provenance if s not in provenance)
    source_ids = {**incoming.source_ids, **existing.source_ids}

    if existing.is_open is None:
        is_open = incoming.is_open
    elif incoming.is_open is None:
        is_open = existing.is_open
    else:
        is_open = existing.is_open or incoming.is_open

    return existing.model_copy(
        update={
            "location_text": existing.location_text or incoming.location_text,
            "coordinates": existing.coordinates or incoming.coordinates,
            "price_level": (
                existing.price_level if existing.price_level is not None else incoming.price_level
            ),
            "rating": max(ratings) if ratings else None,
            "review_count": existing.review_count + incoming.review_count,
            "category_tags": tags,
            "photo_refs": photos,
            "provenance": provenance,
            "source_ids": source_ids,
            "is_open": is_open,
        }
    )


def fold_by_identity(
    per_provider: Mapping[str, Sequence[Candidate]],
    authority_order: Sequence[str] = (),
) -> list[Candidate]:
    """Fold provider lists under ``identity_key``.

    Providers are folded most authoritative first so the first coordinates
    seen for a venue win.
    """
    ranked = {name: i for i, name in enumerate(authority_order)}
    order = sorted(per_provider, key=lambda name: ranked.get(name, len(ranked)))

    merged: dict[str, Candidate] = {}
    for provider in order:
        for candidate in per_provider[provider]:
            existing = merged.get(candidate.identity_key)
            merged[candidate.identity_key] = (
                _combine(existing, candidate) if existing else candidate
            )
    return list(merged.values())


def _distance(candidate: Candidate, origin: Coordinates | None) -> float | None:
    if origin is None or candidate.coordinates is None:
        return None
    return haversine_km(
        origin.latitude,
        origin.longitude,
        candidate.coordinates.latitude,
        candidate.coordinates.longitude,
    )


def _prefer(a: Candidate, b: Candidate, origin: Coordinates | None) -> Candidate:
    da, db = _distance(a, origin), _distance(b, origin)
    if da is not None and db is not None:
        return a if da <= db else b
    if da is not None or db is not None:
        return a if da is not None else b
    ra, rb = a.rating or 0.0, b.rating or 0.0
    if ra != rb:
        return a if ra > rb else b
    return a if a.review_count >= b.review_count else b


def _same_address(a: tuple[str, ...], b: tuple[str, ...]) -> bool:
    if a == b:
        return True
    shorter, longer = (a, b) if len(a) < len(b) else (b, a)
    # One provider often appends unit or postcode words to the same street address.
    return len(shorter) >= _MIN_PREFIX_WORDS and longer[: len(shorter)] == shorter


def drop_near_duplicates(
    candidates: Sequence[Candidate], origin: Coordinates | None = None
) -> list[Candidate]:
    """Keep one entry per strict name and address.

    Two entries collide when their names match after case and whitespace
    normalization and one address reads as the other plus trailing words.
    """
    kept: list[Candidate] = []
    groups: dict[str, list[int]] = {}
    for candidate in candidates:
        tokens = location_tokens(candidate.location_text)
        slots = groups.setdefault(strict_name(candidate.name), [])
        for slot in slots:
            if _same_address(location_tokens(kept[slot].location_text), tokens):
                kept[slot] = _prefer(kept[slot], candidate, origin)
                break
        else:
            slots.append(len(kept))
            kept.append(candidate)
    return kept


def merge_candidates(
    per_provider: Mapping[str, Sequence[Candidate]],
    origin: Coordinates | None = None,
    authority_order: Sequence[str] = (),
) -> list[Candidate]:
    return drop_near_duplicates(fold_by_identity(per_provider, authority_order), origin)
