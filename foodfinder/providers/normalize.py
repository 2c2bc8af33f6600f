"""Canonicalization of provider records into Candidates."""
from __future__ import annotations

import re
import unicodedata
from collections.abc import Iterable

from ..recommendations.models import Candidate, Coordinates

_NON_ALNUM_RE = re.compile(r"[^a-z0-9 ]+")
_SPACES_RE = re.compile(r"\s+")
_WORD_RE = re.compile(r"[^\W_]+")

_STREET_ABBREVIATIONS = {
    "rd": "road",
    "st": "street",
    "ave": "avenue",
    "av": "avenue",
    "blvd": "boulevard",
    "dr": "drive",
    "ln": "lane",
    "ctr": "centre",
    "center": "centre",
}


def _fold(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    ascii_text = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    ascii_text = ascii_text.lower().replace("&", " and ").replace("'", "")
    ascii_text = _NON_ALNUM_RE.sub(" ", ascii_text)
    return _SPACES_RE.sub(" ", ascii_text).strip()


def normalize_name(name: str) -> str:
    folded = _fold(name)
    if folded.startswith("the "):
        folded = folded[4:]
    return folded


def location_fragment(location_text: str) -> str:
    """First address segment, folded, with common street abbreviations expanded."""
    first = location_text.split(",")[0] if location_text else ""
    words = [_STREET_ABBREVIATIONS.get(w, w) for w in _fold(first).split()]
    return " ".join(words)


def identity_key(name: str, location_text: str) -> str:
    base = normalize_name(name)
    fragment = location_fragment(location_text)
    return f"{base}|{fragment}" if fragment else base


def _collapse(text: str) -> str:
    return _SPACES_RE.sub(" ", text).strip().casefold()


def strict_name(name: str) -> str:
    """Case and whitespace normalized name, without the folding of ``normalize_name``."""
    return _collapse(name)


def location_tokens(location_text: str) -> tuple[str, ...]:
    """Case-folded address words with punctuation dropped, in order."""
    return tuple(_WORD_RE.findall(_collapse(location_text)))


def _clean_tags(tags: Iterable[str]) -> list[str]:
    seen: list[str] = []
    for tag in tags:
        value = _SPACES_RE.sub(" ", str(tag).replace("_", " ")).strip().lower()
        if value and value not in seen:
            seen.append(value)
    return seen


def build_candidate(
    *,
    source: str,
    name: str | None,
    location_text: str | None = None,
    native_id: str | None = None,
    latitude: float | None = None,
    longitude: float | None = None,
    price_level: int | None = None,
    rating: float | None = None,
    review_count: int | None = None,
    category_tags: Iterable[str] = (),
    photo_refs: Iterable[str] = (),
    is_open: bool | None = None,
) -> Candidate | None:
    """Build a canonical Candidate, or ``None`` when the record has no usable name."""
    name = (name or "").strip()
    if not normalize_name(name):
        return None
    location_text = (location_text or "").strip()

    coordinates = None
    if latitude is not None and longitude is not None:
        try:
            coordinates = Coordinates(latitude=float(latitude), longitude=float(longitude))
        except ValueError:
            coordinates = None

    if price_level is not None:
        price_level = max(0, min(4, int(price_level)))
    if rating is not None:
        rating = round(max(0.0, min(5.0, float(rating))), 2)

    return Candidate(
        identity_key=identity_key(name, location_text),
        name=name,
        location_text=location_text,
        coordinates=coordinates,
        price_level=price_level,
        rating=rating,
        review_count=max(0, int(review_count or 0)),
        category_tags=_clean_tags(category_tags),
        photo_refs=[p for p in photo_refs if p],
        provenance=[source],
        source_ids={source: native_id} if native_id else {},
        is_open=is_open,
    )
