from __future__ import annotations

import json
import logging
from typing import Any

from groq import Groq

from ..recommendations.models import RankedCandidate, SearchIntent, price_category
from .config import DEFAULT_LLM_CONFIG, LLMConfig

logger = logging.getLogger(__name__)

DESCRIPTION_FIELDS = ("reason", "dietary_match", "occasion_fit", "unique_selling_point")

SYSTEM_PROMPT = (
    "You are a food recommendation assistant. "
    "Given a diner's needs and a short list of restaurants, write a compelling, "
    "specific description for each one.\n\n"
    "Return ONLY valid JSON in this exact format:\n"
    '{"recommendations": [{"id": "<restaurant_id>", "reason": "<why it fits>", '
    '"dietary_match": "<how it handles their dietary needs>", '
    '"occasion_fit": "<why it suits the occasion>", '
    '"unique_selling_point": "<what sets it apart>"}]}\n'
    "Include only restaurants from the provided list. Keep each field to one sentence."
)


def _build_user_message(intent: SearchIntent, candidates: list[RankedCandidate]) -> str:
    lines = ["## Diner"]
    lines.append(f"- Looking for: {intent.search_term}")
    if intent.location:
        lines.append(f"- Location: {intent.location}")
    if intent.price_range:
        lines.append(f"- Price range: {intent.price_range}")
    if intent.dietary_restrictions:
        lines.append(f"- Dietary restrictions: {', '.join(intent.dietary_restrictions)}")
    if intent.special_occasions:
        lines.append(f"- Occasions: {', '.join(intent.special_occasions)}")
    if intent.mood:
        lines.append(f"- Mood: {intent.mood}")

    lines.append("\n## Restaurants")
    lines.append("| ID | Name | Location | Price | Rating | Reviews | Tags | Distance |")
    lines.append("|---|---|---|---|---|---|---|---|")
    for c in candidates:
        price = "$" * c.price_level if c.price_level else "N/A"
        lines.append(
            f"| {c.identity_key} | {c.name} | {c.location_text or 'N/A'} | {price} "
            f"| {c.rating if c.rating is not None else 'N/A'} | {c.review_count} "
            f"| {', '.join(c.category_tags[:6])} | {c.distance_formatted} |"
        )
    return "\n".join(lines)


def describe_candidates(
    intent: SearchIntent,
    candidates: list[RankedCandidate],
    config: LLMConfig = DEFAULT_LLM_CONFIG,
) -> dict[str, dict[str, str]]:
    """
    Ask Groq for a description of each candidate.

    Returns a dict mapping identity key -> description fields.
    Returns empty dict on any failure (timeout, bad JSON, API error).
    """
    if not config.enabled or not config.api_key:
        return {}

    if not candidates:
        return {}

    try:
        client = Groq(api_key=config.api_key, timeout=config.timeout)
        response = client.chat.completions.create(
            model=config.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": _build_user_message(intent, candidates)},
            ],
            max_tokens=config.max_tokens,
            temperature=0.4,
            response_format={"type": "json_object"},
        )

        content = response.choices[0].message.content or ""
        parsed: dict[str, Any] = json.loads(content)

        known = {c.identity_key for c in candidates}
        results: dict[str, dict[str, str]] = {}
        for item in parsed.get("recommendations", []):
            cid = str(item.get("id", ""))
            if cid not in known:
                continue
            fields = {f: str(item[f]) for f in DESCRIPTION_FIELDS if item.get(f)}
            if fields.get("reason"):
                results[cid] = fields

        return results

    except Exception:
        logger.warning("Groq description call failed, using fallback descriptions", exc_info=True)
        return {}


def fallback_description(candidate: RankedCandidate, intent: SearchIntent) -> dict[str, str]:
    reasons: list[str] = []
    if candidate.rating is not None and candidate.rating >= 4.0:
        reasons.append(f"Highly rated ({candidate.rating}/5)")
    if intent.dietary_restrictions:
        reasons.append(f"May have {', '.join(intent.dietary_restrictions)} options")
    if intent.special_occasions:
        reasons.append(f"Good for {', '.join(intent.special_occasions)}")
    if intent.price_range and candidate.price_level is not None:
        if price_category(candidate.price_level) == intent.price_range:
            reasons.append(f"Matches your {intent.price_range} budget")

    return {
        "reason": ", ".join(reasons) if reasons else "Good option based on your search",
        "dietary_match": "Please check with restaurant directly",
        "occasion_fit": "Suitable for various occasions",
        "unique_selling_point": "Well-rated establishment",
    }
