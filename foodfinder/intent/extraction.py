from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any

from groq import Groq

from ..llm.config import DEFAULT_LLM_CONFIG, LLMConfig
from ..recommendations.models import SearchIntent
from .models import (
    ConversationState,
    ConversationTurn,
    ExtractedIntent,
    FallbackIntent,
    IntentResult,
    ParsedIntent,
)

logger = logging.getLogger(__name__)

_MAX_TURNS = 6  # 3 exchanges

# ---------------------------------------------------------------------------
# LLM Prompt
# ---------------------------------------------------------------------------

INTENT_EXTRACTION_PROMPT = """\
You are an expert food recommendation assistant. Extract the user's dining \
intent as JSON.

Pay close attention to the user's exact words:
- "cheap", "affordable", "budget" = budget price range
- "cafe", "coffee shop" = cafe (NOT restaurant)
- "nearby", "near me" = the user's current location
- "expensive" = expensive; "luxury" = luxury; "moderate" = moderate
- "highly rated", "best rated" = min_rating 4.8
- "popular", "famous" = min_reviews 500

{location_context}

Return ONLY valid JSON:
{{
  "domain": "cafe|food|bar|dessert|fast_food|fine_dining|casual_dining",
  "search_term": "specific food type or cuisine",
  "location": "city or area",
  "dietary_restrictions": ["halal","vegetarian","vegan","gluten-free","keto","dairy-free","kosher"],
  "special_occasions": ["romantic","business","family","celebration","casual","date_night","birthday"],
  "price_range": "budget|moderate|expensive|luxury",
  "mood": "cozy|lively|quiet|romantic|casual",
  "cuisine_type": "italian|chinese|japanese|indian|mexican|thai|korean|french|american|any",
  "min_rating": 0,
  "min_reviews": 0,
  "confidence": 0.8
}}"""

# ---------------------------------------------------------------------------
# Keyword vocabulary for the heuristic fallback
# ---------------------------------------------------------------------------

_NEARBY_RE = re.compile(r"\b(nearby|near me|around me|current location)\b", re.IGNORECASE)

_DIETARY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "halal": ("halal",),
    "vegetarian": ("vegetarian", "veggie"),
    "vegan": ("vegan", "plant based", "plant-based"),
    "gluten-free": ("gluten-free", "gluten free", "coeliac", "celiac"),
    "kosher": ("kosher",),
    "keto": ("keto",),
    "dairy-free": ("dairy-free", "dairy free", "lactose"),
}

_CUISINES = (
    "italian", "chinese", "japanese", "indian", "mexican", "thai", "korean",
    "french", "american", "mediterranean", "vietnamese", "spanish", "greek",
)

_OCCASIONS: dict[str, tuple[str, ...]] = {
    "date_night": ("date night", "first date"),
    "romantic": ("romantic",),
    "birthday": ("birthday",),
    "business": ("business", "work lunch", "client"),
    "family": ("family", "kids"),
    "celebration": ("celebrate", "celebration", "anniversary"),
}


def _fallback_intent(
    query: str,
    user_location: str | None,
    default_location: str,
    reason: str,
) -> FallbackIntent:
    text = query.lower()
    fields: dict[str, Any] = {
        "search_term": "restaurant",
        "location": user_location or default_location,
        "price_range": "moderate",
    }

    if "cafe" in text or "coffee" in text:
        fields["search_term"] = "cafe"
        fields["domain"] = "cafe"
    if "cheap" in text or "budget" in text:
        fields["price_range"] = "budget"
    if "expensive" in text or "luxury" in text:
        fields["price_range"] = "expensive"
    if "highly rated" in text or "best rated" in text:
        fields["min_rating"] = 4.8
    if "popular" in text or "famous" in text:
        fields["min_reviews"] = 500

    for cuisine in _CUISINES:
        if cuisine in text:
            fields["cuisine_type"] = cuisine
            if fields["search_term"] == "restaurant":
                fields["search_term"] = cuisine
            break

    fields["dietary_restrictions"] = [
        tag for tag, words in _DIETARY_KEYWORDS.items() if any(w in text for w in words)
    ]
    fields["special_occasions"] = [
        tag for tag, words in _OCCASIONS.items() if any(w in text for w in words)
    ]

    return FallbackIntent(intent=SearchIntent(**fields), reason=reason)


def _resolve_location(parsed: str | None, query: str, user_location: str | None) -> str | None:
    if not user_location:
        return parsed
    if _NEARBY_RE.search(query):
        return user_location
    if parsed and parsed.strip().lower() in {"nearby", "near me", "current location"}:
        return user_location
    return parsed


# ---------------------------------------------------------------------------
# Conversation Accumulation
# ---------------------------------------------------------------------------


def accumulate_intent(accumulated: dict[str, Any], new_intent: SearchIntent) -> dict[str, Any]:
    new_data = new_intent.model_dump(exclude_none=True)

    for key, value in new_data.items():
        if isinstance(value, list) and isinstance(accumulated.get(key), list):
            # Union for lists (dietary, occasions)
            existing = set(accumulated[key])
            existing.update(value)
            accumulated[key] = sorted(existing)
        elif value:  # Only overwrite with truthy values
            accumulated[key] = value

    return accumulated


def update_conversation_state(
    state: ConversationState,
    user_message: str,
    assistant_message: str,
    new_intent: SearchIntent,
    result_ids: list[str] | None = None,
) -> ConversationState:
    turns = list(state.turns)
    turns.append(ConversationTurn(role="user", content=user_message))
    turns.append(ConversationTurn(role="assistant", content=assistant_message))

    # Keep only last _MAX_TURNS messages
    if len(turns) > _MAX_TURNS:
        turns = turns[-_MAX_TURNS:]

    accumulated = accumulate_intent(dict(state.accumulated_intent), new_intent)

    return ConversationState(
        turns=turns,
        accumulated_intent=accumulated,
        last_results_ids=result_ids or state.last_results_ids,
    )


# ---------------------------------------------------------------------------
# LLM Call
# ---------------------------------------------------------------------------


def extract_intent(
    query: str,
    user_location: str | None = None,
    conversation_state: ConversationState | None = None,
    config: LLMConfig = DEFAULT_LLM_CONFIG,
    default_location: str = "Singapore",
) -> IntentResult:
    if not config.enabled or not config.api_key:
        return _fallback_intent(query, user_location, default_location, "llm_disabled")

    try:
        location_context = (
            f"User's current location: {user_location}"
            if user_location
            else "No specific location provided"
        )
        messages: list[dict[str, str]] = [
            {
                "role": "system",
                "content": INTENT_EXTRACTION_PROMPT.format(location_context=location_context),
            },
        ]

        if conversation_state and conversation_state.turns:
            history_parts = []
            for turn in conversation_state.turns[-4:]:  # Last 2 exchanges
                history_parts.append(f"{turn.role}: {turn.content}")
            if conversation_state.accumulated_intent:
                history_parts.append(
                    f"Known preferences so far: {json.dumps(conversation_state.accumulated_intent)}"
                )
            context = "\n".join(history_parts)
            messages.append(
                {"role": "user", "content": f"Conversation context:\n{context}\n\nLatest message: {query}"}
            )
        else:
            messages.append({"role": "user", "content": query})

        client = Groq(api_key=config.api_key, timeout=config.timeout)
        response = client.chat.completions.create(
            model=config.model,
            messages=messages,
            max_tokens=512,
            temperature=0.1,
            response_format={"type": "json_object"},
        )

        content = response.choices[0].message.content or "{}"
        extracted = ExtractedIntent(**json.loads(content))
        location = _resolve_location(extracted.location, query, user_location)
        if not extracted.search_term or not location:
            raise ValueError("Intent is missing search_term or location")

        intent = SearchIntent(
            search_term=extracted.search_term,
            location=location,
            dietary_restrictions=extracted.dietary_restrictions,
            special_occasions=extracted.special_occasions,
            price_range=extracted.price_range or "moderate",
            mood=extracted.mood,
            cuisine_type=extracted.cuisine_type,
            min_rating=extracted.min_rating or None,
            min_reviews=extracted.min_reviews or 0,
            domain=extracted.domain or "food",
        )
        return ParsedIntent(intent=intent, confidence=extracted.confidence)

    except Exception as exc:
        logger.warning("Intent extraction failed, using keyword fallback", exc_info=True)
        return _fallback_intent(
            query, user_location, default_location, f"extraction_failed: {exc.__class__.__name__}"
        )


async def extract_intent_async(
    query: str,
    user_location: str | None = None,
    conversation_state: ConversationState | None = None,
    config: LLMConfig = DEFAULT_LLM_CONFIG,
    default_location: str = "Singapore",
) -> IntentResult:
    """Run :func:`extract_intent` off the event loop under a hard deadline."""
    try:
        return await asyncio.wait_for(
            asyncio.to_thread(
                extract_intent, query, user_location, conversation_state, config, default_location
            ),
            timeout=config.timeout + 1.0,
        )
    except asyncio.TimeoutError:
        logger.warning("Intent extraction timed out after %.1fs", config.timeout)
        return _fallback_intent(query, user_location, default_location, "timeout")
