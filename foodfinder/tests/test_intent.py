import asyncio
import json
from unittest.mock import MagicMock, patch

from foodfinder.intent.extraction import (
    extract_intent,
    extract_intent_async,
    update_conversation_state,
)
from foodfinder.intent.models import ConversationState, FallbackIntent, ParsedIntent
from foodfinder.llm.config import LLMConfig
from foodfinder.recommendations.models import SearchIntent

ENABLED_CONFIG = LLMConfig(api_key="test-key", enabled=True)
DISABLED_CONFIG = LLMConfig(api_key="test-key", enabled=False)


def _mock_groq_response(content: str) -> MagicMock:
    message = MagicMock()
    message.content = content
    choice = MagicMock()
    choice.message = message
    response = MagicMock()
    response.choices = [choice]
    return response


def test_disabled_llm_uses_keyword_fallback():
    result = extract_intent("cheap halal korean near me", "Tanjong Pagar", config=DISABLED_CONFIG)

    assert isinstance(result, FallbackIntent)
    assert result.reason == "llm_disabled"
    assert result.intent.price_range == "budget"
    assert result.intent.dietary_restrictions == ["halal"]
    assert result.intent.cuisine_type == "korean"
    assert result.intent.search_term == "korean"
    assert result.intent.location == "Tanjong Pagar"


def test_fallback_keywords():
    cafe = extract_intent("a quiet coffee spot", config=DISABLED_CONFIG).intent
    assert cafe.search_term == "cafe"
    assert cafe.location == "Singapore"

    popular = extract_intent("highly rated and popular", config=DISABLED_CONFIG).intent
    assert popular.min_rating == 4.8
    assert popular.min_reviews == 500

    fancy = extract_intent("expensive birthday dinner", config=DISABLED_CONFIG).intent
    assert fancy.price_range == "expensive"
    assert fancy.special_occasions == ["birthday"]


@patch("foodfinder.intent.extraction.Groq")
def test_parsed_intent_resolves_nearby(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create.return_value = _mock_groq_response(json.dumps({
        "search_term": "ramen",
        "location": "nearby",
        "price_range": "moderate",
        "dietary_restrictions": [],
        "confidence": 0.9,
    }))

    result = extract_intent("ramen nearby", "Bugis", config=ENABLED_CONFIG)

    assert isinstance(result, ParsedIntent)
    assert result.source == "parsed"
    assert result.intent.search_term == "ramen"
    assert result.intent.location == "Bugis"
    assert result.confidence == 0.9


@patch("foodfinder.intent.extraction.Groq")
def test_bad_json_falls_back(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create.return_value = _mock_groq_response("not json{{{")

    result = extract_intent("vegan brunch", config=ENABLED_CONFIG)

    assert isinstance(result, FallbackIntent)
    assert result.reason.startswith("extraction_failed")
    assert result.intent.dietary_restrictions == ["vegan"]


@patch("foodfinder.intent.extraction.Groq")
def test_missing_location_falls_back(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create.return_value = _mock_groq_response(
        json.dumps({"search_term": "sushi"})
    )

    result = extract_intent("sushi", config=ENABLED_CONFIG)

    assert isinstance(result, FallbackIntent)


@patch("foodfinder.intent.extraction.Groq")
def test_api_error_falls_back(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create.side_effect = Exception("API timeout")

    result = asyncio.run(extract_intent_async("dim sum", "Chinatown", config=ENABLED_CONFIG))

    assert isinstance(result, FallbackIntent)
    assert result.intent.location == "Chinatown"


@patch("foodfinder.intent.extraction.Groq")
def test_conversation_context_is_sent(mock_groq_cls):
    create = mock_groq_cls.return_value.chat.completions.create
    create.return_value = _mock_groq_response(json.dumps({"search_term": "pizza", "location": "Bugis"}))
    state = update_conversation_state(
        ConversationState(), "halal food", "Found 3 places", SearchIntent(dietary_restrictions=["halal"])
    )

    extract_intent("something cheaper", conversation_state=state, config=ENABLED_CONFIG)

    user_message = create.call_args.kwargs["messages"][-1]["content"]
    assert "halal food" in user_message
    assert "Latest message: something cheaper" in user_message


def test_conversation_state_accumulates_and_caps_turns():
    state = ConversationState()
    state = update_conversation_state(state, "halal", "ok", SearchIntent(dietary_restrictions=["halal"]))
    state = update_conversation_state(state, "vegan too", "ok", SearchIntent(dietary_restrictions=["vegan"]))
    for i in range(5):
        state = update_conversation_state(state, f"msg {i}", "ok", SearchIntent(), [f"id-{i}"])

    assert len(state.turns) == 6
    assert state.turns[-2].content == "msg 4"
    assert state.accumulated_intent["dietary_restrictions"] == ["halal", "vegan"]
    assert state.last_results_ids == ["id-4"]
