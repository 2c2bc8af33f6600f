import json
from unittest.mock import MagicMock, patch

from foodfinder.llm.config import LLMConfig
from foodfinder.llm.describer import describe_candidates, fallback_description
from foodfinder.recommendations.models import RankedCandidate, SearchIntent

CANDIDATES = [
    RankedCandidate(identity_key="din tai fung|orchard road", name="Din Tai Fung", rating=4.5, price_level=2),
    RankedCandidate(identity_key="ps cafe|harding road", name="PS Cafe", rating=4.3, price_level=3),
]
INTENT = SearchIntent(
    search_term="dumplings",
    location="Orchard",
    price_range="moderate",
    dietary_restrictions=["vegetarian"],
    special_occasions=["family"],
)

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


@patch("foodfinder.llm.describer.Groq")
def test_describe_returns_fields_per_candidate(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create.return_value = _mock_groq_response(json.dumps({
        "recommendations": [
            {
                "id": "din tai fung|orchard road",
                "reason": "Famous xiaolongbao a short walk away.",
                "dietary_match": "Several vegetable dumplings.",
                "occasion_fit": "Big round tables for families.",
                "unique_selling_point": "Dumplings folded in front of you.",
            },
            {"id": "unknown|venue", "reason": "Not in the list."},
            {"id": "ps cafe|harding road", "reason": ""},
        ]
    }))

    result = describe_candidates(INTENT, CANDIDATES, config=ENABLED_CONFIG)

    assert list(result) == ["din tai fung|orchard road"]
    assert result["din tai fung|orchard road"]["reason"] == "Famous xiaolongbao a short walk away."
    assert result["din tai fung|orchard road"]["occasion_fit"] == "Big round tables for families."


@patch("foodfinder.llm.describer.Groq")
def test_describe_sends_candidate_table(mock_groq_cls):
    create = mock_groq_cls.return_value.chat.completions.create
    create.return_value = _mock_groq_response(json.dumps({"recommendations": []}))

    describe_candidates(INTENT, CANDIDATES, config=ENABLED_CONFIG)

    user_message = create.call_args.kwargs["messages"][1]["content"]
    assert "Din Tai Fung" in user_message
    assert "Dietary restrictions: vegetarian" in user_message


@patch("foodfinder.llm.describer.Groq")
def test_describe_fallback_on_api_error(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create.side_effect = Exception("API timeout")

    assert describe_candidates(INTENT, CANDIDATES, config=ENABLED_CONFIG) == {}


@patch("foodfinder.llm.describer.Groq")
def test_describe_fallback_on_bad_json(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create.return_value = _mock_groq_response("not valid json{{{")

    assert describe_candidates(INTENT, CANDIDATES, config=ENABLED_CONFIG) == {}


def test_describe_disabled():
    assert describe_candidates(INTENT, CANDIDATES, config=DISABLED_CONFIG) == {}


def test_describe_empty_candidates():
    assert describe_candidates(INTENT, [], config=ENABLED_CONFIG) == {}


def test_fallback_description_mentions_rating_and_budget():
    fields = fallback_description(CANDIDATES[0], INTENT)

    assert "Highly rated (4.5/5)" in fields["reason"]
    assert "Matches your moderate budget" in fields["reason"]
    assert "Good for family" in fields["reason"]
    assert fields["dietary_match"] == "Please check with restaurant directly"


def test_fallback_description_generic_reason():
    bare = RankedCandidate(identity_key="x", name="X")
    fields = fallback_description(bare, SearchIntent(price_range=None))
    assert fields["reason"] == "Good option based on your search"
