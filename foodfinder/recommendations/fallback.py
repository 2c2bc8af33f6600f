from __future__ import annotations

from pydantic import BaseModel

FALLBACK_MESSAGE = "Location detection failed - showing our favourites instead!"


class FallbackPick(BaseModel):
    name: str
    location: str
    price: str
    rating: float
    reason: str
    dietary_match: str
    occasion_fit: str
    unique_selling_point: str
    is_fallback: bool = True


FALLBACK_FAVOURITES: list[FallbackPick] = [
    FallbackPick(
        name="Din Tai Fung",
        location="Orchard Road, Singapore",
        price="$$",
        rating=4.2,
        reason="Famous for Taiwanese xiaolongbao and dumplings",
        dietary_match="Vegetarian options available",
        occasion_fit="Great for family meals and casual dining",
        unique_selling_point="Michelin-recognised chain with consistent quality",
    ),
    FallbackPick(
        name="Liao Fan Hawker Chan",
        location="Chinatown, Singapore",
        price="$",
        rating=4.0,
        reason="Affordable soya sauce chicken rice",
        dietary_match="Simple ingredients, ask the stall for details",
        occasion_fit="Perfect for quick meals and budget dining",
        unique_selling_point="One of the first hawker stalls with a Michelin star",
    ),
    FallbackPick(
        name="PS Cafe",
        location="Dempsey Hill, Singapore",
        price="$$$",
        rating=4.1,
        reason="Brunch and coffee in lush surroundings",
        dietary_match="Vegetarian and vegan options available",
        occasion_fit="Ideal for dates and special occasions",
        unique_selling_point="Garden setting with photogenic dishes",
    ),
    FallbackPick(
        name="Ah Chew Desserts",
        location="Bugis, Singapore",
        price="$",
        rating=4.3,
        reason="Traditional Chinese desserts and sweet soups",
        dietary_match="Many vegetarian options, some vegan-friendly",
        occasion_fit="Casual dessert stops and family gatherings",
        unique_selling_point="Classic desserts in a modern setting",
    ),
    FallbackPick(
        name="The Coconut Club",
        location="Ann Siang Hill, Singapore",
        price="$$",
        rating=4.4,
        reason="A modern take on nasi lemak",
        dietary_match="Check with the restaurant for dietary options",
        occasion_fit="Great for casual dining and food exploration",
        unique_selling_point="Elevated Singaporean comfort food",
    ),
    FallbackPick(
        name="Haidilao Hotpot",
        location="Somerset, Singapore",
        price="$$$",
        rating=4.5,
        reason="Hotpot with famously attentive service",
        dietary_match="Vegetarian broths, customisable ingredients",
        occasion_fit="Perfect for group dining and celebrations",
        unique_selling_point="Entertainment and snacks while you wait",
    ),
]


def fallback_response(limit: int = 3) -> dict:
    picks = [p.model_dump() for p in FALLBACK_FAVOURITES[:limit]]
    return {
        "recommendations": picks,
        "is_fallback": True,
        "message": FALLBACK_MESSAGE,
        "metadata": {"total_found": len(picks), "fallback_reason": "location_unavailable"},
    }
