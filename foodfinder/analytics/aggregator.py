from __future__ import annotations

from collections import Counter
from typing import Any


def compute_analytics(events: list[dict[str, Any]]) -> dict[str, Any]:
    searches = [e for e in events if e["type"] == "search"]
    sessions = [e for e in events if e["type"] == "session"]
    total = len(searches)

    # Average response time
    times = [s["response_time_ms"] for s in searches if "response_time_ms" in s]
    avg_time = round(sum(times) / len(times), 1) if times else 0.0

    # Top search terms and locations
    term_counter: Counter[str] = Counter(s.get("search_term", "unknown") for s in searches)
    top_terms = [{"name": n, "count": c} for n, c in term_counter.most_common(10)]
    loc_counter: Counter[str] = Counter(s.get("location", "unknown") for s in searches)
    top_locations = [{"name": n, "count": c} for n, c in loc_counter.most_common(10)]

    # Provider health
    source_usage: Counter[str] = Counter()
    source_errors: Counter[str] = Counter()
    for s in searches:
        for name in s.get("sources_used", []) or []:
            source_usage[name] += 1
        for name in s.get("source_errors", []) or []:
            source_errors[name] += 1

    fallback_intents = sum(1 for s in searches if s.get("intent_source") == "fallback")
    empty_results = sum(1 for s in searches if not s.get("results_returned"))

    # Session funnel
    actions: Counter[str] = Counter(e.get("action", "unknown") for e in sessions)

    return {
        "total_searches": total,
        "avg_response_time_ms": avg_time,
        "top_search_terms": top_terms,
        "top_locations": top_locations,
        "source_usage": dict(source_usage),
        "source_errors": dict(source_errors),
        "fallback_intent_rate": round(fallback_intents / total * 100, 1) if total else 0.0,
        "empty_result_rate": round(empty_results / total * 100, 1) if total else 0.0,
        "sessions": {
            "created": actions.get("created", 0),
            "matched": actions.get("matched", 0),
            "retried": actions.get("retried", 0),
            "exhausted": actions.get("exhausted", 0),
        },
    }
