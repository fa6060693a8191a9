"""Tier 1 — deterministic query classification via phrase and pattern matching.

Fast, no state required. Three strategies run in order and the first hit wins:
exact phrase containment, the route-only keyword heuristic, then an ordered
regex table. No LLM.
"""

from __future__ import annotations

import re

from maritime_synthesis.contracts import ClassifierQueryType, QueryClassification

EXACT_CONFIDENCE = 90
ROUTE_KEYWORD_CONFIDENCE = 85

# Iteration order matters: the first type whose phrase matches wins.
EXACT_PHRASES: dict[ClassifierQueryType, tuple[str, ...]] = {
    ClassifierQueryType.ROUTE_ONLY: (
        "calculate route",
        "give me route",
        "show me route",
        "route from",
        "route between",
        "distance from",
        "how far",
        "route distance",
        "nautical miles from",
    ),
    ClassifierQueryType.BUNKER_PLANNING: (
        "bunker plan",
        "where to bunker",
        "which port to bunker",
        "find bunker port",
        "recommend bunker",
        "bunker recommendation",
        "best port to bunker",
        "bunker at",
    ),
    ClassifierQueryType.WEATHER_ANALYSIS: (
        "weather forecast",
        "weather conditions",
        "rough seas",
        "marine weather",
        "weather along route",
        "wave height",
        "weather on route",
    ),
    ClassifierQueryType.COST_COMPARISON: (
        "compare costs",
        "which is cheaper",
        "cost difference",
        "compare bunker",
        "cost comparison",
        "cheapest port",
        "compare prices",
    ),
    ClassifierQueryType.INFORMATIONAL: (
        "what is",
        "explain",
        "tell me about",
        "how does",
        "information about",
    ),
    ClassifierQueryType.VALIDATION: (
        "is this feasible",
        "validate",
        "check if",
        "can we",
        "is it possible",
    ),
}

_ROUTE_KEYWORD = "route"
_ROUTE_EXCLUSION_WORDS = ("bunker", "fuel", "cost", "price", "cheap", "compare", "weather")

# (pattern, query type, confidence), evaluated in order
REGEX_PATTERNS: tuple[tuple[re.Pattern[str], ClassifierQueryType, int], ...] = (
    (re.compile(r"\broute\s+from\s+.+\s+to\s+", re.I), ClassifierQueryType.ROUTE_ONLY, 80),
    (re.compile(r"\bdistance\s+between\s+", re.I), ClassifierQueryType.ROUTE_ONLY, 80),
    (
        re.compile(r"\b(how\s+far|nm|nautical)\b.*\b(from|to)\b", re.I),
        ClassifierQueryType.ROUTE_ONLY,
        75,
    ),
    (
        re.compile(r"\bwhere\s+(should|can)\s+(i|we)\s+bunker\b", re.I),
        ClassifierQueryType.BUNKER_PLANNING,
        85,
    ),
    (re.compile(r"\bbunker\s+(at|in|port)\b", re.I), ClassifierQueryType.BUNKER_PLANNING, 78),
    (
        re.compile(r"\bweather\s+(along|on|for)\s+(the\s+)?route\b", re.I),
        ClassifierQueryType.WEATHER_ANALYSIS,
        80,
    ),
    (
        re.compile(r"\bcompare\s+(the\s+)?(costs?|prices?)\b", re.I),
        ClassifierQueryType.COST_COMPARISON,
        82,
    ),
    (
        re.compile(r"\b(cheaper|cheapest)\s+(port|option)\b", re.I),
        ClassifierQueryType.COST_COMPARISON,
        78,
    ),
)


def _no_match(reasoning: str) -> QueryClassification:
    return QueryClassification(
        query_type=ClassifierQueryType.INFORMATIONAL.value,
        confidence=0,
        method="tier1-deterministic",
        reasoning=reasoning,
    )


def match_exact_phrases(message: str) -> QueryClassification | None:
    """Case-insensitive phrase containment against EXACT_PHRASES."""
    lower = message.lower().strip()
    for query_type, phrases in EXACT_PHRASES.items():
        for phrase in phrases:
            if phrase in lower:
                return QueryClassification(
                    query_type=query_type.value,
                    confidence=EXACT_CONFIDENCE,
                    method="tier1-exact",
                    reasoning=f'Exact phrase match: "{phrase}"',
                )
    return None


def match_route_only_keyword(message: str) -> QueryClassification | None:
    """'route' with no bunker/fuel/cost/weather context means a plain route query."""
    lower = message.lower()
    if _ROUTE_KEYWORD not in lower:
        return None
    if any(word in lower for word in _ROUTE_EXCLUSION_WORDS):
        return None
    return QueryClassification(
        query_type=ClassifierQueryType.ROUTE_ONLY.value,
        confidence=ROUTE_KEYWORD_CONFIDENCE,
        method="tier1-keyword",
        reasoning='Keyword "route" without bunker/fuel/cost context',
    )


def match_regex_patterns(message: str) -> QueryClassification | None:
    for pattern, query_type, confidence in REGEX_PATTERNS:
        if pattern.search(message):
            return QueryClassification(
                query_type=query_type.value,
                confidence=confidence,
                method="tier1-regex",
                reasoning=f"Regex match: {pattern.pattern}",
            )
    return None


def match_deterministic_patterns(message: str) -> QueryClassification:
    """Tier 1 classification: exact phrases, then route keyword, then regex.

    Returns confidence 0 (type informational) when nothing matches or the
    message is empty.
    """
    trimmed = (message or "").strip()
    if not trimmed:
        return _no_match("Empty message")

    for strategy in (match_exact_phrases, match_route_only_keyword, match_regex_patterns):
        result = strategy(trimmed)
        if result is not None:
            return result

    return _no_match("No deterministic pattern matched")
