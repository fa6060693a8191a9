"""Query classifier — Tier 1 patterns, then Tier 2 state inference, then fallback.

Never raises: absence of a confident match degrades to an informational
classification at 50% confidence.
"""

from __future__ import annotations

import sys

from maritime_synthesis.classify.tier1 import match_deterministic_patterns
from maritime_synthesis.classify.tier2 import infer_from_state
from maritime_synthesis.contracts import AgentState, ClassifierQueryType, QueryClassification
from maritime_synthesis.metrics.classification import ClassificationTelemetry

TIER1_MIN_CONFIDENCE = 85
TIER2_MIN_CONFIDENCE = 75
FALLBACK_CONFIDENCE = 50

FALLBACK_CLASSIFICATION = QueryClassification(
    query_type=ClassifierQueryType.INFORMATIONAL.value,
    confidence=FALLBACK_CONFIDENCE,
    method="fallback",
    reasoning="No Tier 1/2 match; defaulting to informational",
)


def _select(message: str, state: AgentState | None) -> QueryClassification:
    tier1 = match_deterministic_patterns((message or "").strip())
    if tier1.confidence >= TIER1_MIN_CONFIDENCE:
        return tier1

    tier2 = infer_from_state(state if isinstance(state, dict) else {})
    if tier2.confidence >= TIER2_MIN_CONFIDENCE:
        return tier2

    return FALLBACK_CLASSIFICATION


def classify_query(
    message: str,
    state: AgentState | None,
    *,
    telemetry: ClassificationTelemetry | None = None,
    debug: bool = False,
) -> QueryClassification:
    """Classify a user message into a query type with a confidence score.

    1. Tier 1: deterministic patterns on the trimmed message (>= 85 returns).
    2. Tier 2: inference from populated agent results (>= 75 returns).
    3. Fallback: informational at 50.
    """
    result = _select(message, state)

    if telemetry is not None:
        telemetry.track(result)
    if debug:
        print(
            f"classify: {result.query_type} ({result.confidence}%, {result.method}) "
            f"{result.reasoning}",
            file=sys.stderr,
        )
    return result
