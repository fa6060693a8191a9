"""Tier 2 — infer the query type from which agent results are populated."""

from __future__ import annotations

from maritime_synthesis.contracts import AgentState, ClassifierQueryType, QueryClassification

WEATHER_ENTRIES_THRESHOLD = 5
COST_COMPARISON_RECOMMENDATIONS_MIN = 2


def infer_from_state(state: AgentState) -> QueryClassification:
    """Infer query type from agent state.

    - route-only: route_data present, no bunker_analysis
    - bunker_planning: route_data + bunker_analysis
    - cost-comparison: as bunker_planning, with 2+ bunker recommendations
    - weather-analysis: weather_forecast with 5+ entries, no bunker_analysis

    Returns confidence 0 when the state does not support a clear inference.
    """
    has_route = bool(state.get("route_data"))
    bunker = state.get("bunker_analysis")
    has_bunker = bool(bunker)

    weather = state.get("weather_forecast")
    weather_count = len(weather) if isinstance(weather, list) else 0

    recommendations = bunker.get("recommendations") if isinstance(bunker, dict) else None
    recommendation_count = len(recommendations) if isinstance(recommendations, list) else 0

    if has_route and not has_bunker:
        return QueryClassification(
            query_type=ClassifierQueryType.ROUTE_ONLY.value,
            confidence=80,
            method="tier2-state",
            reasoning="State has route_data and no bunker_analysis",
        )

    if has_route and has_bunker:
        if recommendation_count >= COST_COMPARISON_RECOMMENDATIONS_MIN:
            return QueryClassification(
                query_type=ClassifierQueryType.COST_COMPARISON.value,
                confidence=78,
                method="tier2-state",
                reasoning=(
                    f"bunker_analysis has {recommendation_count} recommendations (comparison)"
                ),
            )
        return QueryClassification(
            query_type=ClassifierQueryType.BUNKER_PLANNING.value,
            confidence=85,
            method="tier2-state",
            reasoning="State has route_data and bunker_analysis (bunker planning)",
        )

    if weather_count >= WEATHER_ENTRIES_THRESHOLD and not has_bunker:
        return QueryClassification(
            query_type=ClassifierQueryType.WEATHER_ANALYSIS.value,
            confidence=75,
            method="tier2-state",
            reasoning=f"weather_forecast has {weather_count} entries, no bunker_analysis",
        )

    return QueryClassification(
        query_type=ClassifierQueryType.INFORMATIONAL.value,
        confidence=0,
        method="tier2-state",
        reasoning="State does not support clear query type inference",
    )
