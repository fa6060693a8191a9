"""SynthesisGraphState — agent state plus the synthesis outputs written by the graph."""

from __future__ import annotations

from maritime_synthesis.contracts import AgentState, QueryClassification, SynthesizedInsights


class SynthesisGraphState(AgentState, total=False):
    # Input (set by the host orchestration loop)
    user_message: str

    # Classification
    query_classification: QueryClassification

    # Synthesis output (last write wins)
    synthesized_insights: SynthesizedInsights | None
    synthesis_error: str | None
    synthesis_error_kind: str | None
    synthesis_cost_usd: float
    synthesis_low_confidence: bool


def user_message(state: SynthesisGraphState) -> str:
    """Explicit user_message, else the content of the first chat message."""
    if state.get("user_message"):
        return state["user_message"]
    messages = state.get("messages") or []
    if messages and isinstance(messages[0], dict):
        return str(messages[0].get("content") or "")
    return ""
