"""StateGraph construction — classify then synthesize, embeddable as a subgraph."""

from __future__ import annotations

from langgraph.graph import END, StateGraph
from langgraph.graph.state import CompiledStateGraph

from maritime_synthesis.agents.base import SynthesisCaller
from maritime_synthesis.classify.classifier import classify_query
from maritime_synthesis.config import Settings
from maritime_synthesis.contracts import MetricsSink, SynthesisConfig
from maritime_synthesis.graph.state import SynthesisGraphState, user_message
from maritime_synthesis.metrics.classification import ClassificationTelemetry
from maritime_synthesis.synthesis.engine import generate_synthesis


def build_synthesis_graph(
    config: SynthesisConfig,
    caller: SynthesisCaller,
    *,
    metrics: MetricsSink,
    settings: Settings | None = None,
    telemetry: ClassificationTelemetry | None = None,
) -> CompiledStateGraph:
    """Build and compile the synthesis graph.

    Returns a compiled StateGraph ready to invoke with the host's agent state.
    The master switch and debug flag come from `settings`.
    """
    feature_enabled = settings.use_synthesis if settings else True
    debug = settings.synthesis_debug if settings else False

    def classify_node(state: SynthesisGraphState) -> dict:
        classification = classify_query(
            user_message(state), state, telemetry=telemetry, debug=debug
        )
        return {"query_classification": classification}

    async def synthesize_node(state: SynthesisGraphState) -> dict:
        result = await generate_synthesis(
            state,
            config,
            caller,
            metrics=metrics,
            feature_enabled=feature_enabled,
            classification=state.get("query_classification"),
            debug=debug,
        )
        return {
            "synthesized_insights": result.get("synthesized_insights"),
            "synthesis_error": result.get("error"),
            "synthesis_error_kind": result.get("error_kind"),
            "synthesis_cost_usd": result.get("cost_usd", 0.0),
            "synthesis_low_confidence": result.get("low_confidence", False),
        }

    graph = StateGraph(SynthesisGraphState)

    graph.add_node("classify", classify_node)
    graph.add_node("synthesize", synthesize_node)

    graph.set_entry_point("classify")
    graph.add_edge("classify", "synthesize")
    graph.add_edge("synthesize", END)

    return graph.compile()
