"""Synthesis engine — one cross-agent synthesis attempt per user turn.

gate -> prompt -> LLM -> validate -> feature toggles -> metrics

External interface: generate_synthesis(state, config, caller, metrics=...) -> SynthesisResult.
Never raises: every failure becomes a success=False result with an error_kind,
so the base agent answer can still be delivered without synthesis.
"""

from __future__ import annotations

import sys
import time

from maritime_synthesis.agents.base import LLMUnavailableError, SynthesisCaller, resolve_model
from maritime_synthesis.classify.classifier import classify_query
from maritime_synthesis.contracts import (
    AgentState,
    MetricsSink,
    QueryClassification,
    SynthesisConfig,
    SynthesisFeatures,
    SynthesisResult,
    SynthesizedInsights,
)
from maritime_synthesis.metrics.classification import ClassificationTelemetry
from maritime_synthesis.synthesis.gate import should_run_synthesis
from maritime_synthesis.synthesis.prompts import build_synthesis_prompt
from maritime_synthesis.synthesis.validator import SynthesisValidationError, validate_synthesis

PROMPT_PREVIEW_CHARS = 1000

# feature toggle -> insights list it controls
_FEATURE_LISTS: dict[str, str] = {
    "strategic_priorities": "strategic_priorities",
    "cross_agent_connections": "cross_agent_connections",
    "hidden_opportunities": "hidden_opportunities",
    "risk_alerts": "critical_risks",
}


def apply_feature_toggles(
    insights: SynthesizedInsights, features: SynthesisFeatures
) -> SynthesizedInsights:
    """Return a copy with the lists of disabled features emptied."""
    out = dict(insights)
    for feature, key in _FEATURE_LISTS.items():
        if not getattr(features, feature):
            out[key] = []
    return SynthesizedInsights(**out)


def _elapsed_ms(start: float) -> int:
    return round((time.monotonic() - start) * 1000)


def _failure(kind: str, error: str, start: float) -> SynthesisResult:
    return SynthesisResult(
        success=False, error_kind=kind, error=error, duration_ms=_elapsed_ms(start)
    )


async def _synthesize(
    state: AgentState,
    config: SynthesisConfig,
    caller: SynthesisCaller,
    metrics: MetricsSink,
    *,
    feature_enabled: bool,
    classification: QueryClassification | None,
    debug: bool,
    start: float,
) -> SynthesisResult:
    decision = should_run_synthesis(state, config, feature_enabled=feature_enabled)
    if not decision["run"]:
        metrics.record_skipped()
        if debug:
            print(f"synthesis: skipped ({decision.get('reason')})", file=sys.stderr)
        return SynthesisResult(
            success=False,
            error_kind="skipped",
            error=f"Synthesis skipped: {decision.get('reason')}",
        )

    agent_list = decision["agent_list"]
    prompt = build_synthesis_prompt(
        state, agent_list, config=config, classification=classification
    )
    if debug:
        print(
            f"synthesis: {len(agent_list)} agents ({', '.join(agent_list)}), "
            f"prompt {len(prompt):,} chars\n{prompt[:PROMPT_PREVIEW_CHARS]}...",
            file=sys.stderr,
        )

    try:
        completion = await caller.complete(
            prompt, config.llm, timeout_seconds=config.timeout_seconds
        )
    except LLMUnavailableError as e:
        print(f"ERROR: synthesis LLM unavailable: {e}", file=sys.stderr)
        metrics.record_failure()
        return _failure("llm_error", str(e), start)

    try:
        insights = validate_synthesis(
            completion["text"],
            agent_list,
            model=completion.get("model") or resolve_model(config.llm.model),
        )
    except SynthesisValidationError as e:
        print(f"ERROR: synthesis reply rejected: {e}", file=sys.stderr)
        metrics.record_failure()
        return _failure("validation_error", str(e), start)

    insights = apply_feature_toggles(insights, config.features)

    cost = completion["cost_usd"]
    if cost > config.max_synthesis_cost_usd:
        print(
            f"WARNING: synthesis cost ${cost:.4f} exceeds "
            f"max_synthesis_cost_usd ${config.max_synthesis_cost_usd:.4f}",
            file=sys.stderr,
        )

    confidence = insights["synthesis_metadata"]["confidence_score"]
    duration = _elapsed_ms(start)
    metrics.record_success(cost, duration)

    if debug:
        print(
            f"synthesis: {insights['query_type']} in {duration}ms, "
            f"{len(insights['strategic_priorities'])} priorities, "
            f"{len(insights['critical_risks'])} risks",
            file=sys.stderr,
        )

    return SynthesisResult(
        success=True,
        synthesized_insights=insights,
        cost_usd=cost,
        duration_ms=duration,
        low_confidence=confidence < config.min_confidence_score,
    )


async def generate_synthesis(
    state: AgentState,
    config: SynthesisConfig,
    caller: SynthesisCaller,
    *,
    metrics: MetricsSink,
    feature_enabled: bool = True,
    classification: QueryClassification | None = None,
    debug: bool = False,
) -> SynthesisResult:
    """Run at most one synthesis attempt and report the outcome.

    Exactly one of record_skipped / record_failure / record_success is
    called after record_attempt.
    """
    metrics.record_attempt()
    start = time.monotonic()
    try:
        return await _synthesize(
            state,
            config,
            caller,
            metrics,
            feature_enabled=feature_enabled,
            classification=classification,
            debug=debug,
            start=start,
        )
    except Exception as e:
        print(f"ERROR: synthesis failed: {type(e).__name__}: {e}", file=sys.stderr)
        metrics.record_failure()
        return _failure("internal_error", f"{type(e).__name__}: {e}", start)


async def run_turn(
    message: str,
    state: AgentState,
    config: SynthesisConfig,
    caller: SynthesisCaller,
    *,
    metrics: MetricsSink,
    telemetry: ClassificationTelemetry | None = None,
    feature_enabled: bool = True,
    debug: bool = False,
) -> dict:
    """Classify the message, then attempt synthesis over the current state.

    Returns {"classification": QueryClassification, "synthesis": SynthesisResult}.
    """
    classification = classify_query(message, state, telemetry=telemetry, debug=debug)
    synthesis = await generate_synthesis(
        state,
        config,
        caller,
        metrics=metrics,
        feature_enabled=feature_enabled,
        classification=classification,
        debug=debug,
    )
    return {"classification": classification, "synthesis": synthesis}
