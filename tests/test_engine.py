"""Tests for synthesis/engine.py — one synthesis attempt per turn, never raising."""

from __future__ import annotations

import json
from dataclasses import replace
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from maritime_synthesis.agents.base import HAIKU_MODEL, LLMUnavailableError
from maritime_synthesis.contracts import LLMCompletion, MetricsSink, SynthesisFeatures
from maritime_synthesis.metrics.tracker import SynthesisMetricsTracker
from maritime_synthesis.synthesis.engine import (
    apply_feature_toggles,
    generate_synthesis,
    run_turn,
)
from maritime_synthesis.synthesis.validator import validate_synthesis


def _completion(text: str, cost: float = 0.002) -> LLMCompletion:
    return LLMCompletion(
        text=text,
        model=HAIKU_MODEL,
        input_tokens=1000,
        output_tokens=200,
        cost_usd=cost,
        timestamp="2026-10-18T00:00:00+00:00",
    )


def _mock_caller(**kwargs) -> SimpleNamespace:
    return SimpleNamespace(complete=AsyncMock(**kwargs))


@pytest.fixture
def metrics() -> SynthesisMetricsTracker:
    return SynthesisMetricsTracker()


class TestGenerateSynthesis:
    @pytest.mark.asyncio
    async def test_success(self, hull_cii_state, synthesis_config, metrics, decision_reply_text):
        caller = _mock_caller(return_value=_completion(decision_reply_text))

        result = await generate_synthesis(hull_cii_state, synthesis_config, caller, metrics=metrics)

        assert result["success"] is True
        assert result["cost_usd"] == 0.002
        assert result["low_confidence"] is False
        insights = result["synthesized_insights"]
        assert insights["query_type"] == "decision-required"
        assert insights["synthesis_metadata"]["agents_analyzed"] == ["hull_agent", "cii_agent"]
        assert insights["synthesis_metadata"]["synthesis_model"] == HAIKU_MODEL

        prompt = caller.complete.call_args.args[0]
        assert "SPECIAL FOCUS: HULL PERFORMANCE AND CII RATING" in prompt
        assert caller.complete.call_args.kwargs["timeout_seconds"] == 10

        snap = metrics.snapshot()
        assert snap["total_synthesis_attempts"] == 1
        assert snap["total_synthesis_success"] == 1
        assert snap["total_cost_usd"] == pytest.approx(0.002)

    @pytest.mark.asyncio
    async def test_skipped_by_gate(self, synthesis_config, metrics):
        caller = _mock_caller()
        state = {"agent_status": {"route_agent": "success", "bunker_agent": "success"}}

        result = await generate_synthesis(state, synthesis_config, caller, metrics=metrics)

        assert result == {
            "success": False,
            "error_kind": "skipped",
            "error": "Synthesis skipped: Only 2 agents (need 6)",
        }
        caller.complete.assert_not_awaited()
        assert metrics.snapshot()["total_synthesis_skipped"] == 1

    @pytest.mark.asyncio
    async def test_master_switch_off(self, hull_cii_state, synthesis_config, metrics):
        caller = _mock_caller()
        result = await generate_synthesis(
            hull_cii_state, synthesis_config, caller, metrics=metrics, feature_enabled=False
        )
        assert result["error_kind"] == "skipped"
        caller.complete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_llm_error(self, hull_cii_state, synthesis_config, metrics):
        caller = _mock_caller(side_effect=LLMUnavailableError("ANTHROPIC_API_KEY not configured"))

        result = await generate_synthesis(hull_cii_state, synthesis_config, caller, metrics=metrics)

        assert result["success"] is False
        assert result["error_kind"] == "llm_error"
        assert "ANTHROPIC_API_KEY" in result["error"]
        assert metrics.snapshot()["total_synthesis_failures"] == 1

    @pytest.mark.asyncio
    async def test_validation_error(self, hull_cii_state, synthesis_config, metrics):
        caller = _mock_caller(return_value=_completion("I think you should bunker."))

        result = await generate_synthesis(hull_cii_state, synthesis_config, caller, metrics=metrics)

        assert result["error_kind"] == "validation_error"
        assert "Failed to parse synthesis JSON" in result["error"]
        assert metrics.snapshot()["total_synthesis_failures"] == 1

    @pytest.mark.asyncio
    async def test_non_finite_confidence_is_validation_error(
        self, hull_cii_state, synthesis_config, metrics
    ):
        reply = (
            '{"query_type":"decision-required","response":{"decision":'
            '{"action":"Bunker","primary_metric":"$1","confidence":Infinity}}}'
        )
        caller = _mock_caller(return_value=_completion(reply))

        result = await generate_synthesis(hull_cii_state, synthesis_config, caller, metrics=metrics)

        assert result["error_kind"] == "validation_error"
        assert "Non-finite number" in result["error"]

    @pytest.mark.asyncio
    async def test_unexpected_exception_contained(self, hull_cii_state, synthesis_config, metrics):
        caller = _mock_caller(side_effect=KeyError("boom"))

        result = await generate_synthesis(hull_cii_state, synthesis_config, caller, metrics=metrics)

        assert result["success"] is False
        assert result["error_kind"] == "internal_error"
        assert result["error"].startswith("KeyError")
        assert metrics.snapshot()["total_synthesis_failures"] == 1

    @pytest.mark.asyncio
    async def test_low_confidence_flagged(
        self, hull_cii_state, synthesis_config, metrics, decision_reply
    ):
        decision_reply["synthesis_metadata"]["confidence_score"] = 0.4
        caller = _mock_caller(return_value=_completion(json.dumps(decision_reply)))

        result = await generate_synthesis(hull_cii_state, synthesis_config, caller, metrics=metrics)

        assert result["success"] is True
        assert result["low_confidence"] is True

    @pytest.mark.asyncio
    async def test_feature_toggles_applied(
        self, hull_cii_state, synthesis_config, metrics, decision_reply_text
    ):
        config = replace(synthesis_config, features=SynthesisFeatures(risk_alerts=False))
        caller = _mock_caller(return_value=_completion(decision_reply_text))

        result = await generate_synthesis(hull_cii_state, config, caller, metrics=metrics)

        insights = result["synthesized_insights"]
        assert insights["critical_risks"] == []
        assert len(insights["strategic_priorities"]) == 1

    @pytest.mark.asyncio
    async def test_cost_warning(
        self, hull_cii_state, synthesis_config, metrics, decision_reply_text, capsys
    ):
        caller = _mock_caller(return_value=_completion(decision_reply_text, cost=0.2))

        result = await generate_synthesis(hull_cii_state, synthesis_config, caller, metrics=metrics)

        assert result["success"] is True
        assert "exceeds max_synthesis_cost_usd" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_mock_metrics_sink(self, hull_cii_state, synthesis_config, decision_reply_text):
        sink = SimpleNamespace(
            record_attempt=lambda: None,
            record_success=lambda cost_usd, duration_ms: None,
            record_failure=lambda: None,
            record_skipped=lambda: None,
        )
        assert isinstance(sink, MetricsSink)
        caller = _mock_caller(return_value=_completion(decision_reply_text))

        result = await generate_synthesis(hull_cii_state, synthesis_config, caller, metrics=sink)
        assert result["success"] is True


class TestFeatureToggles:
    def test_disabled_lists_emptied(self, decision_reply_text):
        insights = validate_synthesis(decision_reply_text, ["rob_agent"], model=HAIKU_MODEL)
        features = SynthesisFeatures(cross_agent_connections=False, hidden_opportunities=False)

        toggled = apply_feature_toggles(insights, features)

        assert toggled["cross_agent_connections"] == []
        assert toggled["hidden_opportunities"] == []
        assert toggled["critical_risks"] == insights["critical_risks"]
        assert insights["hidden_opportunities"]  # original untouched


class TestRunTurn:
    @pytest.mark.asyncio
    async def test_classification_and_synthesis(
        self, bunker_state, synthesis_config, metrics, decision_reply_text
    ):
        caller = _mock_caller(return_value=_completion(decision_reply_text))

        outcome = await run_turn(
            "Where should we bunker?", bunker_state, synthesis_config, caller, metrics=metrics
        )

        assert outcome["classification"].query_type == "bunker_planning"
        # Unsafe ROB forces synthesis despite only 3 successful agents
        assert outcome["synthesis"]["success"] is True
        prompt = caller.complete.call_args.args[0]
        assert "- Query type: bunker_planning (85%, tier1-regex)" in prompt
        assert "CRITICAL: SAFETY ISSUES DETECTED" in prompt
