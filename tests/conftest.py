"""Test fixtures and mocks."""

from __future__ import annotations

import json

import pytest

from maritime_synthesis.contracts import (
    AgentState,
    LLMSettings,
    SynthesisConfig,
)


@pytest.fixture
def synthesis_config() -> SynthesisConfig:
    return SynthesisConfig(
        enabled=True,
        min_agents_for_synthesis=6,
        always_synthesize_combinations=(
            ("hull_agent", "cii_agent"),
            ("commercial_agent", "hull_agent"),
            ("eca_agent", "eu_ets_agent"),
        ),
        skip_synthesis_combinations=(
            ("route_agent",),
            ("weather_agent",),
            ("route_agent", "weather_agent"),
        ),
        llm=LLMSettings(model="claude-haiku-4-5-20251001", max_tokens=1500, temperature=0.3),
        timeout_seconds=10,
        min_confidence_score=0.7,
        max_synthesis_cost_usd=0.05,
    )


@pytest.fixture
def sample_route_data() -> dict:
    return {
        "origin_port_code": "SGSIN",
        "origin_port_name": "Singapore",
        "destination_port_code": "NLRTM",
        "destination_port_name": "Rotterdam",
        "distance_nm": 8142,
        "estimated_hours": 680,
        "route_type": "suez",
        "waypoints": [
            {"lat": 1.26, "lon": 103.8},
            {"lat": 12.0, "lon": 45.0},
            {"lat": 51.9, "lon": 4.1},
        ],
    }


@pytest.fixture
def sample_bunker_analysis() -> dict:
    return {
        "best_option": {
            "port_code": "SGSIN",
            "port_name": "Singapore",
            "total_cost_usd": 594000,
            "deviation_nm": 0,
        },
        "recommendations": [
            {"port_code": "SGSIN", "port_name": "Singapore", "total_cost_usd": 594000},
            {"port_code": "AEFJR", "port_name": "Fujairah", "total_cost_usd": 611000},
            {"port_code": "EGPSD", "port_name": "Port Said", "total_cost_usd": 640000},
        ],
        "max_savings_usd": 46000,
    }


@pytest.fixture
def bunker_state(sample_route_data, sample_bunker_analysis) -> AgentState:
    """Route + bunker + ROB agents succeeded; ROB is unsafe."""
    return AgentState(
        messages=[{"role": "user", "content": "Find cheapest bunker from Singapore to Rotterdam"}],
        agent_status={
            "route_agent": "success",
            "bunker_agent": "success",
            "rob_agent": "success",
            "weather_agent": "failed",
        },
        route_data=sample_route_data,
        bunker_analysis=sample_bunker_analysis,
        rob_safety_status={
            "overall_safe": False,
            "minimum_rob_days": 2.7,
            "violations": ["ROB below 3-day minimum at Suez"],
        },
    )


@pytest.fixture
def hull_cii_state() -> AgentState:
    return AgentState(
        messages=[{"role": "user", "content": "How is hull fouling affecting our CII?"}],
        agent_status={"hull_agent": "success", "cii_agent": "success"},
        hull_performance={"fouling_percent": 18, "excess_fuel_mt_per_day": 2.4},
        cii_calculation={"rating": "D", "attained": 6.1, "required": 5.2},
    )


@pytest.fixture
def decision_reply() -> dict:
    return {
        "query_type": "decision-required",
        "response": {
            "decision": {
                "action": "Bunker 886MT VLSFO at Singapore immediately",
                "primary_metric": "$594K total",
                "risk_level": "critical",
                "confidence": 85,
            }
        },
        "strategic_priorities": [
            {
                "priority": 1,
                "action": "Bunker at Singapore",
                "why": "ROB of 2.7 days violates the 3-day minimum",
                "impact": "Avoids emergency purchase",
                "urgency": "immediate",
            }
        ],
        "critical_risks": [
            {
                "risk": "Fuel exhaustion before Suez",
                "severity": "critical",
                "consequence": "Vessel detention",
                "mitigation": "Bunker before departure",
            }
        ],
        "details_to_surface": {
            "show_multi_port_analysis": False,
            "show_alternatives": False,
            "show_rob_waypoints": True,
            "show_weather_details": False,
            "show_eca_details": False,
        },
        "cross_agent_connections": ["Bunker timing depends on ROB margin"],
        "hidden_opportunities": ["Fujairah is 3% more expensive but closer to Suez"],
        "synthesis_metadata": {
            "confidence_score": 0.85,
            "filtering_rationale": {
                "why_surfaced": ["Tight ROB margin"],
                "why_hidden": ["Alternatives more than 15% costlier"],
            },
        },
    }


@pytest.fixture
def decision_reply_text(decision_reply) -> str:
    return json.dumps(decision_reply)
