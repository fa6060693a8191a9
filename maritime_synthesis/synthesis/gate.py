"""Synthesis gate — decide whether the cross-agent synthesis pass runs at all.

Rules, first applicable decides:
1. master switch or config disabled -> skip
2. no successful agents -> skip
3. unsafe ROB (safety critical) -> run, overriding everything below
4. successful set exactly equals a skip combination -> skip
5. successful set contains an always-synthesize combination -> run
6. fewer successful agents than min_agents_for_synthesis -> skip
7. otherwise -> run

The agent-count throttle only bounds LLM spend; small high-value pairings
(e.g. hull + CII) bypass it through rule 5.
"""

from __future__ import annotations

from collections.abc import Iterable

from maritime_synthesis.contracts import AgentState, AgentStatus, GateDecision, SynthesisConfig


def successful_agents(state: AgentState) -> list[str]:
    """Agent ids whose status is success, in status-map order."""
    status = state.get("agent_status") or {}
    return [agent for agent, s in status.items() if s == AgentStatus.SUCCESS.value]


def is_safety_critical(state: AgentState) -> bool:
    """True when the ROB safety indicator is present and evaluates unsafe."""
    rob = state.get("rob_safety_status")
    # A status without overall_safe is not evidence of danger
    return isinstance(rob, dict) and "overall_safe" in rob and not rob["overall_safe"]


def _matches_exactly(agents: list[str], combination: Iterable[str]) -> bool:
    combo = list(combination)
    return len(combo) == len(agents) and sorted(combo) == sorted(agents)


def _contains_all(agents: list[str], combination: Iterable[str]) -> bool:
    combo = list(combination)
    available = set(agents)
    return bool(combo) and all(agent in available for agent in combo)


def should_run_synthesis(
    state: AgentState,
    config: SynthesisConfig,
    *,
    feature_enabled: bool = True,
) -> GateDecision:
    """Decide whether synthesis runs, and over which agents."""
    if not feature_enabled:
        return GateDecision(run=False, reason="Synthesis disabled via feature flag")
    if not config.enabled:
        return GateDecision(run=False, reason="Synthesis disabled in config")

    agents = successful_agents(state)
    if not agents:
        return GateDecision(run=False, reason="No successful agents")

    if is_safety_critical(state):
        return GateDecision(
            run=True, reason="Safety critical: ROB status unsafe", agent_list=agents
        )

    if any(_matches_exactly(agents, combo) for combo in config.skip_synthesis_combinations):
        return GateDecision(run=False, reason="Agent combination in skip list")

    if any(_contains_all(agents, combo) for combo in config.always_synthesize_combinations):
        return GateDecision(
            run=True, reason="Special combination detected (always synthesize)", agent_list=agents
        )

    if len(agents) < config.min_agents_for_synthesis:
        return GateDecision(
            run=False,
            reason=f"Only {len(agents)} agents (need {config.min_agents_for_synthesis})",
        )

    return GateDecision(run=True, agent_list=agents)
