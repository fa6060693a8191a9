"""Synthesis prompt assembly — fixed instruction template plus domain focus blocks.

Focus blocks are chosen by which agents ran and are purely additive: they never
remove or reorder the base template. The compressed agent context is
substituted into the template last.
"""

from __future__ import annotations

from maritime_synthesis.contracts import AgentState, QueryClassification, SynthesisConfig
from maritime_synthesis.synthesis.context import compress_context, extract_agent_fields
from maritime_synthesis.synthesis.gate import is_safety_critical

AGENT_OUTPUTS_PLACEHOLDER = "{agent_outputs}"

COMPLIANCE_AGENTS = ("eca_agent", "eu_ets_agent", "fueleu_agent", "compliance_agent")
TECHNICAL_AGENTS = ("hull_agent", "bunker_agent", "cii_agent")

SYNTHESIS_SYSTEM = """\
You are the intelligence filter for a maritime bunker planning assistant.

The user already sees an interactive map with the voyage route, origin and \
destination ports, bunker port options (best and alternatives) and ECA zone \
overlays. Complement the map with business intelligence; do not repeat it. \
The map shows WHERE and HOW FAR. You explain WHY and WHAT TO DO.

STEP 1: CLASSIFY THE QUERY TYPE
- informational: the user wants facts, no decision needed \
("what is", "calculate", "show me", "how many").
- decision-required: the user needs a recommendation or action plan \
("find", "recommend", "should I", "plan", "optimize").
- validation: the user is checking feasibility, safety or capacity \
("can I", "is it safe", "will it fit", "do I have enough").
- comparison: the user is evaluating several options \
("compare", "vs", "better", "which", "all options").

STEP 2: ANALYZE THE AGENT OUTPUTS
{agent_outputs}

Look for critical safety issues (ROB margin under 3 days, high weather risk), \
business decisions (cost drivers, timing constraints), hidden risks (stale \
price data, capacity limits) and cross-agent effects (route + weather impact, \
bunker + ROB interaction).

STEP 3: APPLY THE FILTERING RULES FOR details_to_surface
RULE 1: show_multi_port_analysis = true ONLY IF multi-port bunkering is the \
recommended strategy, not merely calculated, because a single port cannot meet \
capacity or range requirements.
RULE 2: show_alternatives = true ONLY IF an alternative port is less than 15% \
more expensive than the best option, or has a compelling non-cost advantage \
(weather, timing).
RULE 3: show_rob_waypoints = true ONLY IF safety margins are tight (under 5 days \
at any waypoint) or tank capacity constraints exist.
RULE 4: show_weather_details = true ONLY IF weather risk is medium or high at a \
decision-critical location, or weather increases consumption by more than 8%.
RULE 5: show_eca_details = true ONLY IF the route crosses ECA zones AND fuel \
switching is complex (multiple switches, timing issues) or the ECA fuel cost \
differential exceeds $50K.

STEP 4: RETURN JSON
Return ONLY valid JSON (no markdown, no commentary). Include ONLY the response \
variant that matches query_type:
{
  "query_type": "informational|decision-required|validation|comparison",
  "response": {
    "informational": {
      "answer": "Direct factual answer (max 50 words)",
      "key_facts": ["Fact 1", "Fact 2"],
      "additional_context": "Optional context (max 50 words)"
    },
    "decision": {
      "action": "Single sentence stating what to do",
      "primary_metric": "$XXX total or X days margin",
      "risk_level": "safe|caution|critical",
      "confidence": 85
    },
    "validation": {
      "result": "feasible|not_feasible|risky",
      "explanation": "Why (2-3 sentences)",
      "consequence": "What happens if ignored",
      "alternative": "Suggested alternative"
    },
    "comparison": {
      "winner": "Port name",
      "winner_reason": "Business logic for why it is best",
      "runner_up": "Second best",
      "comparison_factors": ["cost", "deviation", "weather"]
    }
  },
  "strategic_priorities": [
    {
      "priority": 1,
      "action": "Specific actionable step",
      "why": "Root cause (1 sentence)",
      "impact": "Financial or operational consequence (1 sentence)",
      "urgency": "immediate|today|this_week"
    }
  ],
  "critical_risks": [
    {
      "risk": "Specific risk",
      "severity": "critical|high",
      "consequence": "What happens",
      "mitigation": "How to fix"
    }
  ],
  "details_to_surface": {
    "show_multi_port_analysis": false,
    "show_alternatives": false,
    "show_rob_waypoints": false,
    "show_weather_details": false,
    "show_eca_details": false
  },
  "cross_agent_connections": [],
  "hidden_opportunities": [],
  "synthesis_metadata": {
    "confidence_score": 0.85,
    "filtering_rationale": {
      "why_surfaced": ["Reason a detail is shown"],
      "why_hidden": ["Reason a detail is hidden"]
    }
  }
}

EXAMPLE (decision-required):
Query: "Find cheapest bunker from Singapore to Rotterdam"
{
  "query_type": "decision-required",
  "response": {
    "decision": {
      "action": "Bunker 886MT VLSFO + 71MT LSMGO at Singapore immediately",
      "primary_metric": "$594K total (2.7 day safety margin violation)",
      "risk_level": "critical",
      "confidence": 85
    }
  },
  "strategic_priorities": [
    {
      "priority": 1,
      "action": "Execute bunkering at Singapore for 886MT VLSFO + 71MT LSMGO",
      "why": "Current ROB of 2.7 days violates the 3-day safety minimum",
      "impact": "Prevents emergency fuel purchases and vessel detention",
      "urgency": "immediate"
    }
  ],
  "critical_risks": [],
  "details_to_surface": {
    "show_multi_port_analysis": false,
    "show_alternatives": false,
    "show_rob_waypoints": true,
    "show_weather_details": false,
    "show_eca_details": false
  }
}

Now analyze the agent outputs and return your filtered synthesis as JSON."""

HULL_CII_FOCUS = """

SPECIAL FOCUS: HULL PERFORMANCE AND CII RATING
The hull and CII agents both ran. Pay special attention to:
1. How hull fouling percentage affects the CII rating.
2. The ROI of hull cleaning on CII improvement.
3. Hull cleaning versus speed optimization as CII levers.
4. Hull cleaning cost against annual fuel savings from a better CII rating.
5. If CII is D or E, hull cleaning becomes a critical priority.
Include specific calculations in your strategic priorities."""

COMMERCIAL_TECHNICAL_FOCUS = """

SPECIAL FOCUS: COMMERCIAL VIABILITY AND TECHNICAL OPTIMIZATION
Commercial and technical agents both ran. Pay special attention to:
1. The TOTAL financial impact of all technical issues combined.
2. The single action with the highest ROI.
3. Trade-offs between optimization strategies.
4. Whether technical optimizations turn a loss-making voyage profitable.
5. Payback periods for recommended actions.
Your answer MUST include the total financial impact."""

COMPLIANCE_FOCUS = """

SPECIAL FOCUS: REGULATORY COMPLIANCE
Multiple compliance agents ran (ECA, EU ETS, FuelEU). Pay special attention to:
1. The COMBINED compliance cost across all regulations.
2. Opportunities to reduce the compliance burden.
3. Regulatory risk (non-compliance penalties).
4. Whether route changes reduce compliance costs.
5. Upcoming regulatory changes that affect planning.
Include the total compliance cost in your financial impact."""

SAFETY_FOCUS = """

CRITICAL: SAFETY ISSUES DETECTED
ROB safety status shows the voyage is UNSAFE. This is the top priority.
- Minimum ROB: {minimum_rob} days
- Safety violations: {violations}

Your strategic priorities MUST:
1. List the safety fix as priority 1 with "immediate" urgency.
2. Explain the financial and operational consequences of running out of fuel.
3. Recommend urgent bunkering or route changes.
Mark the safety risk with "critical" severity in critical_risks."""

# Domain rule names (config domain_rules) that can switch a focus block off
_RULE_HULL_CII = "hull_cii_synergy"
_RULE_COMMERCIAL = "commercial_technical_synergy"
_RULE_COMPLIANCE = "compliance_focus"


def _rule_enabled(config: SynthesisConfig | None, rule_name: str) -> bool:
    if config is None:
        return True
    rule = config.domain_rules.get(rule_name)
    return rule is None or rule.enabled


def build_safety_focus(state: AgentState) -> str:
    rob = state.get("rob_safety_status") or {}
    minimum = rob.get("minimum_rob_days")
    minimum_rob = f"{minimum:.1f}" if isinstance(minimum, (int, float)) else "unknown"
    violations = rob.get("violations") or []
    return SAFETY_FOCUS.format(
        minimum_rob=minimum_rob,
        violations=", ".join(str(v) for v in violations) or "Unknown",
    )


def domain_focus_blocks(
    state: AgentState,
    agent_list: list[str],
    config: SynthesisConfig | None = None,
) -> list[str]:
    """Focus blocks triggered by the agent combination, in a fixed order."""
    agents = set(agent_list)
    blocks: list[str] = []

    if {"hull_agent", "cii_agent"} <= agents and _rule_enabled(config, _RULE_HULL_CII):
        blocks.append(HULL_CII_FOCUS)

    if (
        "commercial_agent" in agents
        and agents.intersection(TECHNICAL_AGENTS)
        and _rule_enabled(config, _RULE_COMMERCIAL)
    ):
        blocks.append(COMMERCIAL_TECHNICAL_FOCUS)

    compliance_count = sum(1 for a in COMPLIANCE_AGENTS if a in agents)
    if compliance_count >= 2 and _rule_enabled(config, _RULE_COMPLIANCE):
        blocks.append(COMPLIANCE_FOCUS)

    if is_safety_critical(state):
        blocks.append(build_safety_focus(state))

    return blocks


def _user_query(state: AgentState) -> str:
    messages = state.get("messages") or []
    if not messages:
        return ""
    first = messages[0]
    content = first.get("content") if isinstance(first, dict) else first
    return str(content or "").strip()


def build_synthesis_prompt(
    state: AgentState,
    agent_list: list[str],
    *,
    config: SynthesisConfig | None = None,
    classification: QueryClassification | None = None,
) -> str:
    """Assemble the full synthesis prompt for the given agents."""
    prompt = SYNTHESIS_SYSTEM + "".join(domain_focus_blocks(state, agent_list, config))

    fields = extract_agent_fields(state, agent_list)
    context = compress_context(fields, state, classification=classification)

    query = _user_query(state)
    if query:
        context = f'USER QUERY: "{query}"\n\n{context}'

    return prompt.replace(AGENT_OUTPUTS_PLACEHOLDER, context, 1)
