"""Context compression — bounded, human-readable agent summaries for the LLM.

Discovers which state fields the successful agents produced, summarizes each
field down to its decision-relevant numbers and names, and caps the result.
~4 chars per token: the 12K char cap keeps the context around 3K tokens.

Zero LLM calls. Deterministic given same inputs.
"""

from __future__ import annotations

import json
from typing import Any, Callable

from maritime_synthesis.contracts import (
    AgentState,
    ExtractedField,
    FieldImportance,
    QueryClassification,
)

MAX_CONTEXT_CHARS = 12_000
MAX_GENERIC_CHARS = 500
MAX_JSON_FALLBACK_CHARS = 4_000
MIN_SUMMARY_CHARS = 500  # below this, raw JSON is appended
MAX_VESSEL_NAMES = 50

TRUNCATION_MARKER = "\n\n[Context truncated]"
EMPTY_CONTEXT = "No structured data available. Use general maritime knowledge."

# Which state fields each agent writes
AGENT_FIELDS: dict[str, tuple[str, ...]] = {
    "route_agent": ("route_data", "vessel_timeline"),
    "weather_agent": (
        "weather_forecast",
        "weather_consumption",
        "port_weather_status",
        "standalone_port_weather",
    ),
    "bunker_agent": ("bunker_analysis", "bunker_ports", "port_prices", "multi_bunker_plan"),
    "rob_agent": ("rob_tracking", "rob_safety_status"),
    "compliance_agent": ("compliance_data", "eca_summary"),
    "eca_agent": ("compliance_data", "eca_summary"),
    "vessel_info_agent": ("vessel_specs", "noon_reports", "consumption_profiles"),
    "vessel_selection_agent": (
        "vessel_comparison_analysis",
        "vessel_rankings",
        "recommended_vessel",
    ),
    "hull_agent": ("hull_performance",),
    "cii_agent": ("cii_calculation",),
    "eu_ets_agent": ("eu_ets_calculation",),
}

FIELD_DATA_TYPES: dict[str, str] = {
    "route_data": "route",
    "vessel_timeline": "route",
    "bunker_analysis": "bunker",
    "bunker_ports": "bunker",
    "port_prices": "bunker",
    "multi_bunker_plan": "bunker",
    "weather_forecast": "weather",
    "weather_consumption": "weather",
    "port_weather_status": "weather",
    "standalone_port_weather": "weather",
    "vessel_specs": "vessel",
    "noon_reports": "vessel",
    "consumption_profiles": "vessel",
    "vessel_comparison_analysis": "vessel_comparison",
    "vessel_rankings": "vessel_comparison",
    "recommended_vessel": "vessel_comparison",
    "rob_tracking": "rob",
    "rob_safety_status": "rob",
    "compliance_data": "compliance",
    "eca_summary": "compliance",
    "cii_calculation": "cii",
    "eu_ets_calculation": "eu_ets",
    "hull_performance": "hull",
}

_CRITICAL_FIELDS = frozenset(
    {
        "bunker_analysis",
        "vessel_comparison_analysis",
        "route_data",
        "vessel_specs",
        "compliance_data",
    }
)
_IMPORTANT_FIELDS = frozenset(
    {
        "weather_forecast",
        "rob_tracking",
        "rob_safety_status",
        "bunker_ports",
        "port_prices",
        "multi_bunker_plan",
        "vessel_rankings",
        "recommended_vessel",
    }
)


# --- Field discovery ---


def field_importance(field_name: str) -> str:
    if field_name in _CRITICAL_FIELDS:
        return FieldImportance.CRITICAL.value
    if field_name in _IMPORTANT_FIELDS:
        return FieldImportance.IMPORTANT.value
    return FieldImportance.SUPPLEMENTARY.value


def extract_agent_fields(state: AgentState, agent_list: list[str]) -> list[ExtractedField]:
    """Collect the non-null state fields produced by the given agents.

    Each field is reported once, attributed to the first agent that produces it.
    Agents without a registry entry contribute nothing.
    """
    extracted: list[ExtractedField] = []
    seen: set[str] = set()
    for agent in agent_list:
        for name in AGENT_FIELDS.get(agent, ()):
            if name in seen:
                continue
            value = state.get(name)
            if value is None:
                continue
            seen.add(name)
            extracted.append(
                ExtractedField(
                    field_name=name,
                    field_value=value,
                    source_agent=agent,
                    data_type=FIELD_DATA_TYPES.get(name, "generic"),
                    importance=field_importance(name),
                )
            )
    return extracted


# --- Summarizers ---


def _num(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _fmt(value: Any) -> str:
    return f"{value:,}" if _num(value) else str(value)


def _dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _compact_json(value: Any) -> str:
    return json.dumps(value, default=str, sort_keys=True, ensure_ascii=False, separators=(",", ":"))


def summarize_generic(value: Any) -> str:
    if isinstance(value, (dict, list)):
        text = _compact_json(value)
        if len(text) <= MAX_GENERIC_CHARS:
            return text
        return text[:MAX_GENERIC_CHARS] + "..."
    return str(value)


def summarize_route_data(value: Any) -> str:
    r = _dict(value)
    origin = r.get("origin_port_name") or r.get("origin_port_code") or "Origin"
    dest = r.get("destination_port_name") or r.get("destination_port_code") or "Destination"
    dist = _fmt(r["distance_nm"]) if _num(r.get("distance_nm")) else "?"
    hours = r.get("estimated_hours")
    days = f"{hours / 24:.1f}" if _num(hours) else "?"
    waypoints = r.get("waypoints")
    count = len(waypoints) if isinstance(waypoints, list) else 0
    return f"Origin {origin} to {dest}. {dist} nm, ~{days} days. Waypoints: {count}."


def summarize_bunker_analysis(value: Any) -> str:
    a = _dict(value)
    best = _dict(a.get("best_option"))
    recs = a.get("recommendations")
    count = len(recs) if isinstance(recs, list) else 0
    out = ""
    if best.get("port_name"):
        out += f"Best: {best['port_name']}"
        if _num(best.get("total_cost_usd")):
            out += f", ${_fmt(best['total_cost_usd'])}"
        out += ". "
    if count > 1:
        out += f"{count} alternatives. "
    if _num(a.get("max_savings_usd")):
        out += f"Max savings: ${_fmt(a['max_savings_usd'])}."
    return out.strip() or "Bunker analysis available."


def summarize_weather_forecast(value: Any) -> str:
    if isinstance(value, list):
        return f"Forecast at {len(value)} positions."
    return "Weather forecast available."


def summarize_weather_consumption(value: Any) -> str:
    w = _dict(value)
    out = ""
    if _num(w.get("base_consumption_mt")):
        out += f"Base consumption: {w['base_consumption_mt']} MT/day. "
    if _num(w.get("weather_adjusted_consumption_mt")):
        out += f"Adjusted: {w['weather_adjusted_consumption_mt']} MT/day. "
    if _num(w.get("consumption_increase_percent")):
        out += f"Increase: {w['consumption_increase_percent']}%. "
    if _num(w.get("additional_fuel_needed_mt")):
        out += f"Additional fuel: {w['additional_fuel_needed_mt']} MT."
    return out.strip() or "Weather consumption data available."


def summarize_rob_tracking(value: Any) -> str:
    r = _dict(value)
    with_bunker = _dict(r.get("with_bunker"))
    without_bunker = _dict(r.get("without_bunker"))
    out = ""
    if isinstance(r.get("overall_safe"), bool):
        out += f"Overall safe: {str(r['overall_safe']).lower()}. "
    if without_bunker.get("days_until_empty") is not None:
        out += f"Days until empty (no bunker): {without_bunker['days_until_empty']}. "
    if with_bunker.get("overall_safe") is not None:
        out += f"With bunker: {'safe' if with_bunker['overall_safe'] else 'review needed'}."
    return out.strip() or "ROB tracking available."


def summarize_rob_safety_status(value: Any) -> str:
    r = _dict(value)
    out = ""
    if isinstance(r.get("overall_safe"), bool):
        out += f"Overall safe: {str(r['overall_safe']).lower()}. "
    if _num(r.get("minimum_rob_days")):
        out += f"Minimum ROB: {r['minimum_rob_days']:.1f} days. "
    violations = r.get("violations")
    if isinstance(violations, list) and violations:
        out += f"Violations: {', '.join(str(v) for v in violations)}."
    return out.strip() or "ROB safety status available."


def summarize_vessel_specs(value: Any) -> str:
    if not isinstance(value, list) or not value:
        return ""
    by_type: dict[str, list[str]] = {}
    for v in value:
        v = _dict(v)
        vessel_type = str(v.get("vessel_type") or v.get("type") or "Unknown").upper()
        names = by_type.setdefault(vessel_type, [])
        name = v.get("vessel_name") or v.get("name")
        if not name and v.get("imo"):
            name = f"IMO {v['imo']}"
        if name:
            names.append(str(name))

    lines = []
    # Largest groups first; ties keep first-seen order
    for vessel_type, names in sorted(by_type.items(), key=lambda kv: -len(kv[1])):
        shown = names[:MAX_VESSEL_NAMES]
        line = f"{vessel_type} ({len(names)}): [{', '.join(shown)}]"
        if len(names) > MAX_VESSEL_NAMES:
            line += f" ... and {len(names) - MAX_VESSEL_NAMES} more"
        lines.append(line)
    return "\n".join(lines)


def summarize_vessel_comparison(value: Any, field_name: str) -> str:
    if field_name == "recommended_vessel":
        return f"Recommended vessel: {value}"
    if field_name == "vessel_rankings" and isinstance(value, list):
        return f"{len(value)} vessels ranked."
    v = _dict(value)
    rec = v.get("recommended_vessel") or v.get("recommendedVessel")
    rankings = v.get("rankings") or v.get("rankings_list")
    out = ""
    if rec:
        out += f"Recommended: {rec}. "
    if isinstance(rankings, list) and rankings:
        out += f"{len(rankings)} vessels ranked."
    return out.strip() or "Vessel comparison available."


def summarize_bunker_ports(value: Any) -> str:
    if not isinstance(value, list):
        return ""
    return f"{len(value)} bunker ports along route."


def summarize_port_prices(value: Any) -> str:
    by_port = _dict(value).get("prices_by_port")
    if isinstance(by_port, dict):
        return f"Prices for {len(by_port)} port(s)."
    return "Port prices available."


def summarize_compliance(value: Any) -> str:
    eca = _dict(_dict(value).get("eca_zones"))
    if eca.get("has_eca_zones"):
        return "Route crosses ECA zones. MGO requirements calculated."
    return "Compliance analysis completed."


def summarize_standalone_port_weather(value: Any) -> str:
    w = _dict(value)
    port = w.get("port_name") or w.get("port_code")
    forecast = _dict(w.get("forecast"))
    out = ""
    if port:
        out += f"Port: {port}. "
    if forecast.get("wave_height") is not None:
        out += f"Wave: {forecast['wave_height']}m. "
    if forecast.get("wind_speed_10m") is not None:
        out += f"Wind: {forecast['wind_speed_10m']} knots."
    return out.strip() or "Port weather forecast available."


def summarize_generic_array(value: Any, field_name: str) -> str:
    if isinstance(value, list):
        return f"{field_name}: {len(value)} item(s)."
    return summarize_generic(value)


_SUMMARIZERS: dict[str, Callable[[Any], str]] = {
    "route_data": summarize_route_data,
    "bunker_analysis": summarize_bunker_analysis,
    "weather_forecast": summarize_weather_forecast,
    "weather_consumption": summarize_weather_consumption,
    "rob_tracking": summarize_rob_tracking,
    "rob_safety_status": summarize_rob_safety_status,
    "vessel_specs": summarize_vessel_specs,
    "bunker_ports": summarize_bunker_ports,
    "port_prices": summarize_port_prices,
    "compliance_data": summarize_compliance,
    "standalone_port_weather": summarize_standalone_port_weather,
}

_VESSEL_COMPARISON_FIELDS = ("vessel_comparison_analysis", "vessel_rankings", "recommended_vessel")
_COUNTED_ARRAY_FIELDS = ("noon_reports", "consumption_profiles")


def summarize_field(field_name: str, value: Any) -> str:
    """Compact summary for a single field. Unknown fields get truncated JSON."""
    if value is None:
        return ""
    if field_name in _SUMMARIZERS:
        return _SUMMARIZERS[field_name](value)
    if field_name in _VESSEL_COMPARISON_FIELDS:
        return summarize_vessel_comparison(value, field_name)
    if field_name in _COUNTED_ARRAY_FIELDS:
        return summarize_generic_array(value, field_name)
    return summarize_generic(value)


# --- Compression ---


def _routing_header(
    extracted_fields: list[ExtractedField],
    state: AgentState,
    classification: QueryClassification | None,
) -> list[str]:
    routing = _dict(state.get("routing_metadata"))
    if classification is None and not routing:
        return []

    agents: list[str] = []
    for f in extracted_fields:
        if f["source_agent"] not in agents:
            agents.append(f["source_agent"])

    lines = ["## ROUTING CONTEXT:"]
    if classification is not None:
        lines.append(
            f"- Query type: {classification.query_type} "
            f"({classification.confidence}%, {classification.method})"
        )
    if routing.get("matched_intent"):
        lines.append(f"- Matched intent: {routing['matched_intent']}")
    if agents:
        lines.append(f"- Agents executed: {', '.join(agents)}")
    lines.append("")
    return lines


def _truncate(text: str, limit: int) -> str:
    """Cut to fit `limit` including the marker, on a word boundary when possible."""
    budget = limit - len(TRUNCATION_MARKER)
    cut = text[:budget]
    boundary = max(cut.rfind(" "), cut.rfind("\n"))
    if boundary > budget // 2:
        cut = cut[:boundary]
    return cut.rstrip() + TRUNCATION_MARKER


def compress_context(
    extracted_fields: list[ExtractedField],
    state: AgentState,
    *,
    classification: QueryClassification | None = None,
    max_chars: int = MAX_CONTEXT_CHARS,
) -> str:
    """Build the compact agent context handed to the synthesis prompt.

    Field summaries come first. If they total fewer than 500 chars and raw
    data exists, a JSON block (max 4K chars) is appended so sparse summaries
    cannot hide a field. Output never exceeds `max_chars`.
    """
    parts = _routing_header(extracted_fields, state, classification)

    for f in extracted_fields:
        summary = summarize_field(f["field_name"], f["field_value"])
        if summary:
            heading = f["field_name"].upper().replace("_", " ")
            parts.append(f"## {heading}:\n{summary}\n")

    result = "\n".join(parts)

    raw_data = {f["field_name"]: f["field_value"] for f in extracted_fields}
    if len(result.strip()) < MIN_SUMMARY_CHARS and raw_data:
        raw = _compact_json(raw_data)
        if len(raw) <= MAX_JSON_FALLBACK_CHARS:
            result += f"\n## RAW DATA:\n{raw}"
        else:
            result += f"\n## RAW DATA (truncated):\n{raw[:MAX_JSON_FALLBACK_CHARS]}..."

    if not result.strip():
        return EMPTY_CONTEXT

    if len(result) > max_chars:
        result = _truncate(result, max_chars)

    return result
