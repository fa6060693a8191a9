"""Response validation — turn the model's raw JSON reply into SynthesizedInsights.

The reply is untrusted. Validation is all-or-nothing on the discriminated
response (query_type plus its matching variant); optional enrichments
(priorities, risks, surface flags) are defaulted instead of rejected.
"""

from __future__ import annotations

import json
import math
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any, assert_never

from maritime_synthesis.contracts import (
    ComparisonResponse,
    CriticalRisk,
    DecisionResponse,
    DetailsToSurface,
    FilteringRationale,
    InformationalResponse,
    StrategicPriority,
    SynthesisMetadata,
    SynthesisQueryType,
    SynthesisResponse,
    SynthesizedInsights,
    ValidationOutcome,
    ValidationResponse,
)

DEFAULT_CONFIDENCE_SCORE = 0.8

DETAIL_FLAGS = (
    "show_multi_port_analysis",
    "show_alternatives",
    "show_rob_waypoints",
    "show_weather_details",
    "show_eca_details",
)

RESPONSE_KEYS: dict[SynthesisQueryType, str] = {
    SynthesisQueryType.INFORMATIONAL: "informational",
    SynthesisQueryType.DECISION_REQUIRED: "decision",
    SynthesisQueryType.VALIDATION: "validation",
    SynthesisQueryType.COMPARISON: "comparison",
}


class SynthesisValidationError(ValueError):
    """The model answered, but not in the required shape."""


def _reject_constant(name: str) -> float:
    raise SynthesisValidationError(f"Non-finite number in synthesis JSON: {name}")


def _number(value: Any, label: str) -> float | None:
    """Numeric value or None; NaN and infinities (e.g. 1e400) are rejected."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        finite = math.isfinite(value)
    except OverflowError:
        finite = False
    if not finite:
        raise SynthesisValidationError(f"{label} must be a finite number")
    return value


def strip_code_fences(text: str) -> str:
    """Remove a ```json ... ``` wrapper if present."""
    cleaned = text.strip()
    if not cleaned.startswith("```"):
        return cleaned
    lines = cleaned.split("\n")[1:]
    body = []
    for line in lines:
        if line.strip() == "```":
            break
        body.append(line)
    return "\n".join(body).strip()


# --- Schema adapters ---


def _migrate_priority_rationale(data: dict) -> None:
    """v2 -> v3: strategic priorities renamed `rationale` to `why`."""
    priorities = data.get("strategic_priorities")
    if not isinstance(priorities, list):
        return
    for priority in priorities:
        if isinstance(priority, dict) and not priority.get("why") and "rationale" in priority:
            priority["why"] = priority.pop("rationale")


# Applied in order; append new adapters when the reply schema changes
SCHEMA_MIGRATIONS: tuple[Callable[[dict], None], ...] = (_migrate_priority_rationale,)


def migrate_legacy_fields(data: dict) -> dict:
    """Rewrite older field names in place to the current schema."""
    for migrate in SCHEMA_MIGRATIONS:
        migrate(data)
    return data


# --- Variant validation ---


def _require_text(variant: dict, key: str, label: str) -> str:
    value = variant.get(key)
    if not value:
        raise SynthesisValidationError(f"Invalid {label} response structure: missing '{key}'")
    return str(value)


def _optional_text(target: dict, variant: dict, key: str) -> None:
    if variant.get(key):
        target[key] = str(variant[key])


def _informational(variant: dict) -> InformationalResponse:
    answer = _require_text(variant, "answer", "informational")
    if not isinstance(variant.get("key_facts"), list):
        raise SynthesisValidationError(
            "Invalid informational response structure: key_facts must be a list"
        )
    out = InformationalResponse(answer=answer, key_facts=[str(f) for f in variant["key_facts"]])
    _optional_text(out, variant, "additional_context")
    return out


def _decision(variant: dict) -> DecisionResponse:
    confidence = _number(variant.get("confidence"), "decision.confidence")
    return DecisionResponse(
        action=_require_text(variant, "action", "decision"),
        primary_metric=_require_text(variant, "primary_metric", "decision"),
        risk_level=str(variant.get("risk_level") or "caution"),
        confidence=int(confidence) if confidence is not None else 0,
    )


def _validation(variant: dict) -> ValidationResponse:
    result = _require_text(variant, "result", "validation")
    explanation = _require_text(variant, "explanation", "validation")
    if result not in {o.value for o in ValidationOutcome}:
        raise SynthesisValidationError(f"Invalid validation result: {result!r}")
    out = ValidationResponse(result=result, explanation=explanation)
    _optional_text(out, variant, "consequence")
    _optional_text(out, variant, "alternative")
    return out


def _comparison(variant: dict) -> ComparisonResponse:
    factors = variant.get("comparison_factors")
    out = ComparisonResponse(
        winner=_require_text(variant, "winner", "comparison"),
        winner_reason=_require_text(variant, "winner_reason", "comparison"),
        comparison_factors=[str(f) for f in factors] if isinstance(factors, list) else [],
    )
    _optional_text(out, variant, "runner_up")
    return out


def _validate_response(query_type: SynthesisQueryType, variant: dict) -> SynthesisResponse:
    match query_type:
        case SynthesisQueryType.INFORMATIONAL:
            return SynthesisResponse(informational=_informational(variant))
        case SynthesisQueryType.DECISION_REQUIRED:
            return SynthesisResponse(decision=_decision(variant))
        case SynthesisQueryType.VALIDATION:
            return SynthesisResponse(validation=_validation(variant))
        case SynthesisQueryType.COMPARISON:
            return SynthesisResponse(comparison=_comparison(variant))
        case _:
            assert_never(query_type)


# --- Optional enrichments ---


def _details_to_surface(raw: Any) -> DetailsToSurface:
    flags = raw if isinstance(raw, dict) else {}
    return DetailsToSurface(**{flag: flags.get(flag) is True for flag in DETAIL_FLAGS})


def _dict_entries(raw: Any) -> list[dict]:
    if not isinstance(raw, list):
        return []
    return [entry for entry in raw if isinstance(entry, dict)]


def _list(raw: Any) -> list:
    return list(raw) if isinstance(raw, list) else []


def _metadata(
    raw: Any, agent_list: list[str], model: str, timestamp: str
) -> SynthesisMetadata:
    claimed = raw if isinstance(raw, dict) else {}

    score = _number(claimed.get("confidence_score"), "synthesis_metadata.confidence_score")
    if score is None:
        score = DEFAULT_CONFIDENCE_SCORE

    rationale = claimed.get("filtering_rationale")
    if isinstance(rationale, dict):
        filtering = FilteringRationale(
            why_surfaced=[str(r) for r in _list(rationale.get("why_surfaced"))],
            why_hidden=[str(r) for r in _list(rationale.get("why_hidden"))],
        )
    else:
        filtering = FilteringRationale(why_surfaced=[], why_hidden=[])

    return SynthesisMetadata(
        agents_analyzed=list(agent_list),
        synthesis_model=model,
        synthesis_timestamp=timestamp,
        confidence_score=float(score),
        filtering_rationale=filtering,
    )


def validate_synthesis(
    raw_text: str,
    agent_list: list[str],
    *,
    model: str,
    timestamp: str | None = None,
) -> SynthesizedInsights:
    """Parse and validate a synthesis reply.

    Raises SynthesisValidationError when the reply is not JSON, the query_type
    is unknown, or the matching response variant is missing or incomplete.
    Metadata is stamped fresh; only confidence_score and filtering_rationale
    are taken from the model.
    """
    try:
        data = json.loads(strip_code_fences(raw_text or ""), parse_constant=_reject_constant)
    except json.JSONDecodeError as e:
        raise SynthesisValidationError(f"Failed to parse synthesis JSON: {e}") from e
    if not isinstance(data, dict):
        raise SynthesisValidationError("Synthesis reply is not a JSON object")

    migrate_legacy_fields(data)

    try:
        query_type = SynthesisQueryType(data.get("query_type"))
    except ValueError:
        raise SynthesisValidationError(f"Invalid query_type: {data.get('query_type')!r}") from None

    response = data.get("response")
    if not isinstance(response, dict):
        raise SynthesisValidationError("Missing response object")

    key = RESPONSE_KEYS[query_type]
    variant = response.get(key)
    if not isinstance(variant, dict) or not variant:
        raise SynthesisValidationError(
            f"Missing response.{key} for query_type {query_type.value}"
        )

    return SynthesizedInsights(
        query_type=query_type.value,
        response=_validate_response(query_type, variant),
        strategic_priorities=[
            StrategicPriority(**p) for p in _dict_entries(data.get("strategic_priorities"))
        ],
        critical_risks=[CriticalRisk(**r) for r in _dict_entries(data.get("critical_risks"))],
        details_to_surface=_details_to_surface(data.get("details_to_surface")),
        cross_agent_connections=_list(data.get("cross_agent_connections")),
        hidden_opportunities=_list(data.get("hidden_opportunities")),
        synthesis_metadata=_metadata(
            data.get("synthesis_metadata"),
            agent_list,
            model,
            timestamp or datetime.now(timezone.utc).isoformat(),
        ),
    )
