"""Single source of truth for all types, enums, and protocols."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, NotRequired, Protocol, TypedDict, runtime_checkable

# --- Enums ---


class ClassifierQueryType(str, Enum):
    """Vocabulary of the query classifier (template and routing decisions)."""

    ROUTE_ONLY = "route-only"
    BUNKER_PLANNING = "bunker_planning"
    WEATHER_ANALYSIS = "weather-analysis"
    COST_COMPARISON = "cost-comparison"
    INFORMATIONAL = "informational"
    VALIDATION = "validation"


class SynthesisQueryType(str, Enum):
    """Vocabulary of the synthesis response. Authoritative for UI rendering."""

    INFORMATIONAL = "informational"
    DECISION_REQUIRED = "decision-required"
    VALIDATION = "validation"
    COMPARISON = "comparison"


QUERY_TYPES: frozenset[str] = frozenset(
    [t.value for t in ClassifierQueryType] + [t.value for t in SynthesisQueryType]
)


class AgentStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    PENDING = "pending"
    SKIPPED = "skipped"


class RiskLevel(str, Enum):
    SAFE = "safe"
    CAUTION = "caution"
    CRITICAL = "critical"


class ValidationOutcome(str, Enum):
    FEASIBLE = "feasible"
    NOT_FEASIBLE = "not_feasible"
    RISKY = "risky"


class Urgency(str, Enum):
    IMMEDIATE = "immediate"
    TODAY = "today"
    THIS_WEEK = "this_week"


class FieldImportance(str, Enum):
    CRITICAL = "critical"
    IMPORTANT = "important"
    SUPPLEMENTARY = "supplementary"


# --- Classification ---


@dataclass(frozen=True)
class QueryClassification:
    query_type: str  # ClassifierQueryType value
    confidence: int  # 0-100
    method: str  # "tier1-exact" | "tier1-keyword" | "tier1-regex" | "tier2-state" | "fallback"
    reasoning: str


# --- Agent state (owned by the orchestration loop, read-only here) ---


class RouteData(TypedDict, total=False):
    origin_port_code: str
    origin_port_name: str
    destination_port_code: str
    destination_port_name: str
    distance_nm: float
    estimated_hours: float
    route_type: str
    waypoints: list[dict]


class BunkerOption(TypedDict, total=False):
    port_code: str
    port_name: str
    total_cost_usd: float
    deviation_nm: float


class BunkerAnalysis(TypedDict, total=False):
    best_option: BunkerOption
    recommendations: list[BunkerOption]
    max_savings_usd: float
    analysis_summary: str


class RobSafetyStatus(TypedDict, total=False):
    overall_safe: bool
    minimum_rob_days: float
    violations: list[str]


class RoutingMetadata(TypedDict, total=False):
    classification_method: str
    confidence: float
    target_agent: str
    matched_intent: str


class AgentState(TypedDict, total=False):
    messages: list[dict]
    agent_status: dict[str, str]  # agent id -> AgentStatus value
    routing_metadata: RoutingMetadata

    # Route
    route_data: RouteData
    vessel_timeline: list[dict]

    # Bunker
    bunker_analysis: BunkerAnalysis
    bunker_ports: list[dict]
    port_prices: dict
    multi_bunker_plan: dict

    # Weather
    weather_forecast: list[dict]
    weather_consumption: dict
    standalone_port_weather: dict
    port_weather_status: list[dict]

    # ROB / safety
    rob_tracking: dict
    rob_safety_status: RobSafetyStatus

    # Vessel
    vessel_specs: list[dict]
    vessel_comparison_analysis: dict
    vessel_rankings: list[dict]
    recommended_vessel: str
    noon_reports: list[dict]
    consumption_profiles: list[dict]

    # Compliance / performance
    compliance_data: dict
    eca_summary: dict
    hull_performance: dict
    cii_calculation: dict
    eu_ets_calculation: dict


class ExtractedField(TypedDict):
    field_name: str
    field_value: Any
    source_agent: str
    data_type: str  # "route" | "bunker" | "weather" | ... | "generic"
    importance: str  # FieldImportance value


# --- Synthesis configuration ---


@dataclass(frozen=True)
class LLMSettings:
    model: str = "gpt-4o-mini"
    max_tokens: int = 1500
    temperature: float = 0.3


@dataclass(frozen=True)
class SynthesisFeatures:
    executive_insight: bool = True
    strategic_priorities: bool = True
    cross_agent_connections: bool = True
    hidden_opportunities: bool = True
    risk_alerts: bool = True
    financial_analysis: bool = True


@dataclass(frozen=True)
class DomainRule:
    enabled: bool = True
    focus: tuple[str, ...] = ()


@dataclass(frozen=True)
class SynthesisConfig:
    enabled: bool = True
    min_agents_for_synthesis: int = 6
    always_synthesize_combinations: tuple[tuple[str, ...], ...] = ()
    skip_synthesis_combinations: tuple[tuple[str, ...], ...] = ()
    llm: LLMSettings = field(default_factory=LLMSettings)
    timeout_seconds: int = 10
    min_confidence_score: float = 0.7
    max_synthesis_cost_usd: float = 0.05
    features: SynthesisFeatures = field(default_factory=SynthesisFeatures)
    domain_rules: dict[str, DomainRule] = field(default_factory=dict)


# --- Gate ---


class GateDecision(TypedDict):
    run: bool
    reason: NotRequired[str]
    agent_list: NotRequired[list[str]]


# --- Synthesized insights (LLM output after validation) ---


class InformationalResponse(TypedDict):
    answer: str
    key_facts: list[str]
    additional_context: NotRequired[str]


class DecisionResponse(TypedDict):
    action: str
    primary_metric: str
    risk_level: str  # RiskLevel value
    confidence: int


class ValidationResponse(TypedDict):
    result: str  # ValidationOutcome value
    explanation: str
    consequence: NotRequired[str]
    alternative: NotRequired[str]


class ComparisonResponse(TypedDict):
    winner: str
    winner_reason: str
    runner_up: NotRequired[str]
    comparison_factors: list[str]


class SynthesisResponse(TypedDict, total=False):
    """Exactly one key is populated, matching the insights' query_type."""

    informational: InformationalResponse
    decision: DecisionResponse
    validation: ValidationResponse
    comparison: ComparisonResponse


class StrategicPriority(TypedDict):
    priority: int
    action: str
    why: str
    impact: str
    urgency: str  # Urgency value


class CriticalRisk(TypedDict):
    risk: str
    severity: str  # "critical" | "high"
    consequence: str
    mitigation: str


class DetailsToSurface(TypedDict):
    show_multi_port_analysis: bool
    show_alternatives: bool
    show_rob_waypoints: bool
    show_weather_details: bool
    show_eca_details: bool


class FilteringRationale(TypedDict):
    why_surfaced: list[str]
    why_hidden: list[str]


class SynthesisMetadata(TypedDict):
    agents_analyzed: list[str]
    synthesis_model: str
    synthesis_timestamp: str  # ISO 8601
    confidence_score: float  # 0-1
    filtering_rationale: FilteringRationale


class SynthesizedInsights(TypedDict):
    query_type: str  # SynthesisQueryType value
    response: SynthesisResponse
    strategic_priorities: list[StrategicPriority]
    critical_risks: list[CriticalRisk]
    details_to_surface: DetailsToSurface
    cross_agent_connections: list[Any]
    hidden_opportunities: list[Any]
    synthesis_metadata: SynthesisMetadata


# --- LLM + engine results ---


class LLMCompletion(TypedDict):
    text: str
    model: str
    input_tokens: int
    output_tokens: int
    cost_usd: float
    timestamp: str


class SynthesisResult(TypedDict):
    success: bool
    error_kind: NotRequired[str]  # "skipped" | "llm_error" | "validation_error" | "internal_error"
    error: NotRequired[str]
    synthesized_insights: NotRequired[SynthesizedInsights]
    cost_usd: NotRequired[float]
    duration_ms: NotRequired[int]
    low_confidence: NotRequired[bool]


class SynthesisMetricsSnapshot(TypedDict):
    total_synthesis_attempts: int
    total_synthesis_success: int
    total_synthesis_failures: int
    total_synthesis_skipped: int
    total_cost_usd: float
    average_duration_ms: int
    last_synthesis_timestamp: str | None


class ClassificationMetricsSnapshot(TypedDict):
    tier1_hits: int
    tier2_hits: int
    tier3_hits: int
    tier1_patterns: dict[str, int]  # reasoning -> count
    total_classifications: int
    timestamp: str


# --- Protocols ---


@runtime_checkable
class MetricsSink(Protocol):
    def record_attempt(self) -> None: ...

    def record_success(self, cost_usd: float, duration_ms: float) -> None: ...

    def record_failure(self) -> None: ...

    def record_skipped(self) -> None: ...
