"""Settings loaded from environment variables, synthesis config loaded from YAML."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from maritime_synthesis.contracts import (
    DomainRule,
    LLMSettings,
    SynthesisConfig,
    SynthesisFeatures,
)


def _load_env() -> None:
    """Load .env from project root if it exists."""
    env_path = Path(__file__).resolve().parent.parent / ".env"
    if env_path.exists():
        load_dotenv(env_path)


_load_env()


def _env_bool(key: str, default: bool) -> bool:
    value = os.environ.get(key, "")
    if value == "":
        return default
    return value.lower() == "true" or value == "1"


@dataclass(frozen=True)
class Settings:
    # API Keys
    anthropic_api_key: str = field(default_factory=lambda: os.environ.get("ANTHROPIC_API_KEY", ""))

    # Feature flags
    use_synthesis: bool = field(default_factory=lambda: _env_bool("USE_SYNTHESIS", True))
    synthesis_debug: bool = field(default_factory=lambda: _env_bool("SYNTHESIS_DEBUG", False))

    # Synthesis config file
    synthesis_config_path: str = field(
        default_factory=lambda: os.environ.get(
            "SYNTHESIS_CONFIG_PATH", "config/synthesis-config.yaml"
        )
    )

    # LLM transport
    llm_max_retries: int = field(
        default_factory=lambda: int(os.environ.get("SYNTHESIS_MAX_RETRIES", "2"))
    )

    def validate(self) -> list[str]:
        """Return list of validation errors. Empty list means valid."""
        errors = []
        if self.use_synthesis and not self.anthropic_api_key:
            errors.append("ANTHROPIC_API_KEY is required when USE_SYNTHESIS is enabled")
        if self.llm_max_retries < 1 or self.llm_max_retries > 5:
            errors.append(f"SYNTHESIS_MAX_RETRIES must be 1-5, got {self.llm_max_retries}")
        return errors


def get_settings() -> Settings:
    """Create Settings from current environment."""
    return Settings()


# --- Synthesis config (YAML) ---


def default_synthesis_config() -> SynthesisConfig:
    """Defaults used when the YAML file is missing or invalid."""
    return SynthesisConfig()


def _combinations(raw: Any, key: str) -> tuple[tuple[str, ...], ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list) or not all(isinstance(c, list) for c in raw):
        raise ValueError(f"synthesis.{key} must be a list of agent lists")
    return tuple(tuple(str(agent) for agent in combo) for combo in raw)


def _domain_rules(raw: Any) -> dict[str, DomainRule]:
    if not raw:
        return {}
    if not isinstance(raw, dict):
        raise ValueError("domain_rules must be a mapping")
    rules: dict[str, DomainRule] = {}
    for name, rule in raw.items():
        rule = rule or {}
        if not isinstance(rule, dict):
            raise ValueError(f"domain_rules.{name} must be a mapping")
        rules[str(name)] = DomainRule(
            enabled=bool(rule.get("enabled", True)),
            focus=tuple(str(f) for f in rule.get("focus", []) or []),
        )
    return rules


def parse_synthesis_config(data: Any) -> SynthesisConfig:
    """Build a SynthesisConfig from the parsed YAML document.

    Raises ValueError when the document does not have the expected shape.
    Optional keys fall back to the defaults.
    """
    if not isinstance(data, dict) or not isinstance(data.get("synthesis"), dict):
        raise ValueError('Missing "synthesis" root property')

    s = data["synthesis"]
    defaults = default_synthesis_config()

    if not isinstance(s.get("enabled"), bool):
        raise ValueError("synthesis.enabled must be a boolean")

    min_agents = s.get("min_agents_for_synthesis")
    if isinstance(min_agents, bool) or not isinstance(min_agents, int) or min_agents < 1:
        raise ValueError("synthesis.min_agents_for_synthesis must be a positive number")

    llm = s.get("llm")
    if not isinstance(llm, dict) or not llm.get("model"):
        raise ValueError("synthesis.llm.model is required")

    features = s.get("features")
    if not isinstance(features, dict):
        raise ValueError("synthesis.features is required")

    default_features = SynthesisFeatures()
    return SynthesisConfig(
        enabled=s["enabled"],
        min_agents_for_synthesis=min_agents,
        always_synthesize_combinations=_combinations(
            s.get("always_synthesize_combinations"), "always_synthesize_combinations"
        ),
        skip_synthesis_combinations=_combinations(
            s.get("skip_synthesis_combinations"), "skip_synthesis_combinations"
        ),
        llm=LLMSettings(
            model=str(llm["model"]),
            max_tokens=int(llm.get("max_tokens", defaults.llm.max_tokens)),
            temperature=float(llm.get("temperature", defaults.llm.temperature)),
        ),
        timeout_seconds=int(s.get("timeout_seconds", defaults.timeout_seconds)),
        min_confidence_score=float(s.get("min_confidence_score", defaults.min_confidence_score)),
        max_synthesis_cost_usd=float(
            s.get("max_synthesis_cost_usd", defaults.max_synthesis_cost_usd)
        ),
        features=SynthesisFeatures(
            **{
                name: bool(features.get(name, getattr(default_features, name)))
                for name in SynthesisFeatures.__dataclass_fields__
            }
        ),
        domain_rules=_domain_rules(data.get("domain_rules")),
    )


def load_synthesis_config(path: str | Path) -> SynthesisConfig:
    """Load the synthesis config file. Falls back to defaults, never raises."""
    config_path = Path(path)
    if not config_path.exists():
        print(
            f"WARNING: synthesis config not found at {config_path}, using defaults",
            file=sys.stderr,
        )
        return default_synthesis_config()

    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        return parse_synthesis_config(data)
    except (OSError, yaml.YAMLError, ValueError, TypeError) as e:
        print(f"ERROR: invalid synthesis config {config_path}: {e}", file=sys.stderr)
        return default_synthesis_config()
