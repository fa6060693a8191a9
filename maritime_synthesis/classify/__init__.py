"""Query classification — deterministic tiers with a fixed fallback."""

from maritime_synthesis.classify.classifier import classify_query

__all__ = ["classify_query"]
