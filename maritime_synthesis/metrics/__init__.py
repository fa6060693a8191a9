"""Synthesis and classification counters."""

from maritime_synthesis.metrics.classification import ClassificationTelemetry
from maritime_synthesis.metrics.tracker import SynthesisMetricsTracker, get_default_metrics

__all__ = ["ClassificationTelemetry", "SynthesisMetricsTracker", "get_default_metrics"]
