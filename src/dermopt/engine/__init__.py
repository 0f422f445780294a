"""Deterministic decision logic: triage, rules and cost projection."""

from dermopt.engine.costs import calculate_cost_savings
from dermopt.engine.rules import RuleBasedGenerator
from dermopt.engine.triage import TriageInput, classify_triage


__all__ = ["RuleBasedGenerator", "TriageInput", "calculate_cost_savings", "classify_triage"]
