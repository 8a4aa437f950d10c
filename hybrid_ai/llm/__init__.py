"""Routing layer for Hybrid AI.

Complexity classification + capability detection + backend decision.
"""

from hybrid_ai.llm.capabilities import CapabilityRegistry, check_validity, resolve_credentials
from hybrid_ai.llm.complexity import ComplexityClassifier, classify_complexity
from hybrid_ai.llm.router import DecisionEngine, RoutingModels, decide
from hybrid_ai.llm.task_types import PHASE_REQUIREMENTS, PhaseRequirement

__all__ = [
    "PHASE_REQUIREMENTS",
    "CapabilityRegistry",
    "ComplexityClassifier",
    "DecisionEngine",
    "PhaseRequirement",
    "RoutingModels",
    "check_validity",
    "classify_complexity",
    "decide",
    "resolve_credentials",
]
