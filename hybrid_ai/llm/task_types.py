from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from hybrid_ai.schemas import WorkflowPhase

PhaseRole = Literal["primary", "secondary", "test_runner"]


@dataclass(frozen=True)
class PhaseRequirement:
    role: PhaseRole
    label: str
    progress_context: str = "general"


PHASE_REQUIREMENTS: dict[WorkflowPhase, PhaseRequirement] = {
    WorkflowPhase.ARCHITECTURE: PhaseRequirement(
        role="primary",
        label="Architecture & Specifications",
        progress_context="planning",
    ),
    WorkflowPhase.IMPLEMENTATION: PhaseRequirement(
        role="secondary",
        label="Implementation",
        progress_context="implementation",
    ),
    WorkflowPhase.TEST: PhaseRequirement(
        role="test_runner",
        label="Initial Test Results",
        progress_context="testing",
    ),
    WorkflowPhase.REVIEW: PhaseRequirement(
        role="primary",
        label="Code Review",
        progress_context="review",
    ),
    WorkflowPhase.IMPROVEMENT: PhaseRequirement(
        role="secondary",
        label="Improved Implementation",
        progress_context="improvement",
    ),
    WorkflowPhase.VALIDATION: PhaseRequirement(
        role="test_runner",
        label="Final Test Results",
        progress_context="validation",
    ),
}


def get_phase_requirement(phase: WorkflowPhase) -> PhaseRequirement:
    return PHASE_REQUIREMENTS[phase]
