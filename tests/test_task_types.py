from hybrid_ai.llm.task_types import (
    PHASE_REQUIREMENTS,
    PhaseRequirement,
    get_phase_requirement,
)
from hybrid_ai.schemas import PHASE_ORDER, WorkflowPhase


class TestWorkflowPhase:
    def test_all_phases_have_requirements(self):
        for phase in WorkflowPhase:
            assert phase in PHASE_REQUIREMENTS

    def test_phase_values(self):
        assert WorkflowPhase.ARCHITECTURE == "architecture"
        assert WorkflowPhase.IMPLEMENTATION == "implementation"
        assert WorkflowPhase.TEST == "test"
        assert WorkflowPhase.REVIEW == "review"
        assert WorkflowPhase.IMPROVEMENT == "improvement"
        assert WorkflowPhase.VALIDATION == "validation"

    def test_execution_order(self):
        assert PHASE_ORDER == (
            WorkflowPhase.ARCHITECTURE,
            WorkflowPhase.IMPLEMENTATION,
            WorkflowPhase.TEST,
            WorkflowPhase.REVIEW,
            WorkflowPhase.IMPROVEMENT,
            WorkflowPhase.VALIDATION,
        )


class TestPhaseRequirement:
    def test_default_values(self):
        req = PhaseRequirement(role="primary", label="X")
        assert req.progress_context == "general"

    def test_frozen(self):
        req = PhaseRequirement(role="primary", label="X")
        try:
            req.label = "Y"  # type: ignore[misc]
            assert False, "Should raise FrozenInstanceError"
        except AttributeError:
            pass


class TestPhaseRoles:
    def test_primary_plans_and_reviews(self):
        assert get_phase_requirement(WorkflowPhase.ARCHITECTURE).role == "primary"
        assert get_phase_requirement(WorkflowPhase.REVIEW).role == "primary"

    def test_secondary_implements(self):
        assert get_phase_requirement(WorkflowPhase.IMPLEMENTATION).role == "secondary"
        assert get_phase_requirement(WorkflowPhase.IMPROVEMENT).role == "secondary"

    def test_test_runner_phases(self):
        assert get_phase_requirement(WorkflowPhase.TEST).role == "test_runner"
        assert get_phase_requirement(WorkflowPhase.VALIDATION).role == "test_runner"

    def test_labels_unique(self):
        labels = [req.label for req in PHASE_REQUIREMENTS.values()]
        assert len(labels) == len(set(labels))
