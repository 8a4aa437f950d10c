from hybrid_ai.llm.task_types import PHASE_REQUIREMENTS
from hybrid_ai.schemas import PHASE_ORDER, WorkflowPhase

ARCHITECTURE_INSTRUCTIONS = """\
As a senior software architect, create a comprehensive architecture and specifications for the task below.

Provide:
1. System architecture overview
2. Technology stack recommendations
3. Detailed implementation specifications
4. Code structure and organization
5. Best practices and design patterns to apply
6. Security considerations
7. Performance requirements
8. Testing strategies

Be thorough and professional, as this will guide the implementation."""

IMPLEMENTATION_INSTRUCTIONS = """\
You are a professional developer implementing a solution based on the senior architect's specifications below.

Implement a professional, production-ready solution that follows all specifications.
Write clean, well-documented, and maintainable code."""

REVIEW_INSTRUCTIONS = """\
As a senior code reviewer, conduct a thorough review of the implementation below, taking the test results into account.

Provide a professional code review covering:
1. Code quality and maintainability
2. Adherence to specifications
3. Best practices and design patterns
4. Performance optimizations
5. Security considerations
6. Areas for improvement
7. Potential bugs or issues
8. Overall quality score (1-10)

Be detailed and constructive in your feedback."""

IMPROVEMENT_INSTRUCTIONS = """\
You are a professional developer improving your code based on the senior reviewer's feedback below.

Implement all suggested improvements professionally.
Return the complete improved implementation and summarize what changed."""

PHASE_INSTRUCTIONS: dict[WorkflowPhase, str] = {
    WorkflowPhase.ARCHITECTURE: ARCHITECTURE_INSTRUCTIONS,
    WorkflowPhase.IMPLEMENTATION: IMPLEMENTATION_INSTRUCTIONS,
    WorkflowPhase.REVIEW: REVIEW_INSTRUCTIONS,
    WorkflowPhase.IMPROVEMENT: IMPROVEMENT_INSTRUCTIONS,
}


def build_phase_prompt(
    phase: WorkflowPhase, task: str, prior_outputs: dict[WorkflowPhase, str]
) -> str:
    """Prompt for a model-driven phase: instructions, the task, then every
    earlier phase's output verbatim in phase order."""
    parts = [PHASE_INSTRUCTIONS[phase], f"Original Task:\n{task}"]
    for earlier in PHASE_ORDER:
        if earlier == phase:
            break
        if earlier in prior_outputs:
            label = PHASE_REQUIREMENTS[earlier].label
            parts.append(f"{label}:\n{prior_outputs[earlier]}")
    return "\n\n".join(parts)
