from enum import IntEnum, StrEnum
from typing import Annotated, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator


class WorkflowPhase(StrEnum):
    ARCHITECTURE = "architecture"
    IMPLEMENTATION = "implementation"
    TEST = "test"
    REVIEW = "review"
    IMPROVEMENT = "improvement"
    VALIDATION = "validation"


# Enum definition order is the execution order.
PHASE_ORDER: tuple[WorkflowPhase, ...] = tuple(WorkflowPhase)


class ComplexityLevel(IntEnum):
    LOW = 1
    MEDIUM = 2
    HIGH = 3

    @property
    def label(self) -> str:
        return self.name.lower()


class Approach(StrEnum):
    LOCAL = "local"
    AGGREGATOR = "aggregator"
    REMOTE = "remote"
    COLLABORATIVE = "collaborative"


class Backend(StrEnum):
    LOCAL = "local"
    AGGREGATOR = "aggregator"
    REMOTE = "remote"


class RemoteProvider(StrEnum):
    GEMINI = "gemini"
    QWEN = "qwen"


class Task(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    complexity_override: str | None = None

    @property
    def length(self) -> int:
        return len(self.text)


class Credentials(BaseModel):
    model_config = ConfigDict(frozen=True)

    gemini: str | None = None
    qwen: str | None = None
    openrouter: str | None = None

    def is_empty(self) -> bool:
        return not (self.gemini or self.qwen or self.openrouter)


class CapabilitySet(BaseModel):
    """Which backends have credentials configured and well-formed.

    Says nothing about reachability; that is only discovered at call time.
    """

    model_config = ConfigDict(frozen=True)

    local: bool = False
    aggregator: bool = False
    remote: bool = False
    remote_provider: RemoteProvider | None = None


class RoutingOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    force_local: bool = False
    force_remote: bool = False
    model: str | None = None


class ModelRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    backend: Backend
    model_id: str


class _DecisionBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    primary_backend: ClassVar[Backend]

    primary: ModelRef
    justification: str
    degraded: bool = False

    @model_validator(mode="after")
    def _check_primary_backend(self):
        if self.primary.backend != self.primary_backend:
            raise ValueError(
                f"{type(self).__name__} requires a {self.primary_backend} primary model, "
                f"got {self.primary.backend}"
            )
        return self


class LocalDecision(_DecisionBase):
    primary_backend: ClassVar[Backend] = Backend.LOCAL
    approach: Literal[Approach.LOCAL] = Approach.LOCAL


class AggregatorDecision(_DecisionBase):
    primary_backend: ClassVar[Backend] = Backend.AGGREGATOR
    approach: Literal[Approach.AGGREGATOR] = Approach.AGGREGATOR


class RemoteDecision(_DecisionBase):
    primary_backend: ClassVar[Backend] = Backend.REMOTE
    approach: Literal[Approach.REMOTE] = Approach.REMOTE


class CollaborativeDecision(_DecisionBase):
    primary_backend: ClassVar[Backend] = Backend.REMOTE
    approach: Literal[Approach.COLLABORATIVE] = Approach.COLLABORATIVE

    secondary: ModelRef

    @model_validator(mode="after")
    def _check_secondary_backend(self):
        if self.secondary.backend == Backend.REMOTE:
            raise ValueError("collaboration requires a distinct execution backend")
        return self


Decision = Annotated[
    LocalDecision | AggregatorDecision | RemoteDecision | CollaborativeDecision,
    Field(discriminator="approach"),
]

decision_adapter: TypeAdapter[Decision] = TypeAdapter(Decision)


class TestReport(BaseModel):
    __test__ = False

    success: bool
    output: str = ""
    errors: str = ""
    message: str = ""

    def to_prompt_text(self) -> str:
        return self.model_dump_json(indent=2)


class PhaseFailure(BaseModel):
    phase: WorkflowPhase
    error_kind: str
    message: str


class WorkflowResult(BaseModel):
    approach: Approach
    outputs: dict[WorkflowPhase, str] = Field(default_factory=dict)
    response: str | None = None
    failure: PhaseFailure | None = None

    @property
    def is_complete(self) -> bool:
        if self.failure is not None:
            return False
        if self.approach == Approach.COLLABORATIVE:
            return all(phase in self.outputs for phase in PHASE_ORDER)
        return self.response is not None

    @property
    def completed_phases(self) -> list[WorkflowPhase]:
        return [phase for phase in PHASE_ORDER if phase in self.outputs]

    def render(self) -> str:
        from hybrid_ai.llm.task_types import PHASE_REQUIREMENTS

        if self.approach != Approach.COLLABORATIVE:
            return self.response or ""

        sections = [
            f"=== {PHASE_REQUIREMENTS[phase].label} ===\n{self.outputs[phase]}"
            for phase in self.completed_phases
        ]
        if self.failure is not None:
            sections.append(
                f"!!! Pipeline failed at phase '{self.failure.phase}' "
                f"({self.failure.error_kind}): {self.failure.message}"
            )
        return "\n\n".join(sections)
