import logging
from collections.abc import Mapping
from dataclasses import dataclass

from hybrid_ai.config import Settings
from hybrid_ai.llm.capabilities import CapabilityRegistry
from hybrid_ai.llm.complexity import ComplexityClassifier
from hybrid_ai.llm.router import DecisionEngine
from hybrid_ai.schemas import (
    Backend,
    CapabilitySet,
    ComplexityLevel,
    Credentials,
    Decision,
    RoutingOptions,
    Task,
    WorkflowResult,
)
from hybrid_ai.utils.llm_client import BackendClient, build_backends, close_backends
from hybrid_ai.utils.progress import AnnouncerFactory
from hybrid_ai.utils.test_runner import SpriteTestRunner, TestRunner
from hybrid_ai.workflow import WorkflowOrchestrator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaskOutcome:
    task: Task
    level: ComplexityLevel
    capabilities: CapabilitySet
    decision: Decision
    result: WorkflowResult

    @property
    def success(self) -> bool:
        return self.result.is_complete

    @property
    def text(self) -> str:
        return self.result.render()


def plan_task(
    task: Task,
    settings: Settings,
    options: RoutingOptions,
    cli_credentials: Credentials | None,
    env: Mapping[str, str],
) -> tuple[Credentials, ComplexityLevel, CapabilitySet, Decision]:
    """Classification and routing only; no backend is contacted."""
    level = ComplexityClassifier(settings).classify(task)
    credentials, capabilities = CapabilityRegistry(settings).snapshot(cli_credentials, env)
    decision = DecisionEngine(settings).decide(level, capabilities, options)
    return credentials, level, capabilities, decision


async def run_hybrid_task(
    task_text: str,
    *,
    settings: Settings,
    env: Mapping[str, str],
    options: RoutingOptions | None = None,
    complexity: str | None = None,
    cli_credentials: Credentials | None = None,
    backends: Mapping[Backend, BackendClient] | None = None,
    test_runner: TestRunner | None = None,
    announcer_factory: AnnouncerFactory | None = None,
) -> TaskOutcome:
    """Classify, route and execute one task end to end.

    Backend errors from single-call approaches propagate, with an overrun of
    ``settings.workflow_timeout_seconds`` raised as BackendTimeout. Collaborative
    failures, the deadline included, come back inside ``TaskOutcome.result``.
    """
    task = Task(text=task_text, complexity_override=complexity)
    credentials, level, capabilities, decision = plan_task(
        task, settings, options or RoutingOptions(), cli_credentials, env
    )

    owned = backends is None
    clients = build_backends(settings, credentials) if backends is None else backends
    runner = test_runner or SpriteTestRunner(settings.test_runner_timeout_seconds)
    orchestrator = WorkflowOrchestrator(
        clients, runner, announcer_factory, settings.workflow_timeout_seconds
    )

    try:
        result = await orchestrator.execute(task, decision)
    finally:
        if owned:
            await close_backends(dict(clients))

    if result.failure is not None:
        logger.warning(
            "Task finished with partial results: failed at %s (%s)",
            result.failure.phase,
            result.failure.error_kind,
        )
    return TaskOutcome(
        task=task,
        level=level,
        capabilities=capabilities,
        decision=decision,
        result=result,
    )
