import asyncio
import contextlib
import logging
import time
from collections.abc import Mapping
from typing import Any, Never, NoReturn

from hybrid_ai.errors import BackendError, BackendTimeout, BackendUnavailable, UnknownApproach
from hybrid_ai.llm.task_types import PHASE_REQUIREMENTS, PhaseRequirement, get_phase_requirement
from hybrid_ai.prompts import build_phase_prompt
from hybrid_ai.schemas import (
    PHASE_ORDER,
    AggregatorDecision,
    Approach,
    CollaborativeDecision,
    Decision,
    LocalDecision,
    ModelRef,
    PhaseFailure,
    RemoteDecision,
    Task,
    WorkflowPhase,
    WorkflowResult,
)
from hybrid_ai.utils.llm_client import BackendClient
from hybrid_ai.utils.progress import AnnouncerFactory
from hybrid_ai.utils.test_runner import TestRunner

logger = logging.getLogger(__name__)


def _unknown_approach(decision: Never) -> NoReturn:
    raise UnknownApproach(f"Unknown approach: {getattr(decision, 'approach', decision)!r}")


class WorkflowOrchestrator:
    """Executes a routing Decision against the configured backends.

    Single-backend decisions make one call and let its error propagate.
    Collaborative decisions run the six phases strictly in order, threading
    every earlier output into the next prompt, and stop at the first failure
    while keeping everything completed so far.
    """

    def __init__(
        self,
        backends: Mapping[Any, BackendClient],
        test_runner: TestRunner,
        announcer_factory: AnnouncerFactory | None = None,
        workflow_timeout_seconds: float | None = None,
    ) -> None:
        self._backends = backends
        self._test_runner = test_runner
        self._announcer_factory = announcer_factory
        self._workflow_timeout_seconds = workflow_timeout_seconds

    def _announcer(self, context: str) -> contextlib.AbstractAsyncContextManager[Any]:
        if self._announcer_factory is None:
            return contextlib.nullcontext()
        return self._announcer_factory(context)

    def _client(self, ref: ModelRef) -> BackendClient:
        client = self._backends.get(ref.backend)
        if client is None:
            raise BackendUnavailable(f"No client configured for the {ref.backend} backend")
        return client

    def _deadline_message(self) -> str:
        return f"workflow did not finish within {self._workflow_timeout_seconds:g}s"

    async def execute(self, task: Task, decision: Decision) -> WorkflowResult:
        match decision:
            case LocalDecision() | AggregatorDecision() | RemoteDecision():
                return await self._execute_single(task, decision)
            case CollaborativeDecision():
                return await self._execute_collaborative(task, decision)
            case _:
                _unknown_approach(decision)

    async def _execute_single(
        self, task: Task, decision: LocalDecision | AggregatorDecision | RemoteDecision
    ) -> WorkflowResult:
        start_time = time.perf_counter()
        deadline = asyncio.timeout(self._workflow_timeout_seconds)
        try:
            async with deadline:
                async with self._announcer("general"):
                    client = self._client(decision.primary)
                    response = await client.execute_task(task.text, decision.primary.model_id)
        except BackendError as e:
            raise e.tagged(approach=decision.approach)
        except TimeoutError as e:
            if not deadline.expired():
                raise
            logger.error("Workflow: %s call hit the workflow deadline", decision.approach)
            raise BackendTimeout(self._deadline_message(), approach=decision.approach) from e

        logger.info(
            "Workflow: %s call completed in %.2fs",
            decision.approach,
            time.perf_counter() - start_time,
        )
        return WorkflowResult(approach=decision.approach, response=response)

    async def _execute_collaborative(
        self, task: Task, decision: CollaborativeDecision
    ) -> WorkflowResult:
        outputs: dict[WorkflowPhase, str] = {}
        logger.info(
            "Workflow: collaborative pipeline (primary=%s, secondary=%s:%s)",
            decision.primary.model_id,
            decision.secondary.backend,
            decision.secondary.model_id,
        )

        # One deadline shared by all phases; hitting it ends the run like any
        # other phase failure, keeping the outputs so far.
        deadline_at = None
        if self._workflow_timeout_seconds is not None:
            deadline_at = asyncio.get_running_loop().time() + self._workflow_timeout_seconds

        for phase in PHASE_ORDER:
            requirement = get_phase_requirement(phase)
            start_time = time.perf_counter()
            logger.info("Workflow: phase %s starting", phase)
            deadline = asyncio.timeout_at(deadline_at)
            try:
                async with deadline:
                    async with self._announcer(requirement.progress_context):
                        output = await self._run_phase(
                            phase, requirement, task, decision, outputs
                        )
            except BackendError as e:
                e.tagged(approach=Approach.COLLABORATIVE, phase=phase)
                logger.error("Workflow: phase %s failed: %s", phase, e)
                return self._partial(outputs, phase, e.kind, e.message)
            except TimeoutError as e:
                if deadline.expired():
                    logger.error("Workflow: phase %s hit the workflow deadline", phase)
                    return self._partial(
                        outputs, phase, BackendTimeout.kind, self._deadline_message()
                    )
                logger.exception("Workflow: phase %s raised %s", phase, type(e).__name__)
                return self._partial(outputs, phase, type(e).__name__, str(e))
            except Exception as e:
                logger.exception("Workflow: phase %s raised %s", phase, type(e).__name__)
                return self._partial(outputs, phase, type(e).__name__, str(e))

            outputs[phase] = output
            logger.info(
                "Workflow: phase %s completed in %.2fs (%d chars)",
                phase,
                time.perf_counter() - start_time,
                len(output),
            )

        return WorkflowResult(approach=Approach.COLLABORATIVE, outputs=outputs)

    @staticmethod
    def _partial(
        outputs: dict[WorkflowPhase, str], phase: WorkflowPhase, kind: str, message: str
    ) -> WorkflowResult:
        return WorkflowResult(
            approach=Approach.COLLABORATIVE,
            outputs=dict(outputs),
            failure=PhaseFailure(phase=phase, error_kind=kind, message=message),
        )

    async def _run_phase(
        self,
        phase: WorkflowPhase,
        requirement: PhaseRequirement,
        task: Task,
        decision: CollaborativeDecision,
        outputs: dict[WorkflowPhase, str],
    ) -> str:
        if requirement.role == "test_runner":
            code = self._latest_implementation(phase, outputs)
            report = await self._test_runner.run_tests(code, task.text)
            return report.to_prompt_text()

        ref = decision.primary if requirement.role == "primary" else decision.secondary
        prompt = build_phase_prompt(phase, task.text, outputs)
        return await self._client(ref).execute_task(prompt, ref.model_id)

    @staticmethod
    def _latest_implementation(phase: WorkflowPhase, outputs: dict[WorkflowPhase, str]) -> str:
        latest = ""
        for earlier in PHASE_ORDER:
            if earlier == phase:
                break
            if PHASE_REQUIREMENTS[earlier].role == "secondary" and earlier in outputs:
                latest = outputs[earlier]
        return latest
