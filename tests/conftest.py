import asyncio

import pytest

from hybrid_ai.schemas import TestReport
from hybrid_ai.utils.progress import ProgressAnnouncer


class FakeBackend:
    """Records every call; replies with canned text or raises on a given call."""

    def __init__(
        self,
        name: str = "fake",
        replies: list[str] | None = None,
        error: Exception | None = None,
        fail_on_call: int = 1,
        delay: float = 0.0,
    ) -> None:
        self.name = name
        self.replies = list(replies or [])
        self.error = error
        self.fail_on_call = fail_on_call
        self.delay = delay
        self.calls: list[tuple[str, str]] = []
        self.closed = False

    async def execute_task(self, prompt: str, model_id: str) -> str:
        self.calls.append((prompt, model_id))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None and len(self.calls) >= self.fail_on_call:
            raise self.error
        if self.replies:
            return self.replies.pop(0)
        return f"{self.name} reply {len(self.calls)}"

    async def aclose(self) -> None:
        self.closed = True


class FakeTestRunner:
    def __init__(self, report: TestReport | None = None, error: Exception | None = None):
        self.report = report or TestReport(success=True, output="1 passed", message="exit code 0")
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def run_tests(self, code: str, task_description: str) -> TestReport:
        self.calls.append((code, task_description))
        if self.error is not None:
            raise self.error
        return self.report


class RecordingAnnouncers:
    """Announcer factory that keeps every announcer it hands out."""

    def __init__(self) -> None:
        self.created: list[ProgressAnnouncer] = []
        self.messages: list[str] = []

    def __call__(self, context: str) -> ProgressAnnouncer:
        announcer = ProgressAnnouncer(context=context, interval_s=60, emit=self.messages.append)
        self.created.append(announcer)
        return announcer

    @property
    def contexts(self) -> list[str]:
        return [a._context for a in self.created]


@pytest.fixture
def make_backend():
    return FakeBackend


@pytest.fixture
def make_test_runner():
    return FakeTestRunner


@pytest.fixture
def announcers():
    return RecordingAnnouncers()
