import asyncio
import json
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Protocol

from hybrid_ai.schemas import TestReport

logger = logging.getLogger(__name__)

SPRITE_EXECUTABLE = "sprite-mcp"

LANGUAGE_EXTENSIONS: dict[str, str] = {
    "javascript": "js",
    "python": "py",
    "java": "java",
    "dart": "dart",
    "php": "php",
}

TEST_FRAMEWORKS: dict[str, str] = {
    "javascript": "jest",
    "python": "pytest",
    "java": "junit",
    "dart": "flutter_test",
    "php": "phpunit",
}

_SMOKE_TESTS: dict[str, str] = {
    "javascript": """
// Basic tests for: {task}
describe('Basic Functionality', () => {{
  test('should execute without errors', () => {{
    expect(true).toBe(true);
  }});
}});
""",
    "python": """
# Basic tests for: {task}
import unittest


class TestBasicFunctionality(unittest.TestCase):
    def test_basic_execution(self):
        self.assertTrue(True)


if __name__ == "__main__":
    unittest.main()
""",
    "java": """
// Basic tests for: {task}
import org.junit.Test;
import static org.junit.Assert.*;

public class MainTest {{
    @Test
    public void testBasicExecution() {{
        assertTrue(true);
    }}
}}
""",
    "dart": """
// Basic tests for: {task}
import 'package:flutter_test/flutter_test.dart';

void main() {{
  test('basic execution', () {{
    expect(true, true);
  }});
}}
""",
    "php": """<?php
// Basic tests for: {task}
use PHPUnit\\Framework\\TestCase;

class MainTest extends TestCase
{{
    public function testBasicExecution()
    {{
        $this->assertTrue(true);
    }}
}}
""",
}


class TestRunner(Protocol):
    __test__ = False

    async def run_tests(self, code: str, task_description: str) -> TestReport: ...


def detect_language(task: str, code: str) -> str:
    task_lower = task.lower()
    code_lower = code.lower()

    if "javascript" in task_lower or " js" in task_lower or "function" in code_lower:
        return "javascript"
    if "python" in task_lower or "def " in code_lower:
        return "python"
    if "java" in task_lower or "public class" in code_lower:
        return "java"
    if "flutter" in task_lower or "dart" in task_lower or "widget" in code_lower:
        return "dart"
    if "php" in task_lower or "<?php" in code_lower:
        return "php"
    return "javascript"


def _first_line(text: str) -> str:
    return text.strip().splitlines()[0] if text.strip() else ""


def write_test_project(code: str, task: str, language: str, test_dir: Path) -> list[Path]:
    ext = LANGUAGE_EXTENSIONS.get(language, "js")
    main_file = test_dir / f"main.{ext}"
    main_file.write_text(code, encoding="utf-8")

    sprite_config = {
        "name": "hybrid-ai-test",
        "version": "1.0.0",
        "description": f"Test for task: {task}",
        "language": language,
        "main": main_file.name,
        "test": {
            "framework": TEST_FRAMEWORKS.get(language, "jest"),
            "pattern": f"test_*.{ext}",
        },
    }
    config_file = test_dir / "sprite.json"
    config_file.write_text(json.dumps(sprite_config, indent=2), encoding="utf-8")

    template = _SMOKE_TESTS.get(language, _SMOKE_TESTS["javascript"])
    test_file = test_dir / f"test_main.{ext}"
    test_file.write_text(template.format(task=_first_line(task)), encoding="utf-8")

    return [main_file, config_file, test_file]


class SpriteTestRunner:
    """Runs generated code through the external ``sprite-mcp`` test harness.

    Every outcome, including a missing harness or a crashed run, comes back as
    a TestReport; only cancellation propagates.
    """

    def __init__(self, timeout_seconds: float, executable: str = SPRITE_EXECUTABLE) -> None:
        self._timeout_seconds = timeout_seconds
        self._executable = executable

    def is_available(self) -> bool:
        return shutil.which(self._executable) is not None

    async def run_tests(self, code: str, task_description: str) -> TestReport:
        executable = shutil.which(self._executable)
        if executable is None:
            logger.info("Test runner: %s not found on PATH", self._executable)
            return TestReport(
                success=False,
                message="Sprite MCP framework not available. "
                "Install Sprite MCP for comprehensive testing.",
            )

        language = detect_language(task_description, code)
        with tempfile.TemporaryDirectory(prefix="sprite_test_") as tmp:
            test_dir = Path(tmp)
            write_test_project(code, task_description, language, test_dir)
            return await self._run(executable, test_dir, language)

    async def _run(self, executable: str, test_dir: Path, language: str) -> TestReport:
        try:
            proc = await asyncio.create_subprocess_exec(
                executable,
                "run",
                cwd=test_dir,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.warning("Test runner failed to start: %s", e)
            return TestReport(success=False, message=f"Test execution failed: {e}")

        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(), timeout=self._timeout_seconds
            )
        except TimeoutError:
            proc.kill()
            await proc.wait()
            logger.warning("Test runner timed out after %.0fs", self._timeout_seconds)
            return TestReport(
                success=False,
                message=f"Test execution timed out after {self._timeout_seconds:.0f}s",
            )

        output = stdout.decode("utf-8", errors="replace")
        errors = stderr.decode("utf-8", errors="replace")
        logger.info("Test runner (%s) exited with code %s", language, proc.returncode)
        return TestReport(
            success=proc.returncode == 0,
            output=output,
            errors=errors,
            message=f"exit code {proc.returncode}",
        )
