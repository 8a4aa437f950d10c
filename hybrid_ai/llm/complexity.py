from __future__ import annotations

import logging

from hybrid_ai.config import Settings
from hybrid_ai.constants import COMPLEXITY_DESCRIPTIONS
from hybrid_ai.schemas import ComplexityLevel, Task

logger = logging.getLogger(__name__)

_NO_OVERRIDE = frozenset({"", "auto"})


def parse_complexity_level(value: str | ComplexityLevel | None) -> ComplexityLevel | None:
    if value is None:
        return None
    if isinstance(value, ComplexityLevel):
        return value
    normalized = value.strip().lower()
    for level in ComplexityLevel:
        if level.label == normalized:
            return level
    return None


def classify_complexity(
    text: str,
    override: str | ComplexityLevel | None = None,
    *,
    low_max: int,
    medium_max: int,
) -> ComplexityLevel:
    if override is not None and not (
        isinstance(override, str) and override.strip().lower() in _NO_OVERRIDE
    ):
        level = parse_complexity_level(override)
        if level is not None:
            return level
        logger.warning("Ignoring unrecognized complexity override %r", override)

    length = len(text)
    if length <= low_max:
        return ComplexityLevel.LOW
    if length <= medium_max:
        return ComplexityLevel.MEDIUM
    return ComplexityLevel.HIGH


def describe_complexity(level: ComplexityLevel) -> str:
    return COMPLEXITY_DESCRIPTIONS.get(level.label, "Unknown complexity")


class ComplexityClassifier:
    def __init__(self, settings: Settings) -> None:
        self._low_max = settings.complexity_low_max
        self._medium_max = settings.complexity_medium_max

    def classify(self, task: Task) -> ComplexityLevel:
        level = classify_complexity(
            task.text,
            task.complexity_override,
            low_max=self._low_max,
            medium_max=self._medium_max,
        )
        logger.info("Classifier: %d chars → complexity=%s", task.length, level.label)
        return level
