from __future__ import annotations

import logging
from dataclasses import dataclass

from hybrid_ai.config import Settings
from hybrid_ai.schemas import (
    AggregatorDecision,
    Backend,
    CapabilitySet,
    CollaborativeDecision,
    ComplexityLevel,
    Decision,
    LocalDecision,
    ModelRef,
    RemoteDecision,
    RemoteProvider,
    RoutingOptions,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoutingModels:
    local: str
    aggregator: str
    aggregator_strong: str
    gemini: str
    qwen: str

    @classmethod
    def from_settings(cls, settings: Settings) -> RoutingModels:
        return cls(
            local=settings.local_model,
            aggregator=settings.openrouter_model,
            aggregator_strong=settings.openrouter_strong_model,
            gemini=settings.gemini_model,
            qwen=settings.qwen_model,
        )


def _remote_model(capabilities: CapabilitySet, models: RoutingModels) -> str:
    if capabilities.remote_provider == RemoteProvider.QWEN:
        return models.qwen
    return models.gemini


def _local(model_id: str, justification: str, degraded: bool = False) -> LocalDecision:
    return LocalDecision(
        primary=ModelRef(backend=Backend.LOCAL, model_id=model_id),
        justification=justification,
        degraded=degraded,
    )


def _aggregator(model_id: str, justification: str, degraded: bool = False) -> AggregatorDecision:
    return AggregatorDecision(
        primary=ModelRef(backend=Backend.AGGREGATOR, model_id=model_id),
        justification=justification,
        degraded=degraded,
    )


def _remote(model_id: str, justification: str) -> RemoteDecision:
    return RemoteDecision(
        primary=ModelRef(backend=Backend.REMOTE, model_id=model_id),
        justification=justification,
    )


def _decide_forced(
    capabilities: CapabilitySet, options: RoutingOptions, models: RoutingModels
) -> Decision | None:
    if options.force_local:
        if capabilities.aggregator:
            return _aggregator(
                options.model or models.aggregator,
                "Forced local processing: using the OpenRouter aggregator (configured)",
            )
        return _local(
            options.model or models.local,
            "Forced local processing: using the local model server",
        )

    if options.force_remote:
        return _remote(
            options.model or _remote_model(capabilities, models),
            "Forced remote processing",
        )

    return None


def _decide_low(
    capabilities: CapabilitySet, options: RoutingOptions, models: RoutingModels
) -> Decision:
    if capabilities.aggregator:
        return _aggregator(
            options.model or models.aggregator,
            "Low complexity task: using the free OpenRouter tier",
        )
    if capabilities.local:
        return _local(
            options.model or models.local,
            "Low complexity task: processing locally for speed",
        )
    return _local(
        options.model or models.local,
        "Low complexity task: no backend configured, defaulting to local "
        "(degraded, availability checked at execution time)",
        degraded=True,
    )


def _decide_medium(
    capabilities: CapabilitySet, options: RoutingOptions, models: RoutingModels
) -> Decision:
    if capabilities.remote:
        if capabilities.aggregator:
            secondary = ModelRef(backend=Backend.AGGREGATOR, model_id=models.aggregator)
            executor = "OpenRouter execution"
        else:
            secondary = ModelRef(backend=Backend.LOCAL, model_id=models.local)
            executor = "local execution"
        return CollaborativeDecision(
            primary=ModelRef(
                backend=Backend.REMOTE,
                model_id=options.model or _remote_model(capabilities, models),
            ),
            secondary=secondary,
            justification=(
                f"Medium complexity task: remote guidance with {executor} "
                "(collaborative workflow)"
            ),
        )
    if capabilities.aggregator:
        return _aggregator(
            options.model or models.aggregator,
            "Medium complexity task: no remote credential, using OpenRouter only "
            "(degraded, no collaborative workflow)",
            degraded=True,
        )
    return _local(
        options.model or models.local,
        "Medium complexity task: no remote or aggregator credential, "
        "falling back to local (degraded)",
        degraded=True,
    )


def _decide_high(
    capabilities: CapabilitySet, options: RoutingOptions, models: RoutingModels
) -> Decision:
    if capabilities.remote:
        return _remote(
            options.model or _remote_model(capabilities, models),
            "High complexity task: processing remotely for best results",
        )
    if capabilities.aggregator:
        return _aggregator(
            options.model or models.aggregator_strong,
            "High complexity task: no remote credential, using a high-capability "
            "OpenRouter model (degraded)",
            degraded=True,
        )
    return _local(
        options.model or models.local,
        "High complexity task: no remote or aggregator credential, forced "
        "degradation to the local model",
        degraded=True,
    )


def decide(
    level: ComplexityLevel,
    capabilities: CapabilitySet,
    options: RoutingOptions,
    models: RoutingModels,
) -> Decision:
    """Pick exactly one approach for a task. Pure and total: never raises."""
    forced = _decide_forced(capabilities, options, models)
    if forced is not None:
        return forced

    if level == ComplexityLevel.LOW:
        return _decide_low(capabilities, options, models)
    if level == ComplexityLevel.MEDIUM:
        return _decide_medium(capabilities, options, models)
    if level == ComplexityLevel.HIGH:
        return _decide_high(capabilities, options, models)

    return _local(
        options.model or models.local,
        f"Unrecognized complexity level {level!r}: defaulting to local (degraded)",
        degraded=True,
    )


class DecisionEngine:
    def __init__(self, settings: Settings) -> None:
        self._models = RoutingModels.from_settings(settings)

    @property
    def models(self) -> RoutingModels:
        return self._models

    def decide(
        self,
        level: ComplexityLevel,
        capabilities: CapabilitySet,
        options: RoutingOptions | None = None,
    ) -> Decision:
        decision = decide(level, capabilities, options or RoutingOptions(), self._models)
        logger.info(
            "Router: complexity=%s → approach=%s model=%s (%s)",
            level.label,
            decision.approach,
            decision.primary.model_id,
            decision.justification,
        )
        if decision.degraded:
            logger.warning("Router degraded: %s", decision.justification)
        return decision
