import logging
import os
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from hybrid_ai import __version__
from hybrid_ai.config import load_settings
from hybrid_ai.errors import BackendError, BackendTimeout, HybridAIError
from hybrid_ai.llm.capabilities import CapabilityRegistry
from hybrid_ai.schemas import RemoteProvider, RoutingOptions, decision_adapter
from hybrid_ai.service import run_hybrid_task
from hybrid_ai.utils.llm_client import OllamaBackend

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)


class ProcessRequest(BaseModel):
    task: str = Field(min_length=1)
    complexity: str | None = "auto"
    local: bool = False
    remote: bool = False
    model: str | None = None


class ProcessResponse(BaseModel):
    success: bool
    result: str
    approach: str
    complexity: str
    model: str
    justification: str
    degraded: bool
    decision: dict[str, Any]
    failed_phase: str | None = None
    error: str | None = None


class CapabilitiesResponse(BaseModel):
    local: bool
    aggregator: bool
    remote: bool
    remote_provider: RemoteProvider | None = None


class HealthResponse(BaseModel):
    status: str
    version: str
    local_models: list[str]


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.settings = load_settings()
    # Overridable collaborators; None means build the real ones per request.
    app.state.backends = None
    app.state.test_runner = None
    logger.info("Hybrid AI API initialized")
    yield
    logger.info("Hybrid AI API shut down")


app = FastAPI(title="Hybrid AI API", version=__version__, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.post("/api/process", response_model=ProcessResponse)
async def process_task(req: ProcessRequest):
    settings = app.state.settings
    options = RoutingOptions(force_local=req.local, force_remote=req.remote, model=req.model)

    try:
        outcome = await run_hybrid_task(
            req.task,
            settings=settings,
            env=os.environ,
            options=options,
            complexity=req.complexity,
            backends=app.state.backends,
            test_runner=app.state.test_runner,
        )
    except BackendTimeout as e:
        logger.error("Timeout: %s", e)
        raise HTTPException(status_code=504, detail=str(e))
    except BackendError as e:
        logger.error("Backend error: %s", e)
        raise HTTPException(status_code=502, detail=str(e))
    except HybridAIError as e:
        logger.exception("Workflow error: %s", e)
        raise HTTPException(status_code=500, detail=f"{type(e).__name__}: {str(e)[:200]}")

    failure = outcome.result.failure
    return ProcessResponse(
        success=outcome.success,
        result=outcome.text,
        approach=outcome.decision.approach,
        complexity=outcome.level.label,
        model=outcome.decision.primary.model_id,
        justification=outcome.decision.justification,
        degraded=outcome.decision.degraded,
        decision=decision_adapter.dump_python(outcome.decision, mode="json"),
        failed_phase=failure.phase if failure else None,
        error=f"{failure.error_kind}: {failure.message}" if failure else None,
    )


@app.get("/api/capabilities", response_model=CapabilitiesResponse)
async def get_capabilities():
    _, capabilities = CapabilityRegistry(app.state.settings).snapshot(None, os.environ)
    return CapabilitiesResponse(**capabilities.model_dump())


@app.get("/api/health", response_model=HealthResponse)
async def health():
    settings = app.state.settings
    ollama = OllamaBackend(settings.local_base_url, timeout_seconds=5)
    try:
        models = await ollama.list_models()
    finally:
        await ollama.aclose()
    return HealthResponse(status="ok", version=__version__, local_models=models)
