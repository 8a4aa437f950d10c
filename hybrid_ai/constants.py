"""Default configuration values with trade-off documentation.

Each constant has a rationale explaining why this specific value was chosen.
Runtime values live on ``hybrid_ai.config.Settings``; these are only the
defaults it falls back to.
"""

# =============================================================================
# Complexity Classification
# =============================================================================

COMPLEXITY_LOW_MAX_CHARS = 50
# Why 50: One-line requests ("reverse a string in python") fit comfortably.
# Anything longer usually carries constraints that benefit from a planning step.

COMPLEXITY_MEDIUM_MAX_CHARS = 200
# Why 200: A short paragraph. Beyond this, tasks tend to describe whole
# features and go straight to the strongest remote model.

COMPLEXITY_DESCRIPTIONS: dict[str, str] = {
    "low": "Simple queries and code snippets",
    "medium": "Moderate tasks requiring some reasoning",
    "high": "Complex tasks requiring deep analysis",
}

# =============================================================================
# Backends
# =============================================================================

LOCAL_AI_BASE_URL = "http://localhost:11434"
# Why: Ollama's default listen address.

DEFAULT_LOCAL_MODEL = "smollm2:1.7b"
# Why smollm2:1.7b: Runs on laptops without a GPU; good enough for snippets.

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"

DEFAULT_OPENROUTER_MODEL = "mistralai/mistral-7b-instruct-v0.2"
# Why: Free-tier model on OpenRouter, the cheap alternative to local inference.

STRONG_OPENROUTER_MODEL = "meta-llama/llama-3-70b-instruct"
# Why 70B: Used when a high-complexity task has no remote credential.
# Still served through the aggregator, but far stronger than the default.

OPENROUTER_REFERER = "https://github.com/AAShayon/Ans_cli"
OPENROUTER_TITLE = "Hybrid AI CLI Tool"

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"
DEFAULT_REMOTE_MODEL = "gemini-1.5-pro"

QWEN_BASE_URL = "https://dashscope.aliyuncs.com/compatible-mode/v1"
DEFAULT_QWEN_MODEL = "qwen-turbo"

LLM_TEMPERATURE = 0.7
LLM_DEFAULT_MAX_TOKENS = 2000
# Why 2000: Enough for a full implementation listing. Phase outputs are
# threaded verbatim into later prompts, so longer outputs inflate every
# following call.

# =============================================================================
# Timeouts
# =============================================================================

BACKEND_TIMEOUT_SECONDS = 120
# Why 120: Local 7B models on CPU take 30-90s for a long answer. Beyond two
# minutes the backend is treated as hung and the call fails with Timeout.

WORKFLOW_TIMEOUT_SECONDS = 900
# Why 900: Six sequential phases, four of them model calls bounded by
# BACKEND_TIMEOUT_SECONDS, plus two test runs. 15 minutes covers the slow path.

TEST_RUNNER_TIMEOUT_SECONDS = 30
# Why 30: Generated test suites are tiny smoke tests; a run longer than this
# is almost always stuck on input or a network call.

# =============================================================================
# Progress Display
# =============================================================================

PROGRESS_INTERVAL_SECONDS = 10.0
# Why 10s: Frequent enough to show the tool is alive during a slow phase,
# rare enough not to bury the phase headers.

# =============================================================================
# Credential Files
# =============================================================================

LOCAL_KEY_FILE = ".env"
GLOBAL_KEY_FILE = ".hybrid-ai-config"
# Resolved relative to the working directory and the home directory.
