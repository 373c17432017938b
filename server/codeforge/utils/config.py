# codeforge/utils/config.py
import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


# configuration (can be tuned via env)
LOG_DIR = os.environ.get("AI_BACKEND_LOG_DIR", "./ai_backend_logs")
LLM_RETRIES = int(os.environ.get("AI_RETRY_COUNT", 2))
TIMEOUT = int(os.environ.get("AI_TIMEOUT", 180))
MODEL_NAME = os.environ.get("AI_MODEL_NAME", "gemini-2.5-flash-lite")
DEFAULT_TEMPERATURE = float(os.environ.get("AI_TEMPERATURE", 0.7))
MAX_TOKENS = int(os.environ.get("AI_MAX_TOKENS", 8000))
GATE_CONCURRENCY = int(os.environ.get("AI_GATE_CONCURRENCY", 4))
CACHE_TTL = int(os.environ.get("AI_CACHE_TTL", 3600))
CACHE_MAX_ENTRIES = int(os.environ.get("AI_CACHE_MAX_ENTRIES", 256))
ENABLE_VALIDATION = _env_bool("AI_ENABLE_VALIDATION", True)
ENABLE_OPTIMIZATION = _env_bool("AI_ENABLE_OPTIMIZATION", True)
ENABLE_QUALITY_ANALYSIS = _env_bool("AI_ENABLE_QUALITY_ANALYSIS", True)
PIN_DEPENDENCIES = _env_bool("AI_PIN_DEPENDENCIES", False)

# per-agent sampling temperature
AGENT_TEMPERATURES = {
    "analysis": 0.2,
    "raw_generation": DEFAULT_TEMPERATURE,
    "architecture": 0.3,
    "database": 0.2,
    "backend": 0.4,
    "api": 0.4,
    "ui": 0.6,
    "tests": 0.2,
}


class PipelineConfig(BaseModel):
    enable_validation: bool = True
    enable_optimization: bool = True
    enable_quality_analysis: bool = True
    # design slot only: the orchestrator never retries on its own
    retry_on_failure: bool = False
    max_retries: int = 3
    gate_concurrency: int = Field(4, ge=1)
    cache_ttl: int = Field(3600, ge=0)
    pin_dependencies: bool = False

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        return cls(
            enable_validation=ENABLE_VALIDATION,
            enable_optimization=ENABLE_OPTIMIZATION,
            enable_quality_analysis=ENABLE_QUALITY_ANALYSIS,
            gate_concurrency=max(1, GATE_CONCURRENCY),
            cache_ttl=max(0, CACHE_TTL),
            pin_dependencies=PIN_DEPENDENCIES,
        )
