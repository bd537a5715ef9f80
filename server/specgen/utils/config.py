# specgen/utils/config.py
import os
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()

# ----------------------------
# Env overrides
# ----------------------------
LLM_PROVIDER = os.environ.get("LLM_PROVIDER", "openai").strip().lower()
OPENAI_MODEL = os.environ.get("OPENAI_MODEL") or os.environ.get("OPENROUTER_MODEL") or "gpt-4o-mini"
OPENAI_BASE_URL = os.environ.get("OPENAI_BASE_URL") or os.environ.get("OPENROUTER_BASE_URL")
OPENAI_MAX_TOKENS = int(os.environ.get("OPENAI_MAX_TOKENS", 4000))
OPENAI_TEMPERATURE = float(os.environ.get("OPENAI_TEMPERATURE", 0.1))
OPENAI_TIMEOUT = int(os.environ.get("OPENAI_TIMEOUT", 60000))  # ms
OPENAI_MAX_RETRIES = int(os.environ.get("OPENAI_MAX_RETRIES", 3))

BREAKER_FAILURE_THRESHOLD = int(os.environ.get("BREAKER_FAILURE_THRESHOLD", 3))
BREAKER_RECOVERY_TIMEOUT = int(os.environ.get("BREAKER_RECOVERY_TIMEOUT", 30000))  # ms
BREAKER_EXPECTED_ERRORS = os.environ.get("BREAKER_EXPECTED_ERRORS", "rate_limit_exceeded,insufficient_quota")

DEFAULT_PROMPTS_PATH = Path(__file__).resolve().parent.parent / "prompts" / "generate_feature.prompt.md"
PROMPTS_PATH = os.environ.get("PROMPTS_PATH", str(DEFAULT_PROMPTS_PATH))

FALLBACK_ENABLED = os.environ.get("FALLBACK_ENABLED", "true").lower() != "false"
MIN_DESCRIPTION_LENGTH = int(os.environ.get("MIN_DESCRIPTION_LENGTH", 10))
MAX_DESCRIPTION_LENGTH = int(os.environ.get("MAX_DESCRIPTION_LENGTH", 2000))

LOG_DIR = os.environ.get("AI_BACKEND_LOG_DIR", "./ai_backend_logs")
DEBUG = os.environ.get("AI_DEBUG", "false").lower() == "true"
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

AI_BREAKER_NAME = "ai-api"


def _api_key_for(provider: str) -> Optional[str]:
    if provider == "gemini":
        return os.environ.get("GOOGLE_API_KEY_GEMINI") or os.environ.get("GOOGLE_API_KEY")
    return os.environ.get("OPENAI_API_KEY") or os.environ.get("OPENROUTER_API_KEY")


# ----------------------------
# Settings models
# ----------------------------
class LLMSettings(BaseModel):
    provider: str = "openai"
    model: str = "gpt-4o-mini"
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    max_tokens: int = Field(4000, ge=1, le=100000)
    temperature: float = Field(0.1, ge=0.0, le=2.0)
    timeout_ms: int = Field(60000, gt=0)
    max_retries: int = Field(3, ge=1)

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0


class BreakerSettings(BaseModel):
    failure_threshold: int = Field(3, ge=1)
    recovery_timeout_ms: int = Field(30000, gt=0)
    expected_errors: List[str] = Field(default_factory=lambda: ["rate_limit_exceeded", "insufficient_quota"])

    @property
    def recovery_timeout_seconds(self) -> float:
        return self.recovery_timeout_ms / 1000.0


class Settings(BaseModel):
    llm: LLMSettings = Field(default_factory=LLMSettings)
    breaker: BreakerSettings = Field(default_factory=BreakerSettings)
    prompts_path: str = str(DEFAULT_PROMPTS_PATH)
    fallback_enabled: bool = True
    min_description_length: int = Field(10, ge=1)
    max_description_length: int = Field(2000, ge=1)
    log_dir: str = "./ai_backend_logs"
    debug: bool = False
    log_level: str = "INFO"


def load_settings() -> Settings:
    """
    Build Settings from the environment. Out-of-range values (e.g. a temperature of 3)
    raise pydantic.ValidationError so a misconfigured process fails at startup.
    """
    expected = [e.strip() for e in BREAKER_EXPECTED_ERRORS.split(",") if e.strip()]
    return Settings(
        llm=LLMSettings(
            provider=LLM_PROVIDER,
            model=OPENAI_MODEL,
            api_key=_api_key_for(LLM_PROVIDER),
            base_url=OPENAI_BASE_URL,
            max_tokens=OPENAI_MAX_TOKENS,
            temperature=OPENAI_TEMPERATURE,
            timeout_ms=OPENAI_TIMEOUT,
            max_retries=OPENAI_MAX_RETRIES,
        ),
        breaker=BreakerSettings(
            failure_threshold=BREAKER_FAILURE_THRESHOLD,
            recovery_timeout_ms=BREAKER_RECOVERY_TIMEOUT,
            expected_errors=expected,
        ),
        prompts_path=PROMPTS_PATH,
        fallback_enabled=FALLBACK_ENABLED,
        min_description_length=MIN_DESCRIPTION_LENGTH,
        max_description_length=MAX_DESCRIPTION_LENGTH,
        log_dir=LOG_DIR,
        debug=DEBUG,
        log_level=LOG_LEVEL,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
