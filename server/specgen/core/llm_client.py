# specgen/core/llm_client.py
import asyncio
import json
import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import openai
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from specgen.core.errors import (
    CONNECTION_ERROR,
    CONTEXT_LENGTH_EXCEEDED,
    INSUFFICIENT_QUOTA,
    INVALID_API_KEY,
    MODEL_NOT_FOUND,
    PROVIDER_ERROR,
    RATE_LIMIT_EXCEEDED,
    SERVER_ERROR,
    SERVICE_UNAVAILABLE,
    TIMEOUT,
    EmptyResponse,
    LLMError,
)
from specgen.utils.config import LLMSettings

logger = logging.getLogger(__name__)


@dataclass
class LLMCompletion:
    text: str
    tokens_used: int
    model: str


# -------------------------
# LLM init
# -------------------------
def get_llm(settings: LLMSettings):
    """
    Build the LangChain chat model for the configured provider.
    SDK retries are off: the pipeline's retry executor owns retrying.
    """
    if not settings.api_key:
        raise LLMError(f"No API key configured for provider '{settings.provider}'", kind=INVALID_API_KEY)

    if settings.provider == "gemini":
        from langchain_google_genai import ChatGoogleGenerativeAI

        return ChatGoogleGenerativeAI(
            model=settings.model,
            google_api_key=settings.api_key,
            temperature=settings.temperature,
            max_output_tokens=settings.max_tokens,
            timeout=settings.timeout_seconds,
            max_retries=0,
            response_mime_type="application/json",
        )

    from langchain_openai import ChatOpenAI

    llm = ChatOpenAI(
        model=settings.model,
        api_key=settings.api_key,
        base_url=settings.base_url,
        max_tokens=settings.max_tokens,
        temperature=settings.temperature,
        timeout=settings.timeout_seconds,
        max_retries=0,
    )
    return llm.bind(response_format={"type": "json_object"})


def _save_debug_log(log_dir: str, prefix: str, payload: Dict[str, Any]):
    fname = f"{int(time.time() * 1000)}_{prefix}.json"
    try:
        os.makedirs(log_dir, exist_ok=True)
        with open(os.path.join(log_dir, fname), "w", encoding="utf-8") as fh:
            json.dump(payload, fh, indent=2, ensure_ascii=False)
    except OSError:
        logger.exception("Failed to write debug log")


# -------------------------
# Provider error mapping
# -------------------------
def _status_code(exc: BaseException) -> Optional[int]:
    status = getattr(exc, "status_code", None)
    if isinstance(status, int):
        return status
    # google.api_core exceptions keep the HTTP status in `code`
    code = getattr(exc, "code", None)
    return code if isinstance(code, int) else None


def _error_code(exc: BaseException) -> Optional[str]:
    code = getattr(exc, "code", None)
    if isinstance(code, str):
        return code
    body = getattr(exc, "body", None)
    if isinstance(body, dict):
        inner = body.get("error") if isinstance(body.get("error"), dict) else body
        value = inner.get("code") or inner.get("type")
        if isinstance(value, str):
            return value
    return None


def map_provider_error(exc: BaseException) -> LLMError:
    """Translate an SDK / transport exception into an LLMError with a stable kind."""
    if isinstance(exc, LLMError):
        return exc

    message = str(exc) or type(exc).__name__
    status = _status_code(exc)
    code = _error_code(exc)

    if isinstance(exc, asyncio.TimeoutError):
        return LLMError("AI request timed out", kind=TIMEOUT)

    if isinstance(exc, openai.RateLimitError):
        kind = INSUFFICIENT_QUOTA if code == INSUFFICIENT_QUOTA else RATE_LIMIT_EXCEEDED
        return LLMError(message, kind=kind, status_code=status)
    if isinstance(exc, openai.AuthenticationError):
        return LLMError(message, kind=INVALID_API_KEY, status_code=status)
    if isinstance(exc, openai.NotFoundError):
        return LLMError(message, kind=MODEL_NOT_FOUND, status_code=status)
    if isinstance(exc, openai.BadRequestError) and code == CONTEXT_LENGTH_EXCEEDED:
        return LLMError(message, kind=CONTEXT_LENGTH_EXCEEDED, status_code=status)
    # APITimeoutError subclasses APIConnectionError
    if isinstance(exc, openai.APITimeoutError):
        return LLMError(message, kind=TIMEOUT)
    if isinstance(exc, openai.APIConnectionError):
        return LLMError(message, kind=CONNECTION_ERROR)
    if isinstance(exc, openai.InternalServerError):
        kind = SERVICE_UNAVAILABLE if status == 503 else SERVER_ERROR
        return LLMError(message, kind=kind, status_code=status)

    # other providers: status code and class name heuristics
    class_name = type(exc).__name__.lower()
    lower = message.lower()
    if code in (RATE_LIMIT_EXCEEDED, INSUFFICIENT_QUOTA, INVALID_API_KEY, MODEL_NOT_FOUND, CONTEXT_LENGTH_EXCEEDED):
        return LLMError(message, kind=code, status_code=status)
    if status == 429 or "ratelimit" in class_name or "resourceexhausted" in class_name:
        kind = INSUFFICIENT_QUOTA if "quota" in lower else RATE_LIMIT_EXCEEDED
        return LLMError(message, kind=kind, status_code=status)
    if status in (401, 403) or "auth" in class_name or "permission" in class_name:
        return LLMError(message, kind=INVALID_API_KEY, status_code=status)
    if status == 404:
        return LLMError(message, kind=MODEL_NOT_FOUND, status_code=status)
    if status == 503 or "unavailable" in class_name:
        return LLMError(message, kind=SERVICE_UNAVAILABLE, status_code=status)
    if status is not None and status >= 500:
        return LLMError(message, kind=SERVER_ERROR, status_code=status)
    if "timeout" in class_name or "deadline" in class_name:
        return LLMError(message, kind=TIMEOUT, status_code=status)
    if "connection" in class_name:
        return LLMError(message, kind=CONNECTION_ERROR, status_code=status)
    return LLMError(message, kind=PROVIDER_ERROR, status_code=status)


# -------------------------
# Client
# -------------------------
def _content_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: List[str] = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text", ""))
        return "".join(parts)
    return ""


def _tokens_used(message: AIMessage) -> int:
    usage = getattr(message, "usage_metadata", None) or {}
    if usage.get("total_tokens"):
        return int(usage["total_tokens"])
    token_usage = (getattr(message, "response_metadata", None) or {}).get("token_usage") or {}
    return int(token_usage.get("total_tokens") or 0)


class LLMClient:
    """
    One chat request per `complete` call: system + user message, JSON output.
    The chat model is created lazily so a missing key only fails the request
    that needs it.
    """

    def __init__(self, settings: LLMSettings, chat_model: Any = None,
                 debug: bool = False, log_dir: str = "./ai_backend_logs"):
        self.settings = settings
        self._chat_model = chat_model
        self.debug = debug
        self.log_dir = log_dir

    @property
    def model_name(self) -> str:
        return self.settings.model

    def _get_chat_model(self):
        if self._chat_model is None:
            self._chat_model = get_llm(self.settings)
        return self._chat_model

    async def complete(self, system_prompt: str, user_prompt: str,
                       request_id: Optional[str] = None) -> LLMCompletion:
        chat_model = self._get_chat_model()
        messages = [SystemMessage(content=system_prompt), HumanMessage(content=user_prompt)]

        start_ts = time.time()
        try:
            response = await asyncio.wait_for(chat_model.ainvoke(messages),
                                              timeout=self.settings.timeout_seconds)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            err = map_provider_error(e)
            logger.warning("[%s] AI API call failed (%s): %s", request_id, err.kind, err.message)
            if self.debug:
                _save_debug_log(self.log_dir, "llm_error", {
                    "requestId": request_id,
                    "kind": err.kind,
                    "error": repr(e),
                    "user_prompt": user_prompt,
                })
            if err is e:
                raise
            raise err from e
        duration = time.time() - start_ts

        text = _content_text(getattr(response, "content", None))
        if not text.strip():
            raise EmptyResponse()

        tokens = _tokens_used(response)
        model = (getattr(response, "response_metadata", None) or {}).get("model_name") or self.settings.model
        logger.info("[%s] AI API call completed in %.2fs (model=%s, tokens=%d)",
                    request_id, duration, model, tokens)

        if self.debug:
            _save_debug_log(self.log_dir, "llm_attempt", {
                "requestId": request_id,
                "duration_s": duration,
                "user_prompt": user_prompt,
                "raw_result": text if len(text) <= 10000 else text[:10000] + "...",
            })
        return LLMCompletion(text=text, tokens_used=tokens, model=model)
