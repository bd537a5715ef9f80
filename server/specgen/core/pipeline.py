# specgen/core/pipeline.py
"""
Specification pipeline:

  request -> prompts -> breaker( retry( LLM -> normalize -> quick check ) )
          -> validate -> enrich -> result

Any failure on that path ends in the fallback document (unless disabled).
This module is the only place that decision is taken.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Tuple, Union

from pydantic import ValidationError

from specgen.core.circuit_breaker import CircuitBreaker, CircuitBreakerRegistry
from specgen.core.enricher import enrich_specification
from specgen.core.errors import (
    EmptyResponse,
    InvalidRequest,
    InvalidResponse,
    LLMUnavailable,
    MalformedResponse,
    SpecGenError,
    SpecValidationError,
)
from specgen.core.fallback import FALLBACK_MODEL, generate_fallback
from specgen.core.llm_client import LLMClient, LLMCompletion
from specgen.core.parsing import normalize_response, quick_validate
from specgen.core.prompts import SystemPromptLoader, build_user_prompt
from specgen.core.retry import call_with_retries
from specgen.core.templates import get_template_by_id
from specgen.core.validator import format_path, validate_specification
from specgen.models import GenerateRequest, GenerationMeta, GenerationResult
from specgen.utils.config import AI_BREAKER_NAME, Settings, get_settings

logger = logging.getLogger(__name__)

SHAPE_ERRORS = (EmptyResponse, MalformedResponse, SpecValidationError)


def new_request_id() -> str:
    return f"req_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


@dataclass
class PipelineEnvironment:
    """Everything the pipeline shares between requests."""
    settings: Settings
    llm_client: LLMClient
    prompt_loader: SystemPromptLoader
    breakers: CircuitBreakerRegistry = field(default_factory=CircuitBreakerRegistry)
    template_lookup: Callable[[str], Optional[Dict[str, Any]]] = get_template_by_id
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep

    @classmethod
    def from_settings(cls, settings: Settings, chat_model: Any = None, **overrides) -> "PipelineEnvironment":
        return cls(
            settings=settings,
            llm_client=LLMClient(settings.llm, chat_model=chat_model,
                                 debug=settings.debug, log_dir=settings.log_dir),
            prompt_loader=SystemPromptLoader.from_path(settings.prompts_path),
            **overrides,
        )

    @property
    def breaker(self) -> CircuitBreaker:
        cfg = self.settings.breaker
        return self.breakers.get(
            AI_BREAKER_NAME,
            failure_threshold=cfg.failure_threshold,
            recovery_timeout=cfg.recovery_timeout_seconds,
            expected_errors=cfg.expected_errors,
        )


@lru_cache(maxsize=1)
def get_default_environment() -> PipelineEnvironment:
    return PipelineEnvironment.from_settings(get_settings())


# ----------------------------
# Steps
# ----------------------------
def parse_request(request: Union[GenerateRequest, Mapping[str, Any]], settings: Settings) -> GenerateRequest:
    if isinstance(request, GenerateRequest):
        return request
    if not isinstance(request, Mapping):
        raise InvalidRequest("Request body must be a JSON object")
    try:
        return GenerateRequest.model_validate(dict(request), context={
            "min_description_length": settings.min_description_length,
            "max_description_length": settings.max_description_length,
        })
    except ValidationError as e:
        details = [{"field": format_path(err["loc"]), "message": err["msg"]} for err in e.errors()]
        raise InvalidRequest("Invalid request data", details=details) from e


async def _call_llm(env: PipelineEnvironment, system_prompt: str, user_prompt: str,
                    request_id: str) -> Tuple[LLMCompletion, Dict[str, Any], int]:
    async def attempt():
        completion = await env.llm_client.complete(system_prompt, user_prompt, request_id)
        parsed = normalize_response(completion.text)
        if not quick_validate(parsed):
            raise MalformedResponse("Invalid AI response structure")
        return completion, parsed

    async def with_retries():
        return await call_with_retries(attempt, max_retries=env.settings.llm.max_retries,
                                       sleep=env.sleep, request_id=request_id)

    outcome = await env.breaker.call(with_retries)
    completion, parsed = outcome.value
    return completion, parsed, outcome.attempts


def _fallback_result(request: GenerateRequest, env: PipelineEnvironment, request_id: str,
                     cause: Exception, attempts: int, started: float) -> GenerationResult:
    kind = getattr(cause, "kind", type(cause).__name__)
    if not env.settings.fallback_enabled:
        message = getattr(cause, "message", None) or str(cause)
        if isinstance(cause, SHAPE_ERRORS):
            raise InvalidResponse(f"AI returned an invalid specification: {message}", request_id, kind) from cause
        raise LLMUnavailable(f"AI service unavailable: {message}", request_id, kind) from cause

    logger.warning("[%s] Returning fallback response due to AI failure (%s)", request_id, kind)
    fallback = generate_fallback(request, request_id)
    try:
        validated = validate_specification(fallback, request_id)
    except SpecValidationError as e:
        logger.error("[%s] Fallback specification failed validation: %s", request_id, e)
        raise InvalidResponse("Fallback specification is invalid", request_id, e.kind) from e

    enrichment = enrich_specification(validated.data, request_id)
    meta = GenerationMeta(
        tokens_used=0,
        model=FALLBACK_MODEL,
        attempts=attempts,
        fallback=True,
        request_id=request_id,
        processing_time_ms=int((time.time() - started) * 1000),
        warnings=enrichment.warnings,
    )
    return GenerationResult(specification=enrichment.specification, meta=meta)


# ----------------------------
# Public: generate_specification
# ----------------------------
async def generate_specification(request: Union[GenerateRequest, Mapping[str, Any]],
                                 environment: Optional[PipelineEnvironment] = None) -> GenerationResult:
    """
    Turn a feature request into an enriched Specification.

    Raises InvalidRequest before any LLM call when the request is invalid.
    With fallback disabled, LLMUnavailable / InvalidResponse carry the cause
    and request id. Cancellation always propagates.
    """
    env = environment or get_default_environment()
    req = parse_request(request, env.settings)
    request_id = new_request_id()
    started = time.time()
    attempts = 0

    logger.info("[%s] Starting AI generation (model=%s, template=%s, complexity=%s, breaker=%s)",
                request_id, env.llm_client.model_name, req.template, req.complexity, env.breaker.state.value)
    try:
        system_prompt = env.prompt_loader.get_system_prompt()
        template = env.template_lookup(req.template) if req.template else None
        user_prompt = build_user_prompt(req, template)

        completion, parsed, attempts = await _call_llm(env, system_prompt, user_prompt, request_id)
        validated = validate_specification(parsed, request_id)
        enrichment = enrich_specification(validated.data, request_id)
    except asyncio.CancelledError:
        logger.info("[%s] Generation cancelled by caller", request_id)
        raise
    except SpecGenError as e:
        attempts = getattr(e, "attempts", attempts)
        logger.error("[%s] AI generation failed (%s): %s", request_id, e.kind, e.message)
        return _fallback_result(req, env, request_id, e, attempts, started)
    except Exception as e:
        attempts = getattr(e, "attempts", attempts)
        logger.exception("[%s] Unexpected error during AI generation", request_id)
        return _fallback_result(req, env, request_id, e, attempts, started)

    meta = GenerationMeta(
        tokens_used=completion.tokens_used,
        model=completion.model,
        attempts=attempts,
        fallback=False,
        request_id=request_id,
        processing_time_ms=int((time.time() - started) * 1000),
        warnings=enrichment.warnings,
    )
    logger.info("[%s] AI generation completed in %dms (attempts=%d, tokens=%d)",
                request_id, meta.processing_time_ms, attempts, meta.tokens_used)
    return GenerationResult(specification=enrichment.specification, meta=meta)
