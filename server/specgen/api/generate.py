# specgen/api/generate.py
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from specgen.core.circuit_breaker import CircuitState
from specgen.core.errors import InvalidRequest, InvalidResponse, LLMUnavailable
from specgen.core.pipeline import PipelineEnvironment, generate_specification, get_default_environment
from specgen.core.templates import filter_templates, get_all_templates, search_templates, template_filters

logger = logging.getLogger(__name__)

router = APIRouter()


def get_environment() -> PipelineEnvironment:
    return get_default_environment()


def _error(status_code: int, code: str, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": {"code": code, "message": message, **extra}})


@router.post("/generate-spec", response_model=Dict[str, Any])
async def generate_spec(request: Any = Body(...), env: PipelineEnvironment = Depends(get_environment)):
    """
    Generate a technical specification from a feature description.
    Request JSON:
      {"description": "...", "language": "it"|"en", "template": "crud"|..., "complexity": "medium",
       "includeTests": false}
    Response:
      {"specification": {...}, "meta": {"tokensUsed", "model", "attempts", "fallback", "requestId", ...}}
    """
    try:
        result = await generate_specification(request, env)
    except InvalidRequest as e:
        return _error(400, "VALIDATION_ERROR", e.message, details=e.details)
    except (LLMUnavailable, InvalidResponse) as e:
        # never echo provider text back to the caller
        return _error(502, e.kind.upper(), "AI service could not produce a specification", requestId=e.request_id)
    return result.to_response()


@router.get("/templates", response_model=Dict[str, Any])
async def list_templates(search: Optional[str] = None,
                         category: Optional[str] = None,
                         complexity: Optional[str] = None):
    templates = search_templates(search) if search else get_all_templates()
    templates = filter_templates(templates, category=category, complexity=complexity)
    return {
        "templates": templates,
        "count": len(templates),
        "filters": template_filters(),
    }


@router.get("/ai-health")
async def ai_health(env: PipelineEnvironment = Depends(get_environment)):
    breaker = env.breaker
    status = breaker.status()
    healthy = breaker.state == CircuitState.CLOSED
    body = {
        "status": "healthy" if healthy else "degraded",
        "model": env.llm_client.model_name,
        "provider": env.settings.llm.provider,
        "circuitBreaker": status,
    }
    if not healthy:
        logger.warning("AI health check degraded: breaker %s is %s", breaker.name, breaker.state.value)
    return JSONResponse(status_code=200 if healthy else 503, content=body)
