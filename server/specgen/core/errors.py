# specgen/core/errors.py
"""
Error taxonomy for the specification pipeline.

Every error carries a machine-readable `kind` (stable string, safe to log and
to return to callers) and a human message. Provider failures keep the kind
names the provider uses (rate_limit_exceeded, insufficient_quota, ...).
"""

from typing import Any, Dict, List, Optional

# provider kinds
RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
INSUFFICIENT_QUOTA = "insufficient_quota"
INVALID_API_KEY = "invalid_api_key"
MODEL_NOT_FOUND = "model_not_found"
CONTEXT_LENGTH_EXCEEDED = "context_length_exceeded"
SERVER_ERROR = "server_error"
TIMEOUT = "timeout"
CONNECTION_ERROR = "connection_error"
SERVICE_UNAVAILABLE = "service_unavailable"
PROVIDER_ERROR = "provider_error"

RETRYABLE_KINDS = frozenset({
    RATE_LIMIT_EXCEEDED,
    SERVER_ERROR,
    TIMEOUT,
    CONNECTION_ERROR,
    SERVICE_UNAVAILABLE,
})


class SpecGenError(Exception):
    kind = "internal_error"
    retryable = False

    def __init__(self, message: str, kind: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "message": self.message}


class InvalidRequest(SpecGenError):
    """Caller-side fault: the request was rejected before any prompt was built."""
    kind = "validation_error"

    def __init__(self, message: str, details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.details = details or []


class PromptUnavailable(SpecGenError):
    kind = "prompt_unavailable"


class LLMError(SpecGenError):
    """A failure reported by (or while talking to) the LLM provider."""

    def __init__(self, message: str, kind: str = PROVIDER_ERROR, status_code: Optional[int] = None):
        super().__init__(message, kind=kind)
        self.status_code = status_code

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return self.kind in RETRYABLE_KINDS


class EmptyResponse(LLMError):
    retryable = True

    def __init__(self, message: str = "Empty response from AI service"):
        super().__init__(message, kind="empty_response")


class MalformedResponse(SpecGenError):
    kind = "malformed_response"
    retryable = True


class CircuitOpen(SpecGenError):
    kind = "circuit_open"

    def __init__(self, name: str, next_attempt_in: float = 0.0):
        super().__init__(f"Circuit breaker {name} is OPEN")
        self.breaker_name = name
        self.next_attempt_in = next_attempt_in


class SpecValidationError(SpecGenError):
    kind = "validation_failed"


class InvalidType(SpecValidationError):
    kind = "invalid_type"


class SchemaViolation(SpecValidationError):
    kind = "schema_violation"

    def __init__(self, issues: List[Dict[str, Any]], business_errors: Optional[List[str]] = None):
        super().__init__(f"AI response validation failed ({len(issues)} structural issues)")
        self.issues = issues
        self.business_errors = business_errors or []


class BusinessRuleViolation(SpecValidationError):
    kind = "business_rule_violation"

    def __init__(self, errors: List[str]):
        super().__init__(f"Business logic validation failed ({len(errors)} errors)")
        self.errors = errors


class LLMUnavailable(SpecGenError):
    kind = "llm_unavailable"

    def __init__(self, message: str, request_id: str, cause_kind: Optional[str] = None):
        super().__init__(message)
        self.request_id = request_id
        self.cause_kind = cause_kind

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "message": self.message, "requestId": self.request_id}


class InvalidResponse(SpecGenError):
    kind = "invalid_response"

    def __init__(self, message: str, request_id: str, cause_kind: Optional[str] = None):
        super().__init__(message)
        self.request_id = request_id
        self.cause_kind = cause_kind

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "message": self.message, "requestId": self.request_id}
