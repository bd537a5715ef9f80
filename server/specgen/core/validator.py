# specgen/core/validator.py
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from pydantic import ValidationError

from specgen.core.errors import BusinessRuleViolation, InvalidType, SchemaViolation
from specgen.core.schemas import Specification

logger = logging.getLogger(__name__)

MAX_LOGGED_ERRORS = 10

# (group, list, id prefix), in the order ids are registered
ID_GROUPS: Tuple[Tuple[str, str, str], ...] = (
    ("requirements", "functional", "FR"),
    ("requirements", "nonFunctional", "NFR"),
    ("architecture", "apiEndpoints", "EP"),
    ("architecture", "dataModels", "DM"),
    ("architecture", "services", "SV"),
    ("testing", "testCases", "TC"),
    ("testing", "acceptanceCriteria", "AC"),
)

HOURS_BANDS = {
    "simple": (None, 16),
    "medium": (16, 40),
    "complex": (40, None),
}


@dataclass
class ValidationResult:
    data: Dict[str, Any]
    validation_time_ms: int


# ----------------------------
# Structural pass
# ----------------------------
def format_path(loc: Iterable[Any]) -> str:
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}" if path else str(part)
    return path


def _issue(err: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "path": format_path(err.get("loc", ())),
        "message": err.get("msg", ""),
        "offendingValue": None if err.get("type") == "missing" else err.get("input"),
        "kind": err.get("type", ""),
    }


# ----------------------------
# Business rules
# ----------------------------
def _entries(data: Any, group: str, name: str) -> List[Dict[str, Any]]:
    """List entries at data[group][name]; anything malformed reads as empty."""
    node = data.get(group) if isinstance(data, dict) else None
    node = node.get(name) if isinstance(node, dict) else None
    if not isinstance(node, list):
        return []
    return [item for item in node if isinstance(item, dict)]


def _str_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, str)]


def check_id_integrity(data: Dict[str, Any]) -> List[str]:
    errors: List[str] = []
    seen = set()
    for group, name, prefix in ID_GROUPS:
        for item in _entries(data, group, name):
            item_id = item.get("id")
            if not isinstance(item_id, str):
                continue
            if item_id in seen:
                errors.append(f"Duplicate ID found: {item_id}")
            seen.add(item_id)
            if not item_id.startswith(prefix):
                errors.append(f"Invalid ID format: {item_id} should start with {prefix}")
    return errors


def requirement_ids(data: Dict[str, Any]) -> set:
    ids = set()
    for name in ("functional", "nonFunctional"):
        for item in _entries(data, "requirements", name):
            if isinstance(item.get("id"), str):
                ids.add(item["id"])
    return ids


def check_requirement_references(data: Dict[str, Any]) -> List[str]:
    errors: List[str] = []
    valid = requirement_ids(data)

    for endpoint in _entries(data, "architecture", "apiEndpoints"):
        for ref in _str_list(endpoint.get("relatedRequirements")):
            if ref not in valid:
                errors.append(f"API endpoint {endpoint.get('id')} references invalid requirement: {ref}")

    for test_case in _entries(data, "testing", "testCases"):
        for ref in _str_list(test_case.get("relatedRequirements")):
            if ref not in valid:
                errors.append(f"Test case {test_case.get('id')} references invalid requirement: {ref}")

    for criterion in _entries(data, "testing", "acceptanceCriteria"):
        for ref in _str_list(criterion.get("relatedRequirements")):
            if ref not in valid:
                errors.append(f"Acceptance criterion {criterion.get('id')} references invalid requirement: {ref}")

    for req in _entries(data, "requirements", "functional"):
        for dep in _str_list(req.get("dependencies")):
            if dep not in valid:
                errors.append(f"Requirement {req.get('id')} has invalid dependency: {dep}")
    return errors


def check_relationship_targets(data: Dict[str, Any]) -> List[str]:
    errors: List[str] = []
    models = _entries(data, "architecture", "dataModels")
    names = {m.get("name") for m in models if isinstance(m.get("name"), str)}
    for model in models:
        relationships = model.get("relationships")
        if not isinstance(relationships, list):
            continue
        for rel in relationships:
            if isinstance(rel, dict) and rel.get("target") not in names:
                errors.append(f"Model {model.get('name')} has invalid relationship target: {rel.get('target')}")
    return errors


def check_minimums(data: Dict[str, Any]) -> List[str]:
    errors: List[str] = []
    if not _entries(data, "requirements", "functional"):
        errors.append("At least one functional requirement is required")
    if not _entries(data, "architecture", "apiEndpoints"):
        errors.append("At least one API endpoint is required")
    if not _entries(data, "testing", "testCases"):
        errors.append("At least one test case is required")
    return errors


def hours_band_error(complexity: Any, hours: Any) -> Optional[str]:
    if complexity not in HOURS_BANDS or isinstance(hours, bool) or not isinstance(hours, int):
        return None
    if complexity == "simple" and hours > 16:
        return f"Simple complexity should not exceed 16 hours, got {hours}"
    if complexity == "medium" and (hours < 16 or hours > 40):
        return f"Medium complexity should be 16-40 hours, got {hours}"
    if complexity == "complex" and hours < 40:
        return f"Complex features should be at least 40 hours, got {hours}"
    return None


def check_hours_band(data: Dict[str, Any]) -> List[str]:
    metadata = data.get("metadata") if isinstance(data.get("metadata"), dict) else {}
    error = hours_band_error(metadata.get("complexity"), metadata.get("estimatedHours"))
    return [error] if error else []


BUSINESS_RULES: Tuple[Callable[[Dict[str, Any]], List[str]], ...] = (
    check_id_integrity,
    check_requirement_references,
    check_relationship_targets,
    check_minimums,
    check_hours_band,
)


def check_business_rules(data: Dict[str, Any]) -> List[str]:
    """
    Run every business rule and collect their messages.
    Tolerates structurally broken input so it can also run next to a
    failed structural pass.
    """
    errors: List[str] = []
    for rule in BUSINESS_RULES:
        errors.extend(rule(data))
    return errors


# ----------------------------
# Public: validate_specification
# ----------------------------
def validate_specification(value: Any, request_id: Optional[str] = None) -> ValidationResult:
    """
    Validate a parsed AI response.

    Raises:
      InvalidType            value is not a JSON object
      SchemaViolation        structural issues (all of them), plus any business
                             errors the raw data also shows
      BusinessRuleViolation  structure is fine but cross references or the
                             hours band are not
    Returns the normalized document (list defaults filled in).
    """
    start = time.time()
    if not isinstance(value, dict):
        logger.error("[%s] AI response is not an object (got %s)", request_id, type(value).__name__)
        raise InvalidType("Response must be a valid object")

    try:
        spec = Specification.model_validate(value)
    except ValidationError as e:
        issues = [_issue(err) for err in e.errors()]
        business_errors = check_business_rules(value)
        logger.error("[%s] AI response validation failed: %d structural issues, first %d: %s",
                     request_id, len(issues), min(len(issues), MAX_LOGGED_ERRORS),
                     [f"{i['path']}: {i['message']}" for i in issues[:MAX_LOGGED_ERRORS]])
        if business_errors:
            logger.error("[%s] Business rule errors alongside structural issues: %s",
                         request_id, business_errors[:MAX_LOGGED_ERRORS])
        raise SchemaViolation(issues, business_errors) from e

    data = spec.model_dump(by_alias=True, mode="json", exclude_unset=True)

    errors = check_business_rules(data)
    if errors:
        logger.warning("[%s] Business logic validation failed: %d errors, first %d: %s",
                       request_id, len(errors), min(len(errors), MAX_LOGGED_ERRORS),
                       errors[:MAX_LOGGED_ERRORS])
        raise BusinessRuleViolation(errors)

    elapsed = int((time.time() - start) * 1000)
    logger.info("[%s] AI response validation successful (%dms, FR=%d, EP=%d, TC=%d)",
                request_id, elapsed,
                len(data["requirements"]["functional"]),
                len(data["architecture"]["apiEndpoints"]),
                len(data["testing"]["testCases"]))
    return ValidationResult(data=data, validation_time_ms=elapsed)
