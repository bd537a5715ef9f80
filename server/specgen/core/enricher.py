# specgen/core/enricher.py
"""
Derived analytics for a validated Specification.

Everything added here is recomputed from the authoritative lists
(`functional[].dependencies`, `dataModels[].relationships`, test and criteria
references), so enriching an already enriched document gives the same result.
The reverse views (dependents, incoming relationships) are plain adjacency
maps keyed by id / model name.
"""

import copy
import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class EnrichmentResult:
    specification: Dict[str, Any]
    warnings: List[str] = field(default_factory=list)


def _distribution(values: Iterable[Any]) -> Dict[str, int]:
    dist: Dict[str, int] = {}
    for v in values:
        dist[v] = dist.get(v, 0) + 1
    return dist


def _ordered_unique(values: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(values))


def round_half_up(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


# ----------------------------
# requirements
# ----------------------------
def build_dependency_graph(functional: List[Dict[str, Any]]) -> Dict[str, Dict[str, List[str]]]:
    graph = {
        req["id"]: {"dependencies": list(req.get("dependencies") or []), "dependents": []}
        for req in functional
    }
    for req in functional:
        for dep_id in req.get("dependencies") or []:
            if dep_id in graph:
                graph[dep_id]["dependents"].append(req["id"])
    return graph


def summarize_requirements(requirements: Dict[str, Any]) -> Dict[str, int]:
    all_reqs = list(requirements["functional"]) + list(requirements["nonFunctional"])
    return {
        "functionalCount": len(requirements["functional"]),
        "nonFunctionalCount": len(requirements["nonFunctional"]),
        "highPriorityCount": sum(1 for r in all_reqs if r.get("priority") == "high"),
        "categoriesCount": len({r.get("category") for r in all_reqs}),
    }


# ----------------------------
# architecture
# ----------------------------
def build_relationships_map(data_models: List[Dict[str, Any]]) -> Dict[str, Dict[str, List[Dict[str, Any]]]]:
    rel_map = {
        model["name"]: {"outgoing": copy.deepcopy(model.get("relationships") or []), "incoming": []}
        for model in data_models
    }
    for model in data_models:
        for rel in model.get("relationships") or []:
            target = rel.get("target")
            if target in rel_map:
                rel_map[target]["incoming"].append({
                    "from": model["name"],
                    "type": rel.get("type"),
                    "description": rel.get("description"),
                })
    return rel_map


def summarize_architecture(architecture: Dict[str, Any]) -> Dict[str, Any]:
    endpoints = architecture["apiEndpoints"]
    return {
        "endpointsCount": len(endpoints),
        "methodsDistribution": _distribution(e.get("method") for e in endpoints),
        "authenticationRequired": sum(1 for e in endpoints if e.get("authentication")),
        "modelsCount": len(architecture["dataModels"]),
        "servicesCount": len(architecture["services"]),
    }


# ----------------------------
# testing
# ----------------------------
def summarize_testing(testing: Dict[str, Any]) -> Dict[str, Any]:
    test_cases = testing["testCases"]
    return {
        "testCasesCount": len(test_cases),
        "acceptanceCriteriaCount": len(testing["acceptanceCriteria"]),
        "testTypeDistribution": _distribution(t.get("type") for t in test_cases),
        "priorityDistribution": _distribution(t.get("priority") for t in test_cases),
        "edgeCasesCount": sum(1 for t in test_cases if t.get("edgeCase")),
    }


def requirement_coverage(testing: Dict[str, Any], requirements: Dict[str, Any]) -> Dict[str, Any]:
    all_ids = _ordered_unique(
        [r["id"] for r in requirements["functional"]] + [r["id"] for r in requirements["nonFunctional"]]
    )
    by_tests = set(ref for t in testing["testCases"] for ref in t.get("relatedRequirements") or [])
    by_criteria = set(ref for a in testing["acceptanceCriteria"] for ref in a.get("relatedRequirements") or [])
    covered = by_tests | by_criteria
    uncovered = [req_id for req_id in all_ids if req_id not in covered]

    total = len(all_ids)
    return {
        "total": total,
        "covered": len(covered),
        "uncovered": len(uncovered),
        "coveragePercentage": round_half_up(len(covered) / total * 100) if total else 0,
        "uncoveredRequirements": uncovered,
        "testCoverage": len(by_tests),
        "criteriaCoverage": len(by_criteria),
    }


# ----------------------------
# consistency warnings
# ----------------------------
def consistency_warnings(spec: Dict[str, Any]) -> List[str]:
    warnings: List[str] = []
    testing = spec["testing"]
    tested = set(ref for t in testing["testCases"] for ref in t.get("relatedRequirements") or [])
    tested.update(ref for a in testing["acceptanceCriteria"] for ref in a.get("relatedRequirements") or [])

    untested_high = [
        r["id"] for r in spec["requirements"]["functional"]
        if r.get("priority") == "high" and r["id"] not in tested
    ]
    if untested_high:
        warnings.append(f"High-priority requirements without tests: {', '.join(untested_high)}")

    orphan_endpoints = [e["id"] for e in spec["architecture"]["apiEndpoints"] if not e.get("relatedRequirements")]
    if orphan_endpoints:
        warnings.append(f"API endpoints without related requirements: {', '.join(orphan_endpoints)}")
    return warnings


def enrich_specification(spec: Dict[str, Any], request_id: Optional[str] = None) -> EnrichmentResult:
    """Return a copy of `spec` with statistics, graphs and coverage attached. `spec` is not modified."""
    enriched = copy.deepcopy(spec)
    requirements = enriched["requirements"]
    architecture = enriched["architecture"]
    testing = enriched["testing"]

    requirements["statistics"] = summarize_requirements(requirements)
    requirements["dependencyGraph"] = build_dependency_graph(requirements["functional"])

    architecture["statistics"] = summarize_architecture(architecture)
    architecture["relationshipsMap"] = build_relationships_map(architecture["dataModels"])

    testing["statistics"] = summarize_testing(testing)
    testing["requirementCoverage"] = requirement_coverage(testing, requirements)

    warnings = consistency_warnings(enriched)
    if warnings:
        logger.warning("[%s] Final consistency check warnings (%d): %s", request_id, len(warnings), warnings)
    logger.debug("[%s] Response enhancement completed", request_id)
    return EnrichmentResult(specification=enriched, warnings=warnings)
