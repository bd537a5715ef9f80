# specgen/core/fallback.py
"""
Deterministic minimal Specification, used when the LLM path cannot produce one.

The document must pass validate_specification for every valid request, so the
hours always sit inside the band of the requested complexity and every
reference points at FR001 / NFR001.
"""

import logging
from typing import Any, Dict

from specgen.models import GenerateRequest

logger = logging.getLogger(__name__)

FALLBACK_MODEL = "fallback"
FALLBACK_HOURS = {"simple": 8, "medium": 16, "complex": 40}

_TEXT = {
    "it": {
        "spec_description": "Specifica tecnica per: {d}",
        "fr_title": "Implementazione base",
        "fr_description": "Implementare {d}",
        "nfr_requirement": "Il sistema deve rispondere in tempi accettabili",
        "nfr_metric": "Tempo di risposta p95 inferiore a 500ms",
        "ep_description": "Endpoint per {d}",
        "ok": "Operazione completata",
        "bad_request": "Richiesta non valida",
        "dm_description": "Entita principale della funzionalita",
        "id_field": "Identificativo univoco",
        "sv_description": "Servizio applicativo per {d}",
        "method_description": "Esegue la funzionalita richiesta",
        "dep_purpose": "Framework web per esporre le API",
        "auth": "Token di sessione",
        "authz": "Controllo accessi basato sui ruoli",
        "data_protection": "Cifratura dei dati in transito (TLS)",
        "input_validation": "Validazione dello schema delle richieste",
        "error_recovery": "Risposte di errore strutturate e log",
        "data_consistency": "Operazioni transazionali",
        "concurrency": "Lock ottimistico",
        "unit": "Test unitari della logica applicativa",
        "integration": "Test di integrazione dell'endpoint",
        "e2e": "Test end-to-end del flusso principale",
        "tc_description": "Test per {d}",
        "tc_steps": ["Inviare una richiesta valida all'endpoint", "Verificare la risposta"],
        "tc_expected": "La richiesta viene elaborata correttamente",
        "ac_scenario": "Utilizzo base della funzionalita",
        "ac_given": "Un utente con una richiesta valida",
        "ac_when": "La richiesta viene inviata",
        "ac_then": "La funzionalita restituisce un risultato corretto",
        "environment": ("Ambiente locale", "Ambiente di staging", "Ambiente di produzione"),
        "infra_description": "Server web standard",
        "infra_requirements": "1 vCPU, 1GB RAM",
        "infra_scaling": "Scalabilita orizzontale",
        "monitor_description": "Percentuale di richieste fallite",
        "monitor_action": "Notificare il team",
    },
    "en": {
        "spec_description": "Technical specification for: {d}",
        "fr_title": "Base implementation",
        "fr_description": "Implement {d}",
        "nfr_requirement": "The system must respond within acceptable time",
        "nfr_metric": "p95 response time below 500ms",
        "ep_description": "Endpoint for {d}",
        "ok": "Operation completed",
        "bad_request": "Invalid request",
        "dm_description": "Main entity of the feature",
        "id_field": "Unique identifier",
        "sv_description": "Application service for {d}",
        "method_description": "Runs the requested feature",
        "dep_purpose": "Web framework exposing the API",
        "auth": "Session token",
        "authz": "Role based access control",
        "data_protection": "Encryption of data in transit (TLS)",
        "input_validation": "Request schema validation",
        "error_recovery": "Structured error responses and logging",
        "data_consistency": "Transactional operations",
        "concurrency": "Optimistic locking",
        "unit": "Unit tests for the application logic",
        "integration": "Integration tests for the endpoint",
        "e2e": "End-to-end tests of the main flow",
        "tc_description": "Test for {d}",
        "tc_steps": ["Send a valid request to the endpoint", "Check the response"],
        "tc_expected": "The request is processed successfully",
        "ac_scenario": "Basic feature usage",
        "ac_given": "A user with a valid request",
        "ac_when": "The request is submitted",
        "ac_then": "The feature returns a correct result",
        "environment": ("Local environment", "Staging environment", "Production environment"),
        "infra_description": "Standard web server",
        "infra_requirements": "1 vCPU, 1GB RAM",
        "infra_scaling": "Horizontal scaling",
        "monitor_description": "Share of failed requests",
        "monitor_action": "Notify the team",
    },
}


def generate_fallback(request: GenerateRequest, request_id: str) -> Dict[str, Any]:
    logger.warning("[%s] Using fallback response due to AI failure", request_id)
    t = _TEXT.get(request.language, _TEXT["it"])
    d = request.description
    dev_env, staging_env, prod_env = t["environment"]

    tags = ["web", "api"]
    if request.template:
        tags.append(request.template)

    return {
        "metadata": {
            "name": f"Feature: {d}",
            "description": t["spec_description"].format(d=d),
            "complexity": request.complexity,
            "estimatedHours": FALLBACK_HOURS[request.complexity],
            "tags": tags,
            "version": "1.0.0",
        },
        "requirements": {
            "functional": [{
                "id": "FR001",
                "title": t["fr_title"],
                "description": t["fr_description"].format(d=d),
                "priority": "high",
                "category": "core",
                "dependencies": [],
            }],
            "nonFunctional": [{
                "id": "NFR001",
                "category": "performance",
                "requirement": t["nfr_requirement"],
                "metric": t["nfr_metric"],
                "priority": "medium",
            }],
        },
        "architecture": {
            "apiEndpoints": [{
                "id": "EP001",
                "method": "POST",
                "path": "/api/feature",
                "description": t["ep_description"].format(d=d),
                "category": "core",
                "authentication": True,
                "rateLimit": "100/min",
                "requestBody": {"type": "object"},
                "responseBody": {"type": "object"},
                "statusCodes": [
                    {"code": 200, "description": t["ok"]},
                    {"code": 400, "description": t["bad_request"], "retryStrategy": "none"},
                ],
                "relatedRequirements": ["FR001"],
            }],
            "dataModels": [{
                "id": "DM001",
                "name": "Feature",
                "description": t["dm_description"],
                "category": "core",
                "fields": [{"name": "id", "type": "string", "required": True, "description": t["id_field"]}],
                "relationships": [],
                "indexes": ["id"],
                "constraints": [],
            }],
            "services": [{
                "id": "SV001",
                "name": "FeatureService",
                "description": t["sv_description"].format(d=d),
                "type": "internal",
                "methods": [{
                    "name": "execute",
                    "description": t["method_description"],
                    "parameters": ["payload"],
                    "returns": "object",
                }],
            }],
        },
        "implementation": {
            "dependencies": {
                "runtime": [{
                    "name": "web-framework",
                    "type": "library",
                    "version": "latest",
                    "purpose": t["dep_purpose"],
                    "critical": True,
                }],
                "development": [],
            },
            "configuration": [],
            "security": {
                "authentication": t["auth"],
                "authorization": t["authz"],
                "dataProtection": [t["data_protection"]],
                "vulnerabilities": [],
                "edgeCaseHandling": {
                    "inputValidation": t["input_validation"],
                    "errorRecovery": t["error_recovery"],
                    "dataConsistency": t["data_consistency"],
                    "concurrencyControl": t["concurrency"],
                },
            },
        },
        "testing": {
            "strategy": {
                "unitTests": t["unit"],
                "integrationTests": t["integration"],
                "e2eTests": t["e2e"],
                "coverage": 80,
            },
            "testCases": [{
                "id": "TC001",
                "type": "integration",
                "category": "happy_path",
                "description": t["tc_description"].format(d=d),
                "priority": "high",
                "steps": list(t["tc_steps"]),
                "expectedResult": t["tc_expected"],
                "relatedRequirements": ["FR001"],
                "edgeCase": None,
            }],
            "acceptanceCriteria": [{
                "id": "AC001",
                "scenario": t["ac_scenario"],
                "given": t["ac_given"],
                "when": t["ac_when"],
                "then": t["ac_then"],
                "priority": "high",
                "relatedRequirements": ["FR001", "NFR001"],
            }],
        },
        "deployment": {
            "environment": {
                "development": dev_env,
                "staging": staging_env,
                "production": prod_env,
            },
            "infrastructure": [{
                "component": "web-server",
                "description": t["infra_description"],
                "requirements": t["infra_requirements"],
                "scaling": t["infra_scaling"],
            }],
            "monitoring": [{
                "metric": "error_rate",
                "description": t["monitor_description"],
                "threshold": "5%",
                "action": t["monitor_action"],
            }],
        },
        "_metadata": {
            "requestId": request_id,
            "model": FALLBACK_MODEL,
            "tokensUsed": 0,
            "fallback": True,
        },
    }
