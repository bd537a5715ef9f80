# FILE: tests/conftest.py
"""
Shared fixtures for the specgen test suite.

Provides:
- a complete, valid Specification document
- a scripted fake chat model (no network)
- a pipeline environment factory with recorded sleeps and a manual clock
"""
import copy
import json

import pytest
from langchain_core.messages import AIMessage

from specgen.core.circuit_breaker import CircuitBreakerRegistry
from specgen.core.pipeline import PipelineEnvironment
from specgen.utils.config import BreakerSettings, LLMSettings, Settings

VALID_SPEC = {
    "metadata": {
        "name": "Test Feature",
        "description": "A test feature for validation",
        "complexity": "medium",
        "estimatedHours": 24,
        "tags": ["test", "validation"],
        "version": "1.0.0",
    },
    "requirements": {
        "functional": [{
            "id": "FR001",
            "title": "Test Requirement",
            "description": "A test functional requirement",
            "priority": "high",
            "category": "test",
            "dependencies": [],
        }],
        "nonFunctional": [{
            "id": "NFR001",
            "category": "performance",
            "requirement": "Response time under 300ms",
            "metric": "< 300ms for 95% of requests",
            "priority": "high",
        }],
    },
    "architecture": {
        "apiEndpoints": [{
            "id": "EP001",
            "method": "GET",
            "path": "/api/test",
            "description": "Test endpoint",
            "category": "test",
            "authentication": False,
            "rateLimit": "100 requests/hour",
            "requestBody": None,
            "responseBody": {"message": "string"},
            "statusCodes": [{"code": 200, "description": "Success"}],
            "relatedRequirements": ["FR001"],
        }],
        "dataModels": [{
            "id": "DM001",
            "name": "TestModel",
            "description": "A test data model",
            "category": "entity",
            "fields": [{"name": "id", "type": "UUID", "required": True, "description": "Unique identifier"}],
            "relationships": [],
            "indexes": ["id"],
            "constraints": ["UNIQUE(id)"],
        }],
        "services": [{
            "id": "SV001",
            "name": "TestService",
            "description": "A test service",
            "type": "internal",
            "methods": [{
                "name": "testMethod",
                "description": "A test method",
                "parameters": ["param1: string"],
                "returns": "Promise<TestModel>",
            }],
        }],
    },
    "implementation": {
        "dependencies": {
            "runtime": [{
                "name": "express",
                "type": "library",
                "version": "^4.18.0",
                "purpose": "Web framework",
                "critical": True,
            }],
            "development": [],
        },
        "configuration": [],
        "security": {
            "authentication": "JWT tokens",
            "authorization": "Role-based access control",
            "dataProtection": ["Input validation", "SQL injection prevention"],
            "vulnerabilities": [],
            "edgeCaseHandling": {
                "inputValidation": "Validate all inputs",
                "errorRecovery": "Graceful error handling",
                "dataConsistency": "Transaction-based operations",
                "concurrencyControl": "Optimistic locking",
            },
        },
    },
    "testing": {
        "strategy": {
            "unitTests": "Test individual components",
            "integrationTests": "Test API endpoints",
            "e2eTests": "Test complete workflows",
            "coverage": 85,
        },
        "testCases": [{
            "id": "TC001",
            "type": "unit",
            "category": "happy_path",
            "description": "Test successful operation",
            "priority": "high",
            "steps": ["Step 1", "Step 2"],
            "expectedResult": "Operation succeeds",
            "relatedRequirements": ["FR001"],
            "edgeCase": None,
        }],
        "acceptanceCriteria": [{
            "id": "AC001",
            "scenario": "Successful test",
            "given": "Valid input",
            "when": "Operation is performed",
            "then": "Result is returned",
            "priority": "high",
            "relatedRequirements": ["NFR001"],
        }],
    },
    "deployment": {
        "environment": {
            "development": "Local environment",
            "staging": "Staging environment",
            "production": "Production environment",
        },
        "infrastructure": [{
            "component": "Database",
            "description": "PostgreSQL database",
            "requirements": "PostgreSQL 14+",
            "scaling": "Read replicas",
        }],
        "monitoring": [{
            "metric": "Response time",
            "description": "API response time",
            "threshold": "> 500ms",
            "action": "Alert team",
        }],
    },
}

HAPPY_REQUEST = {
    "description": "User management with CRUD",
    "language": "it",
    "template": "crud",
    "complexity": "medium",
    "includeTests": False,
}


class FakeChatModel:
    """
    Scripted stand-in for a LangChain chat model.
    Each outcome is a string (returned as the message content) or an exception
    (raised). The last outcome repeats once the script is exhausted.
    """

    def __init__(self, *outcomes, model_name="gpt-4o-mini", total_tokens=150):
        self.outcomes = list(outcomes)
        self.model_name = model_name
        self.total_tokens = total_tokens
        self.calls = []

    async def ainvoke(self, messages):
        self.calls.append(messages)
        index = min(len(self.calls), len(self.outcomes)) - 1
        outcome = self.outcomes[index]
        if isinstance(outcome, BaseException):
            raise outcome
        return AIMessage(
            content=outcome,
            usage_metadata={"input_tokens": 100, "output_tokens": self.total_tokens - 100,
                            "total_tokens": self.total_tokens},
            response_metadata={"model_name": self.model_name},
        )


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


class ManualClock:
    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def valid_spec():
    return copy.deepcopy(VALID_SPEC)


@pytest.fixture
def valid_spec_json(valid_spec):
    return json.dumps(valid_spec)


@pytest.fixture
def happy_request():
    return dict(HAPPY_REQUEST)


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def make_env(clock):
    """Factory: make_env(chat_model, **settings overrides) -> PipelineEnvironment with .recorded_sleep."""

    def _make(chat_model, fallback_enabled=True, max_retries=3, failure_threshold=3):
        settings = Settings(
            llm=LLMSettings(api_key="test-key", max_retries=max_retries),
            breaker=BreakerSettings(failure_threshold=failure_threshold),
            fallback_enabled=fallback_enabled,
        )
        sleep = RecordingSleep()
        env = PipelineEnvironment.from_settings(
            settings,
            chat_model=chat_model,
            breakers=CircuitBreakerRegistry(clock=clock),
            sleep=sleep,
        )
        env.recorded_sleep = sleep
        return env

    return _make


@pytest.fixture
def fake_chat():
    return FakeChatModel
