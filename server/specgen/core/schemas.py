# specgen/core/schemas.py
"""
Declarative shape of a generated Specification.

Field names mirror the JSON keys (camelCase) so validation paths read the same
as the document, e.g. `requirements.functional[0].id`. Cross-reference rules
(unique ids, resolvable references, hours band) live in validator.py.
"""

from typing import Annotated, Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, model_validator

Text = Annotated[str, Field(strict=True, min_length=1)]
Priority = Literal["high", "medium", "low"]
RequirementRef = Annotated[str, Field(strict=True, pattern=r"^(FR|NFR)[0-9]{3}$")]


def _id(prefix: str):
    return Annotated[str, Field(strict=True, pattern=rf"^{prefix}[0-9]{{3}}$")]


class SpecModel(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    @model_validator(mode="after")
    def _mark_list_defaults(self):
        # list defaults count as set, so they survive exclude_unset dumps
        for name, field in type(self).model_fields.items():
            if field.default_factory is not None:
                self.__pydantic_fields_set__.add(name)
        return self


# ----------------------------
# metadata
# ----------------------------
class Metadata(SpecModel):
    name: Text
    description: Text
    complexity: Literal["simple", "medium", "complex"]
    estimatedHours: Annotated[int, Field(strict=True, ge=1, le=1000)]
    tags: Annotated[List[Text], Field(min_length=1)]
    version: Annotated[str, Field(strict=True, pattern=r"^[0-9]+\.[0-9]+\.[0-9]+$")]


# ----------------------------
# requirements
# ----------------------------
class FunctionalRequirement(SpecModel):
    id: _id("FR")
    title: Text
    description: Text
    priority: Priority
    category: Text
    dependencies: List[_id("FR")] = Field(default_factory=list)


class NonFunctionalRequirement(SpecModel):
    id: _id("NFR")
    category: Literal["performance", "security", "usability", "reliability", "scalability", "maintainability"]
    requirement: Text
    metric: Text
    priority: Priority


class Requirements(SpecModel):
    functional: Annotated[List[FunctionalRequirement], Field(min_length=1)]
    nonFunctional: Annotated[List[NonFunctionalRequirement], Field(min_length=1)]
    # derived by the enricher, accepted so enriched documents re-validate
    statistics: Optional[Dict[str, Any]] = None
    dependencyGraph: Optional[Dict[str, Any]] = None


# ----------------------------
# architecture
# ----------------------------
class StatusCode(SpecModel):
    code: Annotated[int, Field(strict=True, ge=100, le=599)]
    description: Text
    errorHandling: Optional[Text] = None
    retryStrategy: Optional[Literal["none", "immediate", "exponential_backoff"]] = None


class ApiEndpoint(SpecModel):
    id: _id("EP")
    method: Literal["GET", "POST", "PUT", "DELETE", "PATCH"]
    path: Annotated[str, Field(strict=True, pattern=r"^/api/")]
    description: Text
    category: Text
    authentication: StrictBool
    rateLimit: Text
    requestBody: Optional[Dict[str, Any]]
    responseBody: Dict[str, Any]
    statusCodes: Annotated[List[StatusCode], Field(min_length=1)]
    relatedRequirements: List[RequirementRef] = Field(default_factory=list)


class ModelField(SpecModel):
    name: Text
    type: Text
    required: StrictBool
    description: Text
    validation: Optional[Text] = None
    defaultValue: Any = None


class Relationship(SpecModel):
    type: Literal["oneToOne", "oneToMany", "manyToMany"]
    target: Text
    description: Text
    foreignKey: Optional[Text] = None


class DataModel(SpecModel):
    id: _id("DM")
    name: Text
    description: Text
    category: Text
    fields: Annotated[List[ModelField], Field(min_length=1)]
    relationships: List[Relationship] = Field(default_factory=list)
    indexes: List[Text] = Field(default_factory=list)
    constraints: List[Text] = Field(default_factory=list)


class ServiceMethod(SpecModel):
    name: Text
    description: Text
    parameters: List[Text] = Field(default_factory=list)
    returns: Text


class Service(SpecModel):
    id: _id("SV")
    name: Text
    description: Text
    type: Literal["internal", "external", "database", "cache", "queue"]
    methods: List[ServiceMethod] = Field(default_factory=list)


class Architecture(SpecModel):
    apiEndpoints: Annotated[List[ApiEndpoint], Field(min_length=1)]
    dataModels: Annotated[List[DataModel], Field(min_length=1)]
    services: Annotated[List[Service], Field(min_length=1)]
    statistics: Optional[Dict[str, Any]] = None
    relationshipsMap: Optional[Dict[str, Any]] = None


# ----------------------------
# implementation
# ----------------------------
class Dependency(SpecModel):
    name: Text
    type: Literal["library", "service", "database", "external_api"]
    version: Text
    purpose: Text
    critical: StrictBool


class Dependencies(SpecModel):
    runtime: Annotated[List[Dependency], Field(min_length=1)]
    development: List[Dependency] = Field(default_factory=list)


class ConfigurationEntry(SpecModel):
    key: Text
    description: Text
    type: Literal["string", "number", "boolean", "object"]
    required: StrictBool
    defaultValue: Any = None
    environment: Text


class EdgeCaseHandling(SpecModel):
    inputValidation: Text
    errorRecovery: Text
    dataConsistency: Text
    concurrencyControl: Text


class Security(SpecModel):
    authentication: Text
    authorization: Text
    dataProtection: Annotated[List[Text], Field(min_length=1)]
    vulnerabilities: List[Text] = Field(default_factory=list)
    edgeCaseHandling: EdgeCaseHandling


class Implementation(SpecModel):
    dependencies: Dependencies
    configuration: List[ConfigurationEntry] = Field(default_factory=list)
    security: Security


# ----------------------------
# testing
# ----------------------------
class SpecTestStrategy(SpecModel):
    unitTests: Text
    integrationTests: Text
    e2eTests: Text
    coverage: Annotated[float, Field(ge=0, le=100)]


class EdgeCase(SpecModel):
    scenario: Text
    triggerCondition: Text
    expectedBehavior: Text
    recoveryAction: Text


class SpecTestCase(SpecModel):
    id: _id("TC")
    type: Literal["unit", "integration", "e2e", "performance", "security", "edge_case"]
    category: Literal["happy_path", "edge_case", "error_handling", "boundary_test", "security_test"]
    description: Text
    priority: Priority
    steps: Annotated[List[Text], Field(min_length=1)]
    expectedResult: Text
    relatedRequirements: List[RequirementRef] = Field(default_factory=list)
    edgeCase: Optional[EdgeCase] = None


class AcceptanceCriterion(SpecModel):
    id: _id("AC")
    scenario: Text
    given: Text
    when: Text
    then: Text
    priority: Priority
    relatedRequirements: List[RequirementRef] = Field(default_factory=list)


class Testing(SpecModel):
    strategy: SpecTestStrategy
    testCases: Annotated[List[SpecTestCase], Field(min_length=1)]
    acceptanceCriteria: Annotated[List[AcceptanceCriterion], Field(min_length=1)]
    statistics: Optional[Dict[str, Any]] = None
    requirementCoverage: Optional[Dict[str, Any]] = None


# ----------------------------
# deployment
# ----------------------------
class Environments(SpecModel):
    development: Text
    staging: Text
    production: Text


class InfrastructureComponent(SpecModel):
    component: Text
    description: Text
    requirements: Text
    scaling: Text


class MonitoringRule(SpecModel):
    metric: Text
    description: Text
    threshold: Text
    action: Text


class Deployment(SpecModel):
    environment: Environments
    infrastructure: Annotated[List[InfrastructureComponent], Field(min_length=1)]
    monitoring: Annotated[List[MonitoringRule], Field(min_length=1)]


class Specification(SpecModel):
    metadata: Metadata
    requirements: Requirements
    architecture: Architecture
    implementation: Implementation
    testing: Testing
    deployment: Deployment
    # passed through untouched (fallback marker, model info)
    meta_passthrough: Optional[Dict[str, Any]] = Field(None, alias="_metadata")
