"""Enrichment: statistics, adjacency maps, coverage math and warnings."""
import copy

import pytest

from specgen.core.enricher import (
    build_dependency_graph,
    build_relationships_map,
    enrich_specification,
    requirement_coverage,
    round_half_up,
)
from specgen.core.validator import validate_specification


@pytest.fixture
def rich_spec(valid_spec):
    """Three FRs with dependencies, two related models, mixed tests."""
    fr = valid_spec["requirements"]["functional"]
    fr.append(dict(fr[0], id="FR002", priority="medium", category="billing", dependencies=["FR001"]))
    fr.append(dict(fr[0], id="FR003", priority="high", category="billing", dependencies=["FR001", "FR002"]))

    endpoints = valid_spec["architecture"]["apiEndpoints"]
    endpoints.append(dict(endpoints[0], id="EP002", method="POST", authentication=True,
                          relatedRequirements=["FR002"]))
    endpoints.append(dict(endpoints[0], id="EP003", method="GET", relatedRequirements=[]))

    models = valid_spec["architecture"]["dataModels"]
    models[0]["relationships"] = [{"type": "oneToMany", "target": "Order", "description": "has orders"}]
    models.append(dict(models[0], id="DM002", name="Order", relationships=[
        {"type": "oneToOne", "target": "TestModel", "description": "belongs to", "foreignKey": "owner_id"},
    ]))

    cases = valid_spec["testing"]["testCases"]
    cases.append(dict(cases[0], id="TC002", type="edge_case", category="edge_case", priority="low",
                      relatedRequirements=["FR002"],
                      edgeCase={"scenario": "s", "triggerCondition": "t",
                                "expectedBehavior": "e", "recoveryAction": "r"}))
    return validate_specification(valid_spec).data


class TestStatistics:
    def test_requirements_statistics(self, rich_spec):
        stats = enrich_specification(rich_spec).specification["requirements"]["statistics"]
        assert stats == {
            "functionalCount": 3,
            "nonFunctionalCount": 1,
            "highPriorityCount": 3,
            "categoriesCount": 3,
        }

    def test_architecture_statistics(self, rich_spec):
        stats = enrich_specification(rich_spec).specification["architecture"]["statistics"]
        assert stats == {
            "endpointsCount": 3,
            "methodsDistribution": {"GET": 2, "POST": 1},
            "authenticationRequired": 1,
            "modelsCount": 2,
            "servicesCount": 1,
        }

    def test_testing_statistics(self, rich_spec):
        stats = enrich_specification(rich_spec).specification["testing"]["statistics"]
        assert stats == {
            "testCasesCount": 2,
            "acceptanceCriteriaCount": 1,
            "testTypeDistribution": {"unit": 1, "edge_case": 1},
            "priorityDistribution": {"high": 1, "low": 1},
            "edgeCasesCount": 1,
        }


class TestAdjacency:
    def test_dependency_graph_both_directions(self, rich_spec):
        graph = build_dependency_graph(rich_spec["requirements"]["functional"])
        assert graph["FR001"] == {"dependencies": [], "dependents": ["FR002", "FR003"]}
        assert graph["FR002"] == {"dependencies": ["FR001"], "dependents": ["FR003"]}
        assert graph["FR003"] == {"dependencies": ["FR001", "FR002"], "dependents": []}

    def test_relationships_map(self, rich_spec):
        rel_map = build_relationships_map(rich_spec["architecture"]["dataModels"])
        assert rel_map["TestModel"]["outgoing"][0]["target"] == "Order"
        assert rel_map["TestModel"]["incoming"] == [
            {"from": "Order", "type": "oneToOne", "description": "belongs to"},
        ]
        assert rel_map["Order"]["incoming"] == [
            {"from": "TestModel", "type": "oneToMany", "description": "has orders"},
        ]

    def test_outgoing_is_a_copy(self, rich_spec):
        rel_map = build_relationships_map(rich_spec["architecture"]["dataModels"])
        rel_map["TestModel"]["outgoing"][0]["target"] = "Changed"
        assert rich_spec["architecture"]["dataModels"][0]["relationships"][0]["target"] == "Order"


class TestCoverage:
    def test_full_coverage(self, valid_spec):
        spec = validate_specification(valid_spec).data
        coverage = enrich_specification(spec).specification["testing"]["requirementCoverage"]
        assert coverage == {
            "total": 2,
            "covered": 2,
            "uncovered": 0,
            "coveragePercentage": 100,
            "uncoveredRequirements": [],
            "testCoverage": 1,
            "criteriaCoverage": 1,
        }

    def test_partial_coverage_rounds(self, rich_spec):
        # FR001, FR002 covered; FR003 and NFR001 not -> 2 of 4
        rich_spec["testing"]["acceptanceCriteria"][0]["relatedRequirements"] = []
        coverage = requirement_coverage(rich_spec["testing"], rich_spec["requirements"])
        assert coverage["covered"] == 2
        assert coverage["total"] == 4
        assert coverage["coveragePercentage"] == 50
        assert coverage["uncoveredRequirements"] == ["FR003", "NFR001"]

    def test_one_of_three_rounds_to_33(self):
        testing = {"testCases": [{"relatedRequirements": ["FR001"]}], "acceptanceCriteria": []}
        requirements = {"functional": [{"id": "FR001"}, {"id": "FR002"}], "nonFunctional": [{"id": "NFR001"}]}
        assert requirement_coverage(testing, requirements)["coveragePercentage"] == 33

    def test_empty_total(self):
        testing = {"testCases": [], "acceptanceCriteria": []}
        requirements = {"functional": [], "nonFunctional": []}
        assert requirement_coverage(testing, requirements)["coveragePercentage"] == 0

    @pytest.mark.parametrize("value,expected", [(0.5, 1), (1.5, 2), (2.5, 3), (66.66, 67), (12.49, 12)])
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected


class TestWarningsAndPurity:
    def test_warnings(self, rich_spec):
        result = enrich_specification(rich_spec, "req-1")
        assert result.warnings == [
            "High-priority requirements without tests: FR003",
            "API endpoints without related requirements: EP003",
        ]

    def test_no_warnings_for_clean_spec(self, valid_spec):
        spec = validate_specification(valid_spec).data
        assert enrich_specification(spec).warnings == []

    def test_input_not_modified(self, rich_spec):
        before = copy.deepcopy(rich_spec)
        enrich_specification(rich_spec)
        assert rich_spec == before

    def test_idempotent(self, rich_spec):
        once = enrich_specification(rich_spec)
        twice = enrich_specification(once.specification)
        assert twice.specification == once.specification
        assert twice.warnings == once.warnings
