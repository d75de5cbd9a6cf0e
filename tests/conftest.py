"""Shared fixtures for the condition DSL tests."""

from pathlib import Path

import pytest

from conditionforge.dsl import ConditionVariableCatalog, ConditionVariableDefinition

FIXTURES_DIR = Path(__file__).parent / "fixtures"

HOOK_INTENSITY = "facets.planKnobs.hookIntensity"
VARIANT_COUNT = "facets.planKnobs.variantCount"


def _variable(path: str, type_: str, allowed_operators=()) -> ConditionVariableDefinition:
    return ConditionVariableDefinition(
        id=path,
        path=path,
        label=path,
        type=type_,
        allowed_operators=tuple(allowed_operators),
    )


@pytest.fixture
def catalog() -> ConditionVariableCatalog:
    """A small catalog covering every variable type."""
    return ConditionVariableCatalog(
        [
            _variable(HOOK_INTENSITY, "number"),
            _variable(VARIANT_COUNT, "number"),
            _variable("score", "number"),
            _variable("threshold", "number"),
            _variable("status", "string"),
            _variable("flag", "boolean", ["==", "!="]),
            _variable("items", "array"),
            _variable("groups", "array"),
            _variable("recommendations", "array"),
        ]
    )
