"""Tests for per-kind attribute validation."""

from typing import Any, Dict

import pytest

from src.topology.declarations import ResourceKind, ResourceNode
from src.topology.validation import validate_attributes
from src.utils.errors import ErrorCode


def _validate(kind: ResourceKind, **attributes: Any):
    return validate_attributes(ResourceNode(id="Node", kind=kind, attributes=attributes))


def _attributes_in_error(errors) -> list:
    return [error.details["attribute"] for error in errors]


class TestAuthPool:
    def test_defaults(self) -> None:
        values, errors = _validate(ResourceKind.AUTH_POOL)

        assert errors == []
        assert values == {
            "selfSignUpEnabled": False,
            "signInAliases": ["email"],
            "importExisting": False,
            "dependsOn": [],
        }

    def test_unknown_sign_in_alias(self) -> None:
        _, errors = _validate(ResourceKind.AUTH_POOL, signInAliases=["email", "fax"])

        assert _attributes_in_error(errors) == ["signInAliases"]

    def test_self_sign_up_must_be_boolean(self) -> None:
        _, errors = _validate(ResourceKind.AUTH_POOL, selfSignUpEnabled="yes")

        assert errors[0].error_code == ErrorCode.INVALID_ATTRIBUTE


class TestTable:
    def test_partition_key_required(self) -> None:
        _, errors = _validate(ResourceKind.TABLE)

        assert _attributes_in_error(errors) == ["partitionKey"]
        assert errors[0].offending_ids == ("Node",)

    def test_normalizes_key_type_and_billing(self) -> None:
        values, errors = _validate(
            ResourceKind.TABLE,
            partitionKey={"name": "userId", "type": "string"},
            billingMode="provisioned",
        )

        assert errors == []
        assert values["partitionKey"] == {"name": "userId", "type": "STRING"}
        assert values["billingMode"] == "PROVISIONED"
        assert values["readCapacity"] == 5
        assert values["writeCapacity"] == 5
        assert values["removalPolicy"] == "RETAIN"

    def test_capacity_rejected_for_on_demand(self) -> None:
        _, errors = _validate(
            ResourceKind.TABLE,
            partitionKey={"name": "userId", "type": "STRING"},
            readCapacity=10,
        )

        assert _attributes_in_error(errors) == ["readCapacity"]

    def test_bad_key_type(self) -> None:
        _, errors = _validate(ResourceKind.TABLE, partitionKey={"name": "userId", "type": "DATE"})

        assert _attributes_in_error(errors) == ["partitionKey"]


class TestFunction:
    def test_requires_exactly_one_code_source(self) -> None:
        _, neither = _validate(ResourceKind.FUNCTION, runtime="nodejs18.x", handler="index.handler")
        _, both = _validate(
            ResourceKind.FUNCTION, runtime="nodejs18.x", handler="index.handler", code="lambda", inlineCode="x"
        )

        assert _attributes_in_error(neither) == ["code"]
        assert _attributes_in_error(both) == ["code"]

    def test_defaults_and_sorted_environment(self) -> None:
        values, errors = _validate(
            ResourceKind.FUNCTION,
            runtime="nodejs18.x",
            handler="index.handler",
            code="lambda",
            environment={"B": "2", "A": "1"},
        )

        assert errors == []
        assert values["timeoutSeconds"] == 3
        assert values["memorySize"] == 128
        assert list(values["environment"]) == ["A", "B"]

    def test_memory_below_minimum(self) -> None:
        _, errors = _validate(
            ResourceKind.FUNCTION, runtime="nodejs18.x", handler="index.handler", code="lambda", memorySize=64
        )

        assert "at least 128" in errors[0].message


class TestApiRoute:
    def test_method_is_upper_cased(self) -> None:
        values, errors = _validate(ResourceKind.API_ROUTE, path="/books", method="get", handler="Fn")

        assert errors == []
        assert values["method"] == "GET"
        assert values["handler"] == "Fn"

    def test_path_must_start_with_slash(self) -> None:
        _, errors = _validate(ResourceKind.API_ROUTE, path="books", method="GET", handler="Fn")

        assert _attributes_in_error(errors) == ["path"]

    def test_unsupported_method(self) -> None:
        _, errors = _validate(ResourceKind.API_ROUTE, path="/books", method="PATCH", handler="Fn")

        assert _attributes_in_error(errors) == ["method"]

    def test_handler_required(self) -> None:
        _, errors = _validate(ResourceKind.API_ROUTE, path="/books", method="GET")

        assert _attributes_in_error(errors) == ["handler"]


class TestAlarm:
    @pytest.mark.parametrize("periods", [0, -1])
    def test_non_positive_evaluation_periods(self, periods: int) -> None:
        _, errors = _validate(ResourceKind.ALARM, metricSource="Fn", threshold=1, evaluationPeriods=periods)

        assert len(errors) == 1
        assert errors[0].error_code == ErrorCode.INVALID_ATTRIBUTE
        assert errors[0].details["attribute"] == "evaluationPeriods"

    def test_threshold_required(self) -> None:
        _, errors = _validate(ResourceKind.ALARM, metricSource="Fn")

        assert _attributes_in_error(errors) == ["threshold"]

    def test_defaults(self) -> None:
        values, errors = _validate(ResourceKind.ALARM, metricSource="Fn", threshold=2.5)

        assert errors == []
        assert values["evaluationPeriods"] == 1
        assert values["metricName"] == "Errors"
        assert values["namespace"] == "AWS/Lambda"
        assert values["statistic"] == "Sum"
        assert values["periodMinutes"] == 5

    @pytest.mark.parametrize("threshold", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_threshold(self, threshold: float) -> None:
        _, errors = _validate(ResourceKind.ALARM, metricSource="Fn", threshold=threshold)

        assert _attributes_in_error(errors) == ["threshold"]


class TestGrant:
    @pytest.mark.parametrize("permissions", [None, []])
    def test_permissions_required(self, permissions: Any) -> None:
        attributes: Dict[str, Any] = {"actor": "Fn", "resource": "Users"}
        if permissions is not None:
            attributes["permissions"] = permissions

        _, errors = _validate(ResourceKind.GRANT, **attributes)

        assert _attributes_in_error(errors) == ["permissions"]

    def test_unknown_permission(self) -> None:
        _, errors = _validate(ResourceKind.GRANT, actor="Fn", resource="Users", permissions=["Read", "Delete"])

        assert "Delete" in errors[0].message

    def test_duplicate_permissions_collapse(self) -> None:
        values, errors = _validate(ResourceKind.GRANT, actor="Fn", resource="Users", permissions=["Read", "Read"])

        assert errors == []
        assert values["permissions"] == ["Read"]


def test_unknown_attribute_is_reported() -> None:
    _, errors = _validate(ResourceKind.TABLE, partitionKey={"name": "id", "type": "STRING"}, color="blue")

    assert _attributes_in_error(errors) == ["color"]
    assert "unknown attribute" in errors[0].message


def test_every_problem_is_reported() -> None:
    _, errors = _validate(ResourceKind.ALARM, threshold="high", evaluationPeriods=0)

    assert sorted(_attributes_in_error(errors)) == ["evaluationPeriods", "metricSource", "threshold"]
