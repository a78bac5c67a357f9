"""
Attribute validation for topology declarations.

Validates each node's attributes against the schema of its kind, fills in
defaults, and reports every problem as an InvalidAttribute error. Reference
attributes are only checked for presence here; the resolver checks their
targets.
"""

import math
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..utils.errors import ErrorCode, TopologyError
from .declarations import HttpMethod, Permission, ResourceKind, ResourceNode

KEY_TYPES = ("STRING", "NUMBER", "BINARY")
BILLING_MODES = ("PAY_PER_REQUEST", "PROVISIONED")
REMOVAL_POLICIES = ("RETAIN", "DESTROY")
SIGN_IN_ALIASES = ("email", "phone", "username", "preferredUsername")

DEFAULT_CAPACITY = 5
MIN_MEMORY_SIZE = 128

_MISSING = object()


class _AttributeChecker:
    """Consumes a node's attributes one by one, recording normalized values and errors."""

    def __init__(self, node: ResourceNode) -> None:
        self.node = node
        self.remaining: Dict[str, Any] = dict(node.attributes)
        self.values: Dict[str, Any] = {}
        self.errors: List[TopologyError] = []

    def fail(self, name: str, message: str) -> None:
        self.errors.append(
            TopologyError(
                ErrorCode.INVALID_ATTRIBUTE,
                f"{self.node.kind.value} '{self.node.id}': {message}",
                [self.node.id],
                {"attribute": name},
            )
        )

    def _take(self, name: str, required: bool) -> Any:
        value = self.remaining.pop(name, _MISSING)
        if value is None:
            value = _MISSING
        if value is _MISSING and required:
            self.fail(name, f"'{name}' is required")
        return value

    def _store(self, name: str, value: Any) -> None:
        if value is not None:
            self.values[name] = value

    def string(self, name: str, required: bool = False, default: Optional[str] = None) -> None:
        value = self._take(name, required)
        if value is _MISSING:
            self._store(name, default)
        elif not isinstance(value, str) or not value.strip():
            self.fail(name, f"'{name}' must be a non-empty string")
        else:
            self._store(name, value)

    def boolean(self, name: str, default: bool = False) -> None:
        value = self._take(name, False)
        if value is _MISSING:
            self._store(name, default)
        elif not isinstance(value, bool):
            self.fail(name, f"'{name}' must be true or false")
        else:
            self._store(name, value)

    def integer(self, name: str, minimum: int = 1, default: Optional[int] = None, required: bool = False) -> None:
        value = self._take(name, required)
        if value is _MISSING:
            self._store(name, default)
        elif isinstance(value, bool) or not isinstance(value, int):
            self.fail(name, f"'{name}' must be an integer")
        elif value < minimum:
            self.fail(name, f"'{name}' must be at least {minimum}, got {value}")
        else:
            self._store(name, value)

    def number(self, name: str, required: bool = False) -> None:
        value = self._take(name, required)
        if value is _MISSING:
            return
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            self.fail(name, f"'{name}' must be a number")
        elif not math.isfinite(value):
            self.fail(name, f"'{name}' must be a finite number")
        else:
            self._store(name, value)

    def choice(
        self,
        name: str,
        choices: Sequence[str],
        default: Optional[str] = None,
        required: bool = False,
        normalize: Callable[[str], str] = str.upper,
    ) -> None:
        value = self._take(name, required)
        if value is _MISSING:
            self._store(name, default)
            return
        normalized = normalize(value) if isinstance(value, str) else value
        if normalized not in choices:
            self.fail(name, f"'{name}' must be one of {', '.join(choices)}, got {value!r}")
        else:
            self._store(name, normalized)

    def string_list(self, name: str, choices: Optional[Sequence[str]] = None, default: Optional[List[str]] = None) -> None:
        value = self._take(name, False)
        if value is _MISSING:
            self._store(name, list(default or []))
            return
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            self.fail(name, f"'{name}' must be a list of strings")
            return
        invalid = [item for item in value if choices is not None and item not in choices]
        if invalid:
            self.fail(name, f"'{name}' contains unsupported values: {', '.join(invalid)}")
            return
        self._store(name, list(dict.fromkeys(value)))

    def string_map(self, name: str) -> None:
        value = self._take(name, False)
        if value is _MISSING:
            self._store(name, {})
        elif not isinstance(value, dict) or not all(
            isinstance(key, str) and isinstance(item, str) for key, item in value.items()
        ):
            self.fail(name, f"'{name}' must map strings to strings")
        else:
            self._store(name, dict(sorted(value.items())))

    def key_schema(self, name: str, required: bool = False) -> None:
        value = self._take(name, required)
        if value is _MISSING:
            return
        if not isinstance(value, dict) or not isinstance(value.get("name"), str) or not value["name"]:
            self.fail(name, f"'{name}' must be an object with a 'name' and a 'type'")
            return
        key_type = value.get("type", "STRING")
        key_type = key_type.upper() if isinstance(key_type, str) else key_type
        if key_type not in KEY_TYPES or set(value) - {"name", "type"}:
            self.fail(name, f"'{name}' type must be one of {', '.join(KEY_TYPES)}")
            return
        self._store(name, {"name": value["name"], "type": key_type})

    def reference(self, name: str, required: bool = False) -> None:
        value = self._take(name, required)
        if value is not _MISSING:
            self._store(name, value)

    def reference_list(self, name: str) -> None:
        value = self._take(name, False)
        self._store(name, [] if value is _MISSING else value)

    def finish(self) -> Tuple[Dict[str, Any], List[TopologyError]]:
        for name in sorted(self.remaining):
            self.fail(name, f"unknown attribute '{name}'")
        return self.values, self.errors


def _auth_pool(check: _AttributeChecker) -> None:
    check.string("userPoolName")
    check.boolean("selfSignUpEnabled", default=False)
    check.string_list("signInAliases", choices=SIGN_IN_ALIASES, default=["email"])
    check.string("existingPoolId")
    check.boolean("importExisting", default=False)


def _table(check: _AttributeChecker) -> None:
    check.key_schema("partitionKey", required=True)
    check.key_schema("sortKey")
    check.choice("billingMode", BILLING_MODES, default="PAY_PER_REQUEST")
    provisioned = check.values.get("billingMode") == "PROVISIONED"
    for name in ("readCapacity", "writeCapacity"):
        if provisioned:
            check.integer(name, default=DEFAULT_CAPACITY)
        elif name in check.remaining:
            check.remaining.pop(name)
            check.fail(name, f"'{name}' is only valid with PROVISIONED billing")
    check.string("tableName")
    check.choice("removalPolicy", REMOVAL_POLICIES, default="RETAIN")


def _function(check: _AttributeChecker) -> None:
    check.string("runtime", required=True)
    check.string("handler", required=True)
    has_code = check.remaining.get("code") is not None
    has_inline = check.remaining.get("inlineCode") is not None
    if has_code == has_inline:
        check.fail("code", "exactly one of 'code' or 'inlineCode' is required")
    check.string("code")
    check.string("inlineCode")
    check.string_map("environment")
    check.reference("tableRef")
    check.integer("timeoutSeconds", default=3)
    check.integer("memorySize", minimum=MIN_MEMORY_SIZE, default=MIN_MEMORY_SIZE)
    check.string("functionName")


def _api_route(check: _AttributeChecker) -> None:
    path = check.remaining.get("path")
    if isinstance(path, str) and not path.startswith("/"):
        check.remaining.pop("path")
        check.fail("path", f"'path' must start with '/', got {path!r}")
    else:
        check.string("path", required=True)
    check.choice("method", [method.value for method in HttpMethod], required=True)
    check.reference("handler", required=True)
    check.reference("authorizer")


def _alarm(check: _AttributeChecker) -> None:
    check.reference("metricSource", required=True)
    check.number("threshold", required=True)
    check.integer("evaluationPeriods", default=1)
    check.string("metricName", default="Errors")
    check.string("namespace", default="AWS/Lambda")
    check.string("statistic", default="Sum")
    check.integer("periodMinutes", default=5)
    check.string("alarmName")


def _grant(check: _AttributeChecker) -> None:
    check.reference("actor", required=True)
    check.reference("resource", required=True)
    permissions = check.remaining.get("permissions")
    if permissions is None or permissions == []:
        check.remaining.pop("permissions", None)
        check.fail("permissions", "'permissions' must list at least one of Read, Write")
    else:
        check.string_list("permissions", choices=[permission.value for permission in Permission])


VALIDATORS: Dict[ResourceKind, Callable[[_AttributeChecker], None]] = {
    ResourceKind.AUTH_POOL: _auth_pool,
    ResourceKind.TABLE: _table,
    ResourceKind.FUNCTION: _function,
    ResourceKind.API_ROUTE: _api_route,
    ResourceKind.ALARM: _alarm,
    ResourceKind.GRANT: _grant,
}


def validate_attributes(node: ResourceNode) -> Tuple[Dict[str, Any], List[TopologyError]]:
    """
    Validate a node's attributes against its kind's schema.

    Args:
        node: Node whose attributes should be checked

    Returns:
        Tuple of (normalized attributes with defaults filled, errors). The
        errors list is empty when the attributes are valid.
    """
    check = _AttributeChecker(node)
    VALIDATORS[node.kind](check)
    check.reference_list("dependsOn")
    return check.finish()
