"""
Typed building blocks of a resource topology.

Declarations arrive as plain mappings (``{"id", "kind", "attributes"}``); the
compiler turns them into ResourceNode values and, once everything resolves,
into an immutable CompiledPlan of ProvisioningOperation values.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple


class ResourceKind(str, Enum):
    """Kinds of declarations a topology may contain."""

    AUTH_POOL = "AuthPool"
    TABLE = "Table"
    FUNCTION = "Function"
    API_ROUTE = "ApiRoute"
    ALARM = "Alarm"
    # Grant intents share the identifier namespace but never become a reference target
    GRANT = "Grant"

    @classmethod
    def parse(cls, value: Any) -> Optional["ResourceKind"]:
        for kind in cls:
            if kind.value == value:
                return kind
        return None


NODE_KINDS: Tuple[ResourceKind, ...] = (
    ResourceKind.AUTH_POOL,
    ResourceKind.TABLE,
    ResourceKind.FUNCTION,
    ResourceKind.API_ROUTE,
    ResourceKind.ALARM,
)


class Permission(str, Enum):
    READ = "Read"
    WRITE = "Write"


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


class OperationKind(str, Enum):
    CREATE = "Create"
    BIND = "Bind"


@dataclass(frozen=True)
class ResourceNode:
    """A declared infrastructure unit with a unique id and typed attributes."""

    id: str
    kind: ResourceKind
    attributes: Mapping[str, Any] = field(default_factory=dict)
    order: int = 0


@dataclass(frozen=True)
class GrantEdge:
    """Permission relationship between an actor node and a table node."""

    actor: str
    resource: str
    permissions: FrozenSet[Permission]
    declarations: Tuple[str, ...] = ()

    @property
    def key(self) -> Tuple[str, str]:
        return (self.actor, self.resource)

    def sorted_permissions(self) -> List[str]:
        return sorted(permission.value for permission in self.permissions)


@dataclass(frozen=True)
class RouteBinding:
    node_id: str
    path: str
    method: HttpMethod
    handler: str

    @property
    def key(self) -> Tuple[str, HttpMethod]:
        # "/books" and "/books/" map to the same API resource
        return (self.path.rstrip("/") or "/", self.method)

    @classmethod
    def from_operation(cls, operation: "ProvisioningOperation") -> "RouteBinding":
        attributes = operation.resolved_attributes
        return cls(
            node_id=operation.target_node_id,
            path=attributes["path"],
            method=HttpMethod(attributes["method"]),
            handler=attributes["handler"]["ref"],
        )


@dataclass(frozen=True)
class AlarmSpec:
    node_id: str
    metric_source: str
    threshold: float
    evaluation_periods: int

    @classmethod
    def from_operation(cls, operation: "ProvisioningOperation") -> "AlarmSpec":
        attributes = operation.resolved_attributes
        return cls(
            node_id=operation.target_node_id,
            metric_source=attributes["metricSource"]["ref"],
            threshold=attributes["threshold"],
            evaluation_periods=attributes.get("evaluationPeriods", 1),
        )


@dataclass(frozen=True)
class ProvisioningOperation:
    """A single ordered create/bind action for the provisioning backend."""

    operation_kind: OperationKind
    target_node_id: str
    resource_kind: ResourceKind
    resolved_attributes: Mapping[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operationKind": self.operation_kind.value,
            "targetNodeId": self.target_node_id,
            "resourceKind": self.resource_kind.value,
            "resolvedAttributes": _plain(self.resolved_attributes),
        }


@dataclass(frozen=True)
class CompiledPlan:
    """Immutable, ordered list of provisioning operations."""

    operations: Tuple[ProvisioningOperation, ...] = ()

    def __iter__(self):
        return iter(self.operations)

    def __len__(self) -> int:
        return len(self.operations)

    def target_ids(self) -> List[str]:
        return [operation.target_node_id for operation in self.operations]

    def find(self, node_id: str) -> Optional[ProvisioningOperation]:
        for operation in self.operations:
            if operation.target_node_id == node_id:
                return operation
        return None

    def to_dicts(self) -> List[Dict[str, Any]]:
        return [operation.to_dict() for operation in self.operations]

    def to_json(self) -> str:
        """Deterministic JSON rendering; identical plans render byte-identical."""
        return json.dumps(self.to_dicts(), indent=2, sort_keys=True)


def reference(node: ResourceNode) -> Mapping[str, str]:
    """Resolved form of a reference inside a plan's attributes."""
    return MappingProxyType({"ref": node.id, "kind": node.kind.value})


def freeze(value: Any) -> Any:
    """Read-only copy of nested attribute values: mappings become proxies, lists become tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({key: freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(item) for item in value)
    if isinstance(value, (set, frozenset)):
        return frozenset(value)
    return value


def _plain(value: Any) -> Any:
    """Copy mappings/sequences into plain dicts and lists for JSON output."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Mapping):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, frozenset, set)):
        items: Iterable[Any] = value
        if isinstance(value, (frozenset, set)):
            items = sorted(value, key=str)
        return [_plain(item) for item in items]
    return value
