"""
Reference resolution for topology nodes.

Every reference attribute is checked against an allow-list of target kinds.
Resolution is collect-all: a topology with several broken references reports
all of them in one pass.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple

from ..utils.errors import ErrorCode, TopologyError
from .declarations import NODE_KINDS, HttpMethod, ResourceKind, ResourceNode, RouteBinding
from .registry import ResourceRegistry

DEPENDS_ON = "dependsOn"

# source kind -> reference attribute -> allowed target kinds
REFERENCE_RULES: Mapping[ResourceKind, Mapping[str, Tuple[ResourceKind, ...]]] = {
    ResourceKind.FUNCTION: {
        "tableRef": (ResourceKind.TABLE,),
    },
    ResourceKind.API_ROUTE: {
        "handler": (ResourceKind.FUNCTION,),
        "authorizer": (ResourceKind.AUTH_POOL,),
    },
    ResourceKind.ALARM: {
        "metricSource": (ResourceKind.FUNCTION,),
    },
    ResourceKind.GRANT: {
        "actor": (ResourceKind.FUNCTION, ResourceKind.AUTH_POOL),
        "resource": (ResourceKind.TABLE,),
    },
}


@dataclass
class ResolvedReferences:
    """Resolved targets for every node's reference attributes."""

    references: Dict[str, Dict[str, ResourceNode]] = field(default_factory=dict)
    depends_on: Dict[str, List[ResourceNode]] = field(default_factory=dict)

    def targets(self, node_id: str) -> Dict[str, ResourceNode]:
        return self.references.get(node_id, {})

    def dependencies(self, node_id: str) -> List[str]:
        """Ids this node must be provisioned after, without duplicates."""
        found: Dict[str, int] = {}
        for target in list(self.targets(node_id).values()) + self.depends_on.get(node_id, []):
            found.setdefault(target.id, target.order)
        return sorted(found, key=lambda target_id: found[target_id])


class ReferenceResolver:
    """Resolves symbolic references against a ResourceRegistry."""

    def __init__(
        self,
        registry: ResourceRegistry,
        rules: Optional[Mapping[ResourceKind, Mapping[str, Tuple[ResourceKind, ...]]]] = None,
    ) -> None:
        self.registry = registry
        self.rules = REFERENCE_RULES if rules is None else rules

    def resolve(self) -> Tuple[ResolvedReferences, List[TopologyError]]:
        """
        Resolve the references of every registered node.

        Returns:
            Tuple of (resolved references, errors). Nodes with broken
            references are still present with the references that did resolve.
        """
        resolved = ResolvedReferences()
        errors: List[TopologyError] = []
        for node in self.registry:
            targets, depends_on, node_errors = self.resolve_node(node)
            resolved.references[node.id] = targets
            resolved.depends_on[node.id] = depends_on
            errors.extend(node_errors)
        return resolved, errors

    def resolve_node(
        self, node: ResourceNode
    ) -> Tuple[Dict[str, ResourceNode], List[ResourceNode], List[TopologyError]]:
        """Resolve one node's reference attributes and its dependsOn list."""
        targets: Dict[str, ResourceNode] = {}
        errors: List[TopologyError] = []

        for attribute, allowed in self.rules.get(node.kind, {}).items():
            value = node.attributes.get(attribute)
            if value is None:
                continue
            target = self._resolve_one(node, attribute, value, allowed, errors)
            if target is not None:
                targets[attribute] = target

        depends_on: List[ResourceNode] = []
        values = node.attributes.get(DEPENDS_ON) or []
        if not isinstance(values, list):
            errors.append(_invalid_reference(node, DEPENDS_ON, "must be a list of resource ids"))
            values = []
        for value in values:
            target = self._resolve_one(node, DEPENDS_ON, value, NODE_KINDS, errors)
            if target is not None and target not in depends_on:
                depends_on.append(target)

        return targets, depends_on, errors

    def _resolve_one(
        self,
        node: ResourceNode,
        attribute: str,
        value: object,
        allowed: Tuple[ResourceKind, ...],
        errors: List[TopologyError],
    ) -> Optional[ResourceNode]:
        if not isinstance(value, str) or not value:
            errors.append(_invalid_reference(node, attribute, "must be a resource id string"))
            return None
        try:
            return self.registry.lookup(value, allowed)
        except TopologyError as exc:
            errors.append(
                TopologyError(
                    exc.error_code,
                    f"{node.kind.value} '{node.id}' attribute '{attribute}': {exc.message}",
                    [node.id, value],
                    {"attribute": attribute},
                )
            )
            return None


def find_duplicate_routes(registry: ResourceRegistry) -> List[TopologyError]:
    """Report every ApiRoute whose (path, method) pair was already bound."""
    errors: List[TopologyError] = []
    bound: Dict[Tuple[str, HttpMethod], RouteBinding] = {}
    for node in registry.nodes(ResourceKind.API_ROUTE):
        path = node.attributes.get("path")
        method = node.attributes.get("method")
        if not isinstance(path, str) or not isinstance(method, str):
            continue
        if method.upper() not in HttpMethod.__members__:
            continue
        binding = RouteBinding(node.id, path, HttpMethod(method.upper()), str(node.attributes.get("handler")))
        first = bound.get(binding.key)
        if first is None:
            bound[binding.key] = binding
            continue
        errors.append(
            TopologyError(
                ErrorCode.DUPLICATE_ROUTE_BINDING,
                f"{binding.method.value} {path} is bound by both '{first.node_id}' and '{node.id}'",
                [first.node_id, node.id],
                {"path": path, "method": binding.method.value},
            )
        )
    return errors


def _invalid_reference(node: ResourceNode, attribute: str, message: str) -> TopologyError:
    return TopologyError(
        ErrorCode.INVALID_ATTRIBUTE,
        f"{node.kind.value} '{node.id}' attribute '{attribute}' {message}",
        [node.id],
        {"attribute": attribute},
    )
