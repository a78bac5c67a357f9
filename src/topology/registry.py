"""Resource registry: owns every declared node, keyed by unique id."""

from typing import Dict, Iterable, Iterator, List, Optional, Union

from ..utils.errors import ErrorCode, TopologyError
from .declarations import ResourceKind, ResourceNode

KindFilter = Optional[Union[ResourceKind, Iterable[ResourceKind]]]


class ResourceRegistry:
    """
    Holds typed resource nodes by identifier.

    Identifiers are unique across all kinds. A second registration with an
    existing id raises instead of overwriting; the first declaration stays.
    """

    def __init__(self) -> None:
        self._nodes: Dict[str, ResourceNode] = {}

    def register(self, node: ResourceNode) -> None:
        """
        Add a node to the registry.

        Raises:
            TopologyError: DuplicateIdentifier if the id is already registered
        """
        existing = self._nodes.get(node.id)
        if existing is not None:
            raise TopologyError(
                ErrorCode.DUPLICATE_IDENTIFIER,
                f"Identifier '{node.id}' is declared more than once "
                f"(first as {existing.kind.value}, again as {node.kind.value})",
                [node.id],
                {"firstDeclaration": existing.order, "duplicateDeclaration": node.order},
            )
        self._nodes[node.id] = node

    def lookup(self, node_id: str, expected_kinds: KindFilter = None) -> ResourceNode:
        """
        Find a node by id, optionally checking its kind.

        Args:
            node_id: Identifier to look up
            expected_kinds: Kind or kinds the node must have; None accepts any

        Returns:
            The registered node

        Raises:
            TopologyError: UnresolvedReference if no node has this id,
                KindMismatch if the node has a different kind
        """
        node = self._nodes.get(node_id)
        if node is None:
            raise TopologyError(
                ErrorCode.UNRESOLVED_REFERENCE,
                f"No resource is declared with id '{node_id}'",
                [node_id],
            )

        allowed = _kinds(expected_kinds)
        if allowed and node.kind not in allowed:
            expected = " or ".join(kind.value for kind in allowed)
            raise TopologyError(
                ErrorCode.KIND_MISMATCH,
                f"Resource '{node_id}' is a {node.kind.value}, expected {expected}",
                [node_id],
            )
        return node

    def nodes(self, kind: Optional[ResourceKind] = None) -> List[ResourceNode]:
        """Registered nodes in declaration order, optionally of one kind."""
        ordered = sorted(self._nodes.values(), key=lambda node: node.order)
        if kind is None:
            return ordered
        return [node for node in ordered if node.kind == kind]

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __iter__(self) -> Iterator[ResourceNode]:
        return iter(self.nodes())

    def __len__(self) -> int:
        return len(self._nodes)


def _kinds(expected_kinds: KindFilter) -> List[ResourceKind]:
    if expected_kinds is None:
        return []
    if isinstance(expected_kinds, ResourceKind):
        return [expected_kinds]
    return list(expected_kinds)
