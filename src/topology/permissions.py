"""Permission binding: grant intents become merged GrantEdges."""

from typing import Dict, Iterable, List, Optional, Tuple

from ..utils.errors import ErrorCode, TopologyError
from .declarations import GrantEdge, Permission, ResourceKind
from .registry import ResourceRegistry

ACTOR_KINDS = (ResourceKind.FUNCTION, ResourceKind.AUTH_POOL)
RESOURCE_KINDS = (ResourceKind.TABLE,)


class PermissionBinder:
    """
    Collects grant edges between actors and tables.

    Grants between the same (actor, resource) pair merge into one edge holding
    the union of their permissions, so granting the same permission twice is a
    no-op.
    """

    def __init__(self, registry: ResourceRegistry) -> None:
        self.registry = registry
        self._edges: Dict[Tuple[str, str], GrantEdge] = {}

    def grant(
        self,
        actor: str,
        resource: str,
        permissions: Iterable[object],
        declaration_id: Optional[str] = None,
    ) -> GrantEdge:
        """
        Grant an actor permissions on a table.

        Args:
            actor: Id of a Function or AuthPool node
            resource: Id of a Table node
            permissions: Permission values or their names ("Read", "Write")
            declaration_id: Id of the grant declaration, recorded on the edge

        Returns:
            The merged edge for this (actor, resource) pair

        Raises:
            TopologyError: if an endpoint does not resolve to an allowed kind,
                or the permission set is empty or unknown
        """
        self.registry.lookup(actor, ACTOR_KINDS)
        self.registry.lookup(resource, RESOURCE_KINDS)
        granted = _parse_permissions(permissions, [actor, resource])

        key = (actor, resource)
        existing = self._edges.get(key)
        if existing is None:
            edge = GrantEdge(
                actor=actor,
                resource=resource,
                permissions=granted,
                declarations=(declaration_id,) if declaration_id else (),
            )
        else:
            declarations = existing.declarations
            if declaration_id and declaration_id not in declarations:
                declarations = declarations + (declaration_id,)
            edge = GrantEdge(
                actor=actor,
                resource=resource,
                permissions=existing.permissions | granted,
                declarations=declarations,
            )
        self._edges[key] = edge
        return edge

    def edges(self) -> List[GrantEdge]:
        """Edges in the order their pair was first granted."""
        return list(self._edges.values())

    def edge_for(self, actor: str, resource: str) -> Optional[GrantEdge]:
        return self._edges.get((actor, resource))

    def __len__(self) -> int:
        return len(self._edges)


def _parse_permissions(permissions: Iterable[object], offending_ids: List[str]) -> frozenset:
    parsed = set()
    for value in permissions:
        if isinstance(value, Permission):
            parsed.add(value)
            continue
        try:
            parsed.add(Permission(value))
        except ValueError:
            raise TopologyError(
                ErrorCode.INVALID_ATTRIBUTE,
                f"Unknown permission {value!r}; expected Read or Write",
                offending_ids,
            ) from None
    if not parsed:
        raise TopologyError(
            ErrorCode.INVALID_ATTRIBUTE,
            "A grant must carry at least one permission",
            offending_ids,
        )
    return frozenset(parsed)
