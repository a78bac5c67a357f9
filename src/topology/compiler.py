"""
Topology compiler façade.

Drives a set of raw declarations through the compiler states::

    Empty -> Declaring -> Resolving -> Ordering -> Compiled | Failed

Resolving (attribute validation, reference resolution, route uniqueness and
permission binding) always runs to completion and collects every error.
Ordering only runs on a consistent graph, and a Failed compile never carries a
partial plan.
"""

import json
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from ..utils.errors import CompilationFailed, ErrorCode, TopologyError
from ..utils.logging import get_correlation_id, get_logger
from .declarations import (
    CompiledPlan,
    GrantEdge,
    OperationKind,
    ProvisioningOperation,
    ResourceKind,
    ResourceNode,
    freeze,
    reference,
)
from .ordering import order_nodes
from .permissions import PermissionBinder
from .registry import ResourceRegistry
from .resolver import DEPENDS_ON, ReferenceResolver, ResolvedReferences, find_duplicate_routes
from .validation import validate_attributes

logger = get_logger(__name__)

DECLARATION_KEYS = ("id", "kind", "attributes")

Declaration = Union[Mapping[str, Any], ResourceNode]


class CompilerState(str, Enum):
    EMPTY = "Empty"
    DECLARING = "Declaring"
    RESOLVING = "Resolving"
    ORDERING = "Ordering"
    COMPILED = "Compiled"
    FAILED = "Failed"


@dataclass(frozen=True)
class CompileResult:
    """Outcome of one compilation: a plan or a non-empty error list."""

    state: CompilerState
    plan: Optional[CompiledPlan] = None
    errors: Tuple[TopologyError, ...] = ()

    @property
    def succeeded(self) -> bool:
        return self.state == CompilerState.COMPILED

    def raise_for_errors(self) -> CompiledPlan:
        """Return the plan, or raise CompilationFailed carrying every error."""
        if self.plan is None:
            raise CompilationFailed(self.errors)
        return self.plan

    def to_dict(self) -> Dict[str, Any]:
        if self.plan is not None:
            return {"state": self.state.value, "operations": self.plan.to_dicts()}
        return {"state": self.state.value, "errors": [error.to_dict() for error in self.errors]}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, sort_keys=True)


class TopologyCompiler:
    """
    Compiles resource declarations into an ordered provisioning plan.

    One instance compiles one topology; its registry is discarded with it.

    Example:
        compiler = TopologyCompiler()
        compiler.declare_all(document.declarations)
        result = compiler.compile()
    """

    def __init__(self, correlation_id: Optional[str] = None) -> None:
        self.correlation_id = correlation_id or get_correlation_id()
        self.logger = logger.bind(self.correlation_id)
        self.state = CompilerState.EMPTY
        self.registry = ResourceRegistry()
        self._declaring_errors: List[TopologyError] = []
        self._declared = 0
        self._result: Optional[CompileResult] = None

    def declare(self, declaration: Declaration) -> Optional[ResourceNode]:
        """
        Accept one declaration.

        Args:
            declaration: Raw mapping ``{"id", "kind", "attributes"}`` or a
                ResourceNode; its declaration order is assigned here

        Returns:
            The registered node, or None when the declaration was rejected
            (the error is kept for compile()).

        Raises:
            TopologyError: InvalidState once compile() has started
        """
        if self.state not in (CompilerState.EMPTY, CompilerState.DECLARING):
            raise TopologyError(
                ErrorCode.INVALID_STATE,
                f"Cannot declare resources in state {self.state.value}",
            )
        self._transition(CompilerState.DECLARING)

        order = self._declared
        self._declared += 1

        if isinstance(declaration, ResourceNode):
            node: Optional[ResourceNode] = replace(declaration, order=order)
        else:
            node, error = parse_declaration(declaration, order)
            if error is not None:
                self._declaring_errors.append(error)
                return None

        try:
            self.registry.register(node)
        except TopologyError as exc:
            self._declaring_errors.append(exc)
            return None
        return node

    def declare_all(self, declarations: Iterable[Declaration]) -> "TopologyCompiler":
        for declaration in declarations:
            self.declare(declaration)
        return self

    def compile(self) -> CompileResult:
        """
        Run resolving and ordering and produce the result.

        Calling compile() again after a terminal state returns the same result.
        """
        if self._result is not None:
            return self._result

        self._transition(CompilerState.RESOLVING)
        attributes, resolved, binder, errors = self._resolve()
        errors = self._declaring_errors + errors
        if errors:
            return self._fail(errors)

        self._transition(CompilerState.ORDERING)
        order, cycle_errors = self._order(resolved, binder)
        if cycle_errors:
            return self._fail(cycle_errors)

        plan = self._build_plan(order, attributes, resolved, binder)
        self._transition(CompilerState.COMPILED)
        self._result = CompileResult(CompilerState.COMPILED, plan=plan)
        self.logger.info(
            "Topology compiled",
            nodeCount=len(self.registry),
            operationCount=len(plan),
            grantCount=len(binder),
        )
        return self._result

    def _resolve(
        self,
    ) -> Tuple[Dict[str, Dict[str, Any]], ResolvedReferences, PermissionBinder, List[TopologyError]]:
        errors: List[TopologyError] = []
        attributes: Dict[str, Dict[str, Any]] = {}
        invalid: set = set()

        for node in self.registry:
            normalized, node_errors = validate_attributes(node)
            attributes[node.id] = normalized
            if node_errors:
                invalid.add(node.id)
                errors.extend(node_errors)

        resolved, reference_errors = ReferenceResolver(self.registry).resolve()
        errors.extend(reference_errors)
        errors.extend(find_duplicate_routes(self.registry))

        binder = PermissionBinder(self.registry)
        for node in self.registry.nodes(ResourceKind.GRANT):
            targets = resolved.targets(node.id)
            if node.id in invalid or "actor" not in targets or "resource" not in targets:
                continue
            try:
                binder.grant(
                    targets["actor"].id,
                    targets["resource"].id,
                    attributes[node.id]["permissions"],
                    declaration_id=node.id,
                )
            except TopologyError as exc:
                errors.append(exc)

        self.logger.debug(
            "Resolved references",
            nodeCount=len(self.registry),
            errorCount=len(errors),
        )
        return attributes, resolved, binder, errors

    def _order(
        self, resolved: ResolvedReferences, binder: PermissionBinder
    ) -> Tuple[List[str], List[TopologyError]]:
        canonical_grants = {edge.declarations[0]: edge for edge in binder.edges()}
        node_ids = [
            node.id
            for node in self.registry
            if node.kind != ResourceKind.GRANT or node.id in canonical_grants
        ]

        dependencies: Dict[str, List[str]] = {}
        for node_id in node_ids:
            dependencies[node_id] = resolved.dependencies(node_id)
        for grant_id, edge in canonical_grants.items():
            for folded_id in edge.declarations[1:]:
                dependencies[grant_id].extend(resolved.dependencies(folded_id))

        return order_nodes(node_ids, dependencies)

    def _build_plan(
        self,
        order: List[str],
        attributes: Dict[str, Dict[str, Any]],
        resolved: ResolvedReferences,
        binder: PermissionBinder,
    ) -> CompiledPlan:
        edges: Dict[str, GrantEdge] = {edge.declarations[0]: edge for edge in binder.edges()}
        operations: List[ProvisioningOperation] = []

        for node_id in order:
            node = self.registry.lookup(node_id)
            if node.kind == ResourceKind.GRANT:
                operations.append(self._bind_operation(node, edges[node_id], resolved))
                continue

            resolved_attributes = dict(attributes[node_id])
            for attribute, target in resolved.targets(node_id).items():
                resolved_attributes[attribute] = reference(target)
            resolved_attributes[DEPENDS_ON] = [reference(target) for target in resolved.depends_on.get(node_id, [])]
            operations.append(
                ProvisioningOperation(
                    OperationKind.CREATE,
                    node_id,
                    node.kind,
                    freeze(resolved_attributes),
                )
            )

        return CompiledPlan(tuple(operations))

    def _bind_operation(
        self, node: ResourceNode, edge: GrantEdge, resolved: ResolvedReferences
    ) -> ProvisioningOperation:
        depends_on: List[ResourceNode] = []
        for declaration_id in edge.declarations:
            for target in resolved.depends_on.get(declaration_id, []):
                if target not in depends_on:
                    depends_on.append(target)

        return ProvisioningOperation(
            OperationKind.BIND,
            node.id,
            node.kind,
            freeze(
                {
                    "actor": reference(self.registry.lookup(edge.actor)),
                    "resource": reference(self.registry.lookup(edge.resource)),
                    "permissions": edge.sorted_permissions(),
                    "declarations": list(edge.declarations),
                    DEPENDS_ON: [reference(target) for target in depends_on],
                }
            ),
        )

    def _fail(self, errors: List[TopologyError]) -> CompileResult:
        self._transition(CompilerState.FAILED)
        self._result = CompileResult(CompilerState.FAILED, errors=tuple(errors))
        self.logger.warning(
            "Topology compilation failed",
            errorCount=len(errors),
            errorKinds=sorted({error.error_code for error in errors}),
        )
        return self._result

    def _transition(self, state: CompilerState) -> None:
        if state != self.state:
            self.logger.debug("Compiler state change", fromState=self.state.value, toState=state.value)
            self.state = state


def parse_declaration(raw: Any, order: int) -> Tuple[Optional[ResourceNode], Optional[TopologyError]]:
    """
    Turn a raw declaration mapping into a ResourceNode.

    Returns:
        Tuple of (node, None) on success or (None, InvalidDeclaration error)
    """
    if not isinstance(raw, Mapping):
        return None, _invalid_declaration(order, None, "declaration must be an object")

    node_id = raw.get("id")
    if not isinstance(node_id, str) or not node_id.strip():
        return None, _invalid_declaration(order, None, "declaration needs a non-empty string 'id'")

    unknown = sorted(str(key) for key in raw if key not in DECLARATION_KEYS)
    if unknown:
        return None, _invalid_declaration(order, node_id, f"unknown declaration keys: {', '.join(unknown)}")

    kind = ResourceKind.parse(raw.get("kind"))
    if kind is None:
        allowed = ", ".join(member.value for member in ResourceKind)
        return None, _invalid_declaration(
            order, node_id, f"unknown kind {raw.get('kind')!r}; expected one of {allowed}"
        )

    attributes = raw.get("attributes", {})
    if attributes is None:
        attributes = {}
    if not isinstance(attributes, Mapping):
        return None, _invalid_declaration(order, node_id, "'attributes' must be an object")

    return ResourceNode(id=node_id, kind=kind, attributes=dict(attributes), order=order), None


def compile_topology(declarations: Iterable[Declaration], correlation_id: Optional[str] = None) -> CompileResult:
    """Compile a declaration set in one call; the compiler is discarded afterward."""
    return TopologyCompiler(correlation_id).declare_all(declarations).compile()


def _invalid_declaration(order: int, node_id: Optional[str], message: str) -> TopologyError:
    label = f"'{node_id}'" if node_id else f"#{order}"
    return TopologyError(
        ErrorCode.INVALID_DECLARATION,
        f"Declaration {label}: {message}",
        [node_id] if node_id else [],
        {"declarationIndex": order},
    )
