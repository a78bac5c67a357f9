"""
Dependency ordering for topology nodes.

An edge A -> B means B must exist before A is provisioned. The sort is a
depth-first post-order walk; both the starting nodes and each node's
dependencies are visited in declaration order, so the output is deterministic.
Unconstrained nodes keep declaration order among the walk's starting nodes,
but a dependency is emitted as soon as the node that needs it is reached: in
[C (needs B), A, B] the order is B, C, A. The walk keeps its own stack so deep
chains never hit the interpreter's recursion limit.
"""

from typing import Dict, FrozenSet, Iterator, List, Mapping, Sequence, Set, Tuple

from ..utils.errors import ErrorCode, TopologyError

_VISITING = 1
_DONE = 2


def order_nodes(
    node_ids: Sequence[str],
    dependencies: Mapping[str, Sequence[str]],
) -> Tuple[List[str], List[TopologyError]]:
    """
    Topologically sort nodes so dependencies come first.

    Args:
        node_ids: Every node to order, in declaration order
        dependencies: node id -> ids it depends on. Ids outside node_ids are
            ignored.

    Returns:
        Tuple of (ordered ids, errors). Each distinct cycle is reported once as
        a DependencyCycle error naming its participants in cycle order; when
        errors are returned the order must not be used.
    """
    position: Dict[str, int] = {node_id: index for index, node_id in enumerate(node_ids)}
    state: Dict[str, int] = {}
    stack: List[str] = []
    ordered: List[str] = []
    errors: List[TopologyError] = []
    reported: Set[FrozenSet[str]] = set()

    def enter(node_id: str) -> Tuple[str, Iterator[str]]:
        state[node_id] = _VISITING
        stack.append(node_id)
        deps = {dep for dep in dependencies.get(node_id, ()) if dep in position}
        return node_id, iter(sorted(deps, key=position.__getitem__))

    for start in node_ids:
        if start in state:
            continue
        frames = [enter(start)]
        while frames:
            node_id, pending = frames[-1]
            dep = next(pending, None)
            if dep is None:
                frames.pop()
                stack.pop()
                state[node_id] = _DONE
                ordered.append(node_id)
                continue

            mark = state.get(dep)
            if mark == _DONE:
                continue
            if mark == _VISITING:
                cycle = stack[stack.index(dep):]
                if frozenset(cycle) not in reported:
                    reported.add(frozenset(cycle))
                    errors.append(_cycle_error(cycle))
                continue
            frames.append(enter(dep))

    return ordered, errors


def _cycle_error(cycle: List[str]) -> TopologyError:
    path = " -> ".join(cycle + [cycle[0]])
    return TopologyError(
        ErrorCode.DEPENDENCY_CYCLE,
        f"Dependency cycle: {path}",
        cycle,
        {"cycle": cycle + [cycle[0]]},
    )
