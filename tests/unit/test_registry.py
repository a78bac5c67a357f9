"""Tests for the resource registry."""

import pytest

from src.topology.declarations import ResourceKind, ResourceNode
from src.topology.registry import ResourceRegistry
from src.utils.errors import ErrorCode, TopologyError


def _node(node_id: str, kind: ResourceKind, order: int = 0) -> ResourceNode:
    return ResourceNode(id=node_id, kind=kind, attributes={}, order=order)


class TestRegister:
    """Tests for register()."""

    def test_register_and_lookup(self) -> None:
        registry = ResourceRegistry()
        node = _node("UserDataTable", ResourceKind.TABLE)

        registry.register(node)

        assert registry.lookup("UserDataTable") is node
        assert "UserDataTable" in registry
        assert len(registry) == 1

    def test_duplicate_id_same_kind_raises(self) -> None:
        registry = ResourceRegistry()
        registry.register(_node("X", ResourceKind.TABLE, 0))

        with pytest.raises(TopologyError) as exc_info:
            registry.register(_node("X", ResourceKind.TABLE, 1))

        assert exc_info.value.error_code == ErrorCode.DUPLICATE_IDENTIFIER
        assert exc_info.value.offending_ids == ("X",)
        assert exc_info.value.details == {"firstDeclaration": 0, "duplicateDeclaration": 1}

    def test_duplicate_id_across_kinds_raises(self) -> None:
        """Identifiers are unique across kinds, not per kind."""
        registry = ResourceRegistry()
        registry.register(_node("Shared", ResourceKind.TABLE, 0))

        with pytest.raises(TopologyError) as exc_info:
            registry.register(_node("Shared", ResourceKind.FUNCTION, 1))

        assert exc_info.value.error_code == ErrorCode.DUPLICATE_IDENTIFIER

    def test_first_declaration_is_kept(self) -> None:
        registry = ResourceRegistry()
        registry.register(_node("X", ResourceKind.TABLE, 0))

        with pytest.raises(TopologyError):
            registry.register(_node("X", ResourceKind.FUNCTION, 1))

        assert registry.lookup("X").kind == ResourceKind.TABLE


class TestLookup:
    """Tests for lookup()."""

    def test_unknown_id_is_unresolved(self) -> None:
        registry = ResourceRegistry()

        with pytest.raises(TopologyError) as exc_info:
            registry.lookup("Missing")

        assert exc_info.value.error_code == ErrorCode.UNRESOLVED_REFERENCE
        assert exc_info.value.offending_ids == ("Missing",)

    def test_wrong_kind_is_kind_mismatch(self) -> None:
        registry = ResourceRegistry()
        registry.register(_node("Users", ResourceKind.TABLE))

        with pytest.raises(TopologyError) as exc_info:
            registry.lookup("Users", ResourceKind.FUNCTION)

        assert exc_info.value.error_code == ErrorCode.KIND_MISMATCH
        assert "expected Function" in exc_info.value.message

    def test_any_of_several_kinds(self) -> None:
        registry = ResourceRegistry()
        registry.register(_node("Pool", ResourceKind.AUTH_POOL))

        node = registry.lookup("Pool", (ResourceKind.FUNCTION, ResourceKind.AUTH_POOL))

        assert node.id == "Pool"


class TestNodes:
    """Tests for nodes() and iteration."""

    def test_declaration_order(self) -> None:
        registry = ResourceRegistry()
        registry.register(_node("B", ResourceKind.TABLE, 1))
        registry.register(_node("A", ResourceKind.FUNCTION, 0))
        registry.register(_node("C", ResourceKind.TABLE, 2))

        assert [node.id for node in registry] == ["A", "B", "C"]
        assert [node.id for node in registry.nodes(ResourceKind.TABLE)] == ["B", "C"]
