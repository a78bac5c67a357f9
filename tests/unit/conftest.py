"""
Test fixtures for topology compiler tests.

Provides the book tracking topology and a factory for single declarations.
"""

import copy
import json
from pathlib import Path
from typing import Any, Callable, Dict, List

import pytest

TOPOLOGY_FILE = Path(__file__).resolve().parents[2] / "topologies" / "booktracking.json"


@pytest.fixture
def topology_file() -> Path:
    """Path to the checked-in book tracking topology."""
    return TOPOLOGY_FILE


@pytest.fixture
def booktracking_declarations() -> List[Dict[str, Any]]:
    """Declarations of the book tracking topology, safe to mutate."""
    with open(TOPOLOGY_FILE, encoding="utf-8") as f:
        return copy.deepcopy(json.load(f)["resources"])


@pytest.fixture
def declaration() -> Callable[..., Dict[str, Any]]:
    """Factory for one raw declaration: declaration("Users", "Table", partitionKey=...)."""

    def _declaration(node_id: str, kind: str, **attributes: Any) -> Dict[str, Any]:
        return {"id": node_id, "kind": kind, "attributes": attributes}

    return _declaration


@pytest.fixture
def table_attributes() -> Dict[str, Any]:
    """Minimal valid Table attributes."""
    return {"partitionKey": {"name": "userId", "type": "STRING"}}


@pytest.fixture
def function_attributes() -> Dict[str, Any]:
    """Minimal valid Function attributes."""
    return {"runtime": "nodejs18.x", "handler": "index.handler", "inlineCode": "exports.handler = async () => ({});"}
