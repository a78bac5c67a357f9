"""
Topology document loading.

A topology document is JSON::

    {
      "name": "BookTracking",
      "api": {"restApiName": "...", "description": "..."},
      "resources": [{"id": "...", "kind": "...", "attributes": {...}}, ...]
    }

A bare list of declarations is accepted as well. Declarations are handed to
the compiler untouched; only the document shape is checked here.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Union

from ..utils.errors import ErrorCode, TopologyError

DEFAULT_API_SETTINGS: Dict[str, str] = {
    "restApiName": "Book Tracking Service",
    "description": "This service manages book tracking for users.",
}


@dataclass(frozen=True)
class TopologyDocument:
    name: str
    declarations: List[Any]
    api_settings: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_API_SETTINGS))
    base_dir: Path = Path(".")


def load_topology(path: Union[str, Path]) -> TopologyDocument:
    """
    Read a topology document from disk.

    Args:
        path: Path to the JSON document

    Returns:
        The parsed document; asset paths in it are relative to its directory

    Raises:
        TopologyError: InvalidDocument if the file cannot be read or parsed
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise TopologyError(
            ErrorCode.INVALID_DOCUMENT,
            f"Cannot read topology document {path}: {exc.strerror or exc}",
            details={"path": str(path)},
        ) from exc

    try:
        data = json.loads(text, parse_constant=_reject_constant)
    except json.JSONDecodeError as exc:
        raise TopologyError(
            ErrorCode.INVALID_DOCUMENT,
            f"Topology document {path} is not valid JSON: {exc.msg} (line {exc.lineno})",
            details={"path": str(path)},
        ) from exc
    except ValueError as exc:
        raise TopologyError(
            ErrorCode.INVALID_DOCUMENT,
            f"Topology document {path} is not valid JSON: {exc}",
            details={"path": str(path)},
        ) from exc

    return parse_topology(data, default_name=path.stem, base_dir=path.parent)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not a valid JSON number")


def parse_topology(data: Any, default_name: str = "topology", base_dir: Path = Path(".")) -> TopologyDocument:
    """Check the document shape and split it into name, API settings and declarations."""
    if isinstance(data, list):
        return TopologyDocument(name=default_name, declarations=data, base_dir=base_dir)

    if not isinstance(data, dict):
        raise TopologyError(
            ErrorCode.INVALID_DOCUMENT,
            "Topology document must be an object or a list of declarations",
        )

    unknown = sorted(set(data) - {"name", "api", "resources"})
    if unknown:
        raise TopologyError(
            ErrorCode.INVALID_DOCUMENT,
            f"Topology document has unknown keys: {', '.join(unknown)}",
        )

    resources = data.get("resources", [])
    if not isinstance(resources, list):
        raise TopologyError(ErrorCode.INVALID_DOCUMENT, "'resources' must be a list of declarations")

    name = data.get("name", default_name)
    if not isinstance(name, str) or not name:
        raise TopologyError(ErrorCode.INVALID_DOCUMENT, "'name' must be a non-empty string")

    api = data.get("api", {})
    if not isinstance(api, dict) or not all(isinstance(value, str) for value in api.values()):
        raise TopologyError(ErrorCode.INVALID_DOCUMENT, "'api' must map setting names to strings")

    return TopologyDocument(
        name=name,
        declarations=resources,
        api_settings={**DEFAULT_API_SETTINGS, **api},
        base_dir=base_dir,
    )
