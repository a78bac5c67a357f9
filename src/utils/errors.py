"""
Error handling utilities for the topology compiler.

Provides structured errors with error codes and the offending declaration ids.
"""

from typing import Any, Dict, Iterable, List, Optional, Sequence


class TopologyError(Exception):
    """
    Compiler error with error code, message and offending declaration ids.

    Stages collect these as values and return them; only the registry and the
    permission binder raise them directly.
    """

    def __init__(
        self,
        error_code: str,
        message: str,
        offending_ids: Optional[Iterable[str]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.error_code = error_code
        self.message = message
        self.offending_ids = tuple(offending_ids or ())
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for CLI and JSON output."""
        return {
            "errorKind": self.error_code,
            "offendingIds": list(self.offending_ids),
            "message": self.message,
            **self.details,
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TopologyError):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __hash__(self) -> int:
        return hash((self.error_code, self.offending_ids, self.message))

    def __repr__(self) -> str:
        return f"TopologyError({self.error_code!r}, {self.message!r}, {self.offending_ids!r})"


class CompilationFailed(TopologyError):
    """Raised by CompileResult.raise_for_errors() with every collected error."""

    def __init__(self, errors: Sequence[TopologyError]):
        self.errors: List[TopologyError] = list(errors)
        offending: List[str] = []
        for error in self.errors:
            for node_id in error.offending_ids:
                if node_id not in offending:
                    offending.append(node_id)
        super().__init__(
            ErrorCode.COMPILATION_FAILED,
            f"Topology compilation failed with {len(self.errors)} error(s)",
            offending,
            {"errors": [error.to_dict() for error in self.errors]},
        )


# Common error codes
class ErrorCode:
    """Standard error codes for the compiler."""

    # Declaration errors
    DUPLICATE_IDENTIFIER = "DuplicateIdentifier"
    INVALID_DECLARATION = "InvalidDeclaration"
    INVALID_ATTRIBUTE = "InvalidAttribute"

    # Reference errors
    UNRESOLVED_REFERENCE = "UnresolvedReference"
    KIND_MISMATCH = "KindMismatch"
    DUPLICATE_ROUTE_BINDING = "DuplicateRouteBinding"

    # Ordering errors
    DEPENDENCY_CYCLE = "DependencyCycle"

    # Surrounding tooling
    INVALID_DOCUMENT = "InvalidDocument"
    INVALID_STATE = "InvalidState"
    COMPILATION_FAILED = "CompilationFailed"
    INTERNAL_ERROR = "InternalError"


def handle_error(error: Exception) -> Dict[str, Any]:
    """
    Convert exception to standardized error dictionary.

    Args:
        error: Exception to handle

    Returns:
        Error dictionary for CLI output
    """
    if isinstance(error, TopologyError):
        return error.to_dict()

    # Unexpected error - return generic message
    return {
        "errorKind": ErrorCode.INTERNAL_ERROR,
        "offendingIds": [],
        "message": "An unexpected error occurred while compiling the topology.",
    }
