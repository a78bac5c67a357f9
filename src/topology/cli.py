"""
Compile a topology document into a provisioning plan.

Usage:
    booktracking-compile topologies/booktracking.json
    booktracking-compile topologies/booktracking.json --output cdk.plan.json
    booktracking-compile topologies/booktracking.json --format text
    python -m src.topology.cli topologies/booktracking.json

Exit codes:
    0  topology compiled; plan printed (or written to --output)
    1  compilation failed; every error printed to stderr
    2  the topology document could not be read
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional, TextIO

from ..utils.errors import TopologyError, handle_error
from .compiler import CompileResult, compile_topology
from .loader import load_topology

EXIT_COMPILED = 0
EXIT_FAILED = 1
EXIT_INVALID_DOCUMENT = 2


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Validate and compile a resource topology document")
    parser.add_argument("topology", help="Path to the topology JSON document")
    parser.add_argument(
        "--output",
        "-o",
        help="Write the compiled plan to this file instead of stdout",
    )
    parser.add_argument(
        "--format",
        choices=["json", "text"],
        default="json",
        help="Plan output format (default: json)",
    )
    return parser.parse_args(argv)


def format_error(error: dict) -> str:
    ids = ", ".join(error.get("offendingIds") or []) or "-"
    return f"[{error['errorKind']}] {ids}: {error['message']}"


def format_plan_text(result: CompileResult) -> str:
    lines = []
    for index, operation in enumerate(result.raise_for_errors(), start=1):
        lines.append(
            f"{index:>3}. {operation.operation_kind.value:<6} "
            f"{operation.resource_kind.value:<9} {operation.target_node_id}"
        )
    return "\n".join(lines)


def main(argv: Optional[List[str]] = None, stdout: Optional[TextIO] = None, stderr: Optional[TextIO] = None) -> int:
    stdout = stdout or sys.stdout
    stderr = stderr or sys.stderr
    args = parse_args(argv)

    try:
        document = load_topology(args.topology)
    except TopologyError as exc:
        print(format_error(handle_error(exc)), file=stderr)
        return EXIT_INVALID_DOCUMENT

    result = compile_topology(document.declarations)
    if not result.succeeded:
        print(f"Topology '{document.name}' failed to compile with {len(result.errors)} error(s):", file=stderr)
        for error in result.errors:
            print(f"  {format_error(error.to_dict())}", file=stderr)
        return EXIT_FAILED

    rendered = result.raise_for_errors().to_json() if args.format == "json" else format_plan_text(result)
    if args.output:
        Path(args.output).write_text(rendered + "\n", encoding="utf-8")
        print(f"Wrote {len(result.plan or ())} operations to {args.output}", file=stderr)
    else:
        print(rendered, file=stdout)
    return EXIT_COMPILED


if __name__ == "__main__":
    sys.exit(main())
