"""Lambda function definitions for the book tracking stack.

Functions are built from resolved Function attributes. Asset code paths are
relative to the topology document's directory; a function bound to a table
gets its name in the TABLE_NAME environment variable.
"""

from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional

from aws_cdk import Duration
from aws_cdk import aws_lambda as lambda_
from constructs import Construct

from src.utils.errors import ErrorCode, TopologyError

if TYPE_CHECKING:
    from aws_cdk import aws_dynamodb as dynamodb

RUNTIMES: dict[str, lambda_.Runtime] = {
    "nodejs18.x": lambda_.Runtime.NODEJS_18_X,
    "nodejs20.x": lambda_.Runtime.NODEJS_20_X,
    "python3.11": lambda_.Runtime.PYTHON_3_11,
    "python3.12": lambda_.Runtime.PYTHON_3_12,
    "python3.13": lambda_.Runtime.PYTHON_3_13,
}


def get_runtime(name: str) -> lambda_.Runtime:
    """Map a runtime identifier such as 'nodejs18.x' to a Lambda Runtime."""
    try:
        return RUNTIMES[name]
    except KeyError:
        raise TopologyError(
            ErrorCode.INVALID_ATTRIBUTE,
            f"Unsupported Lambda runtime '{name}'; expected one of {', '.join(sorted(RUNTIMES))}",
            details={"attribute": "runtime"},
        ) from None


def _code(attributes: Mapping[str, Any], asset_dir: Path) -> lambda_.Code:
    if attributes.get("inlineCode"):
        return lambda_.Code.from_inline(attributes["inlineCode"])
    return lambda_.Code.from_asset(str(asset_dir / attributes["code"]))


def create_function(
    scope: Construct,
    node_id: str,
    attributes: Mapping[str, Any],
    rn: Callable[[str], str],
    asset_dir: Path,
    table: Optional["dynamodb.ITable"] = None,
) -> lambda_.Function:
    """Create a Lambda function from resolved Function attributes.

    Args:
        scope: CDK construct scope
        node_id: Topology node id, used as the construct id
        attributes: Resolved Function attributes
        rn: Resource naming function (name -> formatted name)
        asset_dir: Directory that 'code' asset paths are relative to
        table: Table referenced by tableRef, if any

    Returns:
        The Lambda Function construct
    """
    environment = dict(attributes.get("environment") or {})
    if table is not None:
        environment.setdefault("TABLE_NAME", table.table_name)

    props: dict[str, Any] = {
        "runtime": get_runtime(attributes["runtime"]),
        "handler": attributes["handler"],
        "code": _code(attributes, asset_dir),
        "environment": environment,
        "timeout": Duration.seconds(attributes.get("timeoutSeconds", 3)),
        "memory_size": attributes.get("memorySize", 128),
    }
    if attributes.get("functionName"):
        props["function_name"] = rn(attributes["functionName"])

    return lambda_.Function(scope, node_id, **props)
