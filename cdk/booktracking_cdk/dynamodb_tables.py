from typing import Any, Callable, Mapping

from aws_cdk import RemovalPolicy
from aws_cdk import aws_dynamodb as ddb
from constructs import Construct


def _attribute(key: Mapping[str, str]) -> ddb.Attribute:
    return ddb.Attribute(name=key["name"], type=getattr(ddb.AttributeType, key["type"]))


def create_table(
    stack: Construct,
    node_id: str,
    attributes: Mapping[str, Any],
    rn: Callable[[str], str],
) -> ddb.Table:
    """Create a DynamoDB table from resolved Table attributes.

    Args:
        stack: CDK Construct (usually the Stack instance)
        node_id: Topology node id, used as the construct id
        attributes: Resolved Table attributes (keys, billing mode, capacity)
        rn: helper function to create resource names (rn(name: str) -> str)

    Returns:
        The Table construct
    """
    props: dict[str, Any] = {
        "partition_key": _attribute(attributes["partitionKey"]),
        "removal_policy": getattr(RemovalPolicy, attributes.get("removalPolicy", "RETAIN")),
    }
    if attributes.get("sortKey"):
        props["sort_key"] = _attribute(attributes["sortKey"])
    if attributes.get("tableName"):
        props["table_name"] = rn(attributes["tableName"])

    if attributes.get("billingMode", "PAY_PER_REQUEST") == "PROVISIONED":
        props["billing_mode"] = ddb.BillingMode.PROVISIONED
        props["read_capacity"] = attributes.get("readCapacity", 5)
        props["write_capacity"] = attributes.get("writeCapacity", 5)
    else:
        props["billing_mode"] = ddb.BillingMode.PAY_PER_REQUEST

    return ddb.Table(stack, node_id, **props)
