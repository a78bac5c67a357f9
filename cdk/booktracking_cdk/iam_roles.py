"""
IAM grants for the CDK stack.

Translates merged Read/Write permission sets into DynamoDB table grants.
"""

from typing import Iterable

from aws_cdk import aws_dynamodb as dynamodb
from aws_cdk import aws_iam as iam


def grant_table_access(table: dynamodb.ITable, grantee: iam.IGrantable, permissions: Iterable[str]) -> iam.Grant:
    """Grant a principal Read, Write, or both on a table.

    Args:
        table: Table the permissions apply to
        grantee: Lambda function or role receiving the permissions
        permissions: Permission names, "Read" and/or "Write"

    Returns:
        The resulting Grant
    """
    wanted = set(permissions)
    if wanted >= {"Read", "Write"}:
        return table.grant_read_write_data(grantee)
    if "Write" in wanted:
        return table.grant_write_data(grantee)
    if "Read" in wanted:
        return table.grant_read_data(grantee)
    raise ValueError(f"No table permissions to grant: {sorted(wanted)}")
