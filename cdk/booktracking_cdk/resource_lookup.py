"""
Resource Lookup Helper

Discovers existing AWS resources using boto3 so the stack can import them
instead of creating duplicates, and resolves the deploying account.
"""

import functools
import os
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from src.utils.logging import get_logger

logger = get_logger(__name__)

# Cache boto3 clients
_clients: dict = {}


def get_client(service: str):
    """Get a cached boto3 client."""
    if service not in _clients:
        region = os.getenv("AWS_REGION") or os.getenv("CDK_DEFAULT_REGION", "us-east-1")
        _clients[service] = boto3.client(service, region_name=region)
    return _clients[service]


@functools.lru_cache(maxsize=128)
def lookup_user_pool_by_name(name: str) -> Optional[dict]:
    """Find a Cognito User Pool by exact name."""
    client = get_client("cognito-idp")
    try:
        paginator = client.get_paginator("list_user_pools")
        for page in paginator.paginate(MaxResults=60):
            for pool in page.get("UserPools", []):
                if pool["Name"] == name:
                    return {
                        "user_pool_id": pool["Id"],
                        "user_pool_name": pool["Name"],
                    }
    except (BotoCoreError, ClientError) as exc:
        logger.warning("User pool lookup failed", userPoolName=name, error=str(exc))
    return None


def lookup_account_id() -> Optional[str]:
    """Get the account ID of the current credentials via STS."""
    try:
        return get_client("sts").get_caller_identity()["Account"]
    except (BotoCoreError, ClientError) as exc:
        logger.warning("Account lookup failed; synthesizing without an account", error=str(exc))
        return None
