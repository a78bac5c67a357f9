"""
Shared helper utilities for CDK stack construction.

This module provides:
- Region abbreviation mapping for resource naming
- Resource naming function (rn)
- Environment configuration utilities
"""

import os
from pathlib import Path
from typing import Any, Callable, Optional

from booktracking_cdk import resource_lookup

# Region abbreviation mapping for resource naming
# Pattern: {name}-{region_abbrev}-{env} e.g. booktracking-ue1-dev
REGION_ABBREVIATIONS: dict[str, str] = {
    "us-east-1": "ue1",
    "us-east-2": "ue2",
    "us-west-1": "uw1",
    "us-west-2": "uw2",
    "eu-west-1": "ew1",
    "eu-west-2": "ew2",
    "eu-west-3": "ew3",
    "eu-central-1": "ec1",
    "eu-north-1": "en1",
    "ap-northeast-1": "ane1",  # Tokyo
    "ap-northeast-2": "ane2",  # Seoul
    "ap-northeast-3": "ane3",  # Osaka
    "ap-southeast-1": "ase1",  # Singapore
    "ap-southeast-2": "ase2",  # Sydney
    "ap-south-1": "as1",  # Mumbai
    "sa-east-1": "se1",  # São Paulo
    "ca-central-1": "cc1",  # Canada
}

DEFAULT_TOPOLOGY_FILE = "topologies/booktracking.json"


def get_region() -> str:
    """Get the AWS region from environment variables or default to us-east-1."""
    return os.getenv("AWS_REGION") or os.getenv("CDK_DEFAULT_REGION") or "us-east-1"


def get_region_abbrev(region: Optional[str] = None) -> str:
    """Get the region abbreviation for resource naming.

    Args:
        region: AWS region code. If None, reads from environment.

    Returns:
        Region abbreviation (e.g., 'ue1' for 'us-east-1')
    """
    if region is None:
        region = get_region()
    return REGION_ABBREVIATIONS.get(region, region[:3])


def get_account() -> Optional[str]:
    """Get the AWS account ID from the environment, falling back to STS.

    Returns:
        Account ID, or None when no credentials are available (the stack is
        then synthesized environment-agnostic)
    """
    return os.getenv("AWS_ACCOUNT_ID") or os.getenv("CDK_DEFAULT_ACCOUNT") or resource_lookup.lookup_account_id()


def make_resource_namer(region_abbrev: str, env_name: str) -> Callable[[str], str]:
    """Create a resource naming function.

    Args:
        region_abbrev: Region abbreviation (e.g., 'ue1')
        env_name: Environment name (e.g., 'dev', 'prod')

    Returns:
        A function that takes a base name and returns a fully qualified name
    """

    def rn(name: str, abbrev: str = region_abbrev, env: str = env_name) -> str:
        """Generate resource name with region and environment suffix."""
        return f"{name}-{abbrev}-{env}"

    return rn


def get_context_bool(scope: Any, key: str, default: bool = False) -> bool:
    """Read a boolean CDK context value, accepting 'false'/'true' strings."""
    value = scope.node.try_get_context(key)
    if value is None:
        return default
    if isinstance(value, str):
        return value.lower() != "false"
    return bool(value)


def get_topology_path(scope: Any, repo_root: Path) -> Path:
    """Resolve the topology document from CDK context, TOPOLOGY_FILE, or the default.

    Relative paths are resolved against the repository root.
    """
    configured = scope.node.try_get_context("topology") or os.getenv("TOPOLOGY_FILE") or DEFAULT_TOPOLOGY_FILE
    path = Path(configured)
    return path if path.is_absolute() else repo_root / path


def load_env_file(env_file: Path) -> None:
    """Load KEY=VALUE lines into os.environ without overriding existing values."""
    if not env_file.exists():
        return
    with open(env_file) as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith("#") and "=" in line:
                key, value = line.split("=", 1)
                # Only set if not already in environment (allow override)
                if key.strip() and not os.getenv(key.strip()):
                    os.environ[key.strip()] = value.strip()
