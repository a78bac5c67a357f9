#!/usr/bin/env python3
import os
import sys
from pathlib import Path

import aws_cdk as cdk

from booktracking_cdk.booktracking_stack import BooktrackingStack
from booktracking_cdk.helpers import get_account, get_region, get_region_abbrev, get_topology_path, load_env_file
from src.topology import compile_topology, load_topology
from src.utils.errors import TopologyError
from src.utils.logging import get_correlation_id, get_logger

REPO_ROOT = Path(__file__).resolve().parent.parent

logger = get_logger("booktracking.app")

# Load environment variables from .env file if it exists
load_env_file(Path(__file__).parent / ".env")

app = cdk.App()

# Get environment from context or environment variable (dev/prod)
env_name = app.node.try_get_context("environment") or os.getenv("ENVIRONMENT", "dev")

# Get region and its abbreviation for stack naming
region = get_region()
region_abbrev = get_region_abbrev(region)

# Configure environment; account is optional for an environment-agnostic synth
env = cdk.Environment(account=get_account(), region=region)

correlation_id = get_correlation_id()
topology_path = get_topology_path(app, REPO_ROOT)

try:
    document = load_topology(topology_path)
except TopologyError as exc:
    logger.error("Cannot load topology", path=str(topology_path), error=exc.message)
    sys.exit(1)

result = compile_topology(document.declarations, correlation_id=correlation_id)
if not result.succeeded:
    for error in result.errors:
        logger.error("Topology error", error=error.to_dict())
    sys.exit(1)

# Environment-specific stack name with region: booktracking-{region}-{env}
stack_name = f"booktracking-{region_abbrev}-{env_name}"

stack = BooktrackingStack(
    app,
    f"BookTrackingStack-{region_abbrev}-{env_name}",
    plan=result.raise_for_errors(),
    env_name=env_name,
    asset_dir=document.base_dir,
    api_settings=document.api_settings,
    correlation_id=correlation_id,
    stack_name=stack_name,
    env=env,
    description=f"Book Tracking - {document.name} ({region_abbrev}-{env_name})",
)

app.synth()
