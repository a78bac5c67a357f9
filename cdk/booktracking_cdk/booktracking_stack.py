from pathlib import Path
from typing import Mapping, Optional

from aws_cdk import CfnOutput, Stack
from constructs import Construct

from booktracking_cdk.helpers import get_context_bool, get_region_abbrev, make_resource_namer
from booktracking_cdk.provisioner import TopologyProvisioner
from src.topology.declarations import CompiledPlan


class BooktrackingStack(Stack):
    """
    Book Tracking - Core Infrastructure Stack

    Provisions a compiled topology plan:
    - Cognito User Pools (and identity pools for pools granted table access)
    - DynamoDB tables
    - Lambda functions with their table grants
    - API Gateway REST routes
    - CloudWatch alarms
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        plan: CompiledPlan,
        env_name: str = "dev",
        asset_dir: Optional[Path] = None,
        api_settings: Optional[Mapping[str, str]] = None,
        correlation_id: Optional[str] = None,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        self.env_name = env_name
        self.region_abbrev = get_region_abbrev()

        # Helper for consistent resource naming: {name}-{region}-{env}
        self.resource_name = make_resource_namer(self.region_abbrev, env_name)

        self.provisioner = TopologyProvisioner(
            self,
            self.resource_name,
            asset_dir=asset_dir,
            api_settings=api_settings,
            correlation_id=correlation_id,
            import_existing_pools=get_context_bool(self, "importExistingPools"),
        )
        self.constructs = self.provisioner.apply(plan)

        # ====================================================================
        # Outputs
        # ====================================================================

        if self.provisioner.rest_api is not None:
            CfnOutput(
                self,
                "ApiUrl",
                value=self.provisioner.rest_api.url,
                description="Base URL of the REST API",
            )

        for node_id, client in self.provisioner.user_pool_clients.items():
            CfnOutput(
                self,
                f"{node_id}Id",
                value=self.constructs[node_id].user_pool_id,
                description=f"Cognito User Pool ID for {node_id}",
            )
            CfnOutput(
                self,
                f"{node_id}ClientId",
                value=client.user_pool_client_id,
                description=f"Cognito User Pool Client ID for {node_id}",
            )
