"""
Plan provisioner.

Walks a CompiledPlan in order and creates one CDK construct per Create
operation, applying Bind operations as table grants. Every reference in an
operation points at a node provisioned earlier in the plan.
"""

from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional

from aws_cdk import aws_apigateway as apigw
from aws_cdk import aws_iam as iam
from constructs import Construct

from booktracking_cdk.api import add_route, create_authorizer, create_rest_api
from booktracking_cdk.auth import create_authenticated_role, create_user_pool
from booktracking_cdk.dynamodb_tables import create_table
from booktracking_cdk.iam_roles import grant_table_access
from booktracking_cdk.lambdas import create_function
from booktracking_cdk.monitoring import create_alarm
from src.topology.declarations import (
    AlarmSpec,
    CompiledPlan,
    OperationKind,
    ProvisioningOperation,
    ResourceKind,
    RouteBinding,
)
from src.topology.loader import DEFAULT_API_SETTINGS
from src.topology.resolver import DEPENDS_ON
from src.utils.errors import ErrorCode, TopologyError
from src.utils.logging import get_logger

logger = get_logger(__name__)


class TopologyProvisioner:
    """
    Maps a compiled plan onto CDK constructs inside one scope.

    Example:
        provisioner = TopologyProvisioner(stack, rn, asset_dir=document.base_dir)
        constructs = provisioner.apply(result.raise_for_errors())
    """

    def __init__(
        self,
        scope: Construct,
        rn: Callable[[str], str],
        asset_dir: Optional[Path] = None,
        api_settings: Optional[Mapping[str, str]] = None,
        correlation_id: Optional[str] = None,
        import_existing_pools: bool = False,
    ) -> None:
        self.scope = scope
        self.rn = rn
        self.asset_dir = Path(asset_dir or ".")
        self.api_settings = {**DEFAULT_API_SETTINGS, **(api_settings or {})}
        self.logger = logger.bind(correlation_id) if correlation_id else logger
        self.import_existing_pools = import_existing_pools

        self.constructs: Dict[str, Any] = {}
        self.user_pool_clients: Dict[str, Any] = {}
        self.authorizers: Dict[str, apigw.CognitoUserPoolsAuthorizer] = {}
        self.authenticated_roles: Dict[str, iam.Role] = {}
        self.rest_api: Optional[apigw.RestApi] = None

        self._creators: Dict[ResourceKind, Callable[[ProvisioningOperation], Any]] = {
            ResourceKind.AUTH_POOL: self._create_auth_pool,
            ResourceKind.TABLE: self._create_table,
            ResourceKind.FUNCTION: self._create_function,
            ResourceKind.API_ROUTE: self._create_api_route,
            ResourceKind.ALARM: self._create_alarm,
        }

    def apply(self, plan: CompiledPlan) -> Dict[str, Any]:
        """Provision every operation of the plan, in plan order.

        Returns:
            Node id to construct (a Grant for Bind operations)
        """
        for operation in plan:
            self.apply_operation(operation)
        self.logger.info(
            "Plan provisioned",
            operationCount=len(plan),
            restApi=self.rest_api is not None,
        )
        return self.constructs

    def apply_operation(self, operation: ProvisioningOperation) -> Any:
        if operation.operation_kind == OperationKind.BIND:
            construct = self._bind(operation)
        else:
            construct = self._creators[operation.resource_kind](operation)
            for dependency in self._dependencies(operation):
                construct.node.add_dependency(dependency)

        self.constructs[operation.target_node_id] = construct
        self.logger.debug(
            "Provisioned node",
            nodeId=operation.target_node_id,
            resourceKind=operation.resource_kind.value,
            operationKind=operation.operation_kind.value,
        )
        return construct

    def _construct_for(self, ref: Mapping[str, str]) -> Any:
        try:
            return self.constructs[ref["ref"]]
        except KeyError:
            raise TopologyError(
                ErrorCode.UNRESOLVED_REFERENCE,
                f"Node '{ref['ref']}' is referenced before it was provisioned",
                [ref["ref"]],
            ) from None

    def _optional(self, attributes: Mapping[str, Any], name: str) -> Any:
        ref = attributes.get(name)
        return self._construct_for(ref) if ref else None

    def _dependencies(self, operation: ProvisioningOperation) -> list:
        return [self._construct_for(ref) for ref in operation.resolved_attributes.get(DEPENDS_ON, [])]

    def _create_auth_pool(self, operation: ProvisioningOperation) -> Any:
        attributes = operation.resolved_attributes
        if self.import_existing_pools:
            attributes = {**attributes, "importExisting": True}
        created = create_user_pool(self.scope, operation.target_node_id, attributes, self.rn)
        self.user_pool_clients[operation.target_node_id] = created["user_pool_client"]
        return created["user_pool"]

    def _create_table(self, operation: ProvisioningOperation) -> Any:
        return create_table(self.scope, operation.target_node_id, operation.resolved_attributes, self.rn)

    def _create_function(self, operation: ProvisioningOperation) -> Any:
        attributes = operation.resolved_attributes
        return create_function(
            self.scope,
            operation.target_node_id,
            attributes,
            self.rn,
            self.asset_dir,
            table=self._optional(attributes, "tableRef"),
        )

    def _create_api_route(self, operation: ProvisioningOperation) -> Any:
        attributes = operation.resolved_attributes
        if self.rest_api is None:
            self.rest_api = create_rest_api(self.scope, self.rn, self.api_settings)

        authorizer = None
        if attributes.get("authorizer"):
            pool_id = attributes["authorizer"]["ref"]
            if pool_id not in self.authorizers:
                user_pool = self._construct_for(attributes["authorizer"])
                self.authorizers[pool_id] = create_authorizer(self.scope, pool_id, user_pool)
            authorizer = self.authorizers[pool_id]

        binding = RouteBinding.from_operation(operation)
        return add_route(
            self.rest_api,
            binding.path,
            binding.method.value,
            self._construct_for(attributes["handler"]),
            authorizer=authorizer,
        )

    def _create_alarm(self, operation: ProvisioningOperation) -> Any:
        alarm = AlarmSpec.from_operation(operation)
        return create_alarm(
            self.scope,
            alarm.node_id,
            operation.resolved_attributes,
            self._construct_for({"ref": alarm.metric_source}),
            self.rn,
        )

    def _bind(self, operation: ProvisioningOperation) -> iam.Grant:
        attributes = operation.resolved_attributes
        actor_ref = attributes["actor"]
        if actor_ref["kind"] == ResourceKind.AUTH_POOL.value:
            grantee = self._authenticated_role(actor_ref["ref"])
        else:
            grantee = self._construct_for(actor_ref)
        return grant_table_access(self._construct_for(attributes["resource"]), grantee, attributes["permissions"])

    def _authenticated_role(self, pool_id: str) -> iam.Role:
        if pool_id not in self.authenticated_roles:
            self.authenticated_roles[pool_id] = create_authenticated_role(
                self.scope,
                pool_id,
                self.constructs[pool_id],
                self.user_pool_clients[pool_id],
            )
        return self.authenticated_roles[pool_id]
