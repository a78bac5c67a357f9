"""Cognito authentication resources for the book tracking stack.

This module creates and configures:
- Cognito User Pools (new, imported by id, or discovered by name)
- User Pool Clients for the API consumers
- Identity pools with an authenticated role, for pools that act as grant actors
"""

from typing import Any, Callable, Mapping

from aws_cdk import RemovalPolicy
from aws_cdk import aws_cognito as cognito
from aws_cdk import aws_iam as iam
from constructs import Construct

from booktracking_cdk.resource_lookup import lookup_user_pool_by_name
from src.utils.logging import get_logger

logger = get_logger(__name__)


def _sign_in_aliases(aliases: list[str]) -> cognito.SignInAliases:
    return cognito.SignInAliases(
        email="email" in aliases,
        phone="phone" in aliases,
        username="username" in aliases,
        preferred_username="preferredUsername" in aliases,
    )


def create_user_pool(
    scope: Construct,
    node_id: str,
    attributes: Mapping[str, Any],
    rn: Callable[[str], str],
) -> dict[str, Any]:
    """Create or import a Cognito User Pool and give it an app client.

    Resolution order:
    1. existingPoolId: import that pool
    2. importExisting: look the pool up by its suffixed name and import it if found
    3. otherwise create a new pool

    Args:
        scope: CDK construct scope
        node_id: Topology node id, used as the construct id
        attributes: Resolved AuthPool attributes
        rn: Resource naming function

    Returns:
        Dictionary with "user_pool" and "user_pool_client"
    """
    pool_name = rn(attributes.get("userPoolName") or node_id)
    existing_pool_id = attributes.get("existingPoolId")

    if not existing_pool_id and attributes.get("importExisting"):
        found = lookup_user_pool_by_name(pool_name)
        if found:
            existing_pool_id = found["user_pool_id"]

    user_pool: cognito.IUserPool
    if existing_pool_id:
        logger.info("Importing existing user pool", nodeId=node_id, userPoolId=existing_pool_id)
        user_pool = cognito.UserPool.from_user_pool_id(scope, node_id, existing_pool_id)
    else:
        user_pool = cognito.UserPool(
            scope,
            node_id,
            user_pool_name=pool_name,
            self_sign_up_enabled=bool(attributes.get("selfSignUpEnabled", False)),
            sign_in_aliases=_sign_in_aliases(list(attributes.get("signInAliases", ["email"]))),
            auto_verify=cognito.AutoVerifiedAttrs(email=True),
            account_recovery=cognito.AccountRecovery.EMAIL_ONLY,
            removal_policy=RemovalPolicy.RETAIN,
        )

    user_pool_client = cognito.UserPoolClient(
        scope,
        f"{node_id}Client",
        user_pool=user_pool,
        user_pool_client_name=rn(f"{node_id}-client"),
        auth_flows=cognito.AuthFlow(user_srp=True, user_password=True),
        prevent_user_existence_errors=True,
    )

    return {"user_pool": user_pool, "user_pool_client": user_pool_client}


def create_authenticated_role(
    scope: Construct,
    node_id: str,
    user_pool: cognito.IUserPool,
    user_pool_client: cognito.IUserPoolClient,
) -> iam.Role:
    """Create an identity pool for the user pool and the role its signed-in users assume.

    Table grants naming an AuthPool actor are attached to this role.
    """
    identity_pool = cognito.CfnIdentityPool(
        scope,
        f"{node_id}IdentityPool",
        allow_unauthenticated_identities=False,
        cognito_identity_providers=[
            cognito.CfnIdentityPool.CognitoIdentityProviderProperty(
                client_id=user_pool_client.user_pool_client_id,
                provider_name=user_pool.user_pool_provider_name,
            )
        ],
    )

    role = iam.Role(
        scope,
        f"{node_id}AuthenticatedRole",
        assumed_by=iam.FederatedPrincipal(
            "cognito-identity.amazonaws.com",
            conditions={
                "StringEquals": {"cognito-identity.amazonaws.com:aud": identity_pool.ref},
                "ForAnyValue:StringLike": {"cognito-identity.amazonaws.com:amr": "authenticated"},
            },
            assume_role_action="sts:AssumeRoleWithWebIdentity",
        ),
    )

    cognito.CfnIdentityPoolRoleAttachment(
        scope,
        f"{node_id}IdentityPoolRoles",
        identity_pool_id=identity_pool.ref,
        roles={"authenticated": role.role_arn},
    )
    return role
