"""REST API Gateway resources for the book tracking stack.

Creates the RestApi that every ApiRoute attaches to, Cognito authorizers for
routes that declare one, and the Lambda-backed methods.
"""

from typing import Callable, Mapping, Optional

from aws_cdk import aws_apigateway as apigw
from aws_cdk import aws_cognito as cognito
from aws_cdk import aws_lambda as lambda_
from constructs import Construct


def create_rest_api(
    scope: Construct,
    rn: Callable[[str], str],
    api_settings: Mapping[str, str],
) -> apigw.RestApi:
    """Create the REST API.

    Args:
        scope: CDK construct scope
        rn: Resource naming function
        api_settings: "restApiName" and "description" from the topology document
    """
    return apigw.RestApi(
        scope,
        "RestApi",
        rest_api_name=rn(api_settings["restApiName"]),
        description=api_settings.get("description"),
    )


def create_authorizer(scope: Construct, node_id: str, user_pool: cognito.IUserPool) -> apigw.CognitoUserPoolsAuthorizer:
    """Create a Cognito authorizer backed by the given user pool."""
    return apigw.CognitoUserPoolsAuthorizer(
        scope,
        f"{node_id}Authorizer",
        cognito_user_pools=[user_pool],
    )


def resource_for_path(api: apigw.RestApi, path: str) -> apigw.IResource:
    """Return the API resource for a path such as '/books', creating it as needed."""
    relative = path.strip("/")
    if not relative:
        return api.root
    return api.root.resource_for_path(relative)


def add_route(
    api: apigw.RestApi,
    path: str,
    method: str,
    handler: lambda_.IFunction,
    authorizer: Optional[apigw.IAuthorizer] = None,
) -> apigw.Method:
    """Bind an HTTP method on a path to a Lambda handler.

    Args:
        api: The REST API
        path: Route path, starting with '/'
        method: HTTP method (GET, POST, PUT, DELETE)
        handler: Lambda function invoked through a proxy integration
        authorizer: Optional Cognito authorizer protecting the method

    Returns:
        The API Gateway Method
    """
    options = {}
    if authorizer is not None:
        options = {
            "authorizer": authorizer,
            "authorization_type": apigw.AuthorizationType.COGNITO,
        }
    return resource_for_path(api, path).add_method(method, apigw.LambdaIntegration(handler), **options)
