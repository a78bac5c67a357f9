"""Tests for the resource_lookup module."""

import os
from unittest.mock import MagicMock, patch

import boto3
import pytest
from botocore.exceptions import ClientError
from moto import mock_aws

from booktracking_cdk import resource_lookup


@pytest.fixture(autouse=True)
def clear_caches():
    """Reset cached clients and lookups between tests."""
    resource_lookup._clients.clear()
    resource_lookup.lookup_user_pool_by_name.cache_clear()
    yield
    resource_lookup._clients.clear()
    resource_lookup.lookup_user_pool_by_name.cache_clear()


@pytest.fixture
def aws_credentials():
    """Set fake AWS credentials for moto."""
    with patch.dict(
        os.environ,
        {
            "AWS_ACCESS_KEY_ID": "testing",
            "AWS_SECRET_ACCESS_KEY": "testing",
            "AWS_SECURITY_TOKEN": "testing",
            "AWS_SESSION_TOKEN": "testing",
            "AWS_DEFAULT_REGION": "us-east-1",
            "AWS_REGION": "us-east-1",
        },
    ):
        yield


class TestGetClient:
    """Tests for get_client function."""

    def test_caches_clients(self):
        """Should return the same client for the same service."""
        with patch("boto3.client") as mock_boto_client:
            mock_boto_client.return_value = MagicMock()

            client1 = resource_lookup.get_client("sts")
            client2 = resource_lookup.get_client("sts")

            assert mock_boto_client.call_count == 1
            assert client1 is client2

    def test_uses_configured_region(self):
        with patch.dict(os.environ, {"AWS_REGION": "eu-west-1"}):
            with patch("boto3.client") as mock_boto_client:
                resource_lookup.get_client("cognito-idp")

        mock_boto_client.assert_called_once_with("cognito-idp", region_name="eu-west-1")


class TestLookupUserPoolByName:
    """Tests for lookup_user_pool_by_name function."""

    def test_finds_pool(self, aws_credentials):
        with mock_aws():
            client = boto3.client("cognito-idp", region_name="us-east-1")
            created = client.create_user_pool(PoolName="BookTrackingAppUserPool-ue1-dev")["UserPool"]
            client.create_user_pool(PoolName="SomethingElse")

            result = resource_lookup.lookup_user_pool_by_name("BookTrackingAppUserPool-ue1-dev")

        assert result == {"user_pool_id": created["Id"], "user_pool_name": "BookTrackingAppUserPool-ue1-dev"}

    def test_returns_none_when_absent(self, aws_credentials):
        with mock_aws():
            assert resource_lookup.lookup_user_pool_by_name("missing") is None

    def test_client_error_returns_none(self):
        mock_client = MagicMock()
        mock_client.get_paginator.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "denied"}}, "ListUserPools"
        )
        with patch.object(resource_lookup, "get_client", return_value=mock_client):
            assert resource_lookup.lookup_user_pool_by_name("any") is None


class TestLookupAccountId:
    """Tests for lookup_account_id function."""

    def test_returns_caller_account(self, aws_credentials):
        with mock_aws():
            assert resource_lookup.lookup_account_id() == "123456789012"

    def test_client_error_returns_none(self):
        mock_client = MagicMock()
        mock_client.get_caller_identity.side_effect = ClientError(
            {"Error": {"Code": "ExpiredToken", "Message": "expired"}}, "GetCallerIdentity"
        )
        with patch.object(resource_lookup, "get_client", return_value=mock_client):
            assert resource_lookup.lookup_account_id() is None
