"""Tests for Lambda functions module."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest
from aws_cdk import App, Stack, assertions
from aws_cdk import aws_dynamodb as dynamodb

from booktracking_cdk.lambdas import RUNTIMES, create_function, get_runtime
from src.utils.errors import ErrorCode, TopologyError

INLINE = "exports.handler = async () => ({ statusCode: 200 });"


@pytest.fixture
def stack():
    """Create a test stack."""
    app = App()
    return Stack(app, "TestStack")


@pytest.fixture
def rn():
    """Create a resource naming function."""
    return lambda name: f"{name}-ue1-test"


@pytest.fixture
def asset_dir(tmp_path: Path) -> Path:
    """Directory holding a 'lambda' asset folder."""
    code_dir = tmp_path / "lambda"
    code_dir.mkdir()
    (code_dir / "addBook.js").write_text(INLINE)
    return tmp_path


class TestGetRuntime:
    def test_known_runtimes(self):
        assert get_runtime("nodejs18.x") is RUNTIMES["nodejs18.x"]
        assert get_runtime("python3.13").name == "python3.13"

    def test_unknown_runtime(self):
        with pytest.raises(TopologyError) as exc_info:
            get_runtime("cobol1.0")

        assert exc_info.value.error_code == ErrorCode.INVALID_ATTRIBUTE
        assert exc_info.value.details == {"attribute": "runtime"}


class TestCreateFunction:
    """Tests for create_function function."""

    def test_inline_function_defaults(self, stack, rn, tmp_path):
        create_function(
            stack,
            "HelloFunction",
            {"runtime": "nodejs18.x", "handler": "index.handler", "inlineCode": INLINE},
            rn,
            tmp_path,
        )

        template = assertions.Template.from_stack(stack)
        template.has_resource_properties(
            "AWS::Lambda::Function",
            {
                "Runtime": "nodejs18.x",
                "Handler": "index.handler",
                "Code": {"ZipFile": INLINE},
                "Timeout": 3,
                "MemorySize": 128,
            },
        )

    def test_asset_function_gets_table_name(self, stack, rn, asset_dir):
        table = dynamodb.Table(
            stack,
            "UserDataTable",
            partition_key=dynamodb.Attribute(name="userId", type=dynamodb.AttributeType.STRING),
        )

        create_function(
            stack,
            "AddBookFunction",
            {
                "runtime": "nodejs18.x",
                "handler": "addBook.handler",
                "code": "lambda",
                "environment": {"STAGE": "test"},
                "timeoutSeconds": 10,
                "memorySize": 256,
                "functionName": "addBook",
            },
            rn,
            asset_dir,
            table=table,
        )

        template = assertions.Template.from_stack(stack)
        template.has_resource_properties(
            "AWS::Lambda::Function",
            {
                "FunctionName": "addBook-ue1-test",
                "Timeout": 10,
                "MemorySize": 256,
                "Environment": {
                    "Variables": {
                        "STAGE": "test",
                        "TABLE_NAME": {"Ref": assertions.Match.string_like_regexp("UserDataTable")},
                    }
                },
            },
        )

    def test_explicit_table_name_variable_is_kept(self, stack, rn, tmp_path):
        table = MagicMock()
        table.table_name = "from-table"

        function = create_function(
            stack,
            "Fn",
            {
                "runtime": "python3.12",
                "handler": "index.handler",
                "inlineCode": "def handler(event, context): return {}",
                "environment": {"TABLE_NAME": "override"},
            },
            rn,
            tmp_path,
            table=table,
        )

        assert function.runtime.name == "python3.12"
        template = assertions.Template.from_stack(stack)
        template.has_resource_properties(
            "AWS::Lambda::Function", {"Environment": {"Variables": {"TABLE_NAME": "override"}}}
        )
