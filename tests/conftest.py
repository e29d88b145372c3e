"""Shared test fixtures."""

from datetime import UTC, datetime, timedelta

import boto3
import pytest
from moto import mock_aws

from stackrunner.models import DeploymentUnit, StackEvent

STACK_TYPE = "AWS::CloudFormation::Stack"

SIMPLE_TEMPLATE = """{
    "AWSTemplateFormatVersion": "2010-09-09",
    "Description": "Single queue",
    "Resources": {
        "MyQueue": {
            "Type": "AWS::SQS::Queue",
            "Properties": {
                "QueueName": "my-test-queue"
            }
        }
    }
}"""


@pytest.fixture
def aws_credentials(monkeypatch):
    """Set dummy AWS credentials for moto."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def cfn_client(aws_credentials):
    """Create a moto-mocked CloudFormation boto3 client."""
    with mock_aws():
        yield boto3.client("cloudformation", region_name="us-east-1")


@pytest.fixture
def simple_template():
    return SIMPLE_TEMPLATE


@pytest.fixture
def make_event():
    """Factory for StackEvents; ``seq`` orders them in time."""

    def _make(logical_id, status, resource_type=STACK_TYPE, seq=0, reason=None):
        return StackEvent(
            timestamp=datetime(2026, 2, 25, 13, 0, 0, tzinfo=UTC) + timedelta(seconds=seq),
            logical_id=logical_id,
            resource_type=resource_type,
            status=status,
            status_reason=reason,
            event_id=f"{logical_id}-{status}-{seq}",
        )

    return _make


@pytest.fixture
def template_unit():
    return DeploymentUnit(
        identifier="templates/my-stack.json",
        stack_name="my-stack",
        template_body=SIMPLE_TEMPLATE,
    )
