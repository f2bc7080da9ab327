"""
Pytest configuration and shared fixtures for testing.
"""

import os
from typing import Any, Dict

import boto3
import pytest
from moto import mock_aws

from cloudposture.core.aws_client import AWSClient
from cloudposture.core.config import ScanOptions
from cloudposture.core.engine import SecurityScanner
from tests.helpers import StaticDiscovery, make_resource


@pytest.fixture
def aws_credentials():
    """Mock AWS credentials for moto."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "us-east-1"


@pytest.fixture
def mock_aws_environment(aws_credentials):
    """Create a mocked AWS environment."""
    with mock_aws():
        yield


@pytest.fixture
def aws_client(mock_aws_environment):
    """Create an AWSClient instance for testing."""
    return AWSClient(region="us-east-1")


@pytest.fixture
def ec2_client(mock_aws_environment):
    """Create a boto3 EC2 client for setting up test resources."""
    return boto3.client("ec2", region_name="us-east-1")


@pytest.fixture
def s3_client(mock_aws_environment):
    """Create a boto3 S3 client for setting up test resources."""
    return boto3.client("s3", region_name="us-east-1")


@pytest.fixture
def rds_client(mock_aws_environment):
    """Create a boto3 RDS client for setting up test resources."""
    return boto3.client("rds", region_name="us-east-1")


@pytest.fixture
def cloudtrail_client(mock_aws_environment):
    """Create a boto3 CloudTrail client for setting up test resources."""
    return boto3.client("cloudtrail", region_name="us-east-1")


@pytest.fixture
def vpc(ec2_client):
    """Create a VPC for testing."""
    response = ec2_client.create_vpc(CidrBlock="10.0.0.0/16")
    return response["Vpc"]["VpcId"]


@pytest.fixture
def open_ssh_group(ec2_client, vpc):
    """Create a security group that allows SSH from anywhere."""
    response = ec2_client.create_security_group(
        GroupName="open-ssh",
        Description="SSH from anywhere",
        VpcId=vpc,
    )
    group_id = response["GroupId"]
    ec2_client.authorize_security_group_ingress(
        GroupId=group_id,
        IpPermissions=[
            {
                "IpProtocol": "tcp",
                "FromPort": 22,
                "ToPort": 22,
                "IpRanges": [{"CidrIp": "0.0.0.0/0"}],
            }
        ],
    )
    return group_id


@pytest.fixture
def public_instance():
    """EC2 instance with a public IP."""
    return make_resource(
        "i-1",
        "aws_instance",
        {"publicIpAddress": "1.2.3.4"},
        name="web",
    )


@pytest.fixture
def private_instance():
    """EC2 instance without a public IP."""
    return make_resource(
        "i-2",
        "aws_instance",
        {"publicIpAddress": None, "associatePublicIpAddress": False},
        name="worker",
    )


@pytest.fixture
def public_bucket():
    """S3 bucket readable by AllUsers and not encrypted."""
    return make_resource(
        "bucket-1",
        "aws_s3_bucket",
        {
            "acl": {
                "grants": [
                    {
                        "grantee": {
                            "type": "Group",
                            "uri": "http://acs.amazonaws.com/groups/global/AllUsers",
                        },
                        "permission": "READ",
                    }
                ]
            },
            "policy": None,
            "encryption": None,
        },
    )


@pytest.fixture
def open_security_group():
    """Security group allowing SSH from 0.0.0.0/0."""
    return make_resource(
        "sg-1",
        "aws_security_group",
        {
            "ipPermissions": [
                {
                    "ipProtocol": "tcp",
                    "fromPort": 22,
                    "toPort": 22,
                    "ipRanges": [{"cidrIp": "0.0.0.0/0"}],
                }
            ]
        },
    )


@pytest.fixture
def unencrypted_trail():
    """CloudTrail trail without a KMS key."""
    return make_resource(
        "arn:aws:cloudtrail:us-east-1:123456789012:trail/main",
        "aws_cloudtrail",
        {"kmsKeyId": None},
        name="main",
    )


@pytest.fixture
def aws_inventory(public_instance, private_instance, public_bucket, open_security_group):
    """A small AWS inventory with known findings."""
    return [public_instance, private_instance, public_bucket, open_security_group]


@pytest.fixture
def scanner_for():
    """Build a SecurityScanner over a static AWS inventory."""

    def build(inventory: Dict[str, Any], provider: str = "aws", **kwargs) -> SecurityScanner:
        discovery = StaticDiscovery(inventory, provider=provider)
        return SecurityScanner(discovery_registry={provider: discovery}, **kwargs)

    return build


@pytest.fixture
def sample_scan_result(scanner_for, aws_inventory):
    """A scan result with critical, high and quick-win findings."""
    scanner = scanner_for({"us-east-1": aws_inventory})
    return scanner.scan(ScanOptions(provider="aws", regions=["us-east-1"]))
