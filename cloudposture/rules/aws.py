"""
AWS Security Rules
==================

Rules for S3, EC2, RDS, security groups and CloudTrail. Configuration keys
follow the shape produced by ``cloudposture.discovery.aws``.

Rules
-----
AWS-001  S3 bucket public read access            critical
AWS-002  EC2 instance public IP                  high
AWS-003  RDS instance public access              critical
AWS-004  Security group SSH open to the world    high
AWS-005  CloudTrail logs not KMS-encrypted       medium
"""

from __future__ import annotations

from typing import Any, Dict, List

from cloudposture.core.models import (
    ComplianceFramework,
    Remediation,
    Resource,
    RuleResult,
    ScanContext,
)
from cloudposture.rules.base import SecurityRule

OPEN_CIDR = "0.0.0.0/0"
SSH_PORT = 22


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _statement_grants_public_read(statement: Dict[str, Any]) -> bool:
    if statement.get("Effect") != "Allow":
        return False
    principal = statement.get("Principal")
    is_public = principal == "*" or (
        isinstance(principal, dict) and principal.get("AWS") == "*"
    )
    actions = _as_list(statement.get("Action"))
    return is_public and ("s3:GetObject" in actions or "s3:*" in actions)


def check_s3_public_read(resource: Resource, context: ScanContext) -> RuleResult:
    """Fail if the bucket ACL or bucket policy grants public read."""
    config = resource.configuration
    grants = (config.get("acl") or {}).get("grants") or []
    public_acl = any(
        "AllUsers" in ((grant.get("grantee") or {}).get("uri") or "")
        and grant.get("permission") == "READ"
        for grant in grants
    )
    statements = _as_list((config.get("policy") or {}).get("Statement"))
    public_policy = any(_statement_grants_public_read(s) for s in statements)

    if public_acl or public_policy:
        return RuleResult.fail(
            "S3 bucket allows public read access, which could lead to data exposure",
            {
                "bucketName": resource.name,
                "acl": config.get("acl"),
                "policy": config.get("policy"),
            },
            "Remove public read access and implement proper IAM policies",
        )
    return RuleResult.ok()


def check_ec2_public_ip(resource: Resource, context: ScanContext) -> RuleResult:
    """Fail if the instance has, or auto-assigns, a public IP address."""
    config = resource.configuration
    if config.get("publicIpAddress") or config.get("associatePublicIpAddress"):
        return RuleResult.fail(
            "EC2 instance has a public IP address, increasing attack surface",
            {
                "instanceId": resource.id,
                "publicIp": config.get("publicIpAddress"),
                "autoAssignPublicIp": config.get("associatePublicIpAddress"),
            },
            "Use NAT Gateway or VPN for outbound connectivity instead of public IPs",
        )
    return RuleResult.ok()


def check_rds_public_access(resource: Resource, context: ScanContext) -> RuleResult:
    """Fail if the DB instance is publicly accessible."""
    config = resource.configuration
    if config.get("publiclyAccessible") is True:
        return RuleResult.fail(
            "RDS instance is publicly accessible, exposing sensitive data to potential threats",
            {
                "dbInstanceId": resource.id,
                "publiclyAccessible": config.get("publiclyAccessible"),
                "endpoint": config.get("endpoint"),
            },
            "Set publicly_accessible to false and use VPC for secure access",
        )
    return RuleResult.ok()


def check_security_group_ssh(resource: Resource, context: ScanContext) -> RuleResult:
    """Fail if an ingress permission opens port 22 to 0.0.0.0/0."""
    permissions = resource.configuration.get("ipPermissions") or []
    ssh_rules = [
        permission
        for permission in permissions
        if (permission.get("fromPort") == SSH_PORT or permission.get("toPort") == SSH_PORT)
        and any(
            ip_range.get("cidrIp") == OPEN_CIDR
            for ip_range in permission.get("ipRanges") or []
        )
    ]
    if ssh_rules:
        return RuleResult.fail(
            "Security group allows SSH access from anywhere on the internet",
            {
                "securityGroupId": resource.id,
                "sshRules": ssh_rules,
                "attachedInstances": _instances_using_group(resource.id, context),
            },
            "Restrict SSH access to specific IP ranges or use Session Manager",
        )
    return RuleResult.ok()


def _instances_using_group(group_id: str, context: ScanContext) -> List[str]:
    attached = []
    for instance in context.resources_of_type("aws_instance"):
        groups = instance.configuration.get("securityGroups") or []
        if any(g.get("GroupId") == group_id for g in groups if isinstance(g, dict)):
            attached.append(instance.id)
    return attached


def check_cloudtrail_encryption(resource: Resource, context: ScanContext) -> RuleResult:
    """Fail if the trail has no KMS key."""
    if not resource.configuration.get("kmsKeyId"):
        return RuleResult.fail(
            "CloudTrail logs are not encrypted at rest",
            {
                "trailName": resource.name,
                "kmsKeyId": resource.configuration.get("kmsKeyId"),
            },
            "Enable KMS encryption for CloudTrail logs",
        )
    return RuleResult.ok()


CIS_AWS = "CIS AWS Foundations"


def get_aws_rules() -> List[SecurityRule]:
    """Return the AWS rule group in catalog order."""
    return [
        SecurityRule(
            id="AWS-001",
            name="S3 Bucket Public Read Access",
            description="S3 buckets should not allow public read access",
            severity="critical",
            category="access_control",
            provider="aws",
            resource_types={"aws_s3_bucket"},
            check=check_s3_public_read,
            remediation=Remediation(
                description="Remove public access and implement proper access controls",
                steps=[
                    "Navigate to S3 console",
                    "Select the bucket",
                    "Go to Permissions tab",
                    "Block all public access",
                    "Configure bucket policy with specific permissions",
                ],
                automatable=True,
                automated=[
                    "aws s3api put-public-access-block --bucket <bucket-name> "
                    "--public-access-block-configuration "
                    "BlockPublicAcls=true,IgnorePublicAcls=true,"
                    "BlockPublicPolicy=true,RestrictPublicBuckets=true",
                ],
                terraform=(
                    'resource "aws_s3_bucket_public_access_block" "example" {\n'
                    "  bucket = aws_s3_bucket.example.id\n\n"
                    "  block_public_acls       = true\n"
                    "  block_public_policy     = true\n"
                    "  ignore_public_acls      = true\n"
                    "  restrict_public_buckets = true\n"
                    "}"
                ),
            ),
            references=[
                "https://docs.aws.amazon.com/AmazonS3/latest/userguide/access-control-block-public-access.html",
                "https://aws.amazon.com/s3/features/block-public-access/",
            ],
            compliance_frameworks=[
                ComplianceFramework(CIS_AWS, "2.1.1", "Ensure S3 bucket access logging is enabled"),
                ComplianceFramework("SOC 2", "CC6.1", "Logical and physical access controls"),
            ],
            tags=["s3", "data-protection", "public-access"],
        ),
        SecurityRule(
            id="AWS-002",
            name="EC2 Instance Public IP",
            description="EC2 instances should not have public IP addresses unless necessary",
            severity="high",
            category="network_security",
            provider="aws",
            resource_types={"aws_instance"},
            check=check_ec2_public_ip,
            remediation=Remediation(
                description="Remove public IP and use private networking",
                steps=[
                    "Stop the EC2 instance",
                    "Modify network settings to remove public IP",
                    "Set up NAT Gateway for outbound internet access",
                    "Use VPN or bastion host for administrative access",
                ],
                automatable=True,
            ),
            references=[
                "https://docs.aws.amazon.com/vpc/latest/userguide/vpc-nat-gateway.html",
            ],
            compliance_frameworks=[
                ComplianceFramework(
                    CIS_AWS, "4.1", "Ensure no security groups allow ingress from 0.0.0.0/0 to port 22"
                ),
            ],
            tags=["ec2", "network", "public-ip"],
        ),
        SecurityRule(
            id="AWS-003",
            name="RDS Instance Public Access",
            description="RDS instances should not be publicly accessible",
            severity="critical",
            category="data_protection",
            provider="aws",
            resource_types={"aws_db_instance"},
            check=check_rds_public_access,
            remediation=Remediation(
                description="Disable public access for RDS instance",
                steps=[
                    "Go to RDS console",
                    "Select the DB instance",
                    "Choose Modify",
                    "Under Connectivity, set Public access to No",
                    "Apply changes immediately or during maintenance window",
                ],
                automatable=True,
                automated=[
                    "aws rds modify-db-instance --db-instance-identifier <db-instance-id> "
                    "--no-publicly-accessible --apply-immediately",
                ],
            ),
            references=[
                "https://docs.aws.amazon.com/AmazonRDS/latest/UserGuide/USER_VPC.WorkingWithRDSInstanceinaVPC.html",
            ],
            compliance_frameworks=[
                ComplianceFramework(CIS_AWS, "2.3.1", "Ensure RDS instances are not publicly accessible"),
                ComplianceFramework(
                    "PCI DSS",
                    "1.3",
                    "Prohibit direct public access between Internet and cardholder data environment",
                ),
            ],
            tags=["rds", "database", "public-access"],
        ),
        SecurityRule(
            id="AWS-004",
            name="Security Group SSH Access",
            description="Security groups should not allow SSH access from 0.0.0.0/0",
            severity="high",
            category="network_security",
            provider="aws",
            resource_types={"aws_security_group"},
            check=check_security_group_ssh,
            remediation=Remediation(
                description="Restrict SSH access to specific IP ranges",
                steps=[
                    "Go to EC2 console",
                    "Navigate to Security Groups",
                    "Select the security group",
                    "Edit inbound rules",
                    "Change SSH source from 0.0.0.0/0 to specific IP ranges",
                ],
                automatable=True,
                automated=[
                    "aws ec2 revoke-security-group-ingress --group-id <security-group-id> "
                    "--protocol tcp --port 22 --cidr 0.0.0.0/0",
                ],
            ),
            references=[
                "https://docs.aws.amazon.com/AWSEC2/latest/UserGuide/security-group-rules.html",
            ],
            compliance_frameworks=[
                ComplianceFramework(
                    CIS_AWS, "4.1", "Ensure no security groups allow ingress from 0.0.0.0/0 to port 22"
                ),
            ],
            tags=["security-group", "ssh", "network"],
        ),
        SecurityRule(
            id="AWS-005",
            name="CloudTrail Encryption",
            description="CloudTrail logs should be encrypted at rest",
            severity="medium",
            category="encryption",
            provider="aws",
            resource_types={"aws_cloudtrail"},
            check=check_cloudtrail_encryption,
            remediation=Remediation(
                description="Enable KMS encryption for CloudTrail",
                steps=[
                    "Go to CloudTrail console",
                    "Select the trail",
                    'Under Storage location, check "Encrypt log files with SSE-KMS"',
                    "Select or create a KMS key",
                    "Save changes",
                ],
                automatable=True,
                automated=[
                    "aws cloudtrail update-trail --name <trail-name> --kms-key-id <kms-key-arn>",
                ],
            ),
            references=[
                "https://docs.aws.amazon.com/awscloudtrail/latest/userguide/encrypting-cloudtrail-log-files-with-aws-kms.html",
            ],
            compliance_frameworks=[
                ComplianceFramework(
                    CIS_AWS, "2.7", "Ensure CloudTrail logs are encrypted at rest using KMS CMKs"
                ),
            ],
            tags=["cloudtrail", "encryption", "logging"],
        ),
    ]
