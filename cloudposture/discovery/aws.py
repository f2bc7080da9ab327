"""
AWS Discovery Module
====================

Lists EC2 instances, S3 buckets, RDS instances, security groups and
CloudTrail trails through boto3 and normalizes them into
:class:`~cloudposture.core.models.Resource` objects whose configuration
keys match what the AWS rules inspect.

Classes
-------
AWSDiscovery
    Per-region AWS resource discovery.

Example
-------
>>> from cloudposture.discovery.aws import AWSDiscovery
>>>
>>> discovery = AWSDiscovery()
>>> resources = discovery.discover_resources(
...     {"aws": {"profile": "audit"}},
...     regions=["us-east-1", "eu-west-1"],
... )

Notes
-----
S3 is a global service, so buckets are listed only when ``us-east-1``
is among the scanned regions. A failing service inside a region is
logged and skipped; missing or invalid credentials fail the region.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from botocore.exceptions import ClientError, NoCredentialsError

from cloudposture.core.aws_client import AWSClient
from cloudposture.core.exceptions import AWSClientError, CredentialsError
from cloudposture.core.models import Resource
from cloudposture.core.region_manager import RegionManager
from cloudposture.discovery.base import BaseDiscovery

# Module logger
logger = logging.getLogger(__name__)

S3_HOME_REGION = "us-east-1"

# S3 error codes meaning "not configured" rather than a failure
_MISSING_BUCKET_POLICY = ("NoSuchBucketPolicy",)
_MISSING_BUCKET_ENCRYPTION = ("ServerSideEncryptionConfigurationNotFoundError",)


def _tags_to_dict(tags: Optional[List[Dict[str, str]]]) -> Optional[Dict[str, str]]:
    if not tags:
        return None
    return {tag["Key"]: tag["Value"] for tag in tags if tag.get("Key")}


def _name_tag(tags: Optional[List[Dict[str, str]]]) -> Optional[str]:
    for tag in tags or []:
        if tag.get("Key") == "Name":
            return tag.get("Value")
    return None


def _isoformat(value: Any) -> Any:
    return value.isoformat() if hasattr(value, "isoformat") else value


def _normalize_permission(permission: Dict[str, Any]) -> Dict[str, Any]:
    """Convert a boto3 IpPermission into the camelCase shape rules read."""
    return {
        "ipProtocol": permission.get("IpProtocol"),
        "fromPort": permission.get("FromPort"),
        "toPort": permission.get("ToPort"),
        "ipRanges": [
            {"cidrIp": r.get("CidrIp"), "description": r.get("Description")}
            for r in permission.get("IpRanges", [])
        ],
        "ipv6Ranges": [
            {"cidrIpv6": r.get("CidrIpv6"), "description": r.get("Description")}
            for r in permission.get("Ipv6Ranges", [])
        ],
        "userIdGroupPairs": [
            {"groupId": p.get("GroupId"), "userId": p.get("UserId")}
            for p in permission.get("UserIdGroupPairs", [])
        ],
    }


def _normalize_acl(acl: Dict[str, Any]) -> Dict[str, Any]:
    """Convert a GetBucketAcl response into ``{owner, grants}``."""
    return {
        "owner": (acl.get("Owner") or {}).get("ID"),
        "grants": [
            {
                "grantee": {
                    "type": (grant.get("Grantee") or {}).get("Type"),
                    "id": (grant.get("Grantee") or {}).get("ID"),
                    "uri": (grant.get("Grantee") or {}).get("URI"),
                },
                "permission": grant.get("Permission"),
            }
            for grant in acl.get("Grants", [])
        ],
    }


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "Unknown")


class AWSDiscovery(BaseDiscovery):
    """
    Discover AWS resources with boto3.

    Parameters
    ----------
    region_manager : RegionManager, optional
        Fan-out helper for multi-region discovery.
    max_retries : int, default=3
        Passed to each per-region :class:`AWSClient`.
    timeout : int, default=30
        Passed to each per-region :class:`AWSClient`.

    Notes
    -----
    ``credentials["aws"]`` may hold ``profile``, ``access_key_id``,
    ``secret_access_key`` and ``session_token``. Without it the default
    boto3 credential chain is used.
    """

    provider = "aws"
    default_region = "us-east-1"

    def __init__(
        self,
        region_manager: Optional[RegionManager] = None,
        max_retries: int = 3,
        timeout: int = 30,
    ) -> None:
        super().__init__(region_manager)
        self.max_retries = max_retries
        self.timeout = timeout

    def get_client(
        self,
        region: str,
        credentials: Optional[Dict[str, Any]],
    ) -> AWSClient:
        """Create the AWSClient used to discover one region."""
        return AWSClient(
            region=region,
            credentials=(credentials or {}).get("aws"),
            max_retries=self.max_retries,
            timeout=self.timeout,
        )

    def discover_region(
        self,
        region: str,
        credentials: Optional[Dict[str, Any]],
    ) -> List[Resource]:
        """
        Discover every supported AWS resource in one region.

        Raises
        ------
        CredentialsError
            If credentials are missing or the profile does not exist.
        """
        client = self.get_client(region, credentials)

        sources: List[Tuple[str, Callable[[AWSClient], List[Resource]]]] = [
            ("EC2 instances", self._discover_instances),
        ]
        if region == S3_HOME_REGION:
            sources.append(("S3 buckets", self._discover_buckets))
        sources.extend(
            [
                ("RDS instances", self._discover_db_instances),
                ("Security groups", self._discover_security_groups),
                ("CloudTrail trails", self._discover_trails),
            ]
        )

        resources: List[Resource] = []
        for source_name, fetch_func in sources:
            try:
                found = fetch_func(client)
            except NoCredentialsError:
                raise CredentialsError(
                    "AWS credentials not found",
                    region=region,
                    details={"hint": "Run 'aws configure' or pass credentials['aws']"},
                )
            except AWSClientError:
                raise
            except Exception as e:
                logger.warning(f"Failed to discover {source_name} in {region}: {e}")
                continue
            logger.debug(f"Found {len(found)} {source_name} in {region}")
            resources.extend(found)

        return resources

    # =========================================================================
    # Per-service discovery
    # =========================================================================

    def _discover_instances(self, client: AWSClient) -> List[Resource]:
        resources: List[Resource] = []
        paginator = client.get_ec2_client().get_paginator("describe_instances")

        for page in paginator.paginate():
            for reservation in page["Reservations"]:
                for instance in reservation["Instances"]:
                    instance_id = instance.get("InstanceId")
                    if not instance_id:
                        continue
                    tags = instance.get("Tags")
                    resources.append(
                        Resource(
                            id=instance_id,
                            name=_name_tag(tags) or instance_id,
                            type="aws_instance",
                            provider="aws",
                            region=client.region,
                            tags=_tags_to_dict(tags),
                            configuration={
                                "instanceType": instance.get("InstanceType"),
                                "state": (instance.get("State") or {}).get("Name"),
                                "publicIpAddress": instance.get("PublicIpAddress"),
                                "privateIpAddress": instance.get("PrivateIpAddress"),
                                "subnetId": instance.get("SubnetId"),
                                "vpcId": instance.get("VpcId"),
                                "securityGroups": instance.get("SecurityGroups", []),
                                "keyName": instance.get("KeyName"),
                                "associatePublicIpAddress": bool(
                                    instance.get("PublicIpAddress")
                                ),
                                "ebsOptimized": instance.get("EbsOptimized"),
                                "monitoring": (instance.get("Monitoring") or {}).get(
                                    "State"
                                ),
                                "iamInstanceProfile": instance.get("IamInstanceProfile"),
                            },
                        )
                    )
        return resources

    def _discover_buckets(self, client: AWSClient) -> List[Resource]:
        s3 = client.get_s3_client()
        resources: List[Resource] = []

        for bucket in s3.list_buckets().get("Buckets", []):
            name = bucket.get("Name")
            if not name:
                continue
            try:
                resources.append(self._describe_bucket(s3, bucket))
            except ClientError as e:
                logger.warning(f"Failed to get details for bucket {name}: {e}")
        return resources

    def _describe_bucket(self, s3: Any, bucket: Dict[str, Any]) -> Resource:
        name = bucket["Name"]
        location = s3.get_bucket_location(Bucket=name).get("LocationConstraint")
        acl = s3.get_bucket_acl(Bucket=name)

        policy = None
        try:
            policy = json.loads(s3.get_bucket_policy(Bucket=name).get("Policy") or "{}")
        except ClientError as e:
            if _error_code(e) not in _MISSING_BUCKET_POLICY:
                raise

        encryption = None
        try:
            encryption = s3.get_bucket_encryption(Bucket=name).get(
                "ServerSideEncryptionConfiguration"
            )
        except ClientError as e:
            if _error_code(e) not in _MISSING_BUCKET_ENCRYPTION:
                raise

        versioning = s3.get_bucket_versioning(Bucket=name)
        bucket_logging = s3.get_bucket_logging(Bucket=name)

        return Resource(
            id=name,
            name=name,
            type="aws_s3_bucket",
            provider="aws",
            region=location or S3_HOME_REGION,
            configuration={
                "creationDate": _isoformat(bucket.get("CreationDate")),
                "acl": _normalize_acl(acl),
                "policy": policy,
                "encryption": encryption,
                "versioning": versioning.get("Status"),
                "logging": bucket_logging.get("LoggingEnabled"),
            },
        )

    def _discover_db_instances(self, client: AWSClient) -> List[Resource]:
        resources: List[Resource] = []
        paginator = client.get_rds_client().get_paginator("describe_db_instances")

        for page in paginator.paginate():
            for db in page["DBInstances"]:
                db_id = db.get("DBInstanceIdentifier")
                if not db_id:
                    continue
                resources.append(
                    Resource(
                        id=db_id,
                        name=db_id,
                        type="aws_db_instance",
                        provider="aws",
                        region=client.region,
                        tags=_tags_to_dict(db.get("TagList")),
                        configuration={
                            "dbInstanceClass": db.get("DBInstanceClass"),
                            "engine": db.get("Engine"),
                            "engineVersion": db.get("EngineVersion"),
                            "dbInstanceStatus": db.get("DBInstanceStatus"),
                            "endpoint": db.get("Endpoint"),
                            "port": db.get("DbInstancePort"),
                            "publiclyAccessible": db.get("PubliclyAccessible"),
                            "storageEncrypted": db.get("StorageEncrypted"),
                            "kmsKeyId": db.get("KmsKeyId"),
                            "multiAZ": db.get("MultiAZ"),
                            "backupRetentionPeriod": db.get("BackupRetentionPeriod"),
                            "vpcSecurityGroups": db.get("VpcSecurityGroups", []),
                            "autoMinorVersionUpgrade": db.get("AutoMinorVersionUpgrade"),
                            "deletionProtection": db.get("DeletionProtection"),
                        },
                    )
                )
        return resources

    def _discover_security_groups(self, client: AWSClient) -> List[Resource]:
        resources: List[Resource] = []
        paginator = client.get_ec2_client().get_paginator("describe_security_groups")

        for page in paginator.paginate():
            for sg in page["SecurityGroups"]:
                group_id = sg.get("GroupId")
                if not group_id:
                    continue
                resources.append(
                    Resource(
                        id=group_id,
                        name=sg.get("GroupName") or group_id,
                        type="aws_security_group",
                        provider="aws",
                        region=client.region,
                        tags=_tags_to_dict(sg.get("Tags")),
                        configuration={
                            "groupName": sg.get("GroupName"),
                            "description": sg.get("Description"),
                            "vpcId": sg.get("VpcId"),
                            "ipPermissions": [
                                _normalize_permission(p)
                                for p in sg.get("IpPermissions", [])
                            ],
                            "ipPermissionsEgress": [
                                _normalize_permission(p)
                                for p in sg.get("IpPermissionsEgress", [])
                            ],
                        },
                    )
                )
        return resources

    def _discover_trails(self, client: AWSClient) -> List[Resource]:
        cloudtrail = client.get_cloudtrail_client()
        resources: List[Resource] = []

        # Shadow trails are reported by their home region only
        trails = cloudtrail.describe_trails(includeShadowTrails=False).get("trailList", [])
        for trail in trails:
            name = trail.get("Name")
            if not name:
                continue
            try:
                status = cloudtrail.get_trail_status(Name=name)
                selectors = cloudtrail.get_event_selectors(TrailName=name)
            except ClientError as e:
                logger.warning(f"Failed to get details for trail {name}: {e}")
                continue
            resources.append(
                Resource(
                    id=trail.get("TrailARN") or name,
                    name=name,
                    type="aws_cloudtrail",
                    provider="aws",
                    region=client.region,
                    configuration={
                        "s3BucketName": trail.get("S3BucketName"),
                        "s3KeyPrefix": trail.get("S3KeyPrefix"),
                        "snsTopicName": trail.get("SnsTopicName"),
                        "includeGlobalServiceEvents": trail.get(
                            "IncludeGlobalServiceEvents"
                        ),
                        "isMultiRegionTrail": trail.get("IsMultiRegionTrail"),
                        "homeRegion": trail.get("HomeRegion"),
                        "isLogging": status.get("IsLogging"),
                        "kmsKeyId": trail.get("KmsKeyId"),
                        "hasCustomEventSelectors": trail.get("HasCustomEventSelectors"),
                        "hasInsightSelectors": trail.get("HasInsightSelectors"),
                        "isOrganizationTrail": trail.get("IsOrganizationTrail"),
                        "eventSelectors": selectors.get("EventSelectors", []),
                    },
                )
            )
        return resources
