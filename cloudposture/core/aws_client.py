"""
AWS Client Module
=================

Thin wrapper around boto3 that owns the session, the botocore retry
configuration and a per-service client cache for one region.

Classes
-------
AWSClient
    Session and client factory for AWS discovery.

Example
-------
>>> from cloudposture.core.aws_client import AWSClient
>>>
>>> client = AWSClient(region="us-east-1", profile="production")
>>> client.validate_credentials()
True
>>> ec2 = client.get_ec2_client()

Notes
-----
Credentials may come from the default boto3 chain, a named profile, or
an explicit ``credentials`` mapping as passed to a scan::

    {"access_key_id": "...", "secret_access_key": "...", "session_token": "..."}

Sessions and service clients are created lazily and cached.

See Also
--------
boto3 : AWS SDK for Python
botocore : Low-level AWS client library
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import (
    ClientError,
    NoCredentialsError,
    NoRegionError,
    ProfileNotFound,
)

from cloudposture.core.exceptions import (
    AWSClientError,
    CredentialsError,
    RegionError,
    ServiceError,
)

# Module logger
logger = logging.getLogger(__name__)

# Accepted spellings for explicit credential keys
_CREDENTIAL_KEYS = {
    "aws_access_key_id": ("access_key_id", "accessKeyId", "aws_access_key_id"),
    "aws_secret_access_key": (
        "secret_access_key",
        "secretAccessKey",
        "aws_secret_access_key",
    ),
    "aws_session_token": ("session_token", "sessionToken", "aws_session_token"),
}


def _session_credentials(credentials: Optional[Dict[str, Any]]) -> Dict[str, str]:
    """Map a scan credentials mapping onto boto3.Session keyword arguments."""
    resolved: Dict[str, str] = {}
    for session_key, aliases in _CREDENTIAL_KEYS.items():
        for alias in aliases:
            value = (credentials or {}).get(alias)
            if value:
                resolved[session_key] = value
                break
    return resolved


class AWSClient:
    """
    AWS session wrapper with retry logic and credential management.

    Parameters
    ----------
    region : str, default="us-east-1"
        AWS region to connect to.
    profile : str, optional
        AWS profile name from ~/.aws/credentials. Also read from
        ``credentials["profile"]`` when not given.
    credentials : dict, optional
        Explicit access key, secret key and session token.
    max_retries : int, default=3
        Maximum number of attempts for failed API calls.
    timeout : int, default=30
        Connect and read timeout in seconds.

    Raises
    ------
    CredentialsError
        If AWS credentials are not found or invalid.
    RegionError
        If the specified region is invalid.
    ServiceError
        If unable to create a service client.

    Examples
    --------
    >>> client = AWSClient(region="eu-west-1", profile="audit")
    >>> account_id = client.get_account_id()

    >>> us_client = AWSClient(region="us-east-1")
    >>> eu_client = us_client.with_region("eu-west-1")
    """

    # Services used by discovery
    SUPPORTED_SERVICES = {
        "ec2": "Amazon EC2",
        "s3": "Amazon S3",
        "rds": "Amazon RDS",
        "cloudtrail": "AWS CloudTrail",
        "sts": "AWS Security Token Service",
    }

    def __init__(
        self,
        region: str = "us-east-1",
        profile: Optional[str] = None,
        credentials: Optional[Dict[str, Any]] = None,
        max_retries: int = 3,
        timeout: int = 30,
    ) -> None:
        self.region = region
        self.credentials = dict(credentials or {})
        self.profile = profile or self.credentials.get("profile")
        self.max_retries = max_retries
        self.timeout = timeout

        self._session: Optional[boto3.Session] = None
        self._clients: Dict[str, Any] = {}
        self._config = self._create_config()

        logger.debug(f"Initialized AWSClient for {region} (profile={self.profile})")

    def _create_config(self) -> Config:
        """Create the botocore config with adaptive retries and timeouts."""
        return Config(
            retries={
                "max_attempts": self.max_retries,
                "mode": "adaptive",
            },
            connect_timeout=self.timeout,
            read_timeout=self.timeout,
        )

    @property
    def session(self) -> boto3.Session:
        """Get or create the boto3 session."""
        if self._session is None:
            self._session = self._create_session()
        return self._session

    def _create_session(self) -> boto3.Session:
        """
        Create a boto3 session from the profile or explicit credentials.

        Raises
        ------
        CredentialsError
            If the specified profile is not found.
        RegionError
            If the region is invalid or missing.
        AWSClientError
            For other session creation failures.
        """
        try:
            session_kwargs: Dict[str, Any] = {"region_name": self.region}
            if self.profile:
                session_kwargs["profile_name"] = self.profile
            session_kwargs.update(_session_credentials(self.credentials))

            session = boto3.Session(**session_kwargs)
            logger.debug(f"Created boto3 session for region {self.region}")
            return session

        except ProfileNotFound:
            raise CredentialsError(
                f"AWS profile '{self.profile}' not found",
                details={
                    "profile": self.profile,
                    "hint": "Check ~/.aws/credentials for available profiles",
                },
            )
        except NoRegionError:
            raise RegionError(
                f"Invalid or missing region: {self.region}",
                region=self.region,
                details={"hint": "Specify a valid AWS region like 'us-east-1'"},
            )
        except Exception as e:
            logger.exception("Failed to create AWS session")
            raise AWSClientError(
                f"Failed to create AWS session: {e}",
                region=self.region,
            )

    def _get_client(self, service_name: str) -> Any:
        """
        Get or create a cached boto3 client for the service.

        Raises
        ------
        CredentialsError
            If credentials are not found.
        ServiceError
            If unable to create the client.
        """
        if service_name in self._clients:
            return self._clients[service_name]

        try:
            client = self.session.client(service_name, config=self._config)
            self._clients[service_name] = client
            logger.debug(f"Created {service_name} client for {self.region}")
            return client

        except NoCredentialsError:
            raise CredentialsError(
                "AWS credentials not found",
                details={
                    "hint": (
                        "Configure credentials using 'aws configure' or set "
                        "AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY environment variables"
                    ),
                },
            )
        except (CredentialsError, RegionError, AWSClientError):
            raise
        except Exception as e:
            logger.exception(f"Failed to create {service_name} client")
            raise ServiceError(
                f"Failed to create {service_name} client: {e}",
                service=service_name,
                region=self.region,
            )

    # =========================================================================
    # Service Client Accessors
    # =========================================================================

    def get_ec2_client(self) -> Any:
        """Get the EC2 client (instances and security groups)."""
        return self._get_client("ec2")

    def get_s3_client(self) -> Any:
        """
        Get the S3 client.

        Example
        -------
        >>> s3 = client.get_s3_client()
        >>> buckets = s3.list_buckets()["Buckets"]
        """
        return self._get_client("s3")

    def get_rds_client(self) -> Any:
        """Get the RDS client."""
        return self._get_client("rds")

    def get_cloudtrail_client(self) -> Any:
        """Get the CloudTrail client."""
        return self._get_client("cloudtrail")

    # =========================================================================
    # Credential and Account Operations
    # =========================================================================

    def validate_credentials(self) -> bool:
        """
        Validate AWS credentials by calling STS GetCallerIdentity.

        Returns
        -------
        bool
            True if credentials are valid.

        Raises
        ------
        CredentialsError
            If credentials are invalid, expired, or missing.
        """
        try:
            sts = self._get_client("sts")
            identity = sts.get_caller_identity()
            logger.info(f"Credentials validated for account {identity['Account']}")
            return True

        except CredentialsError:
            raise
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code in ("InvalidClientTokenId", "SignatureDoesNotMatch"):
                raise CredentialsError(
                    "Invalid AWS credentials",
                    details={
                        "error_code": error_code,
                        "hint": "Check your access key and secret key",
                    },
                )
            raise CredentialsError(f"Failed to validate credentials: {e}")
        except Exception as e:
            logger.exception("Credential validation failed")
            raise CredentialsError(f"Failed to validate credentials: {e}")

    def get_account_id(self) -> str:
        """
        Get the 12-digit AWS account ID for the current credentials.

        Raises
        ------
        AWSClientError
            If unable to retrieve the account ID.
        """
        try:
            sts = self._get_client("sts")
            return sts.get_caller_identity()["Account"]
        except AWSClientError:
            raise
        except Exception as e:
            logger.exception("Failed to get account ID")
            raise AWSClientError(f"Failed to get account ID: {e}")

    # =========================================================================
    # Factory Methods
    # =========================================================================

    def with_region(self, region: str) -> AWSClient:
        """
        Create a new AWSClient for a different region.

        The new client inherits profile, credentials, retries and timeout.
        """
        return AWSClient(
            region=region,
            profile=self.profile,
            credentials=self.credentials,
            max_retries=self.max_retries,
            timeout=self.timeout,
        )

    def __enter__(self) -> AWSClient:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self._clients.clear()
        self._session = None

    def __repr__(self) -> str:
        return (
            f"AWSClient(region='{self.region}', "
            f"profile={self.profile!r}, "
            f"max_retries={self.max_retries})"
        )
