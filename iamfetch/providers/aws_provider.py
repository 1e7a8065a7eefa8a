import uuid
from functools import cached_property
from typing import Any, Optional

import boto3
from botocore.exceptions import ClientError, NoRegionError
from loguru import logger

from iamfetch.core.exceptions import ApiClientError, MissingRegionError
from iamfetch.services.clients.iam_client import IamClient
from iamfetch.services.clients.s3_client import S3Client
from iamfetch.services.clients.tagging_client import TaggingClient
from iamfetch.services.ownership.cfn_index import CfnManagedResources


class AwsProvider:
    """
    Holds the boto3 session and the capability clients built from it.

    Created once by the caller and handed to the fetcher, so nothing in the
    fetch path reaches for process-wide AWS state. Tests substitute their own
    object exposing the same attributes.
    """

    def __init__(
        self,
        region: Optional[str] = None,
        profile_name: Optional[str] = None,
        role_arn: Optional[str] = None,
        max_workers: int = 10,
    ):
        """
        Args:
            region: AWS region. Falls back to whatever the credential chain configures.
            profile_name: Optional AWS profile name (from ~/.aws/credentials or ~/.aws/config).
            role_arn: Optional ARN of an IAM role to assume before fetching.
            max_workers: Thread pool size for bucket inspection.
        """
        self._profile_name = profile_name
        self._role_arn = role_arn
        self._max_workers = max_workers
        self.session = self._create_session(region)
        self.region = self.session.region_name

    def _create_session(self, region: Optional[str]) -> boto3.Session:
        if self._profile_name:
            logger.info(f"Creating AWS session using profile: {self._profile_name}")
            session = boto3.Session(profile_name=self._profile_name, region_name=region)
        else:
            logger.info("Creating AWS session using default credential chain.")
            session = boto3.Session(region_name=region)

        if not self._role_arn:
            return session

        logger.info(f"Attempting to assume role: {self._role_arn}")
        # Session names are capped at 64 characters
        role_session_name = f"iamfetch-{str(uuid.uuid4()).split('-')[0]}"[:64]
        try:
            response = session.client('sts').assume_role(
                RoleArn=self._role_arn,
                RoleSessionName=role_session_name
            )
        except NoRegionError as e:
            raise MissingRegionError("Can't assume role without an AWS region - check the AWS_REGION environment variable is set") from e
        except ClientError as e:
            error_code = e.response.get('Error', {}).get('Code')
            logger.error(f"Failed to assume role '{self._role_arn}'. STS Error Code: {error_code}, Message: {e}")
            raise ApiClientError(f"Failed to assume role '{self._role_arn}': {e}") from e

        temp_creds = response.get('Credentials')
        if not temp_creds:
            raise ApiClientError(f"AssumeRole call succeeded but no credentials returned for role {self._role_arn}")

        logger.info(f"Assumed role {self._role_arn}. Creating session with temporary credentials.")
        return boto3.Session(
            aws_access_key_id=temp_creds['AccessKeyId'],
            aws_secret_access_key=temp_creds['SecretAccessKey'],
            aws_session_token=temp_creds['SessionToken'],
            region_name=session.region_name
        )

    def get_client(self, service_name: str, region: Optional[str] = None) -> Any:
        return self.session.client(service_name, region_name=region or self.region)

    def get_account_id(self) -> str:
        """Resolve the account id of the session's credentials through STS."""
        # STS resolves to its global endpoint without a region
        if not self.region:
            raise MissingRegionError("Error determining the AWS account id - check the AWS_REGION environment variable is set")
        try:
            return self.get_client("sts").get_caller_identity()["Account"]
        except NoRegionError as e:
            raise MissingRegionError("Error determining the AWS account id - check the AWS_REGION environment variable is set") from e

    def list_account_aliases(self) -> Optional[str]:
        return self.iam.list_account_aliases()

    def build_clients(self) -> None:
        """Create every capability client now, before any fetch threads start."""
        # boto3 sessions are not thread-safe for client creation
        try:
            for client in (self.iam, self.s3, self.cfn, self.tagging):
                logger.debug(f"Built {type(client).__name__}")
        except NoRegionError as e:
            raise MissingRegionError("Can't create AWS clients without a region - check the AWS_REGION environment variable is set") from e

    # --- Capability clients ---

    @cached_property
    def iam(self) -> IamClient:
        return IamClient(self.get_client("iam"))

    @cached_property
    def s3(self) -> S3Client:
        return S3Client(
            self.get_client("s3"),
            lambda region: self.get_client("s3", region=region),
            max_workers=self._max_workers,
        )

    @cached_property
    def cfn(self) -> CfnManagedResources:
        return CfnManagedResources(self.get_client("cloudformation"))

    @cached_property
    def tagging(self) -> TaggingClient:
        return TaggingClient(self.get_client("resourcegroupstaggingapi"))
