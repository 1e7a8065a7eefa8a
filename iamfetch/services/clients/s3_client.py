import concurrent.futures
from typing import Any, Callable, Dict, List, NamedTuple, Optional

from botocore.exceptions import ClientError
from loguru import logger

from iamfetch.services.utils import format_tags

# Legacy location constraints that don't match a region name
LEGACY_LOCATIONS = {
    None: "us-east-1",
    "": "us-east-1",
    "EU": "eu-west-1",
}


class Bucket(NamedTuple):
    name: str
    policy_json: str
    tags: Dict[str, str]


class S3Client:
    """
    Lists every bucket with its policy and tags.

    Policy and tag calls have to go to the bucket's own region, so a client
    per region is built through `regional_client_factory`. Those clients are
    created up front on the calling thread; the per-bucket lookups then run
    on a thread pool.
    """

    def __init__(self, client: Any, regional_client_factory: Callable[[str], Any], max_workers: int = 10):
        self._client = client
        self._regional_client_factory = regional_client_factory
        self._max_workers = max_workers

    def list_all_buckets(self) -> List[Bucket]:
        bucket_names = [b["Name"] for b in self._client.list_buckets().get("Buckets", [])]
        logger.debug(f"Found {len(bucket_names)} S3 Buckets.")
        if not bucket_names:
            return []

        regional_clients: Dict[str, Any] = {}
        bucket_clients = []
        for name in bucket_names:
            region = self._bucket_region(name)
            if region not in regional_clients:
                regional_clients[region] = self._regional_client_factory(region)
            bucket_clients.append((name, regional_clients[region]))

        with concurrent.futures.ThreadPoolExecutor(max_workers=self._max_workers) as executor:
            # map() keeps listing order and re-raises the first failure on iteration
            return list(executor.map(lambda args: self._describe_bucket(*args), bucket_clients))

    def _bucket_region(self, bucket_name: str) -> str:
        location = self._client.get_bucket_location(Bucket=bucket_name).get('LocationConstraint')
        return LEGACY_LOCATIONS.get(location, location)

    def _describe_bucket(self, bucket_name: str, client: Any) -> Bucket:
        logger.debug(f"Processing bucket: {bucket_name}")
        return Bucket(
            name=bucket_name,
            policy_json=self._get_policy(client, bucket_name),
            tags=self._get_tags(client, bucket_name),
        )

    @staticmethod
    def _get_policy(client: Any, bucket_name: str) -> str:
        try:
            return client.get_bucket_policy(Bucket=bucket_name).get('Policy') or ""
        except ClientError as e:
            if _error_code(e) == 'NoSuchBucketPolicy':
                return ""
            raise

    @staticmethod
    def _get_tags(client: Any, bucket_name: str) -> Dict[str, str]:
        try:
            return format_tags(client.get_bucket_tagging(Bucket=bucket_name).get('TagSet', []))
        except ClientError as e:
            if _error_code(e) == 'NoSuchTagSet':
                return {}
            raise


def _error_code(error: ClientError) -> Optional[str]:
    return error.response.get('Error', {}).get('Code')
