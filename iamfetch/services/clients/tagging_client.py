from typing import Any, Dict, Iterable

from loguru import logger

from iamfetch.services.utils import chunked, format_tags

# GetResources accepts at most 100 ARNs per call
MAX_ARNS_PER_REQUEST = 100


class TaggingClient:
    """Batched tag lookups through the Resource Groups Tagging API."""

    def __init__(self, client: Any):
        self._client = client

    def get_multiple_policy_tags(self, policy_arns: Iterable[str]) -> Dict[str, Dict[str, str]]:
        """
        Map each policy ARN to its tags. ARNs the API doesn't report on (for
        instance because they carry no tags) are left out of the result.
        """
        result: Dict[str, Dict[str, str]] = {}
        for batch in chunked(policy_arns, MAX_ARNS_PER_REQUEST):
            logger.debug(f"Fetching tags for {len(batch)} policies")
            response = self._client.get_resources(ResourceARNList=batch)
            for mapping in response.get('ResourceTagMappingList', []):
                result[mapping['ResourceARN']] = format_tags(mapping.get('Tags', []))
        return result
