from typing import Any, Callable, Dict, Iterable, Optional, Tuple

from loguru import logger

from iamfetch.services.utils import format_tags

PageHandler = Callable[[Dict[str, Any]], None]


class IamClient:
    """IAM enumeration and per-resource lookups on top of a boto3 IAM client."""

    def __init__(self, client: Any):
        self._client = client

    def get_account_authorization_details_pages(self, filters: Iterable[str], handler: PageHandler) -> None:
        """
        Page through GetAccountAuthorizationDetails, handing each page to `handler`.

        An exception from the handler stops pagination and propagates.
        """
        paginator = self._client.get_paginator('get_account_authorization_details')
        for page in paginator.paginate(Filter=list(filters)):
            handler(page)

    def list_instance_profiles_pages(self, handler: PageHandler) -> None:
        paginator = self._client.get_paginator('list_instance_profiles')
        for page in paginator.paginate():
            handler(page)

    def list_account_aliases(self) -> Optional[str]:
        """An account has at most one alias."""
        aliases = self._client.list_account_aliases().get('AccountAliases', [])
        return aliases[0] if aliases else None

    def get_policy_description(self, policy_arn: str) -> str:
        response = self._client.get_policy(PolicyArn=policy_arn)
        return response.get('Policy', {}).get('Description', '')

    def get_role(self, role_name: str) -> Tuple[str, int]:
        """Returns the role's description and max session duration (0 when not reported)."""
        role = self._client.get_role(RoleName=role_name).get('Role', {})
        return role.get('Description', ''), role.get('MaxSessionDuration', 0)

    def get_policy_tags(self, policy_arn: str) -> Dict[str, str]:
        tags = {}
        paginator = self._client.get_paginator('list_policy_tags')
        for page in paginator.paginate(PolicyArn=policy_arn):
            tags.update(format_tags(page.get('Tags', [])))
        logger.debug(f"Found {len(tags)} tags for policy {policy_arn}")
        return tags
