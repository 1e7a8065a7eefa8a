import concurrent.futures
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from loguru import logger

from iamfetch.core.config import Settings
from iamfetch.core.exceptions import FetchError, FetchPhase, MissingDefaultPolicyVersionError
from iamfetch.models.account import Account
from iamfetch.models.account_data import AccountData
from iamfetch.models.policy_document import PolicyDocument
from iamfetch.models.resources import (
    BucketPolicy,
    Group,
    InlinePolicy,
    InstanceProfile,
    Policy,
    Role,
    User,
)
from iamfetch.services.ownership.cfn_index import CfnResourceType
from iamfetch.services.ownership.classifier import OwnershipClassifier
from iamfetch.services.utils import FirstErrorCollector, format_tags

# Entity kinds requested from GetAccountAuthorizationDetails. AWS managed
# policies are left out; attachments to them are kept as full ARNs.
IAM_ENTITY_FILTER = ["User", "Group", "Role", "LocalManagedPolicy"]

# Bucket policies have no IAM path. This never matches a configured skip prefix.
BUCKET_POLICY_PATH = "__DONTSKIPS3__"


class AwsFetcher:
    """
    Builds an AccountData snapshot for the account behind an AwsProvider.

    Phases, in order: resolve the account, build the CloudFormation
    ownership index (unless heuristic matching is on), then fetch IAM and S3
    data in parallel. Either a complete, frozen snapshot is returned or a
    FetchError naming the failed phase is raised; partial snapshots are
    never handed out.

    A fetcher instance runs once.
    """

    def __init__(
        self,
        provider: Any,
        skip_fetching_policy_and_role_descriptions: bool = False,
        heuristic_cfn_matching: bool = False,
        skip_tagged: Iterable[str] = (),
        include_tagged: Iterable[str] = (),
        skip_path_prefixes: Iterable[str] = (),
        max_workers: int = 10,
    ):
        self.provider = provider
        self.skip_fetching_policy_and_role_descriptions = skip_fetching_policy_and_role_descriptions
        self.heuristic_cfn_matching = heuristic_cfn_matching
        self.skip_tagged = list(skip_tagged)
        self.include_tagged = list(include_tagged)
        self.skip_path_prefixes = list(skip_path_prefixes)
        self.max_workers = max_workers

        self.account: Optional[Account] = None
        self._data: Optional[AccountData] = None
        self._classifier: Optional[OwnershipClassifier] = None
        self._started = False

    @classmethod
    def from_settings(cls, provider: Any, settings: Settings) -> "AwsFetcher":
        return cls(
            provider,
            skip_fetching_policy_and_role_descriptions=settings.SKIP_FETCHING_POLICY_AND_ROLE_DESCRIPTIONS,
            heuristic_cfn_matching=settings.HEURISTIC_CFN_MATCHING,
            skip_tagged=settings.SKIP_TAGGED,
            include_tagged=settings.INCLUDE_TAGGED,
            skip_path_prefixes=settings.SKIP_PATH_PREFIXES,
            max_workers=settings.FETCH_MAX_WORKERS,
        )

    def fetch(self) -> AccountData:
        """Query AWS for account data."""
        if self._started:
            raise RuntimeError("AwsFetcher.fetch() can only run once per fetcher")
        self._started = True

        try:
            data = self._fetch()
        except FetchError as e:
            logger.error(str(e))
            self._data = None
            raise
        data.freeze()
        logger.info(f"Fetched account {self.account}: {data.summary()}")
        return data

    def _fetch(self) -> AccountData:
        try:
            self._init()
        except Exception as e:
            raise FetchError(FetchPhase.INIT, e) from e

        managed_resources = None
        if not self.heuristic_cfn_matching:
            logger.info("Fetching CFN data")
            try:
                self.provider.cfn.populate()
            except Exception as e:
                raise FetchError(FetchPhase.OWNERSHIP_INDEX, e) from e
            managed_resources = self.provider.cfn

        self._classifier = OwnershipClassifier(
            skip_tagged=self.skip_tagged,
            include_tagged=self.include_tagged,
            skip_path_prefixes=self.skip_path_prefixes,
            managed_resources=managed_resources,
        )

        with concurrent.futures.ThreadPoolExecutor(max_workers=2, thread_name_prefix="iamfetch") as executor:
            logger.info("Fetching IAM data")
            iam_future = executor.submit(self._fetch_iam_data)
            logger.info("Fetching S3 data")
            s3_future = executor.submit(self._fetch_s3_data)
            concurrent.futures.wait([iam_future, s3_future])

        # Both tasks have finished; an IAM failure is reported ahead of an S3 one
        iam_error = iam_future.exception()
        if iam_error is not None:
            raise FetchError(FetchPhase.IAM, iam_error) from iam_error
        s3_error = s3_future.exception()
        if s3_error is not None:
            raise FetchError(FetchPhase.S3, s3_error) from s3_error

        return self._data

    def _init(self) -> None:
        account_id = self.provider.get_account_id()
        self.provider.build_clients()
        alias = self.provider.list_account_aliases()
        self.account = Account(id=account_id, alias=alias)
        self._data = AccountData(self.account)
        logger.info(f"Resolved account {self.account}")

    # --- Classification ---

    def _is_skippable(self, cfn_type: CfnResourceType, identifier: str, tags: Mapping[str, str], path: str) -> bool:
        decision = self._classifier.is_skippable(cfn_type, identifier, tags, path)
        if decision.skip:
            logger.bind(resource=identifier, resource_type=cfn_type.value, reason=decision.reason).info(decision.reason)
        return decision.skip

    # --- S3 ---

    def _fetch_s3_data(self) -> None:
        for bucket in self.provider.s3.list_all_buckets():
            if not bucket.policy_json:
                continue
            if self._is_skippable(CfnResourceType.S3_BUCKET, bucket.name, bucket.tags, BUCKET_POLICY_PATH):
                continue

            self._data.add_bucket_policy(BucketPolicy(
                bucket_name=bucket.name,
                policy=PolicyDocument.from_json(bucket.policy_json),
            ))

    # --- IAM ---

    def _fetch_iam_data(self) -> None:
        self.provider.iam.get_account_authorization_details_pages(IAM_ENTITY_FILTER, self._populate_iam_data)
        self.provider.iam.list_instance_profiles_pages(self._populate_instance_profile_data)

    def _populate_instance_profile_data(self, page: Dict[str, Any]) -> None:
        for profile_resp in page.get('InstanceProfiles', []):
            name = profile_resp['InstanceProfileName']
            path = profile_resp['Path']
            if self._is_skippable(CfnResourceType.IAM_INSTANCE_PROFILE, name, format_tags(profile_resp.get('Tags')), path):
                continue

            self._data.add_instance_profile(InstanceProfile(
                name=name,
                path=path,
                roles=[role['RoleName'] for role in profile_resp.get('Roles', [])],
            ))

    def _populate_iam_data(self, page: Dict[str, Any]) -> None:
        errors = FirstErrorCollector()
        futures: List[concurrent.futures.Future] = []

        # Leaving the block waits for every submitted lookup, including when
        # the page itself fails part way through.
        with concurrent.futures.ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="iamfetch-enrich") as executor:
            def enrich(fn: Callable[..., None], *args: Any) -> None:
                if not self.skip_fetching_policy_and_role_descriptions:
                    futures.append(executor.submit(self._run_enrichment, errors, fn, *args))

            self._populate_users(page.get('UserDetailList', []))
            self._populate_groups(page.get('GroupDetailList', []))
            self._populate_roles(page.get('RoleDetailList', []), enrich)
            self._populate_policies(page.get('Policies', []), enrich)

            concurrent.futures.wait(futures)

        errors.raise_if_set()

    def _populate_users(self, user_details: List[Dict[str, Any]]) -> None:
        for user_resp in user_details:
            tags = format_tags(user_resp.get('Tags'))
            if self._is_skippable(CfnResourceType.IAM_USER, user_resp['UserName'], tags, user_resp['Path']):
                continue

            self._data.add_user(User(
                name=user_resp['UserName'],
                path=user_resp['Path'],
                groups=list(user_resp.get('GroupList', [])),
                policies=self._attached_policies(user_resp.get('AttachedManagedPolicies', [])),
                inline_policies=self._inline_policies(user_resp.get('UserPolicyList', [])),
                tags=tags,
            ))

    def _populate_groups(self, group_details: List[Dict[str, Any]]) -> None:
        for group_resp in group_details:
            if self._is_skippable(CfnResourceType.IAM_GROUP, group_resp['GroupName'], {}, group_resp['Path']):
                continue

            self._data.add_group(Group(
                name=group_resp['GroupName'],
                path=group_resp['Path'],
                policies=self._attached_policies(group_resp.get('AttachedManagedPolicies', [])),
                inline_policies=self._inline_policies(group_resp.get('GroupPolicyList', [])),
            ))

    def _populate_roles(self, role_details: List[Dict[str, Any]], enrich: Callable[..., None]) -> None:
        for role_resp in role_details:
            tags = format_tags(role_resp.get('Tags'))
            if self._is_skippable(CfnResourceType.IAM_ROLE, role_resp['RoleName'], tags, role_resp['Path']):
                continue

            role = Role(
                name=role_resp['RoleName'],
                path=role_resp['Path'],
                assume_role_policy_document=PolicyDocument.from_encoded_json(role_resp['AssumeRolePolicyDocument']),
                policies=self._attached_policies(role_resp.get('AttachedManagedPolicies', [])),
                inline_policies=self._inline_policies(role_resp.get('RolePolicyList', [])),
            )
            self._data.add_role(role)
            enrich(self._fetch_role_details, role)

    def _populate_policies(self, policy_details: List[Dict[str, Any]], enrich: Callable[..., None]) -> None:
        if not policy_details:
            return

        # Tags aren't part of the authorization details, so tag based rules
        # can only be applied after this lookup.
        policy_tags = self.provider.tagging.get_multiple_policy_tags([p['Arn'] for p in policy_details])

        for policy_resp in policy_details:
            name = policy_resp['PolicyName']
            path = policy_resp['Path']
            if self._is_skippable(CfnResourceType.IAM_POLICY, name, {}, path):
                continue

            versions = policy_resp.get('PolicyVersionList', [])
            document = PolicyDocument.from_encoded_json(find_default_policy_version(name, versions)['Document'])

            tags = policy_tags.get(policy_resp['Arn'], {})
            if self._is_skippable(CfnResourceType.IAM_POLICY, name, tags, path):
                continue

            policy = Policy(
                name=name,
                path=path,
                policy=document,
                tags=tags,
                number_of_versions=len(versions),
                oldest_version_id=find_oldest_policy_version_id(versions),
                nondefault_version_ids=find_nondefault_policy_version_ids(versions),
            )
            self._data.add_policy(policy)
            enrich(self._fetch_policy_description, policy_resp['Arn'], policy)

    def _attached_policies(self, attached: List[Dict[str, str]]) -> List[str]:
        return [self.account.normalise_policy_arn(p['PolicyArn']) for p in attached]

    @staticmethod
    def _inline_policies(policy_list: List[Dict[str, Any]]) -> List[InlinePolicy]:
        return [
            InlinePolicy(name=p['PolicyName'], policy=PolicyDocument.from_encoded_json(p['PolicyDocument']))
            for p in policy_list
        ]

    # --- Enrichment ---

    @staticmethod
    def _run_enrichment(errors: FirstErrorCollector, fn: Callable[..., None], *args: Any) -> None:
        try:
            fn(*args)
        except Exception as e:
            logger.error(f"Enrichment lookup {fn.__name__} failed: {e}")
            errors.record(e)

    def _fetch_policy_description(self, policy_arn: str, policy: Policy) -> None:
        logger.debug(f"Fetching policy description for {policy_arn}")
        policy.description = self.provider.iam.get_policy_description(policy_arn) or None

    def _fetch_role_details(self, role: Role) -> None:
        logger.debug(f"Fetching role description for {role.name}")
        description, max_session_duration = self.provider.iam.get_role(role.name)
        role.description = description or None
        if max_session_duration and max_session_duration > 0:
            role.max_session_duration = max_session_duration


def find_default_policy_version(policy_name: str, versions: List[Dict[str, Any]]) -> Dict[str, Any]:
    for version in versions:
        if version.get('IsDefaultVersion'):
            return version
    raise MissingDefaultPolicyVersionError(f"Expected a default policy version for policy {policy_name}")


def find_nondefault_policy_version_ids(versions: List[Dict[str, Any]]) -> List[str]:
    return [v['VersionId'] for v in versions if not v.get('IsDefaultVersion')]


def find_oldest_policy_version_id(versions: List[Dict[str, Any]]) -> Optional[str]:
    if not versions:
        return None
    return min(versions, key=lambda v: v['CreateDate'])['VersionId']
