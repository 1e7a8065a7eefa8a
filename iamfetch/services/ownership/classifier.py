from typing import Iterable, Mapping, NamedTuple, Optional

from iamfetch.services.ownership.cfn_index import CfnManagedResources, CfnResourceType

SERVICE_ROLE_MARKERS = ("AWSServiceRole", "aws-service-role")


class SkipDecision(NamedTuple):
    skip: bool
    reason: str = ""


class OwnershipClassifier:
    """
    Decides whether a discovered resource is managed elsewhere and should be
    left out of the snapshot.

    Checks run in a fixed order and the first match wins:

    1. a force-include tag keeps the resource, whatever follows
    2. a skip tag drops it
    3. a path under one of the skip prefixes drops it
    4. membership in the CloudFormation index drops it
    5. an AWS service-linked role marker in the identifier drops it

    Anything else is kept. The classifier never raises; callers log the
    reason and move on.
    """

    def __init__(
        self,
        skip_tagged: Iterable[str] = (),
        include_tagged: Iterable[str] = (),
        skip_path_prefixes: Iterable[str] = (),
        managed_resources: Optional[CfnManagedResources] = None,
    ):
        self.skip_tagged = list(skip_tagged)
        self.include_tagged = list(include_tagged)
        self.skip_path_prefixes = list(skip_path_prefixes)
        self.managed_resources = managed_resources

    def is_skippable(
        self,
        cfn_type: CfnResourceType,
        identifier: str,
        tags: Optional[Mapping[str, str]],
        path: str,
    ) -> SkipDecision:
        tags = tags or {}

        for tag in self.include_tagged:
            if tag in tags:
                return SkipDecision(False)

        for tag in self.skip_tagged:
            if tag in tags:
                return SkipDecision(True, f"Skipping resource {identifier} tagged with {tag} in stack {tags[tag]}")

        for prefix in self.skip_path_prefixes:
            if path.startswith(prefix):
                return SkipDecision(True, f"Skipping resource {identifier} with path {path} matches {prefix}")

        if self.managed_resources is not None and self.managed_resources.is_managed(cfn_type, identifier):
            return SkipDecision(True, f"CloudFormation generated resource {identifier}")

        if any(marker in identifier for marker in SERVICE_ROLE_MARKERS):
            return SkipDecision(True, f"AWS Service role generated resource {identifier}")

        return SkipDecision(False)
