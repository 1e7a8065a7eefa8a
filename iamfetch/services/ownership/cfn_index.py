from enum import Enum
from typing import Any, Dict, Set

from loguru import logger


class CfnResourceType(str, Enum):
    IAM_USER = "AWS::IAM::User"
    IAM_GROUP = "AWS::IAM::Group"
    IAM_ROLE = "AWS::IAM::Role"
    IAM_POLICY = "AWS::IAM::ManagedPolicy"
    IAM_INSTANCE_PROFILE = "AWS::IAM::InstanceProfile"
    S3_BUCKET = "AWS::S3::Bucket"


# Every stack status except the one for stacks that no longer own anything
ACTIVE_STACK_STATUSES = [
    "CREATE_IN_PROGRESS", "CREATE_FAILED", "CREATE_COMPLETE",
    "ROLLBACK_IN_PROGRESS", "ROLLBACK_FAILED", "ROLLBACK_COMPLETE",
    "DELETE_IN_PROGRESS", "DELETE_FAILED",
    "UPDATE_IN_PROGRESS", "UPDATE_COMPLETE_CLEANUP_IN_PROGRESS", "UPDATE_COMPLETE",
    "UPDATE_FAILED", "UPDATE_ROLLBACK_IN_PROGRESS", "UPDATE_ROLLBACK_FAILED",
    "UPDATE_ROLLBACK_COMPLETE_CLEANUP_IN_PROGRESS", "UPDATE_ROLLBACK_COMPLETE",
    "REVIEW_IN_PROGRESS",
    "IMPORT_IN_PROGRESS", "IMPORT_COMPLETE", "IMPORT_ROLLBACK_IN_PROGRESS",
    "IMPORT_ROLLBACK_FAILED", "IMPORT_ROLLBACK_COMPLETE",
]


class CfnManagedResources:
    """
    Index of resources owned by CloudFormation stacks, keyed by resource type.

    Until `populate()` has run the index is empty and every lookup reports
    the resource as not managed.
    """

    def __init__(self, cfn_client: Any):
        self._client = cfn_client
        self._managed: Dict[CfnResourceType, Set[str]] = {t: set() for t in CfnResourceType}
        self.populated = False

    def populate(self) -> None:
        stack_count = 0
        stack_paginator = self._client.get_paginator('list_stacks')
        for page in stack_paginator.paginate(StackStatusFilter=ACTIVE_STACK_STATUSES):
            for stack_summary in page.get('StackSummaries', []):
                stack_name = stack_summary['StackName']
                logger.debug(f"Indexing resources for stack: {stack_name}")
                self._index_stack(stack_name)
                stack_count += 1
        self.populated = True
        counts = {t.name: len(ids) for t, ids in self._managed.items()}
        logger.info(f"Indexed CloudFormation resources from {stack_count} stacks: {counts}")

    def _index_stack(self, stack_name: str) -> None:
        resource_paginator = self._client.get_paginator('list_stack_resources')
        for page in resource_paginator.paginate(StackName=stack_name):
            for resource in page.get('StackResourceSummaries', []):
                physical_id = resource.get('PhysicalResourceId')
                if not physical_id:
                    continue
                try:
                    cfn_type = CfnResourceType(resource.get('ResourceType'))
                except ValueError:
                    continue
                self.add(cfn_type, physical_id)

    def add(self, cfn_type: CfnResourceType, physical_id: str) -> None:
        # Managed policies report their ARN as the physical id
        if cfn_type == CfnResourceType.IAM_POLICY and physical_id.startswith("arn:"):
            physical_id = physical_id.rsplit("/", 1)[-1]
        self._managed[cfn_type].add(physical_id)

    def is_managed(self, cfn_type: CfnResourceType, identifier: str) -> bool:
        return identifier in self._managed[cfn_type]
