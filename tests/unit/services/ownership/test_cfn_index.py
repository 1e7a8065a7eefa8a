# tests/unit/services/ownership/test_cfn_index.py

from unittest.mock import MagicMock

import pytest

from iamfetch.services.ownership.cfn_index import ACTIVE_STACK_STATUSES, CfnManagedResources, CfnResourceType


@pytest.fixture
def cfn_client():
    client = MagicMock()
    stacks_paginator = MagicMock()
    stacks_paginator.paginate.return_value = [
        {"StackSummaries": [{"StackName": "infra"}, {"StackName": "web"}]},
    ]
    resources_by_stack = {
        "infra": [{"StackResourceSummaries": [
            {"ResourceType": "AWS::IAM::Role", "PhysicalResourceId": "infra-AppRole-1ABC"},
            {"ResourceType": "AWS::IAM::ManagedPolicy", "PhysicalResourceId": "arn:aws:iam::123456789012:policy/infra-Deploy-2DEF"},
            {"ResourceType": "AWS::EC2::Instance", "PhysicalResourceId": "i-123"},
        ]}],
        "web": [{"StackResourceSummaries": [
            {"ResourceType": "AWS::S3::Bucket", "PhysicalResourceId": "web-assets"},
            {"ResourceType": "AWS::IAM::User", "PhysicalResourceId": None},
        ]}],
    }
    resources_paginator = MagicMock()
    resources_paginator.paginate.side_effect = lambda StackName: resources_by_stack[StackName]

    client.get_paginator.side_effect = lambda name: {
        "list_stacks": stacks_paginator,
        "list_stack_resources": resources_paginator,
    }[name]
    return client


def test_empty_before_populate(cfn_client):
    index = CfnManagedResources(cfn_client)
    assert index.populated is False
    assert index.is_managed(CfnResourceType.IAM_ROLE, "infra-AppRole-1ABC") is False


def test_populate(cfn_client):
    index = CfnManagedResources(cfn_client)
    index.populate()

    assert index.populated is True
    assert index.is_managed(CfnResourceType.IAM_ROLE, "infra-AppRole-1ABC") is True
    assert index.is_managed(CfnResourceType.IAM_POLICY, "infra-Deploy-2DEF") is True
    assert index.is_managed(CfnResourceType.S3_BUCKET, "web-assets") is True
    assert index.is_managed(CfnResourceType.IAM_USER, "infra-AppRole-1ABC") is False


def test_deleted_stacks_excluded(cfn_client):
    CfnManagedResources(cfn_client).populate()
    stacks_paginator = cfn_client.get_paginator("list_stacks")
    stacks_paginator.paginate.assert_called_once_with(StackStatusFilter=ACTIVE_STACK_STATUSES)
    assert "DELETE_COMPLETE" not in ACTIVE_STACK_STATUSES


def test_populate_error_propagates(cfn_client):
    cfn_client.get_paginator.side_effect = Exception("AccessDenied")
    with pytest.raises(Exception, match="AccessDenied"):
        CfnManagedResources(cfn_client).populate()
