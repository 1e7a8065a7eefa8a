# tests/unit/models/test_account_data.py

import pytest

from iamfetch.core.exceptions import AccountParseError, DuplicateResourceError, SnapshotFrozenError
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
    arn,
)

DOC = PolicyDocument({"Version": "2012-10-17", "Statement": []})


@pytest.fixture
def data():
    return AccountData(Account(id="123456789012", alias="prod"))


def test_from_account_string():
    data = AccountData.from_account_string("prod-123456789012")
    assert data.account == Account(id="123456789012", alias="prod")
    assert data.users == ()


def test_from_account_string_malformed():
    with pytest.raises(AccountParseError):
        AccountData.from_account_string("prod-")


def test_insertion_order_kept(data):
    for name in ["c", "a", "b"]:
        data.add_user(User(name=name, path="/"))
    assert [u.name for u in data.users] == ["c", "a", "b"]


def test_same_name_different_path_allowed(data):
    data.add_role(Role(name="app", path="/"))
    data.add_role(Role(name="app", path="/team/"))
    assert len(data.roles) == 2


def test_duplicate_name_and_path_rejected(data):
    data.add_policy(Policy(name="deploy", path="/"))
    with pytest.raises(DuplicateResourceError):
        data.add_policy(Policy(name="deploy", path="/"))


def test_duplicate_bucket_rejected(data):
    data.add_bucket_policy(BucketPolicy(bucket_name="assets", policy=DOC))
    with pytest.raises(DuplicateResourceError):
        data.add_bucket_policy(BucketPolicy(bucket_name="assets", policy=DOC))


def test_lookups(data):
    user = User(name="alice", path="/")
    group = Group(name="admins", path="/")
    profile = InstanceProfile(name="web", path="/", roles=["app"])
    bucket_policy = BucketPolicy(bucket_name="assets", policy=DOC)
    data.add_user(user)
    data.add_group(group)
    data.add_instance_profile(profile)
    data.add_bucket_policy(bucket_policy)

    assert data.find_user_by_name("alice", "/") == (True, user)
    assert data.find_user_by_name("alice", "/other/") == (False, None)
    assert data.find_group_by_name("admins", "/") == (True, group)
    assert data.find_role_by_name("admins", "/") == (False, None)
    assert data.find_policy_by_name("x", "/") == (False, None)
    assert data.find_instance_profile_by_name("web", "/") == (True, profile)
    assert data.find_bucket_policy_by_bucket_name("assets") == (True, bucket_policy)


def test_freeze(data):
    data.add_user(User(name="alice", path="/"))
    data.freeze()
    assert data.frozen is True
    with pytest.raises(SnapshotFrozenError):
        data.add_group(Group(name="admins", path="/"))
    with pytest.raises(SnapshotFrozenError):
        data.add_bucket_policy(BucketPolicy(bucket_name="assets", policy=DOC))
    assert len(data.users) == 1


def test_accessors_are_read_only(data):
    data.add_user(User(name="alice", path="/"))
    assert isinstance(data.users, tuple)


def test_summary(data):
    data.add_user(User(name="alice", path="/"))
    data.add_policy(Policy(name="deploy", path="/"))
    assert data.summary() == {
        "users": 1, "groups": 0, "roles": 0, "policies": 1, "instance_profiles": 0, "bucket_policies": 0,
    }


@pytest.mark.parametrize("resource, service, expected", [
    (User(name="alice", path="/"), "iam", "arn:aws:iam::123456789012:user/alice"),
    (Group(name="admins", path="/ops/"), "iam", "arn:aws:iam::123456789012:group/ops/admins"),
    (Role(name="app", path="/"), "iam", "arn:aws:iam::123456789012:role/app"),
    (Policy(name="deploy", path="/"), "iam", "arn:aws:iam::123456789012:policy/deploy"),
    (InstanceProfile(name="web", path="/"), "iam", "arn:aws:iam::123456789012:instance-profile/web"),
    (BucketPolicy(bucket_name="assets", policy=DOC), "s3", "arn:aws:iam::123456789012:/assets"),
])
def test_resource_identifiers(resource, service, expected):
    assert resource.service == service
    assert arn(resource, Account(id="123456789012")) == expected


def test_serialized_form_uses_pascal_case_without_name_and_path():
    role = Role(
        name="app",
        path="/",
        assume_role_policy_document=DOC,
        inline_policies=[InlinePolicy(name="inline", policy=DOC)],
        max_session_duration=3600,
    )
    dumped = role.model_dump(by_alias=True, exclude_none=True)
    assert "Name" not in dumped and "Path" not in dumped
    assert dumped["AssumeRolePolicyDocument"] == DOC.document
    assert dumped["InlinePolicies"] == [{"Name": "inline", "Policy": DOC.document}]
    assert dumped["MaxSessionDuration"] == 3600
    assert "Description" not in dumped
