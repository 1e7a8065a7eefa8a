# tests/unit/services/clients/test_s3_client.py

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from iamfetch.services.clients.s3_client import Bucket, S3Client


def _client_error(code):
    return ClientError({"Error": {"Code": code, "Message": code}}, "Operation")


@pytest.fixture
def s3():
    client = MagicMock()
    client.list_buckets.return_value = {"Buckets": [{"Name": "assets"}, {"Name": "logs"}]}
    client.get_bucket_location.side_effect = lambda Bucket: {
        "assets": {"LocationConstraint": None},
        "logs": {"LocationConstraint": "eu-west-2"},
    }[Bucket]
    return client


@pytest.fixture
def regional():
    def get_bucket_policy(Bucket):
        if Bucket != "assets":
            raise _client_error("NoSuchBucketPolicy")
        return {"Policy": '{"Statement": []}'}

    def get_bucket_tagging(Bucket):
        if Bucket != "assets":
            raise _client_error("NoSuchTagSet")
        return {"TagSet": [{"Key": "team", "Value": "web"}]}

    client = MagicMock()
    client.get_bucket_policy.side_effect = get_bucket_policy
    client.get_bucket_tagging.side_effect = get_bucket_tagging
    return client


def test_list_all_buckets(s3, regional):
    factory = MagicMock(return_value=regional)

    buckets = S3Client(s3, factory, max_workers=2).list_all_buckets()

    assert buckets == [
        Bucket(name="assets", policy_json='{"Statement": []}', tags={"team": "web"}),
        Bucket(name="logs", policy_json="", tags={}),
    ]
    factory.assert_any_call("us-east-1")
    factory.assert_any_call("eu-west-2")
    assert factory.call_count == 2


def test_regional_client_reused(s3, regional):
    s3.get_bucket_location.side_effect = None
    s3.get_bucket_location.return_value = {"LocationConstraint": "EU"}
    factory = MagicMock(return_value=regional)

    S3Client(s3, factory).list_all_buckets()

    factory.assert_called_once_with("eu-west-1")


def test_no_buckets(s3):
    s3.list_buckets.return_value = {"Buckets": []}
    assert S3Client(s3, MagicMock()).list_all_buckets() == []


def test_other_errors_propagate(s3, regional):
    regional.get_bucket_policy.side_effect = _client_error("AccessDenied")
    with pytest.raises(ClientError):
        S3Client(s3, MagicMock(return_value=regional)).list_all_buckets()
