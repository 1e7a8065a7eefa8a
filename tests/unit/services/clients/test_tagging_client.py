# tests/unit/services/clients/test_tagging_client.py

from unittest.mock import MagicMock

from iamfetch.services.clients.tagging_client import MAX_ARNS_PER_REQUEST, TaggingClient


def test_batches_requests():
    client = MagicMock()
    client.get_resources.return_value = {"ResourceTagMappingList": []}
    arns = [f"arn:aws:iam::1:policy/p{i}" for i in range(MAX_ARNS_PER_REQUEST + 1)]

    TaggingClient(client).get_multiple_policy_tags(arns)

    assert client.get_resources.call_count == 2
    first_batch = client.get_resources.call_args_list[0].kwargs["ResourceARNList"]
    second_batch = client.get_resources.call_args_list[1].kwargs["ResourceARNList"]
    assert len(first_batch) == MAX_ARNS_PER_REQUEST
    assert second_batch == [arns[-1]]


def test_maps_arns_to_tags():
    client = MagicMock()
    client.get_resources.return_value = {"ResourceTagMappingList": [
        {"ResourceARN": "arn:aws:iam::1:policy/a", "Tags": [{"Key": "team", "Value": "ops"}]},
    ]}

    result = TaggingClient(client).get_multiple_policy_tags(["arn:aws:iam::1:policy/a", "arn:aws:iam::1:policy/b"])

    assert result == {"arn:aws:iam::1:policy/a": {"team": "ops"}}


def test_no_arns_no_calls():
    client = MagicMock()
    assert TaggingClient(client).get_multiple_policy_tags([]) == {}
    client.get_resources.assert_not_called()
