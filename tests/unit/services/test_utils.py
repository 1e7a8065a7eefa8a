# tests/unit/services/test_utils.py

import threading

import pytest

from iamfetch.services.utils import FirstErrorCollector, chunked, format_tags


def test_format_tags():
    assert format_tags([{"Key": "team", "Value": "ops"}, {"Key": "broken"}]) == {"team": "ops"}
    assert format_tags(None) == {}
    assert format_tags([]) == {}


def test_chunked():
    assert list(chunked(range(5), 2)) == [[0, 1], [2, 3], [4]]
    assert list(chunked([], 3)) == []


def test_first_error_wins():
    errors = FirstErrorCollector()
    first = ValueError("first")
    errors.record(first)
    errors.record(RuntimeError("second"))
    assert errors.error is first
    with pytest.raises(ValueError, match="first"):
        errors.raise_if_set()


def test_no_error_no_raise():
    FirstErrorCollector().raise_if_set()


def test_concurrent_records_keep_one():
    errors = FirstErrorCollector()
    recorded = [ValueError(str(i)) for i in range(20)]
    threads = [threading.Thread(target=errors.record, args=(e,)) for e in recorded]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert errors.error in recorded
