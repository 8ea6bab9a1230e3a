"""
Unit tests for remote item decoding (tagged union on metadata.type).
"""

import pytest

from memkeep.mirror.records import (
    RemoteMemory,
    RemoteProfileSnapshot,
    RemoteSummary,
    UnrecognizedItem,
    decode_item,
    decode_items,
    extract_results,
)


def test_plain_memory_has_no_type():
    item = decode_item({"id": 7, "memory": "likes tea", "metadata": {"scope": "project:x"}})

    assert isinstance(item, RemoteMemory)
    assert item.id == "7"
    record = item.to_record()
    assert record.scope == "project:x"
    assert record.tags == []
    assert record.source.agent == "unknown"


def test_missing_metadata_defaults_to_global():
    record = decode_item({"id": "m", "memory": "x"}).to_record()
    assert record.scope == "global"


def test_profile_snapshot_variant():
    item = decode_item({
        "id": "p",
        "memory": '{"identity": {"name": "Ada"}}',
        "metadata": {"type": "profile-snapshot", "timestamp": "2025-01-01T00:00:00.000Z"},
    })

    assert isinstance(item, RemoteProfileSnapshot)
    snapshot = item.to_snapshot()
    assert snapshot.profile.identity.name == "Ada"
    assert snapshot.timestamp == "2025-01-01T00:00:00.000Z"


def test_profile_snapshot_invalid_json_raises_value_error():
    item = decode_item({"id": "p", "memory": "nope", "metadata": {"type": "profile-snapshot"}})
    with pytest.raises(ValueError):
        item.to_snapshot()


def test_summary_variant():
    item = decode_item({
        "id": "s",
        "memory": "Activity summary for global",
        "metadata": {"type": "activity-summary", "scope": "global", "memory_count": "4",
                     "timestamp": "2025-01-01T00:00:00.000Z"},
    })

    assert isinstance(item, RemoteSummary)
    summary = item.to_summary()
    assert summary.memory_count == 4
    assert summary.remote_id == "s"


def test_unknown_type_is_unrecognized():
    item = decode_item({"id": "u", "memory": "?", "metadata": {"type": "investigation"}})
    assert isinstance(item, UnrecognizedItem)
    assert item.type_tag == "investigation"


def test_extract_results_shapes():
    assert extract_results([{"id": 1}]) == [{"id": 1}]
    assert extract_results({"results": [{"id": 2}]}) == [{"id": 2}]
    assert extract_results({"message": "ok"}) == []
    assert extract_results(None) == []


def test_decode_items_skips_non_dicts():
    items = decode_items([{"id": "a", "memory": "x"}, "garbage", 3])
    assert len(items) == 1


def test_non_dict_metadata_is_plain_memory():
    item = decode_item({"id": "m", "memory": "x", "metadata": "oops"})

    assert isinstance(item, RemoteMemory)
    assert item.to_record().scope == "global"


def test_summary_with_bad_count_is_unrecognized():
    item = decode_item({
        "id": "s",
        "memory": "Activity summary",
        "metadata": {"type": "activity-summary", "memory_count": "many"},
    })

    assert isinstance(item, UnrecognizedItem)
    assert item.type_tag == "malformed"
    assert item.id == "s"


def test_snapshot_with_non_string_timestamp_is_unrecognized():
    item = decode_item({
        "id": "p",
        "memory": "{}",
        "metadata": {"type": "profile-snapshot", "timestamp": {"at": 1}},
    })
    assert isinstance(item, UnrecognizedItem)


def test_memory_with_non_string_content_is_unrecognized():
    assert isinstance(decode_item({"id": "m", "memory": ["a", "b"]}), UnrecognizedItem)
    assert isinstance(decode_item({"id": "m", "memory": "x", "metadata": {"scope": 5}}), UnrecognizedItem)


def test_decode_items_keeps_going_past_malformed_entries():
    items = decode_items([
        {"id": "bad", "metadata": {"type": "activity-summary", "memory_count": "many"}},
        {"id": "ok", "memory": "fine"},
    ])

    assert [type(i) for i in items] == [UnrecognizedItem, RemoteMemory]


def test_string_tag_is_one_tag():
    record = decode_item({"id": "m", "memory": "x", "metadata": {"tags": "ab"}}).to_record()
    assert record.tags == ["ab"]


def test_tag_list_drops_non_strings():
    record = decode_item({"id": "m", "memory": "x", "metadata": {"tags": ["a", 3, None, "b"]}}).to_record()
    assert record.tags == ["a", "b"]
