import pytest
from unittest.mock import MagicMock

from cli_mirror.content import FileAttachment, InlineContent, MapAttachment, parse_content
from cli_mirror.errors import (
    BatchDeleteError,
    NotFoundError,
    PartialFailure,
    TransportError,
    ValidationError,
)
from cli_mirror.static_map import AttachmentPayload, MapQuery
from cli_mirror.timeline import BatchDeleter, TimelineClient


@pytest.fixture
def map_fetcher():
    fetcher = MagicMock()
    fetcher.fetch_query.return_value = AttachmentPayload("image/png", b"map")
    return fetcher


@pytest.fixture
def timeline(creds, map_fetcher):
    return TimelineClient(creds, map_fetcher)


def test_insert_text(timeline, fake_mirror):
    entry = timeline.insert(InlineContent("hello"))
    assert entry["id"] == "abc123"
    assert fake_mirror.calls == [
        ("insert", {"text": "hello", "menuItems": [{"action": "DELETE"}]}),
    ]


def test_insert_json(timeline, fake_mirror):
    timeline.insert(InlineContent('{"text":"x"}'), is_json=True)
    assert fake_mirror.calls == [("insert", {"text": "x"})]


def test_insert_bad_json_makes_no_call(timeline, fake_mirror):
    with pytest.raises(ValidationError):
        timeline.insert(InlineContent("{bad json"), is_json=True)
    assert fake_mirror.calls == []


def test_insert_missing_content_file_makes_no_call(timeline, fake_mirror, map_fetcher, tmp_path):
    with pytest.raises(NotFoundError):
        timeline.insert(parse_content(f"@{tmp_path / 'missingfile.txt'}"),
                        MapAttachment(MapQuery.parse("0", "0")))
    assert fake_mirror.calls == []
    map_fetcher.fetch_query.assert_not_called()


def test_insert_missing_attachment_makes_no_call(timeline, fake_mirror, tmp_path):
    with pytest.raises(NotFoundError):
        timeline.insert(InlineContent("hello"), FileAttachment(tmp_path / "photo.jpg"))
    assert fake_mirror.calls == []


def test_insert_with_file_attachment_runs_in_order(timeline, fake_mirror, tmp_path):
    photo = tmp_path / "photo.jpg"
    photo.write_bytes(b"jpeg bytes")
    timeline.insert(InlineContent("hello"), FileAttachment(photo))
    assert [call[0] for call in fake_mirror.calls] == ["insert", "attach"]
    assert fake_mirror.calls[1] == ("attach", "abc123", "image/jpeg", b"jpeg bytes")


def test_insert_with_map_fetches_before_writing(timeline, fake_mirror, map_fetcher):
    query = MapQuery.parse("48.2", "16.37", "M", "-")
    map_fetcher.fetch_query.side_effect = lambda q: (
        fake_mirror.calls.append(("map",)) or AttachmentPayload("image/png", b"map"))

    timeline.insert(InlineContent("here"), MapAttachment(query))

    map_fetcher.fetch_query.assert_called_once_with(query)
    assert [call[0] for call in fake_mirror.calls] == ["map", "insert", "attach"]


def test_map_failure_leaves_no_entry(timeline, fake_mirror, map_fetcher):
    map_fetcher.fetch_query.side_effect = TransportError("Error fetching map image: down")
    with pytest.raises(TransportError):
        timeline.insert(InlineContent("here"), MapAttachment(MapQuery.parse("0", "0")))
    assert fake_mirror.items == {}


def test_attachment_failure_is_partial_and_not_rolled_back(timeline, fake_mirror):
    fake_mirror.fail_attachment = TransportError("Error adding attachment: reset")

    with pytest.raises(PartialFailure) as exc_info:
        timeline.insert(InlineContent("hello"),
                        MapAttachment(MapQuery.parse("0", "0")))

    assert exc_info.value.entry_id == "abc123"
    assert isinstance(exc_info.value.cause, TransportError)
    entry = timeline.get("abc123")
    assert entry["text"] == "hello"
    assert "attachments" not in entry
    assert ("delete", "abc123") not in fake_mirror.calls


def test_update_patches_existing_entry(timeline, fake_mirror):
    fake_mirror.items["e1"] = {"id": "e1", "text": "old"}
    entry = timeline.update("e1", InlineContent("new"))
    assert entry["text"] == "new"
    assert fake_mirror.calls[0][0:2] == ("patch", "e1")


def test_update_unknown_entry(timeline, fake_mirror):
    with pytest.raises(NotFoundError):
        timeline.update("nope", InlineContent("x"))


def test_update_attachment_failure_is_partial(timeline, fake_mirror):
    fake_mirror.items["e1"] = {"id": "e1", "text": "old"}
    fake_mirror.fail_attachment = TransportError("boom")
    with pytest.raises(PartialFailure) as exc_info:
        timeline.update("e1", InlineContent("new"), MapAttachment(MapQuery.parse("0", "0")))
    assert exc_info.value.entry_id == "e1"
    assert fake_mirror.items["e1"]["text"] == "new"


def test_get_and_delete_unknown(timeline, fake_mirror):
    with pytest.raises(NotFoundError):
        timeline.get("nope")
    with pytest.raises(NotFoundError):
        timeline.delete("nope")


def test_list_ids(timeline, fake_mirror):
    fake_mirror.items = {"a": {"id": "a"}, "b": {"id": "b"}}
    assert timeline.list_ids() == ["a", "b"]


def test_delete_all(timeline, fake_mirror):
    fake_mirror.items = {i: {"id": i} for i in ("A", "B", "C")}
    assert BatchDeleter(timeline).delete_all() == 3
    assert fake_mirror.items == {}
    assert fake_mirror.calls == [("list",), ("delete", "A"), ("delete", "B"), ("delete", "C")]


def test_delete_all_on_empty_timeline(timeline, fake_mirror):
    assert BatchDeleter(timeline).delete_all() == 0


def test_delete_all_stops_at_first_failure(timeline, fake_mirror):
    fake_mirror.items = {i: {"id": i} for i in ("A", "B", "C")}
    fake_mirror.fail_delete["B"] = TransportError("Error deleting timeline item B: reset")

    with pytest.raises(BatchDeleteError) as exc_info:
        BatchDeleter(timeline).delete_all()

    assert exc_info.value.deleted == 1
    assert exc_info.value.entry_id == "B"
    assert "A" not in fake_mirror.items
    assert set(fake_mirror.items) == {"B", "C"}
    assert ("delete", "C") not in fake_mirror.calls
