import pytest
from unittest.mock import MagicMock

from cli_mirror import mirror_api
from cli_mirror.config import AppCredential
from cli_mirror.errors import NotFoundError
from cli_mirror.token_store import TokenStore


@pytest.fixture
def app():
    return AppCredential(
        client_id="client-id.apps.googleusercontent.com",
        client_secret="s3cret",
        redirect_uri="urn:ietf:wg:oauth:2.0:oob",
    )


@pytest.fixture
def store(tmp_path):
    return TokenStore(tmp_path / "glasses")


@pytest.fixture
def creds():
    mock_creds = MagicMock()
    mock_creds.valid = True
    mock_creds.token = "access-token"
    return mock_creds


class FakeMirror:
    """
    In-memory stand-in for the Mirror API functions. Records every
    call in order so tests can check sequencing.
    """

    def __init__(self, items=None):
        self.items = {item["id"]: dict(item) for item in (items or [])}
        self.calls = []
        self.fail_attachment = None
        self.fail_delete = {}
        self.next_id = "abc123"

    def list_timeline(self, creds):
        self.calls.append(("list",))
        return [dict(item) for item in self.items.values()]

    def get_timeline_item(self, creds, item_id):
        self.calls.append(("get", item_id))
        if item_id not in self.items:
            raise NotFoundError(f"Error getting timeline item {item_id}: not found")
        return dict(self.items[item_id])

    def insert_timeline_item(self, creds, body):
        self.calls.append(("insert", body))
        entry = dict(body, id=self.next_id)
        self.items[entry["id"]] = entry
        return dict(entry)

    def patch_timeline_item(self, creds, item_id, body):
        self.calls.append(("patch", item_id, body))
        if item_id not in self.items:
            raise NotFoundError(f"Error updating timeline item {item_id}: not found")
        self.items[item_id].update(body)
        return dict(self.items[item_id])

    def delete_timeline_item(self, creds, item_id):
        self.calls.append(("delete", item_id))
        if item_id in self.fail_delete:
            raise self.fail_delete[item_id]
        if item_id not in self.items:
            raise NotFoundError(f"Error deleting timeline item {item_id}: not found")
        del self.items[item_id]

    def insert_attachment(self, creds, item_id, mime_type, content):
        self.calls.append(("attach", item_id, mime_type, content))
        if self.fail_attachment:
            raise self.fail_attachment
        self.items[item_id].setdefault("attachments", []).append(
            {"id": "att1", "contentType": mime_type})
        return {"id": "att1", "contentType": mime_type}


@pytest.fixture
def fake_mirror(monkeypatch):
    fake = FakeMirror()
    for name in ("list_timeline", "get_timeline_item", "insert_timeline_item",
                 "patch_timeline_item", "delete_timeline_item", "insert_attachment"):
        monkeypatch.setattr(mirror_api, name, getattr(fake, name))
    return fake
