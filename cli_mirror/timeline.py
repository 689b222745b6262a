import logging
from typing import Any, Dict, List, Optional

from cli_mirror import mirror_api
from cli_mirror.content import (
    AttachmentSource,
    Content,
    FileAttachment,
    MapAttachment,
    build_body,
    read_attachment_file,
)
from cli_mirror.errors import BatchDeleteError, GlassError, PartialFailure
from cli_mirror.static_map import AttachmentPayload, MapImageFetcher

logger = logging.getLogger(__name__)

TimelineEntry = Dict[str, Any]


class TimelineClient:
    """
    Timeline CRUD against the Mirror API for one set of credentials.

    insert/update are two-phase writes: the entry is written first, the
    attachment uploaded second. If the upload fails the entry stays as
    written and PartialFailure carries its id.
    """

    def __init__(self, creds, map_fetcher: Optional[MapImageFetcher] = None):
        self.creds = creds
        self.map_fetcher = map_fetcher or MapImageFetcher()

    def list(self) -> List[TimelineEntry]:
        return mirror_api.list_timeline(self.creds)

    def list_ids(self) -> List[str]:
        return [item["id"] for item in self.list()]

    def get(self, item_id: str) -> TimelineEntry:
        return mirror_api.get_timeline_item(self.creds, item_id)

    def insert(self, content: Content, attachment: AttachmentSource = None,
               is_json: bool = False) -> TimelineEntry:
        body = build_body(content, is_json)
        payload = self.resolve_attachment(attachment)
        return self.insert_body(body, payload)

    def insert_body(self, body: dict, payload: Optional[AttachmentPayload] = None) -> TimelineEntry:
        entry = mirror_api.insert_timeline_item(self.creds, body)
        logger.debug("Inserted timeline item %s", entry.get("id"))
        return self._attach(entry, payload)

    def update(self, item_id: str, content: Content, attachment: AttachmentSource = None,
               is_json: bool = False) -> TimelineEntry:
        body = build_body(content, is_json)
        payload = self.resolve_attachment(attachment)
        return self.patch_body(item_id, body, payload)

    def patch_body(self, item_id: str, body: dict,
                   payload: Optional[AttachmentPayload] = None) -> TimelineEntry:
        entry = mirror_api.patch_timeline_item(self.creds, item_id, body)
        logger.debug("Patched timeline item %s", entry.get("id"))
        return self._attach(entry, payload)

    def delete(self, item_id: str):
        mirror_api.delete_timeline_item(self.creds, item_id)
        logger.debug("Deleted timeline item %s", item_id)

    def resolve_attachment(self, attachment: AttachmentSource) -> Optional[AttachmentPayload]:
        # runs before the entry is written so bad input never leaves half an entry
        if isinstance(attachment, FileAttachment):
            return read_attachment_file(attachment)
        if isinstance(attachment, MapAttachment):
            logger.info("Using generated map image as attachment")
            return self.map_fetcher.fetch_query(attachment.query)
        return None

    def _attach(self, entry: TimelineEntry, payload: Optional[AttachmentPayload]) -> TimelineEntry:
        if payload is None:
            return entry

        logger.debug("Add attachment (%s, %d bytes) to timeline id: %s",
                     payload.mime_type, len(payload.content), entry.get("id"))
        try:
            mirror_api.insert_attachment(self.creds, entry["id"], payload.mime_type, payload.content)
        except GlassError as e:
            raise PartialFailure(entry, e)
        return entry


class BatchDeleter:
    """
    Deletes every timeline entry, one after the other in list order.
    Stops at the first failure; entries already deleted stay deleted.
    """

    def __init__(self, timeline: TimelineClient):
        self.timeline = timeline

    def delete_all(self) -> int:
        entries = self.timeline.list()
        deleted = 0
        for entry in entries:
            try:
                self.timeline.delete(entry["id"])
            except GlassError as e:
                raise BatchDeleteError(deleted, entry["id"], e)
            deleted += 1
        logger.info("Deleted %d timeline entries", deleted)
        return deleted
