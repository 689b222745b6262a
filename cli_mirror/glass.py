import logging
from pathlib import Path
from typing import List, Optional, Sequence

from cli_mirror.auth import AuthClient
from cli_mirror.config import APP_CONFIG_FILE, AppCredential, load_app_config
from cli_mirror.content import (
    FileAttachment,
    build_body,
    parse_attachment,
    parse_content,
    read_attachment_file,
)
from cli_mirror.static_map import MapImageFetcher
from cli_mirror.timeline import BatchDeleter, TimelineClient, TimelineEntry
from cli_mirror.token_store import TokenCredential, TokenStore

logger = logging.getLogger(__name__)


class Glass:
    """
    Main class for talking to one Google Glass through the Mirror API:
     - connect (stored tokens or interactive authorization)
     - list / get / insert / update / delete timeline entries
     - delete the whole timeline
    """

    def __init__(
        self,
        glass_id: Optional[str] = None,
        app_config: Optional[AppCredential] = None,
        credential: Optional[TokenCredential] = None,
        app_config_file: Path = APP_CONFIG_FILE,
        store: Optional[TokenStore] = None,
        map_fetcher: Optional[MapImageFetcher] = None,
        **auth_options,
    ):
        self.glass_id = glass_id
        self.app_config = app_config
        self.app_config_file = app_config_file
        self.credential = credential
        self.store = store or TokenStore()
        self.map_fetcher = map_fetcher or MapImageFetcher()
        self.auth_options = auth_options

        self.auth: Optional[AuthClient] = None
        self.timeline: Optional[TimelineClient] = None

    def connect(self):
        """
        Make sure there are tokens for this Glass (asking the operator
        to authorize if needed) and set up the timeline client.
        """
        if self.timeline is not None:
            return

        if self.app_config is None:
            self.app_config = load_app_config(self.app_config_file)

        self.auth = AuthClient(
            self.app_config,
            self.store,
            glass_id=self.glass_id,
            credential=self.credential,
            **self.auth_options,
        )
        self.auth.ensure_credential()
        self.timeline = TimelineClient(self.auth.google_credentials(), self.map_fetcher)

    def _timeline(self) -> TimelineClient:
        self.connect()
        return self.timeline

    def _done(self):
        if self.auth is None:
            return
        try:
            self.auth.save_if_refreshed()
        except OSError as e:
            # the operation's own result or error wins
            logger.error("Unable to save refreshed Google OAuth tokens: %s", e)

    def _prepare(self, content, attachment, position, is_json):
        """
        Everything that can be checked locally, before authorizing or
        calling the API: the request body and a file attachment.
        """
        source = parse_attachment(attachment, position)
        body = build_body(parse_content(content), is_json)
        payload = None
        if isinstance(source, FileAttachment):
            payload = read_attachment_file(source)
        return body, source, payload

    # -----------------------------
    # TIMELINE OPERATIONS
    # -----------------------------

    def list_timeline(self) -> List[TimelineEntry]:
        try:
            return self._timeline().list()
        finally:
            self._done()

    def list_timeline_ids(self) -> List[str]:
        try:
            return self._timeline().list_ids()
        finally:
            self._done()

    def get_entry(self, entry_id: str) -> TimelineEntry:
        try:
            return self._timeline().get(entry_id)
        finally:
            self._done()

    def insert_entry(self, content: str, attachment: Optional[str] = None,
                     position: Optional[Sequence] = None, is_json: bool = False) -> TimelineEntry:
        """
        content: text, JSON, or "@file". attachment: a file path or "-".
        position: (lat, lon, marker, zoom) to attach a map instead.
        """
        body, source, payload = self._prepare(content, attachment, position, is_json)
        timeline = self._timeline()
        try:
            if payload is None:
                payload = timeline.resolve_attachment(source)
            return timeline.insert_body(body, payload)
        finally:
            self._done()

    def update_entry(self, entry_id: str, content: str, attachment: Optional[str] = None,
                     position: Optional[Sequence] = None, is_json: bool = False) -> TimelineEntry:
        body, source, payload = self._prepare(content, attachment, position, is_json)
        timeline = self._timeline()
        try:
            if payload is None:
                payload = timeline.resolve_attachment(source)
            return timeline.patch_body(entry_id, body, payload)
        finally:
            self._done()

    def delete_entry(self, entry_id: str):
        try:
            self._timeline().delete(entry_id)
        finally:
            self._done()

    def delete_all(self) -> int:
        try:
            return BatchDeleter(self._timeline()).delete_all()
        finally:
            self._done()
