import json
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Union

from cli_mirror.errors import NotFoundError, ValidationError
from cli_mirror.static_map import UNSET, AttachmentPayload, MapQuery

logger = logging.getLogger(__name__)

DEFAULT_ATTACHMENT_MIME = "application/octet-stream"


@dataclass(frozen=True)
class InlineContent:
    text: str


@dataclass(frozen=True)
class FileContent:
    path: Path


@dataclass(frozen=True)
class FileAttachment:
    path: Path


@dataclass(frozen=True)
class MapAttachment:
    query: MapQuery


Content = Union[InlineContent, FileContent]
AttachmentSource = Optional[Union[FileAttachment, MapAttachment]]


def parse_content(raw: str) -> Content:
    """
    "@path" reads the entry content from a file, anything else is literal.
    """
    if raw.startswith("@"):
        return FileContent(Path(raw[1:]))
    return InlineContent(raw)


def parse_attachment(raw: Optional[str], position: Optional[Sequence] = None) -> AttachmentSource:
    """
    Turn the attachment argument and the optional position
    (lat, lon, marker, zoom) into an attachment source.
    "-" or nothing means no file; a position then becomes a map image.
    """
    if raw and raw != UNSET:
        if position:
            logger.warning("Attachment file %s given, ignoring position", raw)
        return FileAttachment(Path(raw))
    if position:
        return MapAttachment(MapQuery.parse(*position))
    return None


def read_content(content: Content) -> str:
    if isinstance(content, FileContent):
        if not content.path.is_file():
            raise NotFoundError(f"Timeline entry content file ({content.path}) not found")
        try:
            return content.path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise ValidationError(f"Timeline entry content file ({content.path}) is not UTF-8: {e}")
        except OSError as e:
            raise NotFoundError(f"Unable to read timeline entry content file ({content.path}): {e}")
    return content.text


def build_body(content: Content, is_json: bool = False) -> dict:
    """
    Request body for a timeline insert or patch. JSON content is sent
    verbatim; plain text becomes a card the user can delete.
    """
    text = read_content(content)
    if is_json:
        try:
            body = json.loads(text)
        except ValueError as e:
            raise ValidationError(f"Timeline entry is not valid JSON: {e}")
        if not isinstance(body, dict):
            raise ValidationError("Timeline entry JSON must be an object")
        return body
    return {
        "text": text,
        "menuItems": [{"action": "DELETE"}]
    }


def read_attachment_file(attachment: FileAttachment) -> AttachmentPayload:
    path = attachment.path
    if not path.is_file():
        raise NotFoundError(f"Attachment file ({path}) not found")
    mime_type, _ = mimetypes.guess_type(str(path))
    try:
        with open(path, "rb") as f:
            content = f.read()
    except OSError as e:
        raise NotFoundError(f"Unable to read attachment file ({path}): {e}")
    return AttachmentPayload(mime_type=mime_type or DEFAULT_ATTACHMENT_MIME, content=content)
