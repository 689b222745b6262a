import logging
from typing import List

import requests
from google.auth import exceptions as google_exceptions
from google.auth.transport.requests import Request

from cli_mirror.config import MIRROR_API_URL, MIRROR_UPLOAD_URL
from cli_mirror.errors import ApiError, AuthError, NotFoundError, TransportError

logger = logging.getLogger(__name__)

TIMELINE_URL = f"{MIRROR_API_URL}/timeline"
REQUEST_TIMEOUT = 60


def get_headers(creds):
    """
    Return headers for authorized requests to the Mirror API.
    """
    if not creds.valid:
        try:
            creds.refresh(Request())
        except google_exceptions.TransportError as e:
            raise TransportError(f"Token refresh failed: {e}")
        except google_exceptions.GoogleAuthError as e:
            raise AuthError(f"Token refresh failed: {e}")
    return {
        "Authorization": f"Bearer {creds.token}",
        "Content-Type": "application/json"
    }


def _error_detail(resp):
    try:
        return resp.json().get("error", resp.text)
    except ValueError:
        return resp.text


def _call(method: str, url: str, creds, what: str, **kwargs):
    """
    Issue one request and map failures onto the client error kinds.
    Nothing is retried.
    """
    headers = get_headers(creds)
    headers.update(kwargs.pop("headers", {}))

    logger.debug("%s %s", method, url)
    try:
        resp = requests.request(method, url, headers=headers, timeout=REQUEST_TIMEOUT, **kwargs)
    except requests.RequestException as e:
        raise TransportError(f"Error {what}: {e}")

    if resp.status_code == 404:
        raise NotFoundError(f"Error {what}: not found", _error_detail(resp))
    if resp.status_code >= 400:
        detail = _error_detail(resp)
        message = detail.get("message") if isinstance(detail, dict) else None
        raise ApiError(f"Error {what}: {resp.status_code} {message or resp.reason}",
                       resp.status_code, detail)
    return resp


def list_timeline(creds) -> List[dict]:
    """
    List all timeline items. The Mirror API returns the whole set.
    """
    resp = _call("GET", TIMELINE_URL, creds, "listing timeline")
    return resp.json().get("items", [])


def get_timeline_item(creds, item_id: str) -> dict:
    resp = _call("GET", f"{TIMELINE_URL}/{item_id}", creds, f"getting timeline item {item_id}")
    return resp.json()


def insert_timeline_item(creds, body: dict) -> dict:
    resp = _call("POST", TIMELINE_URL, creds, "inserting timeline item", json=body)
    return resp.json()


def patch_timeline_item(creds, item_id: str, body: dict) -> dict:
    resp = _call("PATCH", f"{TIMELINE_URL}/{item_id}", creds,
                 f"updating timeline item {item_id}", json=body)
    return resp.json()


def delete_timeline_item(creds, item_id: str):
    _call("DELETE", f"{TIMELINE_URL}/{item_id}", creds, f"deleting timeline item {item_id}")


def insert_attachment(creds, item_id: str, mime_type: str, content: bytes) -> dict:
    """
    Upload raw bytes as an attachment of an existing timeline item.
    """
    url = f"{MIRROR_UPLOAD_URL}/timeline/{item_id}/attachments"
    resp = _call(
        "POST", url, creds, f"adding attachment to timeline item {item_id}",
        params={"uploadType": "media"},
        headers={"Content-Type": mime_type},
        data=content,
    )
    return resp.json() if resp.content else {}
