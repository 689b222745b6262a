"""
Google static map images used as timeline attachments.

Coordinates are checked against the WGS84 ranges before any request is
made: latitude -90..90, longitude -180..180, optional decimals.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional, Union

import requests

from cli_mirror.config import STATIC_MAP_URL
from cli_mirror.errors import TransportError, ValidationError

logger = logging.getLogger(__name__)

LATITUDE_PATTERN = re.compile(r"[-+]?(?:[1-8]?\d(?:\.\d+)?|90(?:\.0+)?)")
LONGITUDE_PATTERN = re.compile(r"[-+]?(?:(?:1[0-7]\d|[1-9]?\d)(?:\.\d+)?|180(?:\.0+)?)")
ZOOM_PATTERN = re.compile(r"1?\d|2[01]")

UNSET = "-"
DEFAULT_ZOOM = 12
MAP_SIZE = "640x320"
MAP_FORMAT = "png"
MARKER_COLOR = "red"
DEFAULT_MIME = "image/jpeg"
REQUEST_TIMEOUT = 30

Number = Union[str, int, float]


@dataclass(frozen=True)
class AttachmentPayload:
    mime_type: str
    content: bytes


@dataclass(frozen=True)
class MapQuery:
    latitude: str
    longitude: str
    marker: Optional[str] = None
    zoom: Optional[int] = None

    @classmethod
    def parse(cls, latitude: Number, longitude: Number,
              marker: Optional[str] = UNSET, zoom: Optional[Number] = UNSET) -> "MapQuery":
        """
        Validate raw command line values. "-" means unset for marker and zoom.
        """
        lat = str(latitude).strip()
        lon = str(longitude).strip()
        if not LATITUDE_PATTERN.fullmatch(lat):
            raise ValidationError(f"Invalid latitude ({latitude})")
        if not LONGITUDE_PATTERN.fullmatch(lon):
            raise ValidationError(f"Invalid longitude ({longitude})")

        if marker is None or str(marker) in ("", UNSET):
            marker = None
        else:
            marker = str(marker)[0]

        if zoom is None or str(zoom).strip() in ("", UNSET):
            zoom = None
        else:
            if not ZOOM_PATTERN.fullmatch(str(zoom).strip()):
                raise ValidationError(f"Invalid zoom ({zoom})")
            zoom = int(zoom)

        return cls(latitude=lat, longitude=lon, marker=marker, zoom=zoom)

    def request_params(self) -> dict:
        position = f"{self.latitude},{self.longitude}"
        params = {}
        if self.marker:
            params["markers"] = f"color:{MARKER_COLOR}|label:{self.marker}|{position}"
        else:
            params["center"] = position

        zoom = self.zoom
        if zoom is None and not self.marker:
            zoom = DEFAULT_ZOOM
        # with a marker and no zoom Google picks the framing
        if zoom is not None:
            params["zoom"] = zoom

        params["size"] = MAP_SIZE
        params["format"] = MAP_FORMAT
        return params


class MapImageFetcher:

    def __init__(self, url: str = STATIC_MAP_URL, session: Optional[requests.Session] = None):
        self.url = url
        self.session = session or requests.Session()

    def fetch(self, latitude: Number, longitude: Number,
              zoom: Optional[Number] = UNSET, marker: Optional[str] = UNSET) -> AttachmentPayload:
        return self.fetch_query(MapQuery.parse(latitude, longitude, marker, zoom))

    def fetch_query(self, query: MapQuery) -> AttachmentPayload:
        """
        Download the whole image into memory. Content type comes from
        the response, image/jpeg if the server does not say.
        """
        params = query.request_params()
        logger.debug("Fetching map image %s %s", self.url, params)
        try:
            resp = self.session.get(self.url, params=params, timeout=REQUEST_TIMEOUT)
            resp.raise_for_status()
        except requests.RequestException as e:
            raise TransportError(f"Error fetching map image: {e}")

        mime_type = resp.headers.get("Content-Type") or DEFAULT_MIME
        mime_type = mime_type.split(";")[0].strip()
        logger.debug("Map image: %s, %d bytes", mime_type, len(resp.content))
        return AttachmentPayload(mime_type=mime_type, content=resp.content)
