import datetime
import json
import logging
import os
import platform
import time
from dataclasses import dataclass, asdict
from datetime import timezone
from pathlib import Path
from typing import Optional

from google.oauth2.credentials import Credentials

from cli_mirror.config import GLASSES_DIR, SCOPES, AppCredential, sanitize_glass_id

logger = logging.getLogger(__name__)


@dataclass
class TokenCredential:
    """
    OAuth tokens for one Glass device, in the shape of the token
    exchange response. expiry_date is milliseconds since the epoch.
    """
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "Bearer"
    expiry_date: Optional[int] = None
    scope: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "TokenCredential":
        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            token_type=data.get("token_type", "Bearer"),
            expiry_date=data.get("expiry_date"),
            scope=data.get("scope"),
        )

    @classmethod
    def from_token_response(cls, token: dict) -> "TokenCredential":
        """
        Build from the raw OAuth token endpoint answer
        (expires_at in seconds, or only expires_in).
        """
        expiry_date = None
        if token.get("expires_at"):
            expiry_date = int(float(token["expires_at"]) * 1000)
        elif token.get("expires_in"):
            expiry_date = int((time.time() + float(token["expires_in"])) * 1000)

        scope = token.get("scope")
        if isinstance(scope, (list, tuple)):
            scope = " ".join(scope)

        return cls(
            access_token=token["access_token"],
            refresh_token=token.get("refresh_token"),
            token_type=token.get("token_type", "Bearer"),
            expiry_date=expiry_date,
            scope=scope,
        )

    @classmethod
    def from_google_credentials(cls, creds: Credentials,
                                previous: Optional["TokenCredential"] = None) -> "TokenCredential":
        expiry_date = None
        if creds.expiry:
            # google-auth keeps expiry as naive UTC
            expiry_date = int(creds.expiry.replace(tzinfo=timezone.utc).timestamp() * 1000)
        return cls(
            access_token=creds.token,
            refresh_token=creds.refresh_token or (previous.refresh_token if previous else None),
            token_type=previous.token_type if previous else "Bearer",
            expiry_date=expiry_date,
            scope=previous.scope if previous else None,
        )

    @property
    def expiry(self) -> Optional[datetime.datetime]:
        if self.expiry_date is None:
            return None
        dt = datetime.datetime.fromtimestamp(self.expiry_date / 1000, tz=timezone.utc)
        return dt.replace(tzinfo=None)

    def to_dict(self) -> dict:
        return asdict(self)

    def to_google_credentials(self, app: AppCredential) -> Credentials:
        """
        Credentials usable for bearer headers; client id/secret are
        included so google-auth can refresh an expired access token.
        """
        creds = Credentials(
            token=self.access_token,
            refresh_token=self.refresh_token,
            token_uri=app.token_uri,
            client_id=app.client_id,
            client_secret=app.client_secret,
            scopes=SCOPES,
        )
        creds.expiry = self.expiry
        return creds


class TokenStore:
    """
    One JSON token file per Glass id under a fixed directory.
    Not safe against concurrent writers from several processes.
    """

    def __init__(self, directory: Path = GLASSES_DIR):
        self.directory = Path(directory)

    def path_for(self, glass_id: str) -> Path:
        return self.directory / f"{sanitize_glass_id(glass_id)}.json"

    def load(self, glass_id: str) -> Optional[TokenCredential]:
        """
        Return the stored tokens, or None if this Glass was never authorized.
        """
        token_file = self.path_for(glass_id)
        if not token_file.exists():
            return None

        try:
            with open(token_file, "r") as f:
                return TokenCredential.from_dict(json.load(f))
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("Token file %s corrupt (%s). Re-authenticating.", token_file, e)
            return None

    def save(self, glass_id: str, credential: TokenCredential):
        """
        Write (overwrite) the token file for glass_id.
        """
        self.directory.mkdir(parents=True, exist_ok=True)
        token_file = self.path_for(glass_id)
        with open(token_file, "w") as f:
            json.dump(credential.to_dict(), f, indent=4)

        if platform.system() != "Windows":
            os.chmod(token_file, 0o600)

        logger.debug("Tokens saved to %s", token_file)
