import json
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from cli_mirror.errors import AuthError

# === PATH CONFIGURATION ===
DATA_DIR = Path(os.environ.get("CLI_MIRROR_HOME", "data"))

APP_CONFIG_FILE = DATA_DIR / "config.json"
GLASSES_DIR = DATA_DIR / "glasses"  # one <glass id>.json per device

DEFAULT_GLASS_ID = "default"

# === SCOPES ===
SCOPES = [
    "https://www.googleapis.com/auth/glass.timeline"
]

# === ENDPOINTS ===
MIRROR_API_URL = "https://www.googleapis.com/mirror/v1"
MIRROR_UPLOAD_URL = "https://www.googleapis.com/upload/mirror/v1"
STATIC_MAP_URL = "https://maps.googleapis.com/maps/api/staticmap"

DEFAULT_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"

_GLASS_ID_STRIP = re.compile(r"[^a-zA-Z0-9_-]")


@dataclass(frozen=True)
class AppCredential:
    """
    OAuth client registration from the Google project console.
    """
    client_id: str
    client_secret: str
    redirect_uri: str
    auth_uri: str = DEFAULT_AUTH_URI
    token_uri: str = DEFAULT_TOKEN_URI

    def to_client_config(self) -> dict:
        """
        Client secrets document in the shape google-auth-oauthlib expects.
        """
        return {
            "installed": {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "redirect_uris": [self.redirect_uri],
                "auth_uri": self.auth_uri,
                "token_uri": self.token_uri,
            }
        }


def sanitize_glass_id(glass_id: Optional[str]) -> str:
    """
    Reduce a device name to [A-Za-z0-9_-]. Falls back to "default".
    """
    cleaned = _GLASS_ID_STRIP.sub("", glass_id or "")
    return cleaned or DEFAULT_GLASS_ID


def load_app_config(path: Path = APP_CONFIG_FILE) -> AppCredential:
    """
    Load the app registration (client id/secret, redirect uris).

    Accepts the client secrets file downloaded from the console
    ({"installed": {...}} or {"web": {...}}) as well as a flat object.
    """
    path = Path(path)
    if not path.exists():
        raise AuthError(f"App config not found at {path}")

    try:
        with open(path, "r") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise AuthError(f"Unable to read app config at {path}: {e}")

    if not isinstance(data, dict):
        raise AuthError(f"App config at {path} is not a JSON object")

    section = data.get("installed") or data.get("web") or data
    try:
        redirect_uris = section["redirect_uris"]
        return AppCredential(
            client_id=section["client_id"],
            client_secret=section["client_secret"],
            redirect_uri=redirect_uris[0],
            auth_uri=section.get("auth_uri", DEFAULT_AUTH_URI),
            token_uri=section.get("token_uri", DEFAULT_TOKEN_URI),
        )
    except (KeyError, IndexError, TypeError) as e:
        raise AuthError(f"App config at {path} is missing {e}")
