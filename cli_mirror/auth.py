import logging
import re
import webbrowser
from typing import Callable, Optional

import requests
from google_auth_oauthlib.flow import Flow
from oauthlib.oauth2.rfc6749.errors import OAuth2Error
from rich.console import Console
from rich.prompt import Prompt

from cli_mirror.config import SCOPES, AppCredential, sanitize_glass_id
from cli_mirror.errors import AuthError
from cli_mirror.token_store import TokenCredential, TokenStore

logger = logging.getLogger(__name__)

console = Console()

CODE_PATTERN = re.compile(r".+")


def ask_for_code(question: str = "CODE", pattern=CODE_PATTERN) -> str:
    """
    Block until the operator types a line matching pattern. Asks again
    on every mismatch; closed input gives up with AuthError.
    """
    while True:
        try:
            answer = Prompt.ask(question, console=console).strip()
        except EOFError:
            raise AuthError("no OAuth code provided")
        if pattern.fullmatch(answer):
            return answer
        console.print(f"It should match: {pattern.pattern}")


def show_authorization_url(url: str, open_url: Callable[[str], bool] = webbrowser.open):
    console.print("\nUse your browser to open this URL:\n")
    console.print(url, style="cyan", markup=False, highlight=False)
    console.print("\nThen come back and enter the CODE here\n")
    try:
        if not open_url(url):
            logger.warning("Could not open browser automatically")
    except webbrowser.Error as e:
        logger.error("Error starting user web browser: %s", e)


class AuthClient:
    """
    Holds the OAuth state for one Glass id: loads stored tokens,
    runs the authorization code flow when there are none, and
    writes refreshed tokens back to the store.
    """

    def __init__(
        self,
        app: AppCredential,
        store: TokenStore,
        glass_id: Optional[str] = None,
        credential: Optional[TokenCredential] = None,
        ask_code: Callable[[], str] = ask_for_code,
        open_url: Callable[[str], bool] = webbrowser.open,
        flow_factory=Flow.from_client_config,
    ):
        self.app = app
        self.store = store
        self.glass_id = sanitize_glass_id(glass_id)
        self.credential = credential
        self.ask_code = ask_code
        self.open_url = open_url
        self.flow_factory = flow_factory
        self._google_creds = None

    def ensure_credential(self) -> TokenCredential:
        """
        Return usable tokens. Stored tokens are used as-is (no network);
        otherwise the operator is walked through the authorization flow.
        """
        if self.credential:
            return self.credential

        self.credential = self.store.load(self.glass_id)
        if self.credential:
            logger.info("Existing Google OAuth tokens available for Google Glass (%s)",
                        self.glass_id)
            return self.credential

        logger.warning("Google OAuth tokens missing or invalid for Google Glass (%s)",
                       self.glass_id)
        self.credential = self.authorize()
        return self.credential

    def authorize(self) -> TokenCredential:
        """
        Interactive authorization code flow. A failed exchange is fatal;
        the code cannot be used twice so nothing is retried.
        """
        logger.warning("Requesting new Google OAuth tokens")
        flow = self.flow_factory(
            self.app.to_client_config(),
            scopes=SCOPES,
            redirect_uri=self.app.redirect_uri,
        )
        url, _state = flow.authorization_url(access_type="offline", prompt="consent")
        logger.debug("Authorization URL: %s", url)

        show_authorization_url(url, self.open_url)
        code = self.ask_code()

        try:
            token = flow.fetch_token(code=code)
        except (OAuth2Error, requests.RequestException, ValueError) as e:
            raise AuthError(f"Exchanging the authorization code failed: {e}")

        credential = TokenCredential.from_token_response(token)
        self.store.save(self.glass_id, credential)
        logger.info("Google OAuth tokens saved for Google Glass (%s)", self.glass_id)
        logger.debug("Tokens: %s", credential.to_dict())
        return credential

    def google_credentials(self):
        """
        google-auth credentials for the active tokens, built once per run.
        """
        if self._google_creds is None:
            self._google_creds = self.ensure_credential().to_google_credentials(self.app)
        return self._google_creds

    def save_if_refreshed(self):
        """
        Persist the access token again if google-auth refreshed it.
        """
        if self._google_creds is None or self.credential is None:
            return
        if self._google_creds.token == self.credential.access_token:
            return

        self.credential = TokenCredential.from_google_credentials(
            self._google_creds, previous=self.credential)
        self.store.save(self.glass_id, self.credential)
        logger.info("Refreshed Google OAuth tokens saved for Google Glass (%s)",
                    self.glass_id)
