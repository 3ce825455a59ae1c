"""Interactive OAuth flow with PKCE, token refresh and logout."""

import logging
import secrets
import string
import webbrowser
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol
from urllib.parse import urlencode

from roll_publisher.adapters.oauth_client import OAuthClient
from roll_publisher.config import AUTHORIZE_PATH
from roll_publisher.domain.credentials import AuthorizationRequest, Credential
from roll_publisher.domain.errors import NotAuthenticatedError, PublishError
from roll_publisher.services.credentials import CredentialStore

_logger = logging.getLogger(__name__)

_ALPHABET = string.ascii_letters + string.digits
STATE_LENGTH = 32
VERIFIER_LENGTH = 64

CODE_PROMPT = (
    "After logging in you will see an authorization code. "
    "Please copy and paste that code below:"
)


class CodePrompt(Protocol):
    """Blocking interactive prompt supplied by the host."""

    async def ask(self, message: str) -> str | None:
        """Return the user's input, or None if cancelled."""


def generate_random_string(length: int) -> str:
    """Return a cryptographically random alphanumeric string."""
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


@dataclass
class AuthFlow:
    """Owns the credential lifecycle for one process."""

    credentials: CredentialStore
    oauth_client: OAuthClient
    client_id: str
    redirect_uri: str
    web_base_url: str
    scopes: list[str]
    open_browser: Callable[[str], object] = field(default=webbrowser.open)

    def begin_authorization(self) -> AuthorizationRequest:
        """Build the authorization URL and its PKCE context."""
        state = generate_random_string(STATE_LENGTH)
        verifier = generate_random_string(VERIFIER_LENGTH)
        query = urlencode(
            {
                "client_id": self.client_id,
                "redirect_uri": self.redirect_uri,
                "response_type": "code",
                "scope": " ".join(self.scopes),
                "state": state,
                "code_challenge": verifier,
                "code_challenge_method": "plain",
            }
        )
        url = f"{self.web_base_url}{AUTHORIZE_PATH}?{query}"
        return AuthorizationRequest(url=url, state=state, code_verifier=verifier)

    async def complete_authorization(
        self, request: AuthorizationRequest, code: str
    ) -> Credential:
        """Exchange an authorization code and persist the credential."""
        verifier = request.consume_verifier()
        _logger.info("Exchanging authorization code for tokens")
        tokens = await self.oauth_client.exchange_code(
            code=code, redirect_uri=self.redirect_uri, code_verifier=verifier
        )
        _logger.info("Token exchange successful")
        return self.credentials.store(tokens)

    async def start_interactive_auth(self, prompt: CodePrompt) -> Credential | None:
        """Run the browser login and code entry; None when the user cancels."""
        _logger.info("Starting OAuth flow")
        request = self.begin_authorization()
        _logger.info("Opening browser for authentication")
        self.open_browser(request.url)
        code = await prompt.ask(CODE_PROMPT)
        code = code.strip() if code else ""
        if not code:
            _logger.info("OAuth flow cancelled by user")
            request.consume_verifier()
            return None
        return await self.complete_authorization(request, code)

    def is_valid(self) -> bool:
        """Return True if the stored credential is usable without refresh."""
        return self.credentials.is_valid()

    async def get_access_token(self) -> str:
        """Return a valid access token, refreshing once if needed."""
        if self.credentials.is_valid():
            credential = self.credentials.load()
            if credential is not None:
                return credential.access_token
        if await self.refresh():
            credential = self.credentials.load()
            if credential is not None:
                return credential.access_token
        self.credentials.clear()
        raise NotAuthenticatedError()

    async def refresh(self) -> bool:
        """Replace the credential using the refresh token.

        Any failure clears the stored credential.
        """
        refresh_token = self.credentials.refresh_token()
        if not refresh_token:
            _logger.warning("No refresh token available")
            return False
        _logger.info("Refreshing access token")
        try:
            tokens = await self.oauth_client.refresh(refresh_token)
        except PublishError as exc:
            _logger.error("Token refresh failed: %s", exc)
            self.credentials.clear()
            return False
        self.credentials.store(tokens)
        _logger.info("Token refresh successful")
        return True

    async def is_logged_in(self) -> bool:
        """Return True if a valid credential exists or can be refreshed."""
        return self.credentials.is_valid() or await self.refresh()

    async def logout(self) -> None:
        """Revoke the access token best-effort and clear local state."""
        _logger.info("Logging out")
        credential = self.credentials.load()
        if credential is not None:
            try:
                await self.oauth_client.revoke(credential.access_token)
            except PublishError as exc:
                _logger.warning(
                    "Token revocation failed (%s); clearing local tokens anyway", exc
                )
        self.credentials.clear()

    def status_text(self) -> str:
        """Describe the login state for account UI."""
        if not self.credentials.is_valid():
            return "Not logged in"
        user_id = self.credentials.user_id()
        if user_id:
            return f"Logged in as user {user_id}"
        return "Logged in"
