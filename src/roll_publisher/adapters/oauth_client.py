"""OAuth token endpoint client."""

from dataclasses import dataclass
from typing import Protocol

import httpx
from pydantic import ValidationError

from roll_publisher.config import REVOKE_PATH, TOKEN_PATH
from roll_publisher.domain.credentials import TokenResponse
from roll_publisher.domain.errors import ApiError, InvalidResponseError, NetworkError


class OAuthClient(Protocol):
    """Interface for OAuth token endpoint interactions."""

    async def exchange_code(
        self, code: str, redirect_uri: str, code_verifier: str | None
    ) -> TokenResponse:
        """Exchange an authorization code for tokens."""

    async def refresh(self, refresh_token: str) -> TokenResponse:
        """Exchange a refresh token for new tokens."""

    async def revoke(self, token: str) -> None:
        """Revoke a token on the server."""


@dataclass
class HttpxOAuthClient(OAuthClient):
    """OAuth client implemented with httpx form posts."""

    base_url: str
    client_id: str
    http_client: httpx.AsyncClient
    timeout: float = 30.0

    @classmethod
    def create(
        cls, base_url: str, client_id: str, timeout: float = 30.0
    ) -> "HttpxOAuthClient":
        """Create an OAuth client with a managed httpx session."""
        return cls(
            base_url=base_url,
            client_id=client_id,
            http_client=httpx.AsyncClient(),
            timeout=timeout,
        )

    async def exchange_code(
        self, code: str, redirect_uri: str, code_verifier: str | None
    ) -> TokenResponse:
        """Exchange an authorization code using the PKCE verifier."""
        form = {
            "grant_type": "authorization_code",
            "code": code,
            "client_id": self.client_id,
            "redirect_uri": redirect_uri,
        }
        if code_verifier:
            form["code_verifier"] = code_verifier
        return await self._post_token(form)

    async def refresh(self, refresh_token: str) -> TokenResponse:
        """Exchange a refresh token for a new access token."""
        return await self._post_token(
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "client_id": self.client_id,
            }
        )

    async def revoke(self, token: str) -> None:
        """Revoke a token; the response status is not inspected."""
        try:
            await self.http_client.post(
                f"{self.base_url}{REVOKE_PATH}",
                data={"token": token},
                timeout=self.timeout,
            )
        except httpx.TransportError as exc:
            raise NetworkError("Could not connect to the revoke endpoint") from exc

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _post_token(self, form: dict[str, str]) -> TokenResponse:
        try:
            response = await self.http_client.post(
                f"{self.base_url}{TOKEN_PATH}",
                data=form,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except httpx.TransportError as exc:
            raise NetworkError("Could not connect to the token endpoint") from exc
        if response.status_code != httpx.codes.OK:
            raise ApiError(response.status_code, response.text or "token request failed")
        try:
            return TokenResponse.model_validate_json(response.content)
        except ValidationError as exc:
            raise InvalidResponseError("Invalid token response from server") from exc
