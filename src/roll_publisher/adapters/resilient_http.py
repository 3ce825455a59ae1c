"""HTTP exchange with retry, backoff, rate-limit and auth-refresh handling."""

import asyncio
import json
import logging
import math
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Protocol

import httpx

from roll_publisher.domain.errors import (
    ApiError,
    AuthExpiredError,
    InvalidResponseError,
    NetworkError,
    RateLimitedError,
)

_logger = logging.getLogger(__name__)

JSON_API_MEDIA_TYPE = "application/vnd.api+json"
_OVERRIDDEN_METHODS = frozenset({"PATCH", "DELETE"})


class TokenProvider(Protocol):
    """Source of bearer tokens for authenticated requests."""

    async def get_access_token(self) -> str:
        """Return a valid access token or raise NotAuthenticatedError."""

    async def refresh(self) -> bool:
        """Refresh the credential, returning True on success."""


@dataclass(frozen=True)
class ApiRequest:
    """A prepared JSON API request."""

    method: str
    url: str
    body: object | None = None
    params: dict[str, str] | None = None
    authenticated: bool = True


@dataclass
class ResilientHttpClient:
    """Single request policy shared by every JSON API call.

    Transport failures and 5xx responses share one attempt counter and back off
    for ``2 ** attempt`` seconds. 429 responses wait for ``Retry-After`` without
    touching that counter. A 401 triggers at most one credential refresh per
    request.
    """

    http_client: httpx.AsyncClient
    token_provider: TokenProvider
    max_retries: int = 3
    default_retry_after_seconds: float = 60.0
    max_rate_limit_waits: int | None = None
    timeout: float = 30.0
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep)

    async def get(
        self, url: str, params: dict[str, str] | None = None
    ) -> object | None:
        """Send an authenticated GET."""
        return await self.send(ApiRequest("GET", url, params=params))

    async def post(self, url: str, body: object | None = None) -> object | None:
        """Send an authenticated POST with a JSON body."""
        return await self.send(ApiRequest("POST", url, body=body))

    async def patch(self, url: str, body: object | None = None) -> object | None:
        """Send an authenticated PATCH via method override."""
        return await self.send(ApiRequest("PATCH", url, body=body))

    async def delete(self, url: str) -> object | None:
        """Send an authenticated DELETE via method override."""
        return await self.send(ApiRequest("DELETE", url))

    async def send(self, request: ApiRequest) -> object | None:
        """Perform the exchange and return the parsed body (None when empty)."""
        attempt = 0
        refreshed = False
        rate_limit_waits = 0
        while True:
            try:
                response = await self._exchange(request)
            except httpx.TransportError as exc:
                if attempt < self.max_retries:
                    await self._backoff(request, attempt, f"no response ({exc!r})")
                    attempt += 1
                    continue
                raise NetworkError("Network error: no response from server") from exc

            status = response.status_code
            if status == httpx.codes.UNAUTHORIZED and request.authenticated:
                if not refreshed:
                    refreshed = True
                    _logger.info("Got 401 for %s; refreshing credential", request.url)
                    if await self.token_provider.refresh():
                        continue
                raise AuthExpiredError()

            if status == httpx.codes.TOO_MANY_REQUESTS:
                if (
                    self.max_rate_limit_waits is not None
                    and rate_limit_waits >= self.max_rate_limit_waits
                ):
                    raise RateLimitedError(
                        f"Rate limited {rate_limit_waits} times for {request.url}"
                    )
                rate_limit_waits += 1
                delay = self._retry_after(response)
                _logger.warning(
                    "Rate limited on %s %s; waiting %.1fs",
                    request.method,
                    request.url,
                    delay,
                )
                await self.sleep(delay)
                continue

            if status >= httpx.codes.INTERNAL_SERVER_ERROR:
                if attempt < self.max_retries:
                    await self._backoff(request, attempt, f"status {status}")
                    attempt += 1
                    continue
                raise ApiError(status, extract_error_message(response))

            if not httpx.codes.is_success(status):
                raise ApiError(status, extract_error_message(response))

            return _parse_body(response)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _exchange(self, request: ApiRequest) -> httpx.Response:
        headers = {"Accept": JSON_API_MEDIA_TYPE}
        if request.authenticated:
            token = await self.token_provider.get_access_token()
            headers["Authorization"] = f"Bearer {token}"
        method = request.method.upper()
        if method in _OVERRIDDEN_METHODS:
            headers["X-HTTP-Method-Override"] = method
            method = "POST"
        content: bytes | None = None
        if request.body is not None:
            headers["Content-Type"] = JSON_API_MEDIA_TYPE
            content = json.dumps(request.body).encode("utf-8")
        return await self.http_client.request(
            method,
            request.url,
            params=request.params,
            content=content,
            headers=headers,
            timeout=self.timeout,
        )

    async def _backoff(self, request: ApiRequest, attempt: int, reason: str) -> None:
        delay = float(2**attempt)
        _logger.warning(
            "%s %s failed (%s); retry %s/%s in %.0fs",
            request.method,
            request.url,
            reason,
            attempt + 1,
            self.max_retries,
            delay,
        )
        await self.sleep(delay)

    def _retry_after(self, response: httpx.Response) -> float:
        raw = response.headers.get("Retry-After")
        if raw is None:
            return self.default_retry_after_seconds
        try:
            delay = float(raw.strip())
        except ValueError:
            return self.default_retry_after_seconds
        if not math.isfinite(delay) or delay < 0:
            return self.default_retry_after_seconds
        return delay


def extract_error_message(response: httpx.Response) -> str:
    """Pull a readable message out of an error body."""
    fallback = f"request failed with status {response.status_code}"
    try:
        body = response.json()
    except ValueError:
        return fallback
    if not isinstance(body, dict):
        return fallback
    for key in ("message", "error"):
        value = body.get(key)
        if isinstance(value, str) and value:
            return value
    errors = body.get("errors")
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        for key in ("detail", "title"):
            value = errors[0].get(key)
            if isinstance(value, str) and value:
                return value
    return fallback


def _parse_body(response: httpx.Response) -> object | None:
    if not response.content or not response.content.strip():
        return None
    try:
        return response.json()
    except ValueError as exc:
        raise InvalidResponseError(
            f"Expected a JSON body from {response.request.url}"
        ) from exc
