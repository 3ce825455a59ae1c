"""Tests for the OAuth token endpoint client."""

import asyncio
from urllib.parse import parse_qs

import httpx
import pytest

from roll_publisher.adapters.oauth_client import HttpxOAuthClient
from roll_publisher.domain.errors import ApiError, InvalidResponseError, NetworkError


def make_client(handler) -> HttpxOAuthClient:
    return HttpxOAuthClient(
        base_url="https://api.test",
        client_id="lightroom",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


def form_of(request: httpx.Request) -> dict[str, str]:
    return {key: values[0] for key, values in parse_qs(request.content.decode()).items()}


def test_exchange_code_posts_pkce_form() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "access_token": "access-1",
                "refresh_token": "refresh-1",
                "expires_in": 3600,
                "user_id": 42,
                "company_id": 7,
            },
        )

    client = make_client(handler)
    tokens = asyncio.run(
        client.exchange_code("auth-code", "http://only35.app/oauth/success", "v" * 64)
    )

    assert tokens.access_token == "access-1"
    assert tokens.user_id == "42"
    assert tokens.company_id == "7"
    assert seen[0].url == "https://api.test/oauth/token"
    assert form_of(seen[0]) == {
        "grant_type": "authorization_code",
        "code": "auth-code",
        "client_id": "lightroom",
        "redirect_uri": "http://only35.app/oauth/success",
        "code_verifier": "v" * 64,
    }


def test_refresh_posts_refresh_grant() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"access_token": "access-2"})

    tokens = asyncio.run(make_client(handler).refresh("refresh-1"))

    assert tokens.access_token == "access-2"
    assert tokens.refresh_token is None
    assert form_of(seen[0]) == {
        "grant_type": "refresh_token",
        "refresh_token": "refresh-1",
        "client_id": "lightroom",
    }


def test_token_error_status_raises_api_error() -> None:
    client = make_client(lambda request: httpx.Response(400, text="invalid_grant"))

    with pytest.raises(ApiError) as excinfo:
        asyncio.run(client.refresh("refresh-1"))

    assert excinfo.value.status == 400


def test_token_response_without_access_token_is_invalid() -> None:
    client = make_client(lambda request: httpx.Response(200, json={"expires_in": 10}))

    with pytest.raises(InvalidResponseError):
        asyncio.run(client.refresh("refresh-1"))


def test_transport_error_raises_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("down", request=request)

    with pytest.raises(NetworkError):
        asyncio.run(make_client(handler).refresh("refresh-1"))


def test_revoke_ignores_status() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(500)

    asyncio.run(make_client(handler).revoke("access-1"))

    assert seen[0].url == "https://api.test/oauth/revoke"
    assert form_of(seen[0]) == {"token": "access-1"}


def test_revoke_transport_error_raises_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("down", request=request)

    with pytest.raises(NetworkError):
        asyncio.run(make_client(handler).revoke("access-1"))
