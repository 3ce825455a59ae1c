"""Dependency container wiring for the publisher."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import httpx

from roll_publisher.adapters.catalog_api import CatalogApi, JsonApiCatalogClient
from roll_publisher.adapters.oauth_client import HttpxOAuthClient
from roll_publisher.adapters.preference_store import JsonFilePreferenceStore
from roll_publisher.adapters.resilient_http import ResilientHttpClient
from roll_publisher.app_logging import configure_logging
from roll_publisher.config import Settings, parse_scopes
from roll_publisher.services.auth import AuthFlow
from roll_publisher.services.credentials import CredentialStore, PreferenceStore
from roll_publisher.services.publishing import (
    MetadataAccessor,
    Notifier,
    PublishOrchestrator,
)
from roll_publisher.services.rolls import RollService
from roll_publisher.services.settings_codec import CollectionSettingsService


@dataclass
class AppContainer:
    """Holds publisher-wide dependencies."""

    settings: Settings
    credential_store: CredentialStore
    auth_flow: AuthFlow
    catalog: CatalogApi
    roll_service: RollService
    collection_settings_service: CollectionSettingsService
    orchestrator: PublishOrchestrator
    close_resources: Callable[[], Awaitable[None]]


def build_container(
    settings: Settings | None = None,
    *,
    notifier: Notifier,
    metadata_accessor: MetadataAccessor,
    preferences: PreferenceStore | None = None,
) -> AppContainer:
    """Create the default dependency container."""
    configure_logging()
    resolved_settings = settings or Settings()
    resolved_preferences = preferences or JsonFilePreferenceStore(
        resolved_settings.preferences_path
    )
    credential_store = CredentialStore(
        preferences=resolved_preferences,
        expiry_buffer_seconds=resolved_settings.token_expiry_buffer_seconds,
        default_lifetime_seconds=resolved_settings.default_token_lifetime_seconds,
    )
    oauth_client = HttpxOAuthClient.create(
        base_url=resolved_settings.api_base_url,
        client_id=resolved_settings.oauth_client_id,
        timeout=resolved_settings.http_timeout_seconds,
    )
    auth_flow = AuthFlow(
        credentials=credential_store,
        oauth_client=oauth_client,
        client_id=resolved_settings.oauth_client_id,
        redirect_uri=resolved_settings.oauth_redirect_uri,
        web_base_url=resolved_settings.web_base_url,
        scopes=parse_scopes(resolved_settings.oauth_scopes),
    )
    api_client = ResilientHttpClient(
        http_client=httpx.AsyncClient(),
        token_provider=auth_flow,
        max_retries=resolved_settings.max_retries,
        default_retry_after_seconds=resolved_settings.default_retry_after_seconds,
        max_rate_limit_waits=resolved_settings.max_rate_limit_waits,
        timeout=resolved_settings.http_timeout_seconds,
    )
    catalog = JsonApiCatalogClient(
        api=api_client,
        upload_client=httpx.AsyncClient(),
        base_url=resolved_settings.api_base_url,
        page_size=resolved_settings.rolls_page_size,
    )
    collection_settings_service = CollectionSettingsService()
    orchestrator = PublishOrchestrator(
        auth=auth_flow,
        catalog=catalog,
        settings_service=collection_settings_service,
        metadata_accessor=metadata_accessor,
        notifier=notifier,
    )

    async def close_resources() -> None:
        await oauth_client.close()
        await api_client.close()
        await catalog.close()

    return AppContainer(
        settings=resolved_settings,
        credential_store=credential_store,
        auth_flow=auth_flow,
        catalog=catalog,
        roll_service=RollService(catalog),
        collection_settings_service=collection_settings_service,
        orchestrator=orchestrator,
        close_resources=close_resources,
    )
