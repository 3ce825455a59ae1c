"""Shared test fixtures."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

import pytest

from roll_publisher.adapters.catalog_api import CatalogApi
from roll_publisher.adapters.oauth_client import OAuthClient
from roll_publisher.config import Settings
from roll_publisher.domain.catalog import RecordMetadata, RemoteCollection, UploadTarget
from roll_publisher.domain.credentials import TokenResponse
from roll_publisher.domain.errors import ApiError, PublishError, RenderFailureError
from roll_publisher.domain.publishing import AssetMetadata
from roll_publisher.services.auth import AuthFlow
from roll_publisher.services.credentials import CredentialStore, PreferenceStore
from roll_publisher.services.publishing import (
    MetadataAccessor,
    Notifier,
    PublishOrchestrator,
)
from roll_publisher.services.settings_codec import CollectionSettingsService

FIXED_NOW = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


def fixed_clock() -> datetime:
    return FIXED_NOW


@dataclass
class InMemoryPreferenceStore(PreferenceStore):
    """In-memory preference store for tests."""

    values: dict[str, object] = field(default_factory=dict)

    def get(self, key: str) -> object | None:
        return self.values.get(key)

    def set(self, key: str, value: object) -> None:
        self.values[key] = value

    def delete(self, key: str) -> None:
        self.values.pop(key, None)


@dataclass
class SleepRecorder:
    """Records requested sleep durations instead of waiting."""

    delays: list[float] = field(default_factory=list)

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@dataclass
class StaticTokenProvider:
    """Token provider that always hands out the same token."""

    token: str = "token-1"

    async def get_access_token(self) -> str:
        return self.token

    async def refresh(self) -> bool:
        return False


@dataclass
class FakeOAuthClient(OAuthClient):
    """Fake OAuth client with scripted token responses."""

    exchange_response: TokenResponse = field(
        default_factory=lambda: TokenResponse(
            access_token="access-1",
            refresh_token="refresh-1",
            expires_in=3600,
            user_id="42",
            company_id="7",
        )
    )
    refresh_response: TokenResponse | None = field(
        default_factory=lambda: TokenResponse(
            access_token="access-2", refresh_token="refresh-2", expires_in=3600
        )
    )
    revoke_error: Exception | None = None
    exchanges: list[tuple[str, str, str | None]] = field(default_factory=list)
    refreshes: list[str] = field(default_factory=list)
    revoked: list[str] = field(default_factory=list)

    async def exchange_code(
        self, code: str, redirect_uri: str, code_verifier: str | None
    ) -> TokenResponse:
        self.exchanges.append((code, redirect_uri, code_verifier))
        return self.exchange_response

    async def refresh(self, refresh_token: str) -> TokenResponse:
        self.refreshes.append(refresh_token)
        if self.refresh_response is None:
            raise ApiError(400, "invalid_grant")
        return self.refresh_response

    async def revoke(self, token: str) -> None:
        self.revoked.append(token)
        if self.revoke_error is not None:
            raise self.revoke_error


@dataclass
class FakePrompt:
    """Prompt returning a fixed answer."""

    answer: str | None = "auth-code"
    messages: list[str] = field(default_factory=list)

    async def ask(self, message: str) -> str | None:
        self.messages.append(message)
        return self.answer


@dataclass
class FakeCollection:
    """Local published collection for tests."""

    name: str = "Summer"
    settings_slot: str | None = None
    remote_id: str | None = None

    def get_settings_slot(self) -> str | None:
        return self.settings_slot

    def set_settings_slot(self, value: str) -> None:
        self.settings_slot = value

    def get_remote_id(self) -> str | None:
        return self.remote_id

    def set_remote_id(self, remote_id: str) -> None:
        self.remote_id = remote_id


@dataclass
class FakeRendition:
    """Rendition backed by a temporary file."""

    local_id: str
    path: Path | None
    asset: object = None
    published_record_id: str | None = None
    render_error: str | None = None
    recorded_id: str | None = None
    failure: str | None = None

    async def wait_for_render(self) -> Path:
        if self.render_error is not None or self.path is None:
            raise RenderFailureError(self.render_error or "no output")
        return self.path

    def record_published(self, record_id: str) -> None:
        self.recorded_id = record_id

    def record_failure(self, reason: str) -> None:
        self.failure = reason


@dataclass
class FakeMetadataAccessor(MetadataAccessor):
    """Returns metadata keyed by asset handle."""

    metadata: dict[object, AssetMetadata] = field(default_factory=dict)

    def read(self, asset: object) -> AssetMetadata:
        return self.metadata.get(asset, AssetMetadata())


@dataclass
class RecordingNotifier(Notifier):
    """Collects user-visible messages."""

    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def warning(self, message: str) -> None:
        self.warnings.append(message)

    def error(self, message: str) -> None:
        self.errors.append(message)


@dataclass
class FakeCatalogApi(CatalogApi):
    """Catalog API that records calls and can fail per operation."""

    calls: list[tuple[str, object]] = field(default_factory=list)
    collections: list[RemoteCollection] = field(default_factory=list)
    failures: dict[str, PublishError] = field(default_factory=dict)
    fail_for_files: dict[str, PublishError] = field(default_factory=dict)
    next_record: int = 0

    def _check(self, operation: str, filename: str | None = None) -> None:
        if filename is not None and filename in self.fail_for_files:
            raise self.fail_for_files[filename]
        if operation in self.failures:
            raise self.failures[operation]

    async def request_upload_target(
        self, collection_id: str, filename: str, content_type: str = "image/jpeg"
    ) -> UploadTarget:
        self.calls.append(("request_upload_target", (collection_id, filename)))
        self._check("request_upload_target")
        self.next_record += 1
        return UploadTarget(
            upload_url=f"https://storage.test/{filename}",
            upload_headers={"Content-Type": content_type},
            record_id=f"new-{self.next_record}",
            storage_key=f"rolls/{collection_id}/{filename}",
        )

    async def upload_bytes(
        self, upload_url: str, file_path: Path, upload_headers: dict[str, str]
    ) -> None:
        self.calls.append(("upload_bytes", file_path.name))
        self._check("upload_bytes", file_path.name)

    async def create_record(  # noqa: PLR0913
        self,
        record_id: str,
        collection_id: str,
        storage_key: str | None,
        filename: str,
        position: int,
        metadata: RecordMetadata | None = None,
    ) -> str:
        self.calls.append(
            ("create_record", (record_id, collection_id, filename, position))
        )
        self._check("create_record")
        return record_id

    async def update_record(self, record_id: str, metadata: RecordMetadata) -> None:
        self.calls.append(("update_record", (record_id, metadata)))
        self._check("update_record")

    async def delete_record(self, record_id: str) -> None:
        self.calls.append(("delete_record", record_id))
        self._check("delete_record")

    async def list_collections(self) -> list[RemoteCollection]:
        self.calls.append(("list_collections", None))
        return self.collections

    async def create_collection(self, name: str, date: str) -> RemoteCollection:
        self.calls.append(("create_collection", (name, date)))
        self._check("create_collection")
        return RemoteCollection(id="roll-new", name=name, date=date)

    def operations(self) -> list[str]:
        return [name for name, _ in self.calls]


def logged_in_preferences() -> InMemoryPreferenceStore:
    """Preferences holding a credential valid for an hour after FIXED_NOW."""
    return InMemoryPreferenceStore(
        values={
            "only35_access_token": "access-0",
            "only35_refresh_token": "refresh-0",
            "only35_token_expiry": int(FIXED_NOW.timestamp()) + 3600,
            "only35_user_id": "42",
        }
    )


def make_auth_flow(
    preferences: PreferenceStore, oauth_client: FakeOAuthClient | None = None
) -> AuthFlow:
    return AuthFlow(
        credentials=CredentialStore(preferences=preferences, clock=fixed_clock),
        oauth_client=oauth_client or FakeOAuthClient(),
        client_id="lightroom",
        redirect_uri="http://only35.app/oauth/success",
        web_base_url="http://only35.app",
        scopes=["photographs:read", "photographs:write", "rolls:read", "rolls:write"],
        open_browser=lambda url: None,
    )


@dataclass
class OrchestratorHarness:
    """Orchestrator wired to fakes."""

    orchestrator: PublishOrchestrator
    catalog: FakeCatalogApi
    notifier: RecordingNotifier
    metadata: FakeMetadataAccessor


def make_orchestrator(
    preferences: PreferenceStore | None = None,
    catalog: FakeCatalogApi | None = None,
    oauth_client: FakeOAuthClient | None = None,
) -> OrchestratorHarness:
    resolved_catalog = catalog or FakeCatalogApi()
    notifier = RecordingNotifier()
    metadata = FakeMetadataAccessor()
    orchestrator = PublishOrchestrator(
        auth=make_auth_flow(preferences or logged_in_preferences(), oauth_client),
        catalog=resolved_catalog,
        settings_service=CollectionSettingsService(),
        metadata_accessor=metadata,
        notifier=notifier,
    )
    return OrchestratorHarness(
        orchestrator=orchestrator,
        catalog=resolved_catalog,
        notifier=notifier,
        metadata=metadata,
    )


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        api_base_url="https://api.test",
        web_base_url="https://web.test",
        preferences_path=tmp_path / "prefs.json",
    )


@pytest.fixture
def preferences() -> InMemoryPreferenceStore:
    return logged_in_preferences()


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()
