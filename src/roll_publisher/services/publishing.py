"""Publish run state machine: auth check, roll resolution and per-item sync."""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Protocol

from roll_publisher.adapters.catalog_api import CatalogApi
from roll_publisher.domain.errors import (
    CollectionValidationError,
    NoCollectionSelectedError,
    NotAuthenticatedError,
    PublishError,
    RenderFailureError,
)
from roll_publisher.domain.publishing import (
    AssetMetadata,
    PublishOutcome,
    PublishStatus,
    PublishSummary,
)
from roll_publisher.domain.settings import CollectionSettings
from roll_publisher.services.auth import AuthFlow
from roll_publisher.services.metadata import extract_record_metadata
from roll_publisher.services.settings_codec import (
    CollectionSettingsService,
    PublishedCollection,
)

_logger = logging.getLogger(__name__)

JPEG_CONTENT_TYPE = "image/jpeg"


class Rendition(Protocol):
    """One queued item produced by the host renderer."""

    @property
    def local_id(self) -> str:
        """Host identifier of the asset."""

    @property
    def asset(self) -> object:
        """Handle passed to the metadata accessor."""

    @property
    def published_record_id(self) -> str | None:
        """Remote record id from an earlier publish, if any."""

    async def wait_for_render(self) -> Path:
        """Return the rendered file path or raise RenderFailureError."""

    def record_published(self, record_id: str) -> None:
        """Attach the remote record id to the local item."""

    def record_failure(self, reason: str) -> None:
        """Mark the item as failed in the host."""


class MetadataAccessor(Protocol):
    """Reads descriptive metadata from a host asset."""

    def read(self, asset: object) -> AssetMetadata:
        """Return the asset's metadata."""


class Notifier(Protocol):
    """User-visible messages."""

    def warning(self, message: str) -> None:
        """Show a non-fatal warning."""

    def error(self, message: str) -> None:
        """Show an error."""


def _never_cancelled() -> bool:
    return False


@dataclass
class _PublishRun:
    collection_id: str
    created_count: int = 0


@dataclass
class PublishOrchestrator:
    """Drives one publish run for a local collection."""

    auth: AuthFlow
    catalog: CatalogApi
    settings_service: CollectionSettingsService
    metadata_accessor: MetadataAccessor
    notifier: Notifier

    async def publish(
        self,
        collection: PublishedCollection,
        renditions: Iterable[Rendition],
        is_cancelled: Callable[[], bool] = _never_cancelled,
    ) -> PublishSummary:
        """Publish every rendition; per-item failures never abort the run."""
        summary = PublishSummary()
        settings = self.settings_service.load(collection)
        _logger.info(
            "Collection settings: roll_id=%s create_new_roll=%s roll_date=%s",
            settings.roll_id,
            settings.create_new_roll,
            settings.roll_date,
        )
        try:
            if not await self.auth.is_logged_in():
                raise NotAuthenticatedError("Please log in before publishing.")
            collection_id = await self.resolve_collection(collection, settings)
        except PublishError as exc:
            _logger.error("Publish aborted: %s", exc)
            self.notifier.error(str(exc))
            summary.error = exc
            return summary

        summary.collection_id = collection_id
        run = _PublishRun(collection_id=collection_id)
        for rendition in renditions:
            if is_cancelled():
                _logger.info("Publish cancelled by user")
                summary.cancelled = True
                break
            summary.outcomes.append(await self._publish_item(run, rendition))

        self._report(summary)
        return summary

    async def resolve_collection(
        self, collection: PublishedCollection, settings: CollectionSettings
    ) -> str:
        """Pick the remote roll: explicit setting, then surrogate, then create."""
        if settings.roll_id:
            _logger.info("Using roll %s from collection settings", settings.roll_id)
            return settings.roll_id

        surrogate = collection.get_remote_id()
        if surrogate:
            _logger.info("Using roll %s from collection remote id", surrogate)
            return surrogate

        if not settings.create_new_roll:
            raise NoCollectionSelectedError()

        name = settings.roll_name or collection.name
        if not name:
            raise CollectionValidationError(
                "Collection name is required for creating a roll."
            )
        roll_date = settings.resolved_date()
        if not roll_date:
            raise CollectionValidationError(
                "Please enter a roll date before publishing."
            )
        try:
            roll_date = date.fromisoformat(roll_date).isoformat()
        except ValueError as exc:
            raise CollectionValidationError(
                f"Roll date {roll_date!r} is not a valid date."
            ) from exc

        _logger.info("Creating new roll: %s (%s)", name, roll_date)
        created = await self.catalog.create_collection(name, roll_date)
        collection.set_remote_id(created.id)
        _logger.info("Created roll with ID %s", created.id)
        return created.id

    async def delete_records(
        self, record_ids: Iterable[str], on_deleted: Callable[[str], None]
    ) -> None:
        """Delete remote records; each is reported deleted locally regardless."""
        for record_id in record_ids:
            try:
                await self.catalog.delete_record(record_id)
            except PublishError as exc:
                _logger.warning("Failed to delete photo %s: %s", record_id, exc)
            else:
                _logger.info("Deleted photo %s", record_id)
            on_deleted(record_id)

    async def _publish_item(
        self, run: _PublishRun, rendition: Rendition
    ) -> PublishOutcome:
        local_id = rendition.local_id
        try:
            path = await rendition.wait_for_render()
        except RenderFailureError as exc:
            _logger.error("Render failed for %s: %s", local_id, exc)
            rendition.record_failure("Rendering failed")
            return PublishOutcome(
                local_id=local_id, status=PublishStatus.FAILED, error="render failed"
            )

        existing_id = rendition.published_record_id
        try:
            record_id = await self._sync_item(run, rendition, path, existing_id)
        except PublishError as exc:
            _logger.error("Publishing %s failed: %s", local_id, exc)
            rendition.record_failure(str(exc))
            return PublishOutcome(
                local_id=local_id,
                status=PublishStatus.FAILED,
                remote_id=existing_id,
                error=str(exc),
            )
        finally:
            _remove_rendered_file(path)

        rendition.record_published(record_id)
        return PublishOutcome(
            local_id=local_id,
            status=PublishStatus.PUBLISHED,
            remote_id=record_id,
            updated=existing_id is not None,
        )

    async def _sync_item(
        self,
        run: _PublishRun,
        rendition: Rendition,
        path: Path,
        existing_id: str | None,
    ) -> str:
        step = "get upload URL"
        try:
            target = await self.catalog.request_upload_target(
                run.collection_id, path.name, JPEG_CONTENT_TYPE
            )
            step = "upload to storage"
            await self.catalog.upload_bytes(
                target.upload_url, path, target.upload_headers
            )
            step = "read metadata"
            metadata = extract_record_metadata(self._read_metadata(rendition))
            step = "save photo record"
            if existing_id is not None:
                await self.catalog.update_record(existing_id, metadata)
                _logger.info("Updated photo %s", existing_id)
                return existing_id
            record_id = await self.catalog.create_record(
                record_id=target.record_id,
                collection_id=run.collection_id,
                storage_key=target.storage_key,
                filename=path.name,
                position=run.created_count + 1,
                metadata=metadata,
            )
        except PublishError as exc:
            raise PublishError(f"Failed to {step}: {exc}") from exc
        run.created_count += 1
        _logger.info("Created photo %s", record_id)
        return record_id

    def _read_metadata(self, rendition: Rendition) -> AssetMetadata:
        try:
            return self.metadata_accessor.read(rendition.asset)
        except PublishError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise PublishError(str(exc) or type(exc).__name__) from exc

    def _report(self, summary: PublishSummary) -> None:
        published = summary.published_count
        failed = summary.failed_count
        if failed:
            message = f"Published {published} photos.\n{failed} photos failed."
            _logger.warning(message)
            self.notifier.warning(message)
        else:
            _logger.info("Published %s photos successfully", published)


def _remove_rendered_file(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        _logger.warning("Could not delete rendered file %s: %s", path, exc)
