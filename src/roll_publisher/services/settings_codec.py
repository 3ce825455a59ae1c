"""Collection settings stored in a single opaque string slot."""

import logging
from dataclasses import dataclass
from typing import Protocol

from pydantic import ValidationError

from roll_publisher.domain.settings import CollectionSettings, format_roll_date

_logger = logging.getLogger(__name__)


class PublishedCollection(Protocol):
    """Local published collection exposed by the host."""

    @property
    def name(self) -> str:
        """Local collection name."""

    def get_settings_slot(self) -> str | None:
        """Return the opaque settings string."""

    def set_settings_slot(self, value: str) -> None:
        """Replace the opaque settings string."""

    def get_remote_id(self) -> str | None:
        """Return the remote collection surrogate from an earlier run."""

    def set_remote_id(self, remote_id: str) -> None:
        """Remember the remote collection for future runs."""


def encode_settings(settings: CollectionSettings) -> str:
    """Serialize settings to a compact JSON string."""
    return settings.model_dump_json()


def decode_settings(raw: str | None) -> CollectionSettings:
    """Parse a settings string; unusable content yields defaults."""
    if not raw:
        return CollectionSettings()
    try:
        return CollectionSettings.model_validate_json(raw)
    except ValidationError:
        _logger.warning("Failed to parse collection settings; using defaults")
        return CollectionSettings()


@dataclass
class SettingsForm:
    """Editable values shown in a collection settings dialog."""

    roll_id: str | None
    create_new_roll: bool
    roll_name: str | None
    date_year: int | None
    date_month: int | None
    date_day: int | None

    @property
    def date_editable(self) -> bool:
        """Date pickers only apply when a new roll will be created."""
        return self.create_new_roll and not self.roll_id


@dataclass
class SettingsEditSession:
    """One open settings dialog, from load to confirmation."""

    collection: PublishedCollection
    form: SettingsForm


@dataclass
class CollectionSettingsService:
    """Loads and saves collection settings through the opaque slot."""

    def load(self, collection: PublishedCollection) -> CollectionSettings:
        """Return the settings stored on a collection."""
        return decode_settings(collection.get_settings_slot())

    def save(
        self, collection: PublishedCollection, settings: CollectionSettings
    ) -> None:
        """Store settings on a collection."""
        encoded = encode_settings(settings)
        collection.set_settings_slot(encoded)
        _logger.info("Stored collection settings for %s", collection.name)

    def open(self, collection: PublishedCollection) -> SettingsEditSession:
        """Start editing a collection's settings."""
        settings = self.load(collection)
        form = SettingsForm(
            roll_id=settings.roll_id,
            create_new_roll=settings.create_new_roll,
            roll_name=settings.roll_name,
            date_year=settings.date_year,
            date_month=settings.date_month,
            date_day=settings.date_day,
        )
        return SettingsEditSession(collection=collection, form=form)

    def commit(self, session: SettingsEditSession) -> CollectionSettings:
        """Persist the values of a confirmed edit session."""
        form = session.form
        settings = CollectionSettings(
            roll_id=form.roll_id,
            create_new_roll=form.create_new_roll,
            roll_name=form.roll_name,
            roll_date=format_roll_date(form.date_year, form.date_month, form.date_day),
            date_year=form.date_year,
            date_month=form.date_month,
            date_day=form.date_day,
        )
        self.save(session.collection, settings)
        return settings
