"""Domain models for the remote catalog."""

import re
from dataclasses import dataclass, field

_ISO_DATE_PREFIX = re.compile(r"^(\d{4}-\d{2}-\d{2})")


@dataclass(frozen=True)
class RemoteCollection:
    """A roll on the catalog service."""

    id: str
    name: str | None = None
    date: str | None = None
    description: str | None = None

    @property
    def display_date(self) -> str | None:
        """Date part of the roll timestamp, if present."""
        if not self.date:
            return None
        match = _ISO_DATE_PREFIX.match(self.date)
        return match.group(1) if match else None

    @property
    def display_name(self) -> str:
        """Name shown in roll pickers."""
        name = self.name or self.id
        if self.display_date:
            return f"{name} ({self.display_date})"
        return name


@dataclass(frozen=True)
class UploadTarget:
    """A pre-signed upload destination issued for one record."""

    upload_url: str
    upload_headers: dict[str, str]
    record_id: str
    storage_key: str | None


@dataclass(frozen=True)
class GeoLocation:
    """GPS coordinate pair."""

    latitude: float
    longitude: float


@dataclass(frozen=True)
class RecordMetadata:
    """Descriptive fields of a remote photograph record."""

    stars: int = 0
    selected: bool = False
    keywords: list[str] = field(default_factory=list)
    description: str | None = None
    captured_at: str | None = None
    location: GeoLocation | None = None

    def to_attributes(self) -> dict[str, object]:
        """Return JSON:API attributes for this metadata."""
        attributes: dict[str, object] = {
            "stars": self.stars,
            "selected": self.selected,
            "keywords": list(self.keywords),
            "description": self.description,
        }
        if self.captured_at is not None:
            attributes["capturedAt"] = self.captured_at
        if self.location is not None:
            attributes["location"] = {
                "latitude": self.location.latitude,
                "longitude": self.location.longitude,
            }
        return attributes
