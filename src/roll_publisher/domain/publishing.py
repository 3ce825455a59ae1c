"""Domain models for publish runs."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum


class PublishStatus(StrEnum):
    """Terminal state of one rendered item."""

    PUBLISHED = "published"
    FAILED = "failed"


@dataclass(frozen=True)
class AssetMetadata:
    """Raw metadata the host exposes for one asset."""

    rating: int | None = None
    pick_status: str | None = None
    keywords: list[object] = field(default_factory=list)
    caption: str | None = None
    captured_at: datetime | str | None = None
    latitude: float | None = None
    longitude: float | None = None


@dataclass(frozen=True)
class PublishOutcome:
    """Result of processing one rendered item."""

    local_id: str
    status: PublishStatus
    remote_id: str | None = None
    error: str | None = None
    updated: bool = False


@dataclass
class PublishSummary:
    """Aggregate result of a publish run."""

    collection_id: str | None = None
    outcomes: list[PublishOutcome] = field(default_factory=list)
    cancelled: bool = False
    error: Exception | None = None

    @property
    def published_count(self) -> int:
        return sum(
            1 for outcome in self.outcomes if outcome.status is PublishStatus.PUBLISHED
        )

    @property
    def failed_count(self) -> int:
        return sum(
            1 for outcome in self.outcomes if outcome.status is PublishStatus.FAILED
        )

    @property
    def aborted(self) -> bool:
        return self.error is not None
