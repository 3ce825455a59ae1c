"""Descriptive metadata mapping from host assets to catalog records."""

from datetime import datetime

from roll_publisher.domain.catalog import GeoLocation, RecordMetadata
from roll_publisher.domain.publishing import AssetMetadata

FLAGGED = "flagged"


def extract_record_metadata(asset: AssetMetadata) -> RecordMetadata:
    """Map host metadata onto record attributes."""
    location = None
    if asset.latitude is not None and asset.longitude is not None:
        location = GeoLocation(latitude=asset.latitude, longitude=asset.longitude)
    return RecordMetadata(
        stars=asset.rating or 0,
        selected=asset.pick_status == FLAGGED,
        keywords=_keyword_names(asset.keywords),
        description=asset.caption,
        captured_at=_timestamp(asset.captured_at),
        location=location,
    )


def _keyword_names(keywords: list[object]) -> list[str]:
    names: list[str] = []
    for keyword in keywords:
        if isinstance(keyword, str):
            names.append(keyword)
            continue
        name = getattr(keyword, "name", None)
        if isinstance(name, str):
            names.append(name)
    return names


def _timestamp(value: datetime | str | None) -> str | None:
    if isinstance(value, datetime):
        return value.isoformat()
    return value
