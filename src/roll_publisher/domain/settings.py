"""Per-collection publish settings."""

import re

from pydantic import BaseModel, ConfigDict, model_validator

_DATE_PATTERN = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")


class CollectionSettings(BaseModel):
    """Settings a user attaches to one local published collection.

    Serialized into the collection's single opaque string slot, so every field
    must have a default and unknown keys are ignored.
    """

    model_config = ConfigDict(extra="ignore")

    roll_id: str | None = None
    create_new_roll: bool = True
    roll_name: str | None = None
    roll_date: str = ""
    date_year: int | None = None
    date_month: int | None = None
    date_day: int | None = None

    @model_validator(mode="after")
    def _fill_date(self) -> "CollectionSettings":
        components = (self.date_year, self.date_month, self.date_day)
        if self.roll_date and all(part is None for part in components):
            match = _DATE_PATTERN.match(self.roll_date)
            if match:
                self.date_year = int(match.group(1))
                self.date_month = int(match.group(2))
                self.date_day = int(match.group(3))
        elif not self.roll_date and None not in components:
            self.roll_date = format_roll_date(
                self.date_year, self.date_month, self.date_day
            )
        return self

    def resolved_date(self) -> str | None:
        """Return the roll date, or None when no complete date is set."""
        return self.roll_date or None


def format_roll_date(
    year: int | None, month: int | None, day: int | None
) -> str:
    """Compose a YYYY-MM-DD string, or an empty string if a part is missing."""
    if year is None or month is None or day is None:
        return ""
    return f"{year:04d}-{month:02d}-{day:02d}"
