"""Roll choices for collection settings."""

from dataclasses import dataclass

from roll_publisher.adapters.catalog_api import CatalogApi

PLACEHOLDER_TITLE = "-- Select a Roll --"


@dataclass(frozen=True)
class RollChoice:
    """One entry in a roll picker."""

    title: str
    value: str | None


@dataclass
class RollService:
    """Lists remote rolls for selection."""

    catalog: CatalogApi

    async def list_choices(self) -> list[RollChoice]:
        """Return a placeholder followed by every remote roll."""
        collections = await self.catalog.list_collections()
        choices = [RollChoice(title=PLACEHOLDER_TITLE, value=None)]
        choices.extend(
            RollChoice(title=collection.display_name, value=collection.id)
            for collection in collections
        )
        return choices
