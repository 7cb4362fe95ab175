# ABOUTME: Curated show collections featured on the home view.
# ABOUTME: Each collection is a date range resolved against the imported catalog.

from dataclasses import dataclass

from deadly.db.catalog import ShowCatalog


@dataclass(frozen=True)
class CollectionDefinition:
    """A curated grouping of shows played between two dates.

    When ``max_shows`` is set, only the highest rated shows in the range are
    kept, in date order.
    """

    id: str
    name: str
    description: str
    start_date: str
    end_date: str
    max_shows: int | None = None


@dataclass(frozen=True)
class Collection:
    id: str
    name: str
    description: str | None
    show_ids: tuple[str, ...]

    @property
    def show_count(self) -> int:
        return len(self.show_ids)

    @property
    def show_count_text(self) -> str:
        if self.show_count == 0:
            return "No shows"
        if self.show_count == 1:
            return "1 show"
        return f"{self.show_count} shows"

    @property
    def display_description(self) -> str:
        if not self.description:
            return f"Collection of {self.show_count_text}"
        if len(self.description) > 100:
            return self.description[:100] + "..."
        return self.description


FEATURED_COLLECTIONS = (
    CollectionDefinition(
        id="europe-72",
        name="Europe '72",
        description="The legendary European tour that changed everything",
        start_date="1972-04-07",
        end_date="1972-05-26",
    ),
    CollectionDefinition(
        id="cornell-77",
        name="Cornell '77",
        description="May 8, 1977 - Barton Hall, Cornell University",
        start_date="1977-05-08",
        end_date="1977-05-08",
    ),
    CollectionDefinition(
        id="best-of-77",
        name="Best of 1977",
        description="The cream of the crop from the legendary year",
        start_date="1977-01-01",
        end_date="1977-12-31",
        max_shows=15,
    ),
)


def resolve_collection(catalog: ShowCatalog, definition: CollectionDefinition) -> Collection:
    shows = catalog.shows_between(definition.start_date, definition.end_date)
    if definition.max_shows is not None:
        best = sorted(
            shows,
            key=lambda s: (-(s.metadata.average_rating or 0.0), -s.metadata.total_reviews),
        )[: definition.max_shows]
        keep = {s.show_id for s in best}
        shows = [s for s in shows if s.show_id in keep]
    return Collection(
        id=definition.id,
        name=definition.name,
        description=definition.description,
        show_ids=tuple(s.show_id for s in shows),
    )


def featured_collections(
    catalog: ShowCatalog,
    definitions: tuple[CollectionDefinition, ...] = FEATURED_COLLECTIONS,
) -> list[Collection]:
    """Resolve the featured collections, dropping any with no imported shows."""
    resolved = [resolve_collection(catalog, d) for d in definitions]
    return [c for c in resolved if c.show_ids]
