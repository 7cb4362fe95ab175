# ABOUTME: Core data structures for archive records flowing from extraction into storage.
# ABOUTME: ShowMetadata and Recording are the interchange format between parser and importer.

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ArchiveEntry:
    """A raw member of the extracted archive: its name and undecoded bytes."""

    name: str
    data: bytes


@dataclass(frozen=True)
class Song:
    name: str
    segue_into_next: bool = False


@dataclass(frozen=True)
class SetlistSet:
    name: str | None
    songs: tuple[Song, ...] = ()


@dataclass(frozen=True)
class LineupMember:
    name: str
    instruments: str | None = None


@dataclass
class ShowMetadata:
    """Normalized descriptive metadata for one recorded performance.

    This is what the importer writes; library state lives on the stored
    record (see ``deadly.db.mapping.ShowRecord``), never here.
    """

    show_id: str
    date: str
    band: str
    venue_name: str
    city: str | None = None
    state: str | None = None
    country: str = "USA"
    location_raw: str | None = None
    url: str | None = None
    setlist_status: str | None = None
    setlist: list[SetlistSet] = field(default_factory=list)
    lineup_status: str | None = None
    lineup: list[LineupMember] = field(default_factory=list)
    recording_ids: list[str] = field(default_factory=list)
    best_recording_id: str | None = None
    average_rating: float | None = None
    total_reviews: int = 0
    show_sequence: int = 1

    @property
    def year(self) -> int:
        return int(self.date[0:4])

    @property
    def month(self) -> int:
        return int(self.date[5:7])

    @property
    def year_month(self) -> str:
        return self.date[0:7]

    @property
    def song_names(self) -> list[str]:
        """All song names across sets, in performance order."""
        return [song.name for s in self.setlist for song in s.songs]

    @property
    def member_names(self) -> list[str]:
        return [member.name for member in self.lineup]

    @property
    def location_display(self) -> str:
        """City and state joined for display, falling back to the raw location."""
        parts = [p for p in (self.city, self.state) if p]
        if parts:
            return ", ".join(parts)
        return self.location_raw or ""

    @property
    def display_title(self) -> str:
        return f"{self.date} - {self.venue_name}"


@dataclass(frozen=True)
class Recording:
    """One taped source of a show. Immutable once imported.

    ``show_id`` may be unknown when parsed; the importer resolves it from the
    shows that list the recording before anything is written.
    """

    identifier: str
    show_id: str | None = None
    source_type: str | None = None
    taper: str | None = None
    source: str | None = None
    lineage: str | None = None
    rating: float = 0.0
    raw_rating: float = 0.0
    review_count: int = 0
    confidence: float = 0.0
    high_ratings: int = 0
    low_ratings: int = 0
