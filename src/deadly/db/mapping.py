# ABOUTME: Converts between archive dataclasses and SQLite row dictionaries.
# ABOUTME: Handles JSON serialization for setlist, lineup, and recording id fields.

import json
from dataclasses import dataclass
from typing import Any

from deadly.archive.types import LineupMember, Recording, SetlistSet, ShowMetadata, Song

# Columns owned by the importer. An upsert of these never touches library state.
SHOW_METADATA_COLUMNS = (
    "show_id",
    "date",
    "year",
    "month",
    "year_month",
    "band",
    "url",
    "venue_name",
    "city",
    "state",
    "country",
    "location_raw",
    "setlist_status",
    "setlist_raw",
    "song_list",
    "lineup_status",
    "lineup_raw",
    "member_list",
    "show_sequence",
    "recordings_raw",
    "recording_count",
    "best_recording_id",
    "average_rating",
    "total_reviews",
)

RECORDING_COLUMNS = (
    "identifier",
    "show_id",
    "source_type",
    "taper",
    "source",
    "lineage",
    "rating",
    "raw_rating",
    "review_count",
    "confidence",
    "high_ratings",
    "low_ratings",
    "collection_timestamp",
)


@dataclass
class ShowRecord:
    """A stored show: ShowMetadata plus denormalized library columns."""

    metadata: ShowMetadata
    is_in_library: bool
    library_added_at: int | None
    is_pinned: bool
    created_at: int
    updated_at: int

    @property
    def show_id(self) -> str:
        return self.metadata.show_id


@dataclass
class LibraryShow:
    """A show in the user's library, joined from library_shows and shows."""

    show: ShowRecord
    added_at: int
    is_pinned: bool = False
    notes: str | None = None

    @property
    def show_id(self) -> str:
        return self.show.show_id


@dataclass(frozen=True)
class LibraryStats:
    total_shows: int
    total_pinned: int


@dataclass
class RecentPlay:
    show: ShowRecord
    last_played_at: int
    total_play_count: int


def _setlist_to_json(setlist: list[SetlistSet]) -> str | None:
    if not setlist:
        return None
    return json.dumps(
        [
            {
                "set_name": s.name,
                "songs": [
                    {"name": song.name, "segue_into_next": song.segue_into_next}
                    for song in s.songs
                ],
            }
            for s in setlist
        ]
    )


def _setlist_from_json(raw: str | None) -> list[SetlistSet]:
    if not raw:
        return []
    return [
        SetlistSet(
            name=s.get("set_name"),
            songs=tuple(
                Song(name=song["name"], segue_into_next=song.get("segue_into_next", False))
                for song in s.get("songs", [])
            ),
        )
        for s in json.loads(raw)
    ]


def _lineup_to_json(lineup: list[LineupMember]) -> str | None:
    if not lineup:
        return None
    return json.dumps([{"name": m.name, "instruments": m.instruments} for m in lineup])


def _lineup_from_json(raw: str | None) -> list[LineupMember]:
    if not raw:
        return []
    return [LineupMember(name=m["name"], instruments=m.get("instruments")) for m in json.loads(raw)]


def show_to_row(show: ShowMetadata) -> dict[str, Any]:
    """Convert ShowMetadata to a dict of importer-owned columns for INSERT."""
    return {
        "show_id": show.show_id,
        "date": show.date,
        "year": show.year,
        "month": show.month,
        "year_month": show.year_month,
        "band": show.band,
        "url": show.url,
        "venue_name": show.venue_name,
        "city": show.city,
        "state": show.state,
        "country": show.country,
        "location_raw": show.location_raw,
        "setlist_status": show.setlist_status,
        "setlist_raw": _setlist_to_json(show.setlist),
        "song_list": ",".join(show.song_names) or None,
        "lineup_status": show.lineup_status,
        "lineup_raw": _lineup_to_json(show.lineup),
        "member_list": ",".join(show.member_names) or None,
        "show_sequence": show.show_sequence,
        "recordings_raw": json.dumps(show.recording_ids) if show.recording_ids else None,
        "recording_count": len(show.recording_ids),
        "best_recording_id": show.best_recording_id,
        "average_rating": show.average_rating,
        "total_reviews": show.total_reviews,
    }


def row_to_metadata(row: Any) -> ShowMetadata:
    """Convert a shows row (dict-like) back to ShowMetadata."""
    recordings_raw = row["recordings_raw"]
    return ShowMetadata(
        show_id=row["show_id"],
        date=row["date"],
        band=row["band"],
        venue_name=row["venue_name"],
        city=row["city"],
        state=row["state"],
        country=row["country"],
        location_raw=row["location_raw"],
        url=row["url"],
        setlist_status=row["setlist_status"],
        setlist=_setlist_from_json(row["setlist_raw"]),
        lineup_status=row["lineup_status"],
        lineup=_lineup_from_json(row["lineup_raw"]),
        recording_ids=json.loads(recordings_raw) if recordings_raw else [],
        best_recording_id=row["best_recording_id"],
        average_rating=row["average_rating"],
        total_reviews=row["total_reviews"],
        show_sequence=row["show_sequence"],
    )


def row_to_show_record(row: Any) -> ShowRecord:
    """Convert a full shows row to a ShowRecord with metadata and library fields."""
    return ShowRecord(
        metadata=row_to_metadata(row),
        is_in_library=bool(row["is_in_library"]),
        library_added_at=row["library_added_at"],
        is_pinned=bool(row["is_pinned"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def recording_to_row(recording: Recording, collected_at: int) -> dict[str, Any]:
    """Convert a Recording to a dict suitable for INSERT.

    The recording's show_id must already be resolved.
    """
    if recording.show_id is None:
        raise ValueError(f"Recording {recording.identifier} has no show_id")
    return {
        "identifier": recording.identifier,
        "show_id": recording.show_id,
        "source_type": recording.source_type,
        "taper": recording.taper,
        "source": recording.source,
        "lineage": recording.lineage,
        "rating": recording.rating,
        "raw_rating": recording.raw_rating,
        "review_count": recording.review_count,
        "confidence": recording.confidence,
        "high_ratings": recording.high_ratings,
        "low_ratings": recording.low_ratings,
        "collection_timestamp": collected_at,
    }


def row_to_recording(row: Any) -> Recording:
    return Recording(
        identifier=row["identifier"],
        show_id=row["show_id"],
        source_type=row["source_type"],
        taper=row["taper"],
        source=row["source"],
        lineage=row["lineage"],
        rating=row["rating"],
        raw_rating=row["raw_rating"],
        review_count=row["review_count"],
        confidence=row["confidence"],
        high_ratings=row["high_ratings"],
        low_ratings=row["low_ratings"],
    )
