# ABOUTME: Parsing functions for show and recording JSON records from the archive dataset.
# ABOUTME: Converts raw archive entries into ShowMetadata and Recording, raising ParseFailure.

import datetime
import json
import re
from typing import Any

from deadly.archive.types import (
    ArchiveEntry,
    LineupMember,
    Recording,
    SetlistSet,
    ShowMetadata,
    Song,
)
from deadly.errors import ParseFailure

DEFAULT_BAND = "Grateful Dead"
DEFAULT_VENUE = "Unknown Venue"
DEFAULT_COUNTRY = "USA"

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def decode_entry(entry: ArchiveEntry) -> dict[str, Any]:
    """Decode an archive entry's bytes into a JSON object."""
    try:
        data = json.loads(entry.data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ParseFailure(entry.name, f"invalid JSON ({exc})") from exc
    if not isinstance(data, dict):
        raise ParseFailure(entry.name, "expected a JSON object")
    return data


def _require_str(data: dict[str, Any], key: str, name: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ParseFailure(name, f"missing required field '{key}'")
    return value.strip()


def _optional_str(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _number(data: dict[str, Any], key: str, name: str, kind: type, default: Any) -> Any:
    value = data.get(key)
    if value is None:
        return default
    if isinstance(value, bool):
        raise ParseFailure(name, f"field '{key}' must be numeric")
    try:
        return kind(value)
    except (TypeError, ValueError) as exc:
        raise ParseFailure(name, f"field '{key}' must be numeric") from exc


def _validate_date(date: str, name: str) -> str:
    if _DATE_RE.match(date) is None:
        raise ParseFailure(name, f"date '{date}' is not YYYY-MM-DD")
    try:
        datetime.date.fromisoformat(date)
    except ValueError as exc:
        raise ParseFailure(name, f"date '{date}' is not a calendar date") from exc
    return date


def parse_location(raw: str | None) -> tuple[str | None, str | None]:
    """Split a raw location like "Barton Hall, Ithaca, NY" into (city, state).

    Three or more comma-separated parts take the last two; two parts are read
    as city and state; anything else yields (None, None).
    """
    if not raw:
        return None, None
    parts = [p.strip() for p in raw.split(",") if p.strip()]
    if len(parts) >= 3:
        return parts[-2], parts[-1]
    if len(parts) == 2:
        return parts[0], parts[1]
    return None, None


def _parse_setlist(value: Any, name: str) -> list[SetlistSet]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ParseFailure(name, "setlist must be a list")
    sets: list[SetlistSet] = []
    for raw_set in value:
        if not isinstance(raw_set, dict):
            raise ParseFailure(name, "setlist entries must be objects")
        songs = []
        for raw_song in raw_set.get("songs") or []:
            if isinstance(raw_song, str):
                songs.append(Song(name=raw_song))
            elif isinstance(raw_song, dict) and raw_song.get("name"):
                songs.append(
                    Song(
                        name=str(raw_song["name"]),
                        segue_into_next=bool(raw_song.get("segue_into_next", False)),
                    )
                )
        sets.append(SetlistSet(name=_optional_str(raw_set, "set_name"), songs=tuple(songs)))
    return sets


def _parse_lineup(value: Any, name: str) -> list[LineupMember]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ParseFailure(name, "lineup must be a list")
    members = []
    for raw_member in value:
        if isinstance(raw_member, dict) and raw_member.get("name"):
            members.append(
                LineupMember(
                    name=str(raw_member["name"]),
                    instruments=_optional_str(raw_member, "instruments"),
                )
            )
    return members


def parse_show(data: dict[str, Any], name: str = "<show>") -> ShowMetadata:
    """Parse a show JSON object into ShowMetadata.

    Requires ``show_id`` and a ``YYYY-MM-DD`` ``date``. City and state fall
    back to parsing ``location_raw`` (or the venue string) when absent.
    """
    show_id = _require_str(data, "show_id", name)
    date = _validate_date(_require_str(data, "date", name), name)

    venue = _optional_str(data, "venue") or DEFAULT_VENUE
    location_raw = _optional_str(data, "location_raw")
    city = _optional_str(data, "city")
    state = _optional_str(data, "state")
    if city is None and state is None:
        city, state = parse_location(location_raw or venue)

    recordings = data.get("recordings") or []
    if not isinstance(recordings, list):
        raise ParseFailure(name, "recordings must be a list")

    return ShowMetadata(
        show_id=show_id,
        date=date,
        band=_optional_str(data, "band") or DEFAULT_BAND,
        venue_name=venue,
        city=city,
        state=state,
        country=_optional_str(data, "country") or DEFAULT_COUNTRY,
        location_raw=location_raw,
        url=_optional_str(data, "url"),
        setlist_status=_optional_str(data, "setlist_status"),
        setlist=_parse_setlist(data.get("setlist"), name),
        lineup_status=_optional_str(data, "lineup_status"),
        lineup=_parse_lineup(data.get("lineup"), name),
        recording_ids=[str(r) for r in recordings],
        best_recording_id=_optional_str(data, "best_recording"),
        average_rating=_number(data, "avg_rating", name, float, None),
        total_reviews=_number(data, "reviews", name, int, 0),
        show_sequence=_number(data, "show_sequence", name, int, 1),
    )


def parse_recording(data: dict[str, Any], name: str = "<recording>") -> Recording:
    """Parse a recording JSON object into a Recording.

    ``show_id`` is optional here; the importer resolves it when absent.
    """
    return Recording(
        identifier=_require_str(data, "identifier", name),
        show_id=_optional_str(data, "show_id"),
        source_type=_optional_str(data, "source_type"),
        taper=_optional_str(data, "taper"),
        source=_optional_str(data, "source"),
        lineage=_optional_str(data, "lineage"),
        rating=_number(data, "rating", name, float, 0.0),
        raw_rating=_number(data, "raw_rating", name, float, 0.0),
        review_count=_number(data, "review_count", name, int, 0),
        confidence=_number(data, "confidence", name, float, 0.0),
        high_ratings=_number(data, "high_ratings", name, int, 0),
        low_ratings=_number(data, "low_ratings", name, int, 0),
    )


def parse_show_entry(entry: ArchiveEntry) -> ShowMetadata:
    return parse_show(decode_entry(entry), entry.name)


def parse_recording_entry(entry: ArchiveEntry) -> Recording:
    return parse_recording(decode_entry(entry), entry.name)
