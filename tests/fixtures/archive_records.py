# ABOUTME: Canned archive payloads for testing: show and recording JSON objects.
# ABOUTME: Builders return dicts shaped like the dataset's per-record JSON files.

import json
import zipfile
from pathlib import Path
from typing import Any

from deadly.archive.types import ArchiveEntry

CORNELL_77 = {
    "show_id": "1977-05-08-barton-hall-cornell-u-ithaca-ny-usa",
    "date": "1977-05-08",
    "band": "Grateful Dead",
    "venue": "Barton Hall, Cornell University",
    "city": "Ithaca",
    "state": "NY",
    "country": "USA",
    "location_raw": "Ithaca, NY",
    "url": "https://jerrygarcia.com/show/1977-05-08-barton-hall-cornell-u-ithaca-ny-usa/",
    "setlist_status": "found",
    "setlist": [
        {
            "set_name": "Set 1",
            "songs": [
                {"name": "New Minglewood Blues", "segue_into_next": False},
                {"name": "Loser", "segue_into_next": False},
            ],
        },
        {
            "set_name": "Set 2",
            "songs": [
                {"name": "Scarlet Begonias", "segue_into_next": True},
                {"name": "Fire on the Mountain", "segue_into_next": False},
            ],
        },
    ],
    "lineup_status": "found",
    "lineup": [
        {"name": "Jerry Garcia", "instruments": "guitar, vocals"},
        {"name": "Bob Weir", "instruments": "guitar, vocals"},
        {"name": "Phil Lesh", "instruments": "bass"},
    ],
    "recordings": ["gd77-05-08.sbd.hicks.4982.sbeok.shnf", "gd77-05-08.aud.vernon.82.sbefail.shnf"],
    "best_recording": "gd77-05-08.sbd.hicks.4982.sbeok.shnf",
    "avg_rating": 4.8,
    "reviews": 245,
}

ENGLAND_72 = {
    "show_id": "1972-04-07-wembley-empire-pool-london-england",
    "date": "1972-04-07",
    "venue": "Wembley Empire Pool",
    "city": "London",
    "state": None,
    "country": "England",
    "recordings": ["gd72-04-07.sbd.unknown.1234.shnf"],
    "avg_rating": 4.5,
    "reviews": 80,
}

WINTERLAND_77 = {
    "show_id": "1977-06-09-winterland-arena-san-francisco-ca-usa",
    "date": "1977-06-09",
    "venue": "Winterland Arena",
    "city": "San Francisco",
    "state": "CA",
    "recordings": ["gd77-06-09.sbd.miller.1111.shnf"],
    "avg_rating": 4.6,
    "reviews": 120,
}

CORNELL_SBD = {
    "identifier": "gd77-05-08.sbd.hicks.4982.sbeok.shnf",
    "source_type": "SBD",
    "taper": "Betty Cantor-Jackson",
    "lineage": "SBD > Reel > DAT > CD",
    "rating": 4.9,
    "raw_rating": 4.85,
    "review_count": 200,
    "confidence": 0.95,
    "high_ratings": 180,
    "low_ratings": 3,
}

CORNELL_AUD = {
    "identifier": "gd77-05-08.aud.vernon.82.sbefail.shnf",
    "source_type": "AUD",
    "rating": 3.9,
    "review_count": 12,
}

ENGLAND_SBD = {
    "identifier": "gd72-04-07.sbd.unknown.1234.shnf",
    "show_id": "1972-04-07-wembley-empire-pool-london-england",
    "source_type": "SBD",
    "rating": 4.4,
    "review_count": 30,
}

ORPHAN_RECORDING = {
    "identifier": "gd99-01-01.aud.nobody.0000.shnf",
    "source_type": "AUD",
}


def make_show(show_id: str, date: str, venue: str = "Fillmore West", **extra: Any) -> dict:
    """Build a minimal show payload."""
    return {"show_id": show_id, "date": date, "venue": venue, **extra}


def make_recording(identifier: str, **extra: Any) -> dict:
    return {"identifier": identifier, **extra}


def entry(payload: dict, name: str | None = None) -> ArchiveEntry:
    """Encode a payload as the archive entry the extractor would produce."""
    key = payload.get("show_id") or payload.get("identifier") or "record"
    return ArchiveEntry(name=name or f"{key}.json", data=json.dumps(payload).encode("utf-8"))


def entries(payloads: list[dict]) -> list[ArchiveEntry]:
    return [entry(p) for p in payloads]


def broken_entry(name: str = "broken.json") -> ArchiveEntry:
    return ArchiveEntry(name=name, data=b"{not valid json")


def write_archive_zip(
    path: Path,
    shows: list[dict],
    recordings: list[dict],
    *,
    prefix: str = "",
) -> Path:
    """Write a data.zip with shows/ and recordings/ directories of JSON files."""
    with zipfile.ZipFile(path, "w") as zf:
        for show in shows:
            zf.writestr(f"{prefix}shows/{show['show_id']}.json", json.dumps(show))
        for recording in recordings:
            zf.writestr(f"{prefix}recordings/{recording['identifier']}.json", json.dumps(recording))
        zf.writestr(f"{prefix}README.md", "archive metadata")
    return path
