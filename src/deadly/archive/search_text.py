# ABOUTME: Builds the rich searchable text stored in the show search index.
# ABOUTME: Combines venue, location, date variants, songs, and lineup into one document.

from deadly.archive.types import ShowMetadata

_MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


def date_variants(date: str) -> list[str]:
    """Expand an ISO date into the forms people type when searching.

    "1977-05-08" -> ["1977-05-08", "5/8/77", "5-8-77", "5.8.77", "5/8/1977",
    "1977", "77", "May 1977", "May 8 1977", "1970s"].
    """
    year, month, day = int(date[0:4]), int(date[5:7]), int(date[8:10])
    short_year = f"{year % 100:02d}"
    month_name = _MONTH_NAMES[month - 1]
    return [
        date,
        f"{month}/{day}/{short_year}",
        f"{month}-{day}-{short_year}",
        f"{month}.{day}.{short_year}",
        f"{month}/{day}/{year}",
        str(year),
        short_year,
        f"{month_name} {year}",
        f"{month_name} {day} {year}",
        f"{year // 10 * 10}s",
    ]


def build_search_text(show: ShowMetadata) -> str:
    """Concatenate every searchable facet of a show into one text document.

    Empty facets are skipped and duplicates removed while preserving order, so
    rebuilding the text for unchanged metadata is deterministic.
    """
    parts: list[str | None] = [
        show.show_id,
        *date_variants(show.date),
        show.band,
        show.venue_name,
        show.city,
        show.state,
        show.country,
        show.location_raw,
        *show.song_names,
        *show.member_names,
    ]

    seen: set[str] = set()
    unique: list[str] = []
    for part in parts:
        if not part:
            continue
        text = part.strip()
        if text and text not in seen:
            seen.add(text)
            unique.append(text)
    return " ".join(unique)
