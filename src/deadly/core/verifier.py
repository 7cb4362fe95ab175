# ABOUTME: Consistency verification for library state and the search index.
# ABOUTME: Reports shows whose denormalized columns disagree with library_shows or the index.

from dataclasses import dataclass, field

from deadly.db.gateway import StorageGateway


@dataclass(frozen=True)
class Violation:
    show_id: str
    issue: str


@dataclass
class VerifyResult:
    """Aggregated results from an archive verification run."""

    shows_checked: int = 0
    membership: list[Violation] = field(default_factory=list)
    added_at: list[Violation] = field(default_factory=list)
    pinned: list[Violation] = field(default_factory=list)
    search_index: list[Violation] = field(default_factory=list)

    @property
    def violations(self) -> list[Violation]:
        return [*self.membership, *self.added_at, *self.pinned, *self.search_index]

    @property
    def total_issues(self) -> int:
        """Total number of issues found across all categories."""
        return len(self.violations)


def verify_archive(gateway: StorageGateway) -> VerifyResult:
    """Check library and index consistency for every show.

    1. A library_shows row exists exactly when shows.is_in_library is set.
    2. shows.library_added_at matches library_shows.added_at, or is NULL
       for non-members.
    3. shows.is_pinned matches library_shows.is_pinned; non-members are
       never pinned.
    4. Every show has exactly one search index entry and no entry points
       at a missing show.
    """
    result = VerifyResult()
    rows = gateway.query(
        "SELECT s.show_id, s.is_in_library, s.library_added_at, s.is_pinned, "
        "l.show_id AS lib_id, l.added_at AS lib_added_at, l.is_pinned AS lib_pinned, "
        "(SELECT COUNT(*) FROM show_search x WHERE x.show_id = s.show_id) AS index_entries "
        "FROM shows s LEFT JOIN library_shows l ON l.show_id = s.show_id "
        "ORDER BY s.show_id"
    )

    for row in rows:
        result.shows_checked += 1
        show_id = row["show_id"]
        member = row["lib_id"] is not None

        if member != bool(row["is_in_library"]):
            issue = (
                "library row without is_in_library"
                if member
                else "is_in_library set without library row"
            )
            result.membership.append(Violation(show_id, issue))

        expected_added_at = row["lib_added_at"] if member else None
        if row["library_added_at"] != expected_added_at:
            result.added_at.append(
                Violation(
                    show_id,
                    f"library_added_at {row['library_added_at']} != {expected_added_at}",
                )
            )

        expected_pinned = bool(row["lib_pinned"]) if member else False
        if bool(row["is_pinned"]) != expected_pinned:
            result.pinned.append(
                Violation(show_id, f"is_pinned {bool(row['is_pinned'])} != {expected_pinned}")
            )

        if row["index_entries"] != 1:
            result.search_index.append(
                Violation(show_id, f"{row['index_entries']} search index entries")
            )

    orphans = gateway.query(
        "SELECT show_id FROM show_search WHERE show_id NOT IN (SELECT show_id FROM shows) "
        "ORDER BY show_id"
    )
    result.search_index.extend(
        Violation(row["show_id"], "index entry for unknown show") for row in orphans
    )

    return result
