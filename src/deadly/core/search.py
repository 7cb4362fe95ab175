# ABOUTME: Search session state: current query, status, ranked results, and recent searches.
# ABOUTME: Resolves index matches to stored shows and publishes each piece on its own stream.

import enum
import logging
import re
import time
from dataclasses import dataclass

from deadly.clock import now_ms
from deadly.core.result import OperationResult
from deadly.core.streams import StateStream
from deadly.db.catalog import ShowCatalog
from deadly.db.mapping import ShowRecord
from deadly.db.search_index import SearchIndexer
from deadly.errors import QueryFailure

logger = logging.getLogger(__name__)

MAX_RECENT_SEARCHES = 10
SUGGESTION_POOL = 10


class SearchStatus(enum.Enum):
    IDLE = "idle"
    SEARCHING = "searching"
    SUCCESS = "success"
    NO_RESULTS = "no_results"
    ERROR = "error"


class SearchMatchType(enum.Enum):
    VENUE = "Venue"
    LOCATION = "Location"
    YEAR = "Year"
    GENERAL = "General"


class SuggestionType(enum.Enum):
    VENUE = "venue"
    YEAR = "year"
    LOCATION = "location"


@dataclass(frozen=True)
class SearchResultShow:
    show: ShowRecord
    relevance_score: float
    match_type: SearchMatchType
    has_downloads: bool
    highlighted_fields: tuple[str, ...] = ()

    @property
    def show_id(self) -> str:
        return self.show.show_id


@dataclass(frozen=True)
class SearchStats:
    total_results: int = 0
    search_duration_ms: int = 0


@dataclass(frozen=True)
class RecentSearch:
    query: str
    timestamp: int


@dataclass(frozen=True)
class SuggestedSearch:
    query: str
    type: SuggestionType


def determine_match_type(show: ShowRecord, query: str) -> SearchMatchType:
    q = query.strip().lower()
    metadata = show.metadata
    if q in metadata.venue_name.lower():
        return SearchMatchType.VENUE
    if metadata.city and q in metadata.city.lower():
        return SearchMatchType.LOCATION
    if q in metadata.date or q in str(metadata.year):
        return SearchMatchType.YEAR
    return SearchMatchType.GENERAL


def highlighted_fields(show: ShowRecord, query: str) -> tuple[str, ...]:
    q = query.strip().lower()
    metadata = show.metadata
    fields = []
    if q in metadata.venue_name.lower():
        fields.append("venue")
    if q in metadata.location_display.lower():
        fields.append("location")
    if q in metadata.date or q in str(metadata.year):
        fields.append("date")
    return tuple(fields)


class SearchService:
    """Runs searches against the index and publishes the results."""

    def __init__(self, indexer: SearchIndexer, catalog: ShowCatalog) -> None:
        self._indexer = indexer
        self._catalog = catalog
        self.current_query: StateStream[str] = StateStream("")
        self.search_status: StateStream[SearchStatus] = StateStream(SearchStatus.IDLE)
        self.search_results: StateStream[tuple[SearchResultShow, ...]] = StateStream(())
        self.search_stats: StateStream[SearchStats] = StateStream(SearchStats())
        self.recent_searches: StateStream[tuple[RecentSearch, ...]] = StateStream(())

    async def update_search_query(self, query: str) -> OperationResult:
        """Run ``query`` and publish its results.

        A blank query resets the session to IDLE. On failure the status
        becomes ERROR and the previous results are kept.
        """
        self.current_query.publish(query)
        if not query.strip():
            self._reset_results()
            return OperationResult.ok()

        self.search_status.publish(SearchStatus.SEARCHING)
        started = time.monotonic()
        try:
            show_ids = self._indexer.search(query)
        except QueryFailure as exc:
            logger.error("Search failed: %s", exc)
            self.search_status.publish(SearchStatus.ERROR)
            return OperationResult.fail(exc)

        shows = self._catalog.get_shows_by_ids(show_ids)
        total = max(len(shows), 1)
        results = tuple(
            SearchResultShow(
                show=show,
                relevance_score=1.0 - index / total,
                match_type=determine_match_type(show, query),
                has_downloads=bool(show.metadata.recording_ids),
                highlighted_fields=highlighted_fields(show, query),
            )
            for index, show in enumerate(shows)
        )
        duration = int((time.monotonic() - started) * 1000)

        self.search_results.publish(results)
        self.search_stats.publish(
            SearchStats(total_results=len(results), search_duration_ms=duration)
        )
        self.search_status.publish(SearchStatus.SUCCESS if results else SearchStatus.NO_RESULTS)
        logger.debug("Search %r: %d results in %dms", query, len(results), duration)
        return OperationResult.ok()

    async def clear_search(self) -> OperationResult:
        self.current_query.publish("")
        self._reset_results()
        return OperationResult.ok()

    async def add_recent_search(self, query: str, timestamp: int | None = None) -> OperationResult:
        """Remember a query, most recent first, without duplicates."""
        query = query.strip()
        if not query:
            return OperationResult.ok()
        if timestamp is None:
            timestamp = now_ms()
        entry = RecentSearch(query=query, timestamp=timestamp)
        others = [r for r in self.recent_searches.value if r.query != query]
        self.recent_searches.publish(tuple([entry, *others][:MAX_RECENT_SEARCHES]))
        return OperationResult.ok()

    async def clear_recent_searches(self) -> OperationResult:
        self.recent_searches.publish(())
        return OperationResult.ok()

    async def select_suggestion(self, suggestion: SuggestedSearch) -> OperationResult:
        return await self.update_search_query(suggestion.query)

    def get_suggestions(self, partial: str) -> list[SuggestedSearch]:
        """Suggest venues, years, and locations from the top matches for ``partial``.

        Raises:
            QueryFailure: If the index cannot be queried.
        """
        partial = partial.strip()
        if not partial:
            return []
        shows = self._catalog.get_shows_by_ids(self._indexer.search(partial, SUGGESTION_POOL))
        suggestions: list[SuggestedSearch] = []

        venues = list(dict.fromkeys(s.metadata.venue_name for s in shows))[:3]
        suggestions.extend(SuggestedSearch(v, SuggestionType.VENUE) for v in venues)

        if re.fullmatch(r"\d+", partial):
            years = list(
                dict.fromkeys(str(s.metadata.year) for s in shows if partial in s.metadata.date)
            )[:3]
            suggestions.extend(SuggestedSearch(y, SuggestionType.YEAR) for y in years)

        needle = partial.lower()
        locations = list(
            dict.fromkeys(
                f"{s.metadata.city}, {s.metadata.state}"
                for s in shows
                if (s.metadata.city and needle in s.metadata.city.lower())
                or (s.metadata.state and needle in s.metadata.state.lower())
            )
        )[:2]
        suggestions.extend(SuggestedSearch(loc, SuggestionType.LOCATION) for loc in locations)
        return suggestions

    def _reset_results(self) -> None:
        self.search_results.publish(())
        self.search_stats.publish(SearchStats())
        self.search_status.publish(SearchStatus.IDLE)
