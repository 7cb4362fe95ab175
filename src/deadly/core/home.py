# ABOUTME: Home view aggregator combining recent plays, today in history, and featured collections.
# ABOUTME: Recomputes after commits to the tables it reads and republishes only real changes.

import datetime
import logging
import sqlite3
from collections.abc import Callable
from dataclasses import dataclass, field

from deadly.clock import now_ms
from deadly.core.curated import Collection, featured_collections
from deadly.core.result import OperationResult
from deadly.core.streams import StateStream
from deadly.db.catalog import ShowCatalog
from deadly.db.gateway import StorageGateway
from deadly.db.mapping import RecentPlay, ShowRecord
from deadly.errors import QueryFailure

logger = logging.getLogger(__name__)

FRESHNESS_WINDOW_MS = 3_600_000
RECENT_SHOWS_LIMIT = 8
HOME_TABLES = ("shows", "recent_shows", "library_shows")


@dataclass(frozen=True)
class HomeContent:
    recent_shows: tuple[RecentPlay, ...] = ()
    today_in_history: tuple[ShowRecord, ...] = ()
    featured_collections: tuple[Collection, ...] = ()
    # Not part of equality: an unchanged recompute updates it without republishing.
    last_refresh: int = field(default=0, compare=False)

    @property
    def has_content(self) -> bool:
        return bool(self.recent_shows or self.today_in_history or self.featured_collections)

    def is_fresh(self, now: int | None = None) -> bool:
        current = now if now is not None else now_ms()
        return current - self.last_refresh < FRESHNESS_WINDOW_MS


class HomeService:
    """Publishes HomeContent and keeps it current as the archive changes."""

    def __init__(
        self,
        gateway: StorageGateway,
        catalog: ShowCatalog | None = None,
        *,
        today: Callable[[], datetime.date] = datetime.date.today,
        clock: Callable[[], int] = now_ms,
        recent_limit: int = RECENT_SHOWS_LIMIT,
    ) -> None:
        self._catalog = catalog or ShowCatalog(gateway)
        self._today = today
        self._clock = clock
        self._recent_limit = recent_limit
        self._content: StateStream[HomeContent] = StateStream(HomeContent())
        try:
            self._content.publish(self._compute())
        except sqlite3.Error:
            logger.exception("Failed to load home content")
        self._remove_listener = gateway.add_listener(HOME_TABLES, self._on_change)

    @property
    def home_content(self) -> StateStream[HomeContent]:
        return self._content

    async def refresh_all(self) -> OperationResult:
        """Recompute every section now.

        On failure the previously published content stays in place.
        """
        try:
            content = self._compute()
        except sqlite3.Error as exc:
            logger.error("Home refresh failed: %s", exc)
            return OperationResult.fail(QueryFailure(f"Home refresh failed: {exc}"))
        self._content.publish(content, force=True)
        logger.debug(
            "Home refreshed: %d recent, %d history, %d collections",
            len(content.recent_shows),
            len(content.today_in_history),
            len(content.featured_collections),
        )
        return OperationResult.ok()

    def close(self) -> None:
        self._remove_listener()

    def _compute(self) -> HomeContent:
        today = self._today()
        return HomeContent(
            recent_shows=tuple(self._catalog.get_recent_shows(self._recent_limit)),
            today_in_history=tuple(self._catalog.shows_on_month_day(today.month, today.day)),
            featured_collections=tuple(featured_collections(self._catalog)),
            last_refresh=self._clock(),
        )

    def _on_change(self, changed: frozenset[str]) -> None:
        try:
            self._content.publish(self._compute())
        except sqlite3.Error:
            logger.exception("Failed to recompute home content after change to %s", sorted(changed))
