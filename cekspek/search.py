import asyncio
import logging
from typing import Any, Awaitable, Callable, Iterable, List, Mapping, Optional

from cekspek.config import SEARCH_DEBOUNCE_SECONDS

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2


def is_searchable(query: Optional[str]) -> bool:
    return query is not None and len(query.strip()) >= MIN_QUERY_LENGTH


def _get(phone: Any, field: str) -> Any:
    if isinstance(phone, Mapping):
        return phone.get(field)
    return getattr(phone, field, None)


def filter_phones(query: str, phones: Iterable[Any]) -> List[Any]:
    """Phones whose name or chipset contains ``query`` (case-insensitive), sorted by name."""
    if not is_searchable(query):
        return []
    needle = query.strip().casefold()
    matches = [
        phone for phone in phones
        if any(needle in (_get(phone, field) or "").casefold() for field in ("name", "chipset"))
    ]
    return sorted(matches, key=lambda phone: (_get(phone, "name").casefold(), _get(phone, "name")))


class DebouncedSearch:
    """Drive a search coroutine from interactive input.

    A query is issued only after ``delay`` seconds without a newer one, and
    results that arrive after a newer query was submitted are dropped. Both
    cases return ``None``. In-flight calls are never cancelled.
    """

    def __init__(self, search: Callable[[str], Awaitable[list]], delay: float = SEARCH_DEBOUNCE_SECONDS):
        self._search = search
        self.delay = delay
        self._latest = 0
        self._active = 0

    @property
    def idle(self) -> bool:
        """No ``search`` call is waiting or running."""
        return self._active == 0

    async def search(self, query: str) -> Optional[list]:
        self._active += 1
        try:
            return await self._run(query)
        finally:
            self._active -= 1

    async def _run(self, query: str) -> Optional[list]:
        self._latest += 1
        ticket = self._latest
        await asyncio.sleep(self.delay)
        if ticket != self._latest:
            return None
        if not is_searchable(query):
            return []
        results = await self._search(query.strip())
        if ticket != self._latest:
            logger.debug(f"Dropping stale results for {query!r}")
            return None
        return results
