"""
Cursor pagination over collection envelopes.

Collections link to neighbouring pages through `pages.next_url` and
`pages.previous_url`. The paginator follows those links lazily, yielding the
resources of each page in order, and stops when the link runs out or a page
comes back empty.
"""

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass, field
from typing import Literal

from wanikani.domain.envelope import Collection, Resource
from wanikani.domain.errors import WaniKaniError

logger = logging.getLogger(__name__)

Direction = Literal["next", "previous"]
FetchPage = Callable[[str], Awaitable[Collection]]


@dataclass
class PartialResults:
    """Resources gathered before a page fetch failed."""

    items: list[Resource] = field(default_factory=list)
    error: WaniKaniError | None = None

    @property
    def complete(self) -> bool:
        return self.error is None


class Paginator:
    def __init__(self, fetch_page: FetchPage):
        self._fetch_page = fetch_page

    async def iterate(
        self, first: Collection, direction: Direction = "next"
    ) -> AsyncIterator[Resource]:
        """
        Yield every resource of `first` and of each page reachable from it.

        Each further page is fetched only once the consumer has drained the
        previous one; stopping iteration early fetches nothing more.

        Raises:
            WaniKaniError: Whatever the page fetch raised. Resources already
                yielded stay with the consumer.
        """
        if direction not in ("next", "previous"):
            raise ValueError(f"Unknown pagination direction: {direction!r}")

        page = first
        visited = {first.url}
        while True:
            for resource in page.data:
                yield resource

            if not page.data:
                return

            link = page.pages.next_url if direction == "next" else page.pages.previous_url
            if link is None:
                return
            if link in visited:
                logger.warning(f"Pagination loop detected at {link}; stopping")
                return
            visited.add(link)

            logger.debug(f"Fetching {direction} page {link}")
            page = await self._fetch_page(link)

    async def collect(
        self, first: Collection, partial: bool = False, direction: Direction = "next"
    ) -> list[Resource] | PartialResults:
        """
        Drain every page into a list.

        With `partial=True` a failing page fetch does not raise; the items
        gathered so far come back in a `PartialResults` alongside the error.
        """
        items: list[Resource] = []
        try:
            async for resource in self.iterate(first, direction):
                items.append(resource)
        except WaniKaniError as e:
            if not partial:
                raise
            logger.warning(f"Pagination stopped after {len(items)} items: {e}")
            return PartialResults(items=items, error=e)

        if partial:
            return PartialResults(items=items)
        return items
