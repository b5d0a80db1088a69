"""Client for the filamentcolors.xyz swatch catalog API."""

import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field

import httpx

from backend.app.core.config import APP_VERSION, settings
from backend.app.services.sync_errors import FetchFailed

logger = logging.getLogger(__name__)

# Politeness floor between page requests, applied even if configured lower
MIN_PAGE_DELAY = 0.2  # seconds


@dataclass
class CatalogPage:
    """One page of the paginated catalog response."""

    index: int  # 1-based position in the cursor chain
    url: str
    count: int
    next: str | None
    previous: str | None
    results: list = field(default_factory=list)


class FilamentColorsClient:
    """Walks the paginated swatch collection, one page at a time."""

    def __init__(
        self,
        base_url: str | None = None,
        *,
        page_delay: float | None = None,
        max_pages: int | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the catalog client.

        Args:
            base_url: First page of the swatch collection. Defaults to settings.catalog_url.
            page_delay: Seconds to wait between page requests (at least MIN_PAGE_DELAY).
            max_pages: Hard ceiling on pages followed per walk.
            timeout: Per-request timeout in seconds.
            transport: Optional httpx transport (used by tests).
        """
        self.base_url = base_url or settings.catalog_url
        page_delay = settings.sync_page_delay if page_delay is None else page_delay
        self.page_delay = max(page_delay, MIN_PAGE_DELAY)
        self.max_pages = settings.sync_max_pages if max_pages is None else max_pages
        self.timeout = settings.catalog_timeout if timeout is None else timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                headers={"Accept": "application/json", "User-Agent": f"SwatchSync/{APP_VERSION}"},
                follow_redirects=True,
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch_page(self, url: str, index: int) -> CatalogPage:
        """Fetch and decode a single page.

        Raises:
            FetchFailed: on transport errors, non-success responses or a body
                that is not a catalog page.
        """
        try:
            client = await self._get_client()
            response = await client.get(url)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise FetchFailed(url, index, f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise FetchFailed(url, index, f"{type(e).__name__}: {e}") from e
        except ValueError as e:
            raise FetchFailed(url, index, f"invalid JSON: {e}") from e

        if not isinstance(payload, dict):
            raise FetchFailed(url, index, "response is not a JSON object")

        results = payload.get("results")
        if results is None:
            results = []
        if not isinstance(results, list):
            raise FetchFailed(url, index, "'results' is not a list")

        return CatalogPage(
            index=index,
            url=url,
            count=payload.get("count") or 0,
            next=payload.get("next") or None,
            previous=payload.get("previous") or None,
            results=results,
        )

    async def iter_pages(self, start_url: str | None = None) -> AsyncIterator[CatalogPage]:
        """Yield catalog pages by following the ``next`` cursor.

        Stops when a page has no cursor or after ``max_pages`` pages. Waits
        ``page_delay`` seconds before every request after the first one.
        """
        url = start_url or self.base_url
        index = 0

        while url:
            if index >= self.max_pages:
                logger.warning(
                    "Stopping catalog walk after %d pages; cursor %s not followed",
                    self.max_pages,
                    url,
                )
                return

            if index > 0:
                await asyncio.sleep(self.page_delay)

            index += 1
            logger.info("Fetching catalog page %d: %s", index, url)
            page = await self.fetch_page(url, index)
            logger.debug("Page %d returned %d records (count=%d)", index, len(page.results), page.count)
            yield page

            url = page.next
