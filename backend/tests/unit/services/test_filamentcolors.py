"""Unit tests for the paginated catalog client."""

from unittest.mock import patch

import httpx
import pytest

from backend.app.services.filamentcolors import MIN_PAGE_DELAY, FilamentColorsClient
from backend.app.services.sync_errors import FetchFailed
from backend.tests.mock_catalog import BASE_URL, MockCatalog, raw_swatch


async def collect(client: FilamentColorsClient):
    return [page async for page in client.iter_pages()]


class TestIterPages:
    """Tests for walking the next-cursor chain."""

    @pytest.mark.asyncio
    async def test_follows_cursor_until_exhausted(self, no_page_delay):
        catalog = MockCatalog([raw_swatch(i) for i in range(1, 6)], page_size=2)
        client = catalog.client()

        pages = await collect(client)

        assert [p.index for p in pages] == [1, 2, 3]
        assert [len(p.results) for p in pages] == [2, 2, 1]
        assert pages[-1].next is None
        assert len(catalog.requests) == 3
        await client.close()

    @pytest.mark.asyncio
    async def test_waits_between_pages_but_not_before_first(self, no_page_delay):
        catalog = MockCatalog([raw_swatch(i) for i in range(1, 6)], page_size=2)
        client = catalog.client(page_delay=1.5)

        await collect(client)

        assert no_page_delay.await_count == 2
        no_page_delay.assert_awaited_with(1.5)
        await client.close()

    @pytest.mark.asyncio
    async def test_delay_has_a_floor(self, no_page_delay):
        catalog = MockCatalog([raw_swatch(i) for i in range(1, 4)], page_size=2)
        client = catalog.client(page_delay=0)

        assert client.page_delay == MIN_PAGE_DELAY
        await collect(client)
        no_page_delay.assert_awaited_once_with(MIN_PAGE_DELAY)
        await client.close()

    @pytest.mark.asyncio
    async def test_single_page_makes_no_delay(self, no_page_delay):
        catalog = MockCatalog([raw_swatch(1)], page_size=10)
        client = catalog.client()

        pages = await collect(client)

        assert len(pages) == 1
        no_page_delay.assert_not_awaited()
        await client.close()

    @pytest.mark.asyncio
    async def test_empty_catalog_yields_one_empty_page(self, no_page_delay):
        catalog = MockCatalog([])
        client = catalog.client()

        pages = await collect(client)

        assert len(pages) == 1
        assert pages[0].results == []
        assert pages[0].count == 0
        await client.close()

    @pytest.mark.asyncio
    async def test_stops_at_max_pages(self, no_page_delay):
        catalog = MockCatalog([raw_swatch(1)], page_size=1)
        catalog.endless = True
        client = catalog.client(max_pages=4)

        pages = await collect(client)

        assert len(pages) == 4
        assert len(catalog.requests) == 4
        await client.close()

    @pytest.mark.asyncio
    async def test_failure_mid_walk_raises_fetch_failed(self, no_page_delay):
        catalog = MockCatalog([raw_swatch(i) for i in range(1, 6)], page_size=2)
        catalog.fail_pages[2] = 500
        client = catalog.client()

        received = []
        with pytest.raises(FetchFailed) as exc_info:
            async for page in client.iter_pages():
                received.append(page)

        assert len(received) == 1
        assert exc_info.value.page_index == 2
        assert "HTTP 500" in exc_info.value.reason
        assert exc_info.value.url.endswith("?page=2")
        await client.close()


class TestFetchPage:
    """Tests for decoding a single page."""

    @staticmethod
    def client_for(handler) -> FilamentColorsClient:
        return FilamentColorsClient(BASE_URL, transport=httpx.MockTransport(handler))

    @pytest.mark.asyncio
    async def test_decodes_page(self):
        client = self.client_for(
            lambda request: httpx.Response(
                200, json={"count": 3, "next": f"{BASE_URL}?page=2", "previous": None, "results": [{"id": 1}]}
            )
        )

        page = await client.fetch_page(BASE_URL, 1)

        assert page.count == 3
        assert page.next == f"{BASE_URL}?page=2"
        assert page.previous is None
        assert page.results == [{"id": 1}]
        await client.close()

    @pytest.mark.asyncio
    async def test_sends_user_agent(self):
        seen = {}

        def handler(request):
            seen["ua"] = request.headers.get("user-agent")
            return httpx.Response(200, json={"count": 0, "next": None, "results": []})

        client = self.client_for(handler)
        await client.fetch_page(BASE_URL, 1)

        assert seen["ua"].startswith("SwatchSync/")
        await client.close()

    @pytest.mark.asyncio
    async def test_not_found_raises(self):
        client = self.client_for(lambda request: httpx.Response(404))
        with pytest.raises(FetchFailed, match="HTTP 404"):
            await client.fetch_page(BASE_URL, 1)
        await client.close()

    @pytest.mark.asyncio
    async def test_transport_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = self.client_for(handler)
        with pytest.raises(FetchFailed, match="ConnectError"):
            await client.fetch_page(BASE_URL, 1)
        await client.close()

    @pytest.mark.asyncio
    async def test_invalid_json_raises(self):
        client = self.client_for(lambda request: httpx.Response(200, text="<html>maintenance</html>"))
        with pytest.raises(FetchFailed, match="invalid JSON"):
            await client.fetch_page(BASE_URL, 1)
        await client.close()

    @pytest.mark.asyncio
    async def test_non_object_body_raises(self):
        client = self.client_for(lambda request: httpx.Response(200, json=[1, 2, 3]))
        with pytest.raises(FetchFailed, match="not a JSON object"):
            await client.fetch_page(BASE_URL, 1)
        await client.close()

    @pytest.mark.asyncio
    async def test_results_not_a_list_raises(self):
        client = self.client_for(lambda request: httpx.Response(200, json={"count": 1, "results": {"id": 1}}))
        with pytest.raises(FetchFailed, match="'results' is not a list"):
            await client.fetch_page(BASE_URL, 1)
        await client.close()

    @pytest.mark.asyncio
    async def test_close_allows_reuse(self):
        client = self.client_for(lambda request: httpx.Response(200, json={"count": 0, "results": []}))
        await client.fetch_page(BASE_URL, 1)
        await client.close()

        page = await client.fetch_page(BASE_URL, 1)
        assert page.results == []
        await client.close()


class TestClientDefaults:
    def test_uses_settings(self):
        with patch("backend.app.services.filamentcolors.settings") as mock_settings:
            mock_settings.catalog_url = "https://example.test/api/swatch/"
            mock_settings.sync_page_delay = 2.0
            mock_settings.sync_max_pages = 10
            mock_settings.catalog_timeout = 5.0

            client = FilamentColorsClient()

        assert client.base_url == "https://example.test/api/swatch/"
        assert client.page_delay == 2.0
        assert client.max_pages == 10
        assert client.timeout == 5.0

