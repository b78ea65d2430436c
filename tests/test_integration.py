"""End-to-end tests for WebsiteFetcher, fetch_blocking and the CLI."""

import json
import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from site2md import (
    ContentLengthError,
    EventType,
    GlobalSettings,
    NetworkError,
    RetryExhaustedError,
    SiteConfig,
    Site2MdError,
    Website,
    WebsiteFetcher,
    fetch_blocking,
)
from site2md.cli import main
from site2md.core.config_manager import ConfigManager
from site2md.http.client import AsyncHttpClient
from site2md.http.protocols import HttpResponse
from site2md.models.config import CustomSettings, SiteRateLimit
from site2md.models.results import FetchResult

PAGE_HTML = """
<html><head><title>Hooks</title></head>
<body>
  <nav><a href="/">Home</a></nav>
  <article>
    <h1>Using Hooks</h1>
    <p>Hooks let function components keep state and run side effects after rendering.</p>
    <p>Call hooks only at the top level of a component, never inside loops or conditions.</p>
  </article>
</body></html>
"""

OPENAPI_JSON = json.dumps(
    {
        "openapi": "3.0.0",
        "info": {"title": "Pets", "version": "1.0.0"},
        "paths": {"/pets": {"get": {"summary": "List pets", "responses": {"200": {"description": "OK"}}}}},
    }
)

REACT = Website(
    name="react",
    url="https://react.dev",
    description="React documentation",
    custom_settings=CustomSettings(custom_headers={"X-Docs": "react"}),
)


def response(url: str, text: str, content_type: str = "text/html; charset=utf-8") -> HttpResponse:
    return HttpResponse(status_code=200, content=text.encode(), content_type=content_type, url=url, text=text)


def make_client(*responses) -> MagicMock:
    client = MagicMock()
    client.fetch = AsyncMock(side_effect=list(responses))
    return client


@pytest.fixture
def config():
    return SiteConfig(websites=[REACT], settings=GlobalSettings(default_retries=0))


class TestWebsiteFetcher:
    """Tests for WebsiteFetcher."""

    @pytest.mark.asyncio
    async def test_requires_context_manager(self, config):
        with pytest.raises(RuntimeError):
            await WebsiteFetcher(config).fetch("https://example.com")

    @pytest.mark.asyncio
    async def test_fetch_html_page(self, config):
        client = make_client(response("https://react.dev/learn", PAGE_HTML))
        events = []

        async with WebsiteFetcher(config, on_event=events.append, http_client=client) as fetcher:
            result = await fetcher.fetch("https://react.dev/learn")

        assert result.title == "Using Hooks"
        assert "Hooks let function components" in result.markdown
        assert "Home" not in result.markdown
        assert fetcher.stats.pages_fetched == 1
        assert fetcher.stats.bytes_downloaded == len(PAGE_HTML.encode())

        types = [event.type for event in events]
        assert types[0] == EventType.FETCH_STARTED
        assert EventType.FETCH_COMPLETED in types
        assert types[-1] == EventType.PAGE_ANALYZED

    @pytest.mark.asyncio
    async def test_fetch_api_document(self, config):
        client = make_client(response("https://api.example.com/openapi.json", OPENAPI_JSON, "application/json"))

        async with WebsiteFetcher(config, http_client=client) as fetcher:
            result = await fetcher.fetch("https://api.example.com/openapi.json")

        assert result.is_openapi
        assert result.summary == "Pets (1.0.0) - OpenAPI 3.0.0 specification with 1 endpoints"
        assert fetcher.stats.api_documents == 1

    @pytest.mark.asyncio
    async def test_network_failure_is_raised(self, config):
        """Test that a failed fetch re-raises and is counted once."""
        client = MagicMock()
        client.fetch = AsyncMock(side_effect=NetworkError("https://down.dev", "HTTP 503", status_code=503))
        events = []

        async with WebsiteFetcher(config, on_event=events.append, http_client=client) as fetcher:
            with pytest.raises(RetryExhaustedError) as exc_info:
                await fetcher.fetch("https://down.dev")

        assert isinstance(exc_info.value.last_error, NetworkError)
        assert fetcher.stats.pages_failed == 1
        failed = [event for event in events if event.type == EventType.FETCH_FAILED]
        assert len(failed) == 1
        assert failed[0].error.startswith("fetch: ")

    @pytest.mark.asyncio
    async def test_retries_use_configured_count(self):
        config = SiteConfig(settings=GlobalSettings(default_retries=2))
        client = MagicMock()
        client.fetch = AsyncMock(
            side_effect=[ConnectionError("reset"), response("https://flaky.dev", PAGE_HTML)]
        )

        with patch("site2md.http.retry.asyncio.sleep", new_callable=AsyncMock):
            async with WebsiteFetcher(config, http_client=client) as fetcher:
                result = await fetcher.fetch("https://flaky.dev")

        assert result.title == "Using Hooks"
        assert client.fetch.await_count == 2

    @pytest.mark.asyncio
    async def test_short_page_rejected(self, config):
        client = make_client(response("https://tiny.dev", "<html><body><p>Too short</p></body></html>"))

        async with WebsiteFetcher(config, http_client=client) as fetcher:
            with pytest.raises(ContentLengthError):
                await fetcher.fetch("https://tiny.dev")

    @pytest.mark.asyncio
    async def test_fetch_site_applies_overrides(self, config):
        client = make_client(response("https://react.dev", PAGE_HTML))

        async with WebsiteFetcher(config, http_client=client) as fetcher:
            site, result = await fetcher.fetch_site("react")

        assert site.name == "react"
        assert result.title == "Using Hooks"
        headers = client.fetch.await_args.kwargs["headers"]
        assert headers["X-Docs"] == "react"
        assert "User-Agent" in headers

    @pytest.mark.asyncio
    async def test_fetch_unknown_site(self, config):
        async with WebsiteFetcher(config, http_client=make_client()) as fetcher:
            with pytest.raises(Site2MdError, match="Unknown website: vue"):
                await fetcher.fetch_site("vue")

    @pytest.mark.asyncio
    async def test_stealth_path_uses_browser(self, config):
        """Test that stealth fetches go through the browser factory."""
        browser = MagicMock()
        browser.__aenter__ = AsyncMock(return_value=browser)
        browser.__aexit__ = AsyncMock(return_value=None)
        browser.fetch = AsyncMock(return_value=response("https://react.dev", PAGE_HTML))
        factory = MagicMock(return_value=browser)
        client = make_client()

        async with WebsiteFetcher(config, http_client=client, browser_factory=factory) as fetcher:
            result = await fetcher.fetch("https://react.dev", stealth=True)
            assert factory.call_args.kwargs["rate_limiter"] is fetcher.context.navigation_limiter

        assert result.title == "Using Hooks"
        client.fetch.assert_not_awaited()
        browser_options = factory.call_args.args[0]
        assert browser_options.navigation_retries == 0
        browser.__aexit__.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_search(self, config):
        client = make_client(response("https://react.dev", PAGE_HTML))

        async with WebsiteFetcher(config, http_client=client) as fetcher:
            results = await fetcher.search("react")

        assert [item.site.name for item in results] == ["react"]
        # description 0.5 + url 0.1, page text does not mention the query
        assert results[0].relevance == pytest.approx(0.6)

    @pytest.mark.asyncio
    async def test_config_reload_rebuilds_site_limiters(self, config):
        manager = ConfigManager(config)

        async with WebsiteFetcher(manager, http_client=make_client()) as fetcher:
            assert fetcher.context.site_limiters == {}

            limited = REACT.model_copy(
                update={"custom_settings": CustomSettings(rate_limit=SiteRateLimit(requests_per_second=1))}
            )
            manager.reload(SiteConfig(websites=[limited]))

            assert "react" in fetcher.context.site_limiters
            assert fetcher.context.rate_limiter_for(limited) is fetcher.context.site_limiters["react"]

        assert manager._subscribers == []


class TestFetchBlocking:
    """Tests for fetch_blocking."""

    def test_runs_event_loop(self):
        with patch.object(
            AsyncHttpClient,
            "fetch",
            new_callable=AsyncMock,
            return_value=response("https://react.dev/learn", PAGE_HTML),
        ):
            result = fetch_blocking("https://react.dev/learn", config=SiteConfig())

        assert result.title == "Using Hooks"

    @pytest.mark.asyncio
    async def test_rejects_running_loop(self):
        with pytest.raises(RuntimeError, match="async context"):
            fetch_blocking("https://react.dev")


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "site2md.yaml"
    path.write_text(SiteConfig(websites=[REACT]).to_yaml())
    return path


@pytest.fixture
def fake_fetcher():
    """Patch the CLI's WebsiteFetcher with a mock."""
    fetcher = MagicMock()
    fetcher.__aenter__ = AsyncMock(return_value=fetcher)
    fetcher.__aexit__ = AsyncMock(return_value=None)
    fetcher.fetch = AsyncMock(
        return_value=FetchResult(
            url="https://react.dev/learn",
            title="Using Hooks",
            raw_content="Hooks",
            markdown="Hooks let function components keep state.",
            word_count=6,
            reading_time_minutes=1,
            summary="Hooks let function components keep state.",
        )
    )
    fetcher.search = AsyncMock(return_value=[])
    with patch("site2md.cli.WebsiteFetcher", return_value=fetcher):
        yield fetcher


class TestCli:
    """Tests for the command-line interface."""

    @pytest.fixture(autouse=True)
    def reset_logging(self):
        """Drop the handlers the CLI installs on captured streams."""
        yield
        logger = logging.getLogger("site2md")
        logger.handlers.clear()
        logger.propagate = True

    def test_fetch_prints_document(self, config_file, fake_fetcher, capsys):
        code = main(["--quiet", "--config", str(config_file), "fetch", "https://react.dev/learn"])

        out = capsys.readouterr().out
        assert code == 0
        assert out.startswith("# Using Hooks")
        assert "**Word count**: 6" in out
        assert fake_fetcher.fetch.await_args.kwargs["stealth"] is None

    def test_fetch_without_metrics(self, config_file, fake_fetcher, capsys):
        main(["--quiet", "--config", str(config_file), "fetch", "https://react.dev/learn", "--no-metrics"])
        assert "**Word count**" not in capsys.readouterr().out

    def test_fetch_failure(self, config_file, fake_fetcher, capsys):
        fake_fetcher.fetch.side_effect = NetworkError("https://react.dev/learn", "HTTP 404", status_code=404)

        code = main(["--quiet", "--config", str(config_file), "fetch", "https://react.dev/learn", "--stealth"])

        captured = capsys.readouterr()
        assert code == 1
        assert "Unable to fetch website https://react.dev/learn" in captured.err
        assert captured.out == ""
        assert fake_fetcher.fetch.await_args.kwargs["stealth"] is True

    def test_site_command(self, config_file, fake_fetcher, capsys):
        code = main(["--quiet", "--config", str(config_file), "site", "react"])

        out = capsys.readouterr().out
        assert code == 0
        assert "**Website**: react - React documentation" in out
        assert fake_fetcher.fetch.await_args.kwargs["site"].name == "react"

    def test_unknown_site(self, config_file, fake_fetcher, capsys):
        code = main(["--quiet", "--config", str(config_file), "site", "vue"])

        assert code == 1
        assert "Unknown website: vue" in capsys.readouterr().err

    def test_search_without_results(self, config_file, fake_fetcher, capsys):
        code = main(["--quiet", "--config", str(config_file), "search", "nothing"])

        captured = capsys.readouterr()
        assert code == 0
        assert "No relevant websites found for: nothing" in captured.err

    def test_sites_listing(self, config_file, capsys):
        code = main(["--config", str(config_file), "sites"])

        assert code == 0
        assert "- **react**: https://react.dev - React documentation" in capsys.readouterr().out
