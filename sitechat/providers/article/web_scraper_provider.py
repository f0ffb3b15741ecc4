"""Page fetcher for ingestion: httpx for transport, trafilatura for content.

Each source page is reduced to its main content and emitted as markdown
with links kept as ``[label](url)``.  The cleaner downstream expects that
shape, so every source goes through the same extraction settings.
"""

from __future__ import annotations

import httpx
import structlog
import trafilatura

from sitechat.interfaces.article_provider import ArticleContent, IArticleProvider
from sitechat.utils.errors import ScrapeError

logger = structlog.get_logger(logger_name=__name__)

_FETCH_TIMEOUT = httpx.Timeout(15.0, connect=5.0)
_REQUEST_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; sitechat/0.1; corpus ingestion)",
    "Accept": "text/html,application/xhtml+xml;q=0.9,*/*;q=0.5",
}


class WebScraperProvider(IArticleProvider):
    """Fetches a page and keeps only its readable markdown body.

    An ``http_client`` passed in stays owned by the caller; otherwise the
    provider opens its own and :meth:`aclose` releases it.
    """

    def __init__(self, http_client: httpx.AsyncClient | None = None) -> None:
        self._owns_client = http_client is None
        if http_client is None:
            http_client = httpx.AsyncClient(
                timeout=_FETCH_TIMEOUT,
                headers=_REQUEST_HEADERS,
                follow_redirects=True,
            )
        self._client = http_client

    async def __aenter__(self) -> WebScraperProvider:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def extract_content(self, url: str) -> ArticleContent | None:
        """Return the page body as markdown, or ``None`` when nothing is extractable.

        Raises
        ------
        ScrapeError
            On a non-2xx status or any transport failure.
        """
        html = await self._fetch(url)

        body = trafilatura.extract(
            html,
            url=url,
            output_format="markdown",
            include_links=True,
            include_tables=True,
            include_comments=False,
        )
        if not body:
            logger.warning("page_body_empty", url=url, html_chars=len(html))
            return None

        meta = trafilatura.extract_metadata(html, default_url=url)
        title = getattr(meta, "title", None) or ""
        logger.info("page_extracted", url=url, title=title, chars=len(body))
        return ArticleContent(title=title, text=body, url=url)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def is_available(self) -> bool:
        return True

    def get_provider_name(self) -> str:
        return "web_scraper"

    async def _fetch(self, url: str) -> str:
        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise ScrapeError(
                message=f"{url} answered HTTP {status}",
                provider_name=self.get_provider_name(),
            ) from exc
        except httpx.HTTPError as exc:
            reason = "timed out" if isinstance(exc, httpx.TimeoutException) else type(exc).__name__
            raise ScrapeError(
                message=f"fetching {url} failed ({reason}): {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        return response.text
