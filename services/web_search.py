"""
Google Custom Search lookups for the study assistant.
"""
from typing import List, Optional
import httpx

from core.config import SearchConfig, settings
from core.exceptions import ConfigurationException, UpstreamServiceException
from core.logging import get_logger
from schemas.assistant import SearchResult

logger = get_logger("web_search")


class WebSearchClient:
    """
    Async client for the Custom Search JSON API.

    Search is optional: without both an API key and an engine id the
    client reports itself as disabled and the assistant answers on its own.
    """

    def __init__(self, config: SearchConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self.transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.config.api_key and self.config.engine_id)

    async def search(self, query: str) -> List[SearchResult]:
        """
        Top results for ``query``, reduced to title, snippet and link.

        Raises:
            ConfigurationException: If search is not configured
            UpstreamServiceException: On transport errors or a non-2xx reply
        """
        if not self.enabled:
            raise ConfigurationException("Google Custom Search not configured", setting="google_search_api_key")

        params = {"key": self.config.api_key, "cx": self.config.engine_id, "q": query}
        async with httpx.AsyncClient(timeout=self.config.timeout_seconds, transport=self.transport) as client:
            try:
                response = await client.get(self.config.base_url, params=params)
            except httpx.HTTPError as e:
                logger.error("Search API unreachable", error=str(e))
                raise UpstreamServiceException(f"Search API unreachable: {e}", provider="Google Custom Search")

        if response.is_error:
            logger.error("Search API error", status_code=response.status_code, body=response.text[:500])
            raise UpstreamServiceException(
                f"Search API error: {response.status_code} - {response.text}",
                provider="Google Custom Search",
                upstream_status=response.status_code,
                body=response.text,
            )

        items = (response.json().get("items") or [])[:self.config.max_results]
        results = [
            SearchResult(title=item.get("title", ""), snippet=item.get("snippet", ""), link=item.get("link", ""))
            for item in items
        ]
        logger.info("Web search completed", query_length=len(query), result_count=len(results))
        return results


def get_web_search_client() -> WebSearchClient:
    """FastAPI dependency building a client from settings."""
    return WebSearchClient(settings.search_config())
