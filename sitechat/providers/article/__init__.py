"""Article (page fetch) provider adapters."""

from sitechat.providers.article.web_scraper_provider import WebScraperProvider

__all__ = ["WebScraperProvider"]
