"""News headlines source using NewsAPI.

Fetches top headlines from newsapi.org and drops any article whose
title mentions an excluded keyword.

Config example (in homeboard.yaml):
    newsapi:
      key: "..."
      headlines:
        country: "no"
        pageSize: 20
      exclude: ["football", "celebrity"]
"""

import logging
from typing import Any, Dict, List, Optional

import requests

from core.data_source import Source
from core.registry import register_source

logger = logging.getLogger(__name__)

TOP_HEADLINES_URL = "https://newsapi.org/v2/top-headlines"


def filter_articles(articles: List[Dict[str, Any]], exclude: List[str]) -> List[Dict[str, Any]]:
    """Keep articles whose lowercased title contains none of the excluded words."""
    words = [w.lower() for w in exclude or []]
    kept = []
    for article in articles:
        title = (article.get("title") or "").lower()
        if any(word in title for word in words):
            continue
        kept.append(article)
    return kept


@register_source("news")
class NewsSource(Source):
    """Fetches NewsAPI top headlines."""

    REQUIRED = ("key",)

    def __init__(self, source_id: str, bus, config: Dict, session=None):
        super().__init__(source_id, bus, config)
        self.url = self.config.get("url", TOP_HEADLINES_URL)
        self.headlines = self.config.get("headlines", {})
        self.exclude = self.config.get("exclude", [])
        self._session = session or requests.Session()

    def fetch(self) -> Optional[List[Dict[str, Any]]]:
        if not self.enabled:
            return None

        resp = self._session.get(
            self.url,
            params=self.headlines,
            headers={"X-Api-Key": self.config["key"]},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        data = resp.json()

        if data.get("status") != "ok":
            logger.warning("NewsSource %s: %s", self.source_id, data.get("message"))
            return None

        articles = filter_articles(data.get("articles", []), self.exclude)
        logger.debug("NewsSource %s: %d articles", self.source_id, len(articles))
        return articles
