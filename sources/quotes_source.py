"""Financial quotes source using the Yahoo Finance quote endpoint.

No API key needed. The dashboard asks for a list of symbols and gets
back one entry per symbol with a ``price`` block.
"""

import logging
from typing import Any, Dict, List, Optional

import requests

from core.data_source import Source
from core.registry import register_source

logger = logging.getLogger(__name__)

QUOTE_URL = "https://query1.finance.yahoo.com/v7/finance/quote"


@register_source("quotes")
class QuotesSource(Source):
    """Fetches price quotes for a list of ticker symbols."""

    def __init__(self, source_id: str, bus, config: Dict, session=None):
        super().__init__(source_id, bus, config)
        self.url = self.config.get("url", QUOTE_URL)
        self._session = session or requests.Session()

    def fetch(self, symbols) -> Optional[Dict[str, Dict[str, Any]]]:
        if isinstance(symbols, str):
            symbols = [symbols]
        symbols = [s for s in (symbols or []) if isinstance(s, str) and s]
        if not symbols:
            logger.info("QuotesSource %s: no symbols requested", self.source_id)
            return None

        resp = self._session.get(
            self.url,
            params={"symbols": ",".join(symbols)},
            headers={"User-Agent": "Mozilla/5.0 Homeboard"},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        results: List[Dict[str, Any]] = (
            resp.json().get("quoteResponse", {}).get("result") or []
        )

        quotes = {}
        for item in results:
            symbol = item.get("symbol")
            if symbol:
                quotes[symbol] = {"price": item}
        return quotes
