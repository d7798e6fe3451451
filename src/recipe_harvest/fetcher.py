"""Shared HTTP capability for the source extractors.

All recipe sites are fetched through one ``PageFetcher`` so the request
headers, timeout and TLS policy are defined in a single place.

Example:
    >>> fetcher = PageFetcher(timeout=30)
    >>> html = fetcher.fetch("https://aniagotuje.pl/przepisy/ciasta")
"""

from __future__ import annotations

import logging

import requests
import urllib3

from .exceptions import FetchError

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

DEFAULT_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "pl-PL,pl;q=0.9,en-US;q=0.8,en;q=0.7",
}


class PageFetcher:
    """Download HTML pages with browser-like headers.

    Attributes:
        timeout: Request timeout in seconds
        verify_tls: Whether TLS certificates are verified
        session: Underlying requests session (injectable for tests)
    """

    def __init__(
        self,
        timeout: float = 30.0,
        verify_tls: bool = False,
        session: requests.Session | None = None,
    ) -> None:
        self.timeout = timeout
        self.verify_tls = verify_tls
        self.session = session or requests.Session()
        self.session.headers.update(DEFAULT_HEADERS)

        if not verify_tls:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    def get(self, url: str) -> str:
        """Fetch a page and return its decoded body.

        Args:
            url: Absolute page URL

        Returns:
            Response body as text

        Raises:
            FetchError: On a non-2xx status or any transport failure
        """
        try:
            response = self.session.get(url, timeout=self.timeout, verify=self.verify_tls)
        except requests.RequestException as e:
            raise FetchError("Request failed", url=url, error=str(e)) from e

        if not 200 <= response.status_code < 300:
            raise FetchError("Unexpected status", url=url, status=response.status_code)

        # requests falls back to ISO-8859-1 for text/html without a charset
        if response.encoding is None or response.encoding.lower() == "iso-8859-1":
            response.encoding = response.apparent_encoding

        return response.text

    def fetch(self, url: str) -> str | None:
        """Fetch a page, returning None instead of raising on failure."""
        try:
            return self.get(url)
        except FetchError as e:
            logger.warning(f"Failed to fetch page: {e}")
            return None
