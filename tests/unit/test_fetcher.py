"""Unit tests for recipe_harvest.fetcher module."""

from unittest.mock import MagicMock

import pytest
import requests

from recipe_harvest.exceptions import FetchError
from recipe_harvest.fetcher import USER_AGENT, PageFetcher


def make_response(status: int = 200, text: str = "<html></html>", encoding: str | None = "utf-8") -> MagicMock:
    response = MagicMock()
    response.status_code = status
    response.text = text
    response.encoding = encoding
    response.apparent_encoding = "utf-8"
    return response


@pytest.fixture
def session() -> MagicMock:
    session = MagicMock(spec=requests.Session)
    session.headers = {}
    return session


class TestPageFetcher:
    """Tests for PageFetcher."""

    def test_browser_headers(self, session: MagicMock) -> None:
        """The session carries a desktop browser identity and Polish locale."""
        PageFetcher(session=session)
        assert session.headers["User-Agent"] == USER_AGENT
        assert session.headers["Accept-Language"].startswith("pl-PL")

    def test_get_passes_timeout_and_tls(self, session: MagicMock) -> None:
        """Timeout and TLS policy are applied to every request."""
        session.get.return_value = make_response(text="<p>ok</p>")
        fetcher = PageFetcher(timeout=12.0, verify_tls=False, session=session)

        assert fetcher.get("https://smaker.pl/") == "<p>ok</p>"
        session.get.assert_called_once_with("https://smaker.pl/", timeout=12.0, verify=False)

    def test_non_2xx_raises(self, session: MagicMock) -> None:
        """Error statuses raise FetchError with the status."""
        session.get.return_value = make_response(status=404)
        with pytest.raises(FetchError, match="Unexpected status") as exc_info:
            PageFetcher(session=session).get("https://smaker.pl/missing")
        assert exc_info.value.context["status"] == 404

    def test_transport_error_raises(self, session: MagicMock) -> None:
        """Connection failures are wrapped."""
        session.get.side_effect = requests.ConnectionError("refused")
        with pytest.raises(FetchError, match="Request failed"):
            PageFetcher(session=session).get("https://smaker.pl/")

    def test_latin1_default_is_redetected(self, session: MagicMock) -> None:
        """The ISO-8859-1 fallback is replaced by the detected encoding."""
        response = make_response(encoding="ISO-8859-1")
        session.get.return_value = response

        PageFetcher(session=session).get("https://aniagotuje.pl/")

        assert response.encoding == "utf-8"

    def test_fetch_returns_none_on_failure(self, session: MagicMock) -> None:
        """fetch() logs and returns None instead of raising."""
        session.get.return_value = make_response(status=500)
        assert PageFetcher(session=session).fetch("https://smaker.pl/") is None
