"""
Governed page loading on top of Playwright's HTTP request context.
"""
import logging
import re
from dataclasses import dataclass
from typing import Optional

from bs4 import BeautifulSoup
from playwright.async_api import APIRequestContext, Error as PlaywrightError

from .config import FetchSettings
from .errors import FetchError, ParseFailure
from .governor import FetchGovernor
from .utils import is_same_site


logger = logging.getLogger(__name__)

HTML_PARSER = "html.parser"
DEFAULT_CHARSET = "utf-8"

_CHARSET_RE = re.compile(r"charset=[\"']?([\w.:-]+)", re.IGNORECASE)


@dataclass
class Page:
    """A fetched page: final URL, HTTP status and the parsed document."""

    url: str
    status: int
    document: BeautifulSoup


def parse_document(html: str) -> BeautifulSoup:
    """Best-effort HTML parse; broken markup still yields a usable tree."""
    return BeautifulSoup(html or "", HTML_PARSER)


def decode_body(body: bytes, content_type: str = "") -> str:
    """Decode a response body with its declared charset; bad bytes become U+FFFD."""
    m = _CHARSET_RE.search(content_type or "")
    charset = m.group(1) if m else DEFAULT_CHARSET
    try:
        return body.decode(charset, errors="replace")
    except LookupError:
        return body.decode(DEFAULT_CHARSET, errors="replace")


async def release_response(response) -> None:
    """Free the buffered body of a response the context would otherwise keep."""
    try:
        await response.dispose()
    except PlaywrightError as e:
        logger.debug(f"Could not dispose response for {response.url}: {e}")


class PageFetcher:
    """Loads pages through the governor and returns BeautifulSoup documents."""

    def __init__(
        self,
        request: APIRequestContext,
        governor: FetchGovernor,
        settings: Optional[FetchSettings] = None,
    ):
        self.request = request
        self.governor = governor
        self.settings = settings or FetchSettings()

    async def fetch(self, url: str) -> Page:
        if not is_same_site(url, self.settings.allowed_domain):
            raise FetchError(url, f"outside of {self.settings.allowed_domain}")

        timeout_ms = self.settings.request_timeout * 1000

        async def send(user_agent: str):
            logger.debug(f"Visiting {url}")
            try:
                return await self.request.get(
                    url,
                    headers={"User-Agent": user_agent},
                    timeout=timeout_ms,
                )
            except PlaywrightError as e:
                raise FetchError(url, e) from e

        response = await self.governor.perform_with_retry(url, send, discard=release_response)
        try:
            body = await response.body()
            content_type = (response.headers or {}).get("content-type", "")
        except PlaywrightError as e:
            raise FetchError(url, e) from e
        finally:
            await release_response(response)

        logger.debug(f"Received {len(body)} bytes from {url}")
        try:
            document = parse_document(decode_body(body, content_type))
        except Exception as e:
            raise ParseFailure(url, e) from e
        return Page(url=response.url or url, status=response.status, document=document)
