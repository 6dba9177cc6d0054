"""Raw link extraction from fetched responses."""

from __future__ import annotations

import logging
from typing import Callable, Mapping, Protocol

from bs4 import BeautifulSoup

from .types import URI


LOGGER = logging.getLogger(__name__)

HTML_CONTENT_TYPE = "text/html"
UNKNOWN_CONTENT_TYPE = "UNKNOWN"


class Extractor(Protocol):
    """Produce the raw link strings referenced by one response."""

    def extract(
        self,
        uri: URI,
        status_code: int,
        headers: Mapping[str, str],
        body: Callable[[], bytes],
    ) -> set[str]:
        ...


def extract_anchor_hrefs(html: str | bytes) -> set[str]:
    """Return every `a[href]` value in the document, verbatim."""

    if isinstance(html, bytes):
        html = html.decode("utf-8", errors="replace")

    soup = BeautifulSoup(html, "lxml")
    hrefs: set[str] = set()
    for element in soup.find_all("a", href=True):
        href = element.get("href")
        if isinstance(href, str):
            hrefs.add(href)
    return hrefs


class HtmlExtractor:
    """Anchors for 200 HTML responses, the `Location` header for anything else."""

    def extract(
        self,
        uri: URI,
        status_code: int,
        headers: Mapping[str, str],
        body: Callable[[], bytes],
    ) -> set[str]:
        content_type = headers.get("Content-Type") or UNKNOWN_CONTENT_TYPE

        if status_code == 200:
            if not content_type.startswith(HTML_CONTENT_TYPE):
                LOGGER.debug("Not following links in content type %s", content_type)
                return set()
            links = extract_anchor_hrefs(body())
            LOGGER.debug("Found %d links on %s", len(links), uri)
            return links

        location = headers.get("Location")
        if location is not None:
            LOGGER.debug("Following redirect (%d) [%s => %s]", status_code, uri, location)
            return {location}

        LOGGER.debug("Skipping %s, content-type: %s", uri, content_type)
        return set()


__all__ = [
    "Extractor",
    "HtmlExtractor",
    "extract_anchor_hrefs",
]
