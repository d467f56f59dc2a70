"""
Article extraction: fetch a web page and pull out its title and main body text (paragraphs separated by blank lines).
"""
import logging
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

import httpx
from bs4 import BeautifulSoup

from podcaster.core.config import settings
from podcaster.core.errors import ScraperError

logger = logging.getLogger(__name__)

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}

# Page chrome that never belongs to the article body.
NOISE_TAGS = ("script", "style", "noscript", "nav", "header", "footer", "aside", "form", "iframe", "svg")

DEFAULT_TITLE = "Untitled Podcast"

_WS_RE = re.compile(r"\s+")


@dataclass
class ScrapeResult:
    title: str
    body_text: str


def _clean(text: str) -> str:
    return _WS_RE.sub(" ", text or "").strip()


def validate_url(url: str) -> str:
    """Return the stripped url if it is an absolute http(s) URL with a host, else raise ScraperError(INVALID_URL)."""
    candidate = (url or "").strip()
    parsed = urlparse(candidate)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ScraperError(f"Invalid URL format: {url}", "INVALID_URL")
    return candidate


def extract_title(soup: BeautifulSoup) -> Optional[str]:
    """Pick the article title: og:title, then <title>, then the first <h1>."""
    og = soup.find("meta", attrs={"property": "og:title"})
    if og and _clean(og.get("content", "")):
        return _clean(og["content"])
    if soup.title and _clean(soup.title.get_text()):
        return _clean(soup.title.get_text())
    h1 = soup.find("h1")
    if h1 and _clean(h1.get_text()):
        return _clean(h1.get_text())
    return None


def extract_body_text(soup: BeautifulSoup) -> str:
    """Return the main text: paragraphs of <article>/<main> (or the whole document) joined by blank lines; falls back to normalized body text when there are no <p> tags.
    Why available: Produces the plain text the dialogue stage prompts with; page chrome (nav, footer, scripts) is removed first."""
    for tag in soup.find_all(list(NOISE_TAGS)):
        tag.decompose()

    container = soup.find("article") or soup.find("main") or soup.body or soup
    paragraphs = [_clean(p.get_text(" ")) for p in container.find_all("p")]
    paragraphs = [p for p in paragraphs if p]
    if paragraphs:
        return "\n\n".join(paragraphs)

    logger.warning("extract_no_paragraphs_fallback")
    return _clean(container.get_text(" "))


def parse_article(html: str, url: str = "") -> ScrapeResult:
    """Parse fetched HTML into a ScrapeResult. Raises ScraperError(PARSE_FAILED) if the HTML cannot be parsed and ScraperError(NO_CONTENT) if no text remains."""
    try:
        soup = BeautifulSoup(html or "", "html.parser")
        title = extract_title(soup)
        body_text = extract_body_text(soup)
    except Exception as e:
        raise ScraperError(f"Failed to parse HTML content from {url}: {e}", "PARSE_FAILED") from e

    if not body_text.strip():
        raise ScraperError(f"Could not extract meaningful content from {url}.", "NO_CONTENT")
    return ScrapeResult(title=title or DEFAULT_TITLE, body_text=body_text)


class ArticleExtractor:
    """Scraper collaborator: validate URL, fetch with a timeout and browser-like headers, extract title and body text.
    Why available: First pipeline stage input; every failure surfaces as a typed ScraperError so the job fails at SCRAPING."""

    def __init__(self, timeout_seconds: Optional[float] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout_seconds = timeout_seconds or settings.scrape_timeout_seconds
        self.transport = transport

    async def _fetch(self, url: str) -> str:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds,
                headers=BROWSER_HEADERS,
                follow_redirects=True,
                transport=self.transport,
            ) as client:
                resp = await client.get(url)
                resp.raise_for_status()
                return resp.text
        except httpx.TimeoutException as e:
            raise ScraperError(f"Timeout fetching URL: {url}", "TIMEOUT") from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise ScraperError(f"Failed to fetch URL: {url}. Status: {status}", "FETCH_FAILED", status_code=status) from e
        except httpx.HTTPError as e:
            raise ScraperError(f"Failed to fetch URL: {url}: {e}", "FETCH_FAILED") from e

    async def extract(self, url: str) -> ScrapeResult:
        url = validate_url(url)
        logger.info("scrape_started", extra={"url": url})
        html = await self._fetch(url)
        result = parse_article(html, url)
        logger.info("scrape_succeeded", extra={"url": url, "title": result.title[:80], "chars": len(result.body_text)})
        return result
