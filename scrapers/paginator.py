"""
Listing paginator. Walks ?page=N listing pages and collects detail-page URLs.

Stops at the first of: a page that cannot be fetched, a page that yields no
new detail links (end of results), or the page ceiling. A failed first page is
reported back so the job controller can abort; later failures just end the
crawl with what has been collected.
"""
import logging
import re
import time
from dataclasses import dataclass, field
from typing import Callable, Optional
from urllib.parse import parse_qsl, urlencode, urljoin, urlparse, urlunparse

import config
from scrapers.fetcher import Fetcher

logger = logging.getLogger(__name__)

# Detail-page link shapes: /startups/<slug>, /companies/<country>/<slug>, /company/<slug>
DETAIL_LINK_RE = re.compile(
    r"(?:https?://[\w.-]+)?/(?:startups/[\w%.-]+|companies/[\w-]+/[\w%.-]+|company/[\w%.-]+)",
    re.IGNORECASE,
)
MIN_SLUG_LENGTH = 2


@dataclass
class ListingResult:
    urls: list[str] = field(default_factory=list)
    pages_processed: int = 0
    first_page_failed: bool = False
    error: Optional[str] = None
    stop_reason: str = "page_limit"


def page_url(base_url: str, page: int) -> str:
    """Page 1 is the bare listing URL, later pages carry page=N."""
    if page <= 1:
        return base_url
    parts = urlparse(base_url)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != "page"]
    query.append(("page", str(page)))
    return urlunparse(parts._replace(query=urlencode(query)))


def _origin(url: str) -> str:
    parts = urlparse(url)
    return f"{parts.scheme}://{parts.netloc}"


def _host(url: str) -> str:
    host = urlparse(url).netloc.lower()
    return host[4:] if host.startswith("www.") else host


def extract_detail_urls(html: str, origin: str) -> list[str]:
    """Absolute detail URLs in document order, without query/fragment, de-duplicated."""
    urls = []
    seen = set()
    for match in DETAIL_LINK_RE.findall(html or ""):
        path = match.split("?")[0].split("#")[0].rstrip("/.")
        if "javascript:" in path:
            continue
        slug = path.rsplit("/", 1)[-1]
        if len(slug) < MIN_SLUG_LENGTH:
            continue
        url = urljoin(origin + "/", path)
        # absolute links to other hosts (e.g. linkedin.com/company/...) are not listing items
        if _host(url) != _host(origin):
            continue
        if url not in seen:
            seen.add(url)
            urls.append(url)
    return urls


def crawl_listing(
    base_url: str,
    max_pages: int,
    fetch: Fetcher,
    on_page: Optional[Callable[[int, int], None]] = None,
    delay: Optional[float] = None,
) -> ListingResult:
    """
    Collect detail URLs from up to `max_pages` listing pages.

    `on_page(page, urls_found)` is called after every processed page.
    Fetches are sequential with a fixed courtesy delay between pages.
    """
    delay = config.LISTING_PAGE_DELAY if delay is None else delay
    origin = _origin(base_url)
    result = ListingResult()
    seen = set()

    for page in range(1, max(max_pages, 1) + 1):
        if page > 1 and delay:
            time.sleep(delay)

        url = page_url(base_url, page)
        logger.info(f"Listing page [{page}/{max_pages}]: {url}")
        fetched = fetch(url)
        if not fetched.ok:
            result.stop_reason = "fetch_failed"
            result.error = fetched.error
            if page == 1:
                result.first_page_failed = True
                logger.error(f"First listing page failed: {fetched.error}")
            else:
                logger.warning(f"Listing page {page} failed ({fetched.error}); keeping {len(result.urls)} URLs")
            break

        result.pages_processed += 1
        new_urls = [u for u in extract_detail_urls(fetched.text, origin) if u not in seen]
        seen.update(new_urls)
        result.urls.extend(new_urls)
        logger.info(f"Listing page {page}: {len(new_urls)} new detail URLs ({len(result.urls)} total)")

        if on_page:
            on_page(page, len(result.urls))

        if not new_urls:
            result.stop_reason = "no_new_results"
            break

    return result
