"""
Single-shot page fetcher.

One GET with browser-like headers (listing sites reject default client
identifiers) and a timeout. Failures come back as a FetchFailure value so the
caller decides whether a miss is fatal or skippable. No retries.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Union

import requests

import config

logger = logging.getLogger(__name__)

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/124.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}

_UNSET = object()


@dataclass(frozen=True)
class RawPage:
    url: str
    status_code: int
    text: str
    ok: bool = True


@dataclass(frozen=True)
class FetchFailure:
    url: str
    status_code: Optional[int]
    error: str
    ok: bool = False


FetchResult = Union[RawPage, FetchFailure]
Fetcher = Callable[[str], FetchResult]


def fetch(url: str, timeout=_UNSET, session: Optional[requests.Session] = None) -> FetchResult:
    """GET `url`. `timeout` defaults to PRIMARY_FETCH_TIMEOUT (None = unbounded)."""
    if timeout is _UNSET:
        timeout = config.PRIMARY_FETCH_TIMEOUT
    getter = session.get if session is not None else requests.get
    try:
        resp = getter(url, headers=BROWSER_HEADERS, timeout=timeout, allow_redirects=True)
    except requests.exceptions.RequestException as e:
        logger.warning(f"Fetch error for {url}: {e}")
        return FetchFailure(url=url, status_code=None, error=str(e) or type(e).__name__)

    if not 200 <= resp.status_code < 300:
        logger.warning(f"Fetch {url} returned HTTP {resp.status_code}")
        return FetchFailure(
            url=url,
            status_code=resp.status_code,
            error=f"HTTP {resp.status_code}: {resp.reason or ''}".strip(),
        )

    logger.debug(f"Fetched {len(resp.text)} chars from {url}")
    return RawPage(url=url, status_code=resp.status_code, text=resp.text)


def fetch_secondary(url: str) -> FetchResult:
    """Bounded fetch used on the enrichment path."""
    return fetch(url, timeout=config.SECONDARY_FETCH_TIMEOUT)
