"""
Secondary targeted search used before AI contact extraction.

Re-fetches the company's website plus a few guessed sub-pages (/about, /team,
/contact) and a guessed listing-site profile, then pools everything for
pattern extraction (emails, phones, LinkedIn page, CEO / founder name).

Company website lookup (when the record has none):
  DuckDuckGo text search, filtered against directory / social domains.
"""
import logging
import re
import time
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import urlparse

from duckduckgo_search import DDGS

import config
from scrapers import extractor
from scrapers.fetcher import Fetcher, fetch_secondary

logger = logging.getLogger(__name__)

# Sites blocked when picking company website
_BLOCKED_DOMAINS = {
    "linkedin.com", "facebook.com", "twitter.com", "instagram.com",
    "youtube.com", "wikipedia.org", "glassdoor.com", "indeed.com",
    "crunchbase.com", "bloomberg.com", "forbes.com", "x.com",
    "thehub.io", "thehub.se", "allabolag.se", "proff.se",
}
SUBPAGES = ("/about", "/about-us", "/team", "/contact")

# ── CEO / founder adjacency patterns ──────────────────────────────────────────

_NAME = r"([A-Z][a-zà-öø-ÿ'\-]+(?: [A-Z][a-zà-öø-ÿ'\-]+){1,2})"
_TITLE = (
    r"(?:CEO|Chief Executive Officer|Co-?[Ff]ounder|Founder)"
    r"(?:\s*(?:and|&|/|,)\s*(?:CEO|Co-?[Ff]ounder|Founder))?"
)
NAME_BEFORE_TITLE = re.compile(_NAME + r"\s*(?:,|-|–|\||\(|\bis\b(?: the| our)?)?\s*" + _TITLE)
TITLE_BEFORE_NAME = re.compile(_TITLE + r"\s*(?:[:,\-–|]|\bis\b)?\s*" + _NAME)

# Capitalised words that show up next to "CEO" but are not part of a name
_NOT_NAME_WORDS = {
    "Our", "The", "Meet", "About", "Team", "Contact", "Company", "Chief", "Executive",
    "Officer", "Founder", "Cofounder", "Co-founder", "Co-Founder", "And", "We", "Board",
    "Management", "Leadership", "Read", "More", "View", "Profile", "Us", "Former",
}
_MAILTO_RE = re.compile(r"""mailto:([^"'?\s>]+)""", re.IGNORECASE)


@dataclass
class WebIntel:
    website: Optional[str] = None
    text: str = ""
    emails: list[str] = field(default_factory=list)
    phones: list[str] = field(default_factory=list)
    linkedin_url: Optional[str] = None
    ceo_name: Optional[str] = None
    pages_fetched: int = 0


def _is_person_name(candidate: str) -> bool:
    return not any(word in _NOT_NAME_WORDS for word in candidate.split())


def find_ceo_name(text: str) -> Optional[str]:
    """Name adjacent to CEO / Chief Executive Officer / Founder, either order."""
    for pattern in (NAME_BEFORE_TITLE, TITLE_BEFORE_NAME):
        for match in pattern.finditer(text or ""):
            name = match.group(1).strip()
            if _is_person_name(name):
                return name
    return None


# ── Website discovery ─────────────────────────────────────────────────────────

def _ddg_search(query: str, max_results: int = 5) -> list[str]:
    """Search DuckDuckGo and return a list of result URLs."""
    try:
        results = DDGS().text(query, max_results=max_results, safesearch="off")
        return [r.get("href", "") for r in results if r.get("href")]
    except Exception as e:
        logger.warning(f"DuckDuckGo search unavailable: {e}")
        return []


def _pick_website(urls: list[str]) -> Optional[str]:
    """Return the first URL that doesn't belong to a blocked domain."""
    for url in urls:
        domain = urlparse(url).netloc.lower()
        if domain.startswith("www."):
            domain = domain[4:]
        if domain and not any(domain == b or domain.endswith("." + b) for b in _BLOCKED_DOMAINS):
            return url
    return None


def find_website(company_name: str) -> Optional[str]:
    if not company_name:
        return None
    website = _pick_website(_ddg_search(f"{company_name} official website"))
    if website:
        logger.debug(f"Website found for '{company_name}': {website}")
    else:
        logger.debug(f"No website found for '{company_name}'")
    return website


# ── Targeted crawl ────────────────────────────────────────────────────────────

def slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", (name or "").lower()).strip("-")


def _site_root(website: str) -> Optional[str]:
    if not website:
        return None
    if "://" not in website:
        website = f"https://{website}"
    parts = urlparse(website)
    if not parts.netloc:
        return None
    return f"{parts.scheme}://{parts.netloc}"


def candidate_urls(company_name: str, website: Optional[str]) -> list[str]:
    urls = []
    root = _site_root(website)
    if root:
        homepage = website if "://" in website else f"https://{website}"
        urls.append(homepage)
        urls.extend(root + path for path in SUBPAGES)
    slug = slugify(company_name)
    if slug:
        urls.append(f"{config.LISTING_BASE_URL.rstrip('/')}/startups/{slug}")

    seen = set()
    unique = []
    for url in urls:
        if url.rstrip("/") not in seen:
            seen.add(url.rstrip("/"))
            unique.append(url)
    return unique


def gather_company_intel(
    company_name: str,
    website: Optional[str],
    fetch: Fetcher = fetch_secondary,
    search: bool = True,
    delay: Optional[float] = None,
) -> WebIntel:
    """Fetch the guessed pages (bounded timeout, sequential) and pool what they contain."""
    delay = config.ENRICH_PAGE_DELAY if delay is None else delay
    if not website and search:
        website = find_website(company_name)

    pages = []
    urls = candidate_urls(company_name, website)
    for i, url in enumerate(urls):
        if i and delay:
            time.sleep(delay)
        result = fetch(url)
        if result.ok:
            pages.append(result.text)
        else:
            logger.debug(f"Skipping {url}: {result.error}")

    markup = "\n".join(pages)
    text = " ".join(extractor.extract_text(p) for p in pages)
    mailto = " ".join(_MAILTO_RE.findall(markup))
    intel = WebIntel(
        website=website,
        text=text,
        emails=extractor.extract_emails(f"{text} {mailto}", limit=10),
        phones=extractor.extract_phones(text, limit=5),
        linkedin_url=extractor.extract_linkedin_company(markup),
        ceo_name=find_ceo_name(text),
        pages_fetched=len(pages),
    )
    logger.info(
        f"Web intel for '{company_name}': {intel.pages_fetched}/{len(urls)} pages, "
        f"{len(intel.emails)} emails, CEO={intel.ceo_name!r}"
    )
    return intel
