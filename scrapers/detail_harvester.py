"""
Detail harvester: turns one company detail page into a CandidateRecord.

Page heuristics on top of the extractor:
  name         JSON-LD name > <h1> > <title> > URL slug
  description  og:description / meta description > first long <p>
  website      first external link (labelled website/visit/homepage preferred)
  industry, employee count, location: loose keyword-adjacent regexes

An unreachable page yields a record carrying only the URL-derived name; the
harvester never raises.
"""
import html as html_lib
import logging
import re
import time
from typing import Optional
from urllib.parse import urlparse

import config
from scrapers import extractor
from scrapers.fetcher import Fetcher
from storage.models import CandidateRecord

logger = logging.getLogger(__name__)

# Hosts never taken as "the company's website"
_NON_WEBSITE_HOSTS = (
    "thehub.io", "thehub.se", "linkedin.com", "twitter.com", "x.com", "facebook.com",
    "instagram.com", "youtube.com", "google.com", "apple.com", "wikipedia.org",
    "crunchbase.com", "glassdoor.com", "github.com", "medium.com",
)
COUNTRY_SLUGS = {
    "sweden": "Sweden",
    "norway": "Norway",
    "denmark": "Denmark",
    "finland": "Finland",
}

_ANCHOR_RE = re.compile(
    r"""<a\b[^>]*href\s*=\s*["'](https?://[^"']+)["'][^>]*>(.*?)</a\s*>""",
    re.IGNORECASE | re.DOTALL,
)
_WEBSITE_LABEL_RE = re.compile(r"website|visit|homepage|home page", re.IGNORECASE)
_PARAGRAPH_RE = re.compile(r"<p[^>]*>([^<]{50,500})</p>", re.IGNORECASE)
_INDUSTRY_RE = re.compile(
    r"\b(?i:industry|sector|category)\s*[:\-]?\s*([A-Z][A-Za-z &/]{2,60}?)(?=\s{2,}|[.,;|]|\s(?i:employees|founded|location|based|team)\b|$)"
)
_EMPLOYEES_RE = re.compile(
    r"(\d+(?:\s*[-–]\s*\d+)?\+?)\s*(?:employees|team members|people)", re.IGNORECASE
)
_LOCATION_RE = re.compile(
    r"\b(?i:location|based in|headquarters|hq)\s*[:\-]?\s*"
    r"([A-Z][\w.'-]+(?: [A-Z][\w.'-]+)?),\s*([A-Z][a-z]+(?: [A-Z][a-z]+)?)"
)
_TITLE_SEPARATORS = re.compile(r"\s+[|–—-]\s+")


def _host(url: str) -> str:
    host = urlparse(url).netloc.lower()
    return host[4:] if host.startswith("www.") else host


def country_from_url(url: str, default: Optional[str] = None) -> Optional[str]:
    path = urlparse(url).path.lower()
    for slug, country in COUNTRY_SLUGS.items():
        if f"/{slug}" in path:
            return country
    return default


def _find_website(html: str, page_url: str) -> Optional[str]:
    own_host = _host(page_url)
    external = []
    for href, label in _ANCHOR_RE.findall(html):
        host = _host(href)
        if not host or host == own_host:
            continue
        if any(host == h or host.endswith("." + h) for h in _NON_WEBSITE_HOSTS):
            continue
        if _WEBSITE_LABEL_RE.search(label):
            return href
        external.append(href)
    return external[0] if external else None


def _page_name(html: str) -> Optional[str]:
    # <h1> first: a JSON-LD Organization on a listing page is often the site itself
    name = extractor.extract_h1(html) or extractor.extract_jsonld_name(html)
    if name:
        return name
    title = extractor.extract_title(html)
    if title:
        return _TITLE_SEPARATORS.split(title)[0].strip() or None
    return None


def _description(html: str) -> Optional[str]:
    description = extractor.extract_description(html, prefer_og=True)
    if description:
        return description
    match = _PARAGRAPH_RE.search(html)
    if match:
        return html_lib.unescape(match.group(1)).strip()
    return None


def build_candidate(html: str, url: str, default_country: Optional[str] = None) -> CandidateRecord:
    """Apply the detail-page heuristics to already fetched markup."""
    text = extractor.extract_text(html)
    emails = extractor.extract_emails(text, limit=1)
    phones = extractor.extract_phones(text, limit=1)

    industry = None
    match = _INDUSTRY_RE.search(text)
    if match:
        industry = match.group(1).strip()[:100] or None

    employee_count = None
    match = _EMPLOYEES_RE.search(text)
    if match:
        employee_count = re.sub(r"\s+", "", match.group(1))

    city, country = None, None
    match = _LOCATION_RE.search(text)
    if match:
        city, country = match.group(1), match.group(2)

    return CandidateRecord(
        name=_page_name(html) or extractor.company_name_from_url(url),
        description=_description(html),
        email=emails[0] if emails else None,
        phone=phones[0] if phones else None,
        website=_find_website(html, url),
        industry=industry,
        employee_count=employee_count,
        linkedin_url=extractor.extract_linkedin_company(html),
        twitter_url=extractor.extract_twitter(html),
        city=city,
        country=country or country_from_url(url, default_country),
    )


def harvest(
    url: str,
    fetch: Fetcher,
    default_country: Optional[str] = None,
    delay: Optional[float] = None,
) -> CandidateRecord:
    """Fetch one detail page and build its candidate record."""
    delay = config.DETAIL_PAGE_DELAY if delay is None else delay
    try:
        page = fetch(url)
        if not page.ok:
            logger.warning(f"Detail page unavailable ({page.error}): {url}")
            return CandidateRecord(name=extractor.company_name_from_url(url))
        return build_candidate(page.text, url, default_country)
    except Exception as e:
        logger.error(f"Detail harvest error for {url}: {e}")
        return CandidateRecord(name=extractor.company_name_from_url(url))
    finally:
        if delay:
            time.sleep(delay)
