"""
Markup extractor: pulls plain text and contact signals out of raw HTML.

Regex-based on purpose: listing and company pages are often malformed and
only a handful of signals are needed. Everything here is pure and
best-effort: no-match gives None / an empty list, malformed input never
raises. Callers go through `extract_signals()` so a real parser can be
swapped in later without touching them.
"""
import html as html_lib
import json
import re
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import urlparse

# ── Patterns ──────────────────────────────────────────────────────────────────

_DROP_BLOCKS = re.compile(
    r"<(script|style|nav|header|footer|noscript)\b[^>]*>.*?</\1\s*>",
    re.DOTALL | re.IGNORECASE,
)
_COMMENTS = re.compile(r"<!--.*?-->", re.DOTALL)
_TAGS = re.compile(r"<[^>]+>")
_WHITESPACE = re.compile(r"\s+")

EMAIL_RE = re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)*\.[A-Za-z]{2,}")
PHONE_RE = re.compile(
    r"(?:\+\d{1,3}[-.\s]?)?\(?\d{2,4}\)?[-.\s]?\d{2,4}[-.\s]?\d{2,4}[-.\s]?\d{0,4}"
)

# Placeholder addresses and bundler/monitoring artefacts that look like emails
_EMAIL_BLOCKLIST = ("example.", "@sentry", "sentry.io", "sentry-next", "webpack", "wixpress", "@domain.")
_EMAIL_BAD_SUFFIXES = (".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp", ".js", ".css")
MAX_EMAIL_LENGTH = 100
PHONE_MIN_DIGITS = 8
PHONE_MAX_DIGITS = 15

_LINKEDIN_RE = re.compile(
    r"""href\s*=\s*["'](https?://(?:[\w-]+\.)?linkedin\.com/company/[^"'\s?#]+)""",
    re.IGNORECASE,
)
_TWITTER_RE = re.compile(
    r"""href\s*=\s*["'](https?://(?:www\.)?(?:twitter|x)\.com/(?!intent/|share|home|search)[A-Za-z0-9_]{1,30}/?)["'?]""",
    re.IGNORECASE,
)
_TITLE_RE = re.compile(r"<title[^>]*>([^<]+)</title>", re.IGNORECASE)
_H1_RE = re.compile(r"<h1\b[^>]*>(.*?)</h1\s*>", re.IGNORECASE | re.DOTALL)
_META_RE = re.compile(r"<meta\b[^>]*>", re.IGNORECASE)
_ATTR_RE = re.compile(r"""([\w:-]+)\s*=\s*(?:"([^"]*)"|'([^']*)')""")
_JSONLD_RE = re.compile(
    r"""<script[^>]+type\s*=\s*["']application/ld\+json["'][^>]*>(.*?)</script\s*>""",
    re.IGNORECASE | re.DOTALL,
)


@dataclass
class Signals:
    text: str = ""
    title: Optional[str] = None
    description: Optional[str] = None
    emails: list[str] = field(default_factory=list)
    phones: list[str] = field(default_factory=list)
    linkedin_url: Optional[str] = None
    twitter_url: Optional[str] = None


# ── Text ──────────────────────────────────────────────────────────────────────

def _clean(fragment: str) -> str:
    text = _TAGS.sub(" ", fragment)
    text = html_lib.unescape(text)
    return _WHITESPACE.sub(" ", text).strip()


def extract_text(html: str) -> str:
    """Visible text: drops script/style/nav/header/footer, strips tags, decodes entities."""
    if not html:
        return ""
    text = _COMMENTS.sub(" ", html)
    text = _DROP_BLOCKS.sub(" ", text)
    return _clean(text)


# ── Contact signals ───────────────────────────────────────────────────────────

def _is_valid_email(email: str) -> bool:
    lowered = email.lower()
    if len(email) >= MAX_EMAIL_LENGTH:
        return False
    if any(bad in lowered for bad in _EMAIL_BLOCKLIST):
        return False
    return not lowered.endswith(_EMAIL_BAD_SUFFIXES)


def extract_emails(text: str, limit: Optional[int] = None) -> list[str]:
    """Emails in order of first appearance, placeholders removed."""
    seen = set()
    emails = []
    for match in EMAIL_RE.findall(text or ""):
        email = match.strip(".-")
        key = email.lower()
        if key in seen or not _is_valid_email(email):
            continue
        seen.add(key)
        emails.append(email)
        if limit is not None and len(emails) >= limit:
            break
    return emails


def extract_phones(text: str, limit: Optional[int] = None) -> list[str]:
    """Loosely delimited numbers whose digit count is within [8, 15]."""
    seen = set()
    phones = []
    for match in PHONE_RE.findall(text or ""):
        phone = match.strip(" -.")
        digits = re.sub(r"\D", "", phone)
        if not PHONE_MIN_DIGITS <= len(digits) <= PHONE_MAX_DIGITS or digits in seen:
            continue
        seen.add(digits)
        phones.append(phone)
        if limit is not None and len(phones) >= limit:
            break
    return phones


def extract_linkedin_company(html: str) -> Optional[str]:
    match = _LINKEDIN_RE.search(html or "")
    return match.group(1) if match else None


def extract_twitter(html: str) -> Optional[str]:
    match = _TWITTER_RE.search(html or "")
    return match.group(1) if match else None


# ── Page metadata ─────────────────────────────────────────────────────────────

def extract_title(html: str) -> Optional[str]:
    match = _TITLE_RE.search(html or "")
    if not match:
        return None
    return _clean(match.group(1)) or None


def extract_h1(html: str) -> Optional[str]:
    match = _H1_RE.search(html or "")
    if not match:
        return None
    return _clean(match.group(1)) or None


def _meta_tags(html: str) -> list[dict]:
    tags = []
    for tag in _META_RE.findall(html or ""):
        attrs = {}
        for name, dq, sq in _ATTR_RE.findall(tag):
            attrs[name.lower()] = dq or sq
        tags.append(attrs)
    return tags


def extract_meta(html: str, key: str) -> Optional[str]:
    """Content of the first <meta name=key> or <meta property=key>."""
    key = key.lower()
    for attrs in _meta_tags(html):
        if (attrs.get("name", "").lower() == key or attrs.get("property", "").lower() == key):
            content = html_lib.unescape(attrs.get("content", "")).strip()
            if content:
                return content
    return None


def extract_description(html: str, prefer_og: bool = False) -> Optional[str]:
    keys = ("og:description", "description") if prefer_og else ("description", "og:description")
    for key in keys:
        value = extract_meta(html, key)
        if value:
            return value
    return None


def _jsonld_names(node) -> list[tuple[bool, str]]:
    found = []
    if isinstance(node, list):
        for item in node:
            found.extend(_jsonld_names(item))
    elif isinstance(node, dict):
        kind = node.get("@type")
        kinds = kind if isinstance(kind, list) else [kind]
        name = node.get("name")
        if isinstance(name, str) and name.strip():
            is_org = any(k in ("Organization", "Corporation", "LocalBusiness") for k in kinds if k)
            found.append((is_org, name.strip()))
        if "@graph" in node:
            found.extend(_jsonld_names(node["@graph"]))
    return found


def extract_jsonld_name(html: str) -> Optional[str]:
    """`name` from JSON-LD blocks, organisation entries first."""
    names = []
    for block in _JSONLD_RE.findall(html or ""):
        try:
            names.extend(_jsonld_names(json.loads(block.strip())))
        except ValueError:
            continue
    if not names:
        return None
    orgs = [n for is_org, n in names if is_org]
    return html_lib.unescape(orgs[0] if orgs else names[0][1])


def company_name_from_url(url: str) -> str:
    """`https://x.tld/startups/green-energy-ab` -> `Green Energy Ab`."""
    path = urlparse(url).path if "://" in (url or "") else (url or "")
    path = path.split("?")[0].split("#")[0].rstrip("/")
    slug = path.split("/")[-1] if path else ""
    words = slug.replace("-", " ").replace("_", " ").split()
    return " ".join(w[:1].upper() + w[1:].lower() for w in words)


# ── Facade ────────────────────────────────────────────────────────────────────

def extract_signals(html: str, max_emails: Optional[int] = None) -> Signals:
    text = extract_text(html)
    return Signals(
        text=text,
        title=extract_title(html),
        description=extract_description(html),
        emails=extract_emails(text, limit=max_emails),
        phones=extract_phones(text),
        linkedin_url=extract_linkedin_company(html),
        twitter_url=extract_twitter(html),
    )
