import os
import logging
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


class ConfigError(RuntimeError):
    """Raised at startup when a required secret is missing."""


def _optional_float(name: str, default: str) -> Optional[float]:
    value = float(os.getenv(name, default))
    return value if value > 0 else None


# ── API Keys ──────────────────────────────────────────────────────────────────
DEEPSEEK_API_KEY = os.getenv("DEEPSEEK_API_KEY", "")
DEEPSEEK_BASE_URL = os.getenv("DEEPSEEK_BASE_URL", "https://api.deepseek.com/v1")
DEEPSEEK_MODEL = os.getenv("DEEPSEEK_MODEL", "deepseek-chat")
DEEPSEEK_MAX_TOKENS = int(os.getenv("DEEPSEEK_MAX_TOKENS", "2000"))

# Alternate hosted model for the lead-enrichment variant
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY", "")
ANTHROPIC_MODEL = os.getenv("ANTHROPIC_MODEL", "claude-haiku-4-5-20251001")

# ── Session / operator login ──────────────────────────────────────────────────
SESSION_SECRET = os.getenv("SESSION_SECRET", "")
SESSION_TTL_DAYS = int(os.getenv("SESSION_TTL_DAYS", "30"))
ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "admin")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "")

# ── File Paths ─────────────────────────────────────────────────────────────────
OUTPUT_DIR = os.getenv("OUTPUT_DIR", "output")

# ── Fetching ──────────────────────────────────────────────────────────────────
# 0 disables the timeout on the primary listing/detail path
PRIMARY_FETCH_TIMEOUT = _optional_float("PRIMARY_FETCH_TIMEOUT", "30")
SECONDARY_FETCH_TIMEOUT = float(os.getenv("SECONDARY_FETCH_TIMEOUT", "5.0"))
LISTING_BASE_URL = os.getenv("LISTING_BASE_URL", "https://thehub.io")

# ── Behavior ──────────────────────────────────────────────────────────────────
LISTING_PAGE_DELAY = float(os.getenv("LISTING_PAGE_DELAY", "0.3"))
DETAIL_PAGE_DELAY = float(os.getenv("DETAIL_PAGE_DELAY", "0.2"))
ENRICH_PAGE_DELAY = float(os.getenv("ENRICH_PAGE_DELAY", "0.5"))
DEFAULT_MAX_PAGES = int(os.getenv("DEFAULT_MAX_PAGES", "10"))
MAX_DETAIL_ITEMS = int(os.getenv("MAX_DETAIL_ITEMS", "50"))
GENERAL_MAX_LEADS = int(os.getenv("GENERAL_MAX_LEADS", "10"))
PROGRESS_EVERY = int(os.getenv("PROGRESS_EVERY", "5"))
AI_CONTEXT_CHARS = int(os.getenv("AI_CONTEXT_CHARS", "4000"))
SCRAPER_WORKERS = int(os.getenv("SCRAPER_WORKERS", "4"))

CORS_ORIGINS = [
    o.strip()
    for o in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if o.strip()
]


def validate_config():
    missing = []
    if not DEEPSEEK_API_KEY:
        missing.append("DEEPSEEK_API_KEY")
    # ANTHROPIC_API_KEY is optional; /api/leads/enrich reports it as missing
    if not ANTHROPIC_API_KEY:
        missing.append("ANTHROPIC_API_KEY")
    if missing:
        logging.warning(f"Missing environment variables: {', '.join(missing)}")
    return missing


def require_secrets():
    """Fail fast when the server is started without its secrets."""
    missing = [name for name, value in (
        ("SESSION_SECRET", SESSION_SECRET),
        ("ADMIN_PASSWORD", ADMIN_PASSWORD),
    ) if not value]
    if missing:
        raise ConfigError(f"Missing required environment variables: {', '.join(missing)}")
