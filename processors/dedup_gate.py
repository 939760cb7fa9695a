"""
Dedup & persist gate for scraped candidates.

A company already stored under the same source URL, or whose name contains the
candidate's name, is left untouched (merging is the enricher's job). Otherwise
the company is created together with one lead pointing back at it.

The lookup and the insert are two separate store calls with no transaction
around them: two jobs crawling overlapping listings at the same time can both
pass the lookup and create the same company twice.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from storage.models import CandidateRecord, Company, Lead, utcnow

logger = logging.getLogger(__name__)

NOTES_MAX_CHARS = 1000


@dataclass
class ScrapeCounters:
    companies_found: int = 0
    leads_created: int = 0
    emails_found: int = 0


@dataclass
class GateResult:
    created: bool
    company: Optional[Company] = None
    lead: Optional[Lead] = None


def find_existing(store, name: Optional[str], source_url: Optional[str]) -> Optional[Company]:
    return store.find_company(name=name, source_url=source_url)


def lead_notes(source_url: str, description: Optional[str]) -> str:
    return f"Scraped from {source_url}\n{description or ''}".strip()[:NOTES_MAX_CHARS]


def persist_candidate(
    store,
    candidate: CandidateRecord,
    source_url: str,
    source_tag: str,
    counters: ScrapeCounters,
) -> GateResult:
    existing = find_existing(store, candidate.name, source_url)
    if existing is not None:
        logger.info(f"Skipping '{candidate.name}': already stored as company #{existing.id}")
        return GateResult(created=False, company=existing)

    company = store.create_company(
        source_url=source_url,
        scraped_at=utcnow(),
        **candidate.model_dump(),
    )
    counters.companies_found += 1

    lead = store.create_lead(
        company_id=company.id,
        company_name=company.name,
        email=candidate.email,
        phone=candidate.phone,
        linkedin_url=candidate.linkedin_url,
        source=source_tag,
        notes=lead_notes(source_url, candidate.description),
    )
    counters.leads_created += 1
    if candidate.email:
        counters.emails_found += 1

    logger.info(f"Created company #{company.id} '{company.name}' with lead #{lead.id}")
    return GateResult(created=True, company=company, lead=lead)
