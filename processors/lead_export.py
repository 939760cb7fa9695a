"""
CSV export of scraped leads.

One row per lead with its company's contact fields alongside. Written with
utf-8-sig so spreadsheet tools pick up the encoding.
"""
import logging
import os
from typing import Optional

import pandas as pd

import config
from storage.models import Lead, ScrapeJob

logger = logging.getLogger(__name__)

CSV_COLUMNS = [
    "first_name",
    "last_name",
    "company",
    "job_title",
    "email",
    "phone",
    "linkedin_url",
    "website",
    "industry",
    "city",
    "country",
    "source",
    "notes",
    "ai_summary",
]


def _row(lead: Lead, company) -> dict:
    return {
        "first_name": lead.first_name,
        "last_name": lead.last_name,
        "company": lead.company_name or (company.name if company else None),
        "job_title": lead.job_title,
        "email": lead.email or (company.email if company else None),
        "phone": lead.phone or (company.phone if company else None),
        "linkedin_url": lead.linkedin_url or (company.linkedin_url if company else None),
        "website": company.website if company else None,
        "industry": company.industry if company else None,
        "city": company.city if company else None,
        "country": company.country if company else None,
        "source": lead.source,
        "notes": lead.notes,
        "ai_summary": lead.ai_summary,
    }


def job_leads(store, job: ScrapeJob) -> list[Lead]:
    """Leads of the companies this job created (scraped while it was running), oldest first."""
    if job.started_at is None:
        return []
    end = job.completed_at

    def in_window(company) -> bool:
        if company.scraped_at is None:
            return False
        return company.scraped_at >= job.started_at and (end is None or company.scraped_at <= end)

    company_ids = [c.id for c in store.list_companies() if in_window(c)]
    return sorted(store.list_leads(company_ids=company_ids), key=lambda l: l.id)


def export_leads_csv(store, leads: list[Lead], output_path: str, output_dir: Optional[str] = None) -> str:
    """Export `leads` to CSV under OUTPUT_DIR; returns the written path."""
    output_dir = output_dir or config.OUTPUT_DIR
    os.makedirs(output_dir, exist_ok=True)
    full_path = os.path.join(output_dir, output_path)

    rows = [_row(lead, store.get_company(lead.company_id) if lead.company_id else None) for lead in leads]
    df = pd.DataFrame(rows)

    # Ensure all columns exist (fill missing with None)
    for col in CSV_COLUMNS:
        if col not in df.columns:
            df[col] = None

    df = df[CSV_COLUMNS]
    df.to_csv(full_path, index=False, encoding="utf-8-sig")
    logger.info(f"Exported {len(rows)} leads to {full_path}")
    return full_path
