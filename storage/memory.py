"""
In-memory store for jobs, companies and leads.

The relational database is an external collaborator; the pipeline only relies
on the methods below, so any backend exposing the same surface can replace it.
Every accessor returns a copy: callers never mutate stored rows directly.
"""
import itertools
import logging
import threading
from typing import Iterable, Optional

from storage.models import Company, JobStatus, JobType, Lead, ScrapeJob

logger = logging.getLogger(__name__)


class TerminalJobError(RuntimeError):
    """Raised by the strict update path when a finished job is modified."""


class InMemoryStore:
    def __init__(self):
        self._lock = threading.RLock()
        self._jobs: dict[int, ScrapeJob] = {}
        self._companies: dict[int, Company] = {}
        self._leads: dict[int, Lead] = {}
        self._job_ids = itertools.count(1)
        self._company_ids = itertools.count(1)
        self._lead_ids = itertools.count(1)

    # ── Scrape jobs ───────────────────────────────────────────────────────────

    def create_job(self, url: str, job_type: JobType) -> ScrapeJob:
        with self._lock:
            job = ScrapeJob(id=next(self._job_ids), url=url, job_type=job_type)
            self._jobs[job.id] = job
            return job.model_copy()

    def get_job(self, job_id: int) -> Optional[ScrapeJob]:
        with self._lock:
            job = self._jobs.get(job_id)
            return job.model_copy() if job else None

    def list_jobs(self, limit: int = 50) -> list[ScrapeJob]:
        with self._lock:
            jobs = sorted(self._jobs.values(), key=lambda j: (j.created_at, j.id), reverse=True)
            return [j.model_copy() for j in jobs[:limit]]

    def running_jobs(self) -> list[ScrapeJob]:
        with self._lock:
            return [
                j.model_copy() for j in self._jobs.values()
                if j.status in (JobStatus.PENDING, JobStatus.RUNNING)
            ]

    def update_job(self, job_id: int, strict: bool = False, **fields) -> bool:
        """
        Last-write-wins update of a job row.

        Returns False without touching the row when the job is already
        completed or failed (raises TerminalJobError instead when strict).
        """
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise KeyError(f"Scrape job {job_id} not found")
            if job.status.is_terminal:
                msg = f"Ignoring update to finished job {job_id} ({job.status.value}): {sorted(fields)}"
                if strict:
                    raise TerminalJobError(msg)
                logger.warning(msg)
                return False
            self._jobs[job_id] = job.model_copy(update=fields)
            return True

    # ── Companies ─────────────────────────────────────────────────────────────

    def find_company(self, name: Optional[str] = None,
                     source_url: Optional[str] = None) -> Optional[Company]:
        """Exact source URL match, or a stored name containing `name` (case-insensitive)."""
        needle = (name or "").strip().lower()
        with self._lock:
            for company in self._companies.values():
                if source_url and company.source_url == source_url:
                    return company.model_copy()
                if needle and needle in company.name.lower():
                    return company.model_copy()
        return None

    def create_company(self, **fields) -> Company:
        with self._lock:
            company = Company(id=next(self._company_ids), **fields)
            self._companies[company.id] = company
            return company.model_copy()

    def get_company(self, company_id: int) -> Optional[Company]:
        with self._lock:
            company = self._companies.get(company_id)
            return company.model_copy() if company else None

    def update_company(self, company_id: int, **fields) -> Company:
        with self._lock:
            company = self._companies[company_id].model_copy(update=fields)
            self._companies[company_id] = company
            return company.model_copy()

    def delete_company(self, company_id: int) -> bool:
        # Leads keep their company_id; the reference is allowed to dangle.
        with self._lock:
            return self._companies.pop(company_id, None) is not None

    def list_companies(self) -> list[Company]:
        with self._lock:
            return [c.model_copy() for c in self._companies.values()]

    # ── Leads ─────────────────────────────────────────────────────────────────

    def create_lead(self, **fields) -> Lead:
        with self._lock:
            lead = Lead(id=next(self._lead_ids), **fields)
            self._leads[lead.id] = lead
            return lead.model_copy()

    def get_lead(self, lead_id: int) -> Optional[Lead]:
        with self._lock:
            lead = self._leads.get(lead_id)
            return lead.model_copy() if lead else None

    def update_lead(self, lead_id: int, **fields) -> Lead:
        with self._lock:
            lead = self._leads[lead_id].model_copy(update=fields)
            self._leads[lead_id] = lead
            return lead.model_copy()

    def list_leads(self, company_ids: Optional[Iterable[int]] = None) -> list[Lead]:
        with self._lock:
            leads = list(self._leads.values())
        if company_ids is not None:
            wanted = set(company_ids)
            leads = [l for l in leads if l.company_id in wanted]
        return [l.model_copy() for l in leads]
