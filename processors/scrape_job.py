"""
Scrape job controller: owns the ScrapeJob state machine.

  pending ──► running ──► completed
                     └──► failed

Two job kinds:
  thehub   paginated listing crawl: paginator → detail harvester → dedup gate,
           one company + one lead per new detail page (capped at MAX_DETAIL_ITEMS)
  general  one page: every email found becomes a lead of a single company
           (capped at GENERAL_MAX_LEADS)

Progress (items_scraped / total_items / result_summary) is written back to the
store while the job runs so a polling client sees it move. Any exception that
escapes the pipeline fails the job; rows created before the failure are kept.
"""
import json
import logging
from typing import Optional
from urllib.parse import urlparse

import config
from processors.dedup_gate import ScrapeCounters, find_existing, persist_candidate
from scrapers import fetcher
from scrapers.detail_harvester import country_from_url, harvest
from scrapers.extractor import company_name_from_url, extract_signals
from scrapers.fetcher import Fetcher
from scrapers.paginator import crawl_listing
from storage.models import JobStatus, JobType, ScrapeJob, utcnow

logger = logging.getLogger(__name__)

SOURCE_TAGS = {
    JobType.THEHUB: "thehub.io",
    JobType.GENERAL: "web_scrape",
}
GENERAL_DESCRIPTION_CHARS = 2000
FALLBACK_ERROR = "Unknown error"


class ScrapeError(RuntimeError):
    """The job's primary page could not be fetched."""


class JobProgress:
    """Monotonic, clamped progress writer for one job."""

    def __init__(self, store, job_id: int, every: int):
        self.store = store
        self.job_id = job_id
        self.every = max(every, 1)
        self.total: Optional[int] = None
        self.items = 0

    def publish(self, phase: str, counters: ScrapeCounters, **extra):
        summary = {"status": phase, **_counts(counters), **extra}
        self.store.update_job(self.job_id, result_summary=json.dumps(summary))

    def set_total(self, total: int, phase: str, counters: ScrapeCounters, **extra):
        self.total = total
        summary = {"status": phase, **_counts(counters), **extra}
        self.store.update_job(self.job_id, total_items=total, result_summary=json.dumps(summary))

    def item_done(self, phase: str, counters: ScrapeCounters, **extra):
        limit = self.total if self.total is not None else self.items + 1
        self.items = min(self.items + 1, limit)
        batch_is_large = self.total is not None and self.total > self.every
        if batch_is_large and self.items % self.every and self.items != self.total:
            return
        summary = {"status": phase, **_counts(counters), "itemsProcessed": self.items, **extra}
        self.store.update_job(self.job_id, items_scraped=self.items, result_summary=json.dumps(summary))


def _counts(counters: ScrapeCounters) -> dict:
    return {
        "companiesFound": counters.companies_found,
        "leadsCreated": counters.leads_created,
        "emailsFound": counters.emails_found,
    }


class ScrapeJobController:
    def __init__(
        self,
        store,
        fetch: Fetcher = fetcher.fetch,
        max_items: Optional[int] = None,
        general_max_leads: Optional[int] = None,
        progress_every: Optional[int] = None,
        page_delay: Optional[float] = None,
        detail_delay: Optional[float] = None,
    ):
        self.store = store
        self.fetch = fetch
        self.max_items = config.MAX_DETAIL_ITEMS if max_items is None else max_items
        self.general_max_leads = config.GENERAL_MAX_LEADS if general_max_leads is None else general_max_leads
        self.progress_every = config.PROGRESS_EVERY if progress_every is None else progress_every
        self.page_delay = page_delay
        self.detail_delay = detail_delay

    # ── Transitions ───────────────────────────────────────────────────────────

    def start(self, job_id: int) -> bool:
        """pending → running, stamping started_at."""
        return self.store.update_job(job_id, status=JobStatus.RUNNING, started_at=utcnow())

    def _complete(self, job_id: int, items: int, summary: dict) -> bool:
        return self.store.update_job(
            job_id,
            status=JobStatus.COMPLETED,
            completed_at=utcnow(),
            items_scraped=items,
            result_summary=json.dumps(summary),
        )

    def _fail(self, job_id: int, message: str) -> bool:
        return self.store.update_job(
            job_id,
            status=JobStatus.FAILED,
            completed_at=utcnow(),
            error_message=message or FALLBACK_ERROR,
        )

    # ── Entry point ───────────────────────────────────────────────────────────

    def run(self, job_id: int, max_pages: Optional[int] = None) -> Optional[ScrapeJob]:
        job = self.store.get_job(job_id)
        if job is None:
            raise KeyError(f"Scrape job {job_id} not found")
        if job.status.is_terminal:
            logger.warning(f"Job {job_id} already {job.status.value}; not running it again")
            return job
        if job.status == JobStatus.PENDING or job.started_at is None:
            self.start(job_id)

        logger.info(f"Starting scrape job {job_id} for {job.url} (type: {job.job_type.value})")
        try:
            if job.job_type == JobType.THEHUB:
                items, summary = self._run_listing(job, max_pages or config.DEFAULT_MAX_PAGES)
            else:
                items, summary = self._run_general(job)
            self._complete(job_id, items, summary)
            logger.info(
                f"Scrape job {job_id} complete: {summary['companiesFound']} companies, "
                f"{summary['leadsCreated']} leads, {summary['emailsFound']} emails"
            )
        except Exception as e:
            logger.exception(f"Scrape job {job_id} failed: {e}")
            self._fail(job_id, str(e))

        return self.store.get_job(job_id)

    # ── Listing crawl ─────────────────────────────────────────────────────────

    def _run_listing(self, job: ScrapeJob, max_pages: int) -> tuple[int, dict]:
        counters = ScrapeCounters()
        progress = JobProgress(self.store, job.id, self.progress_every)
        source_tag = SOURCE_TAGS[JobType.THEHUB]
        progress.publish("discovering", counters, urlsFound=0)

        listing = crawl_listing(
            job.url,
            max_pages,
            self.fetch,
            on_page=lambda page, found: progress.publish(
                "discovering", counters, urlsFound=found, pagesProcessed=page
            ),
            delay=self.page_delay,
        )
        if listing.first_page_failed:
            raise ScrapeError(listing.error or f"Could not fetch {job.url}")

        urls = listing.urls[: self.max_items]
        default_country = country_from_url(job.url)
        progress.set_total(len(urls), "processing", counters, urlsFound=len(listing.urls))
        logger.info(f"Found {len(listing.urls)} unique company URLs, processing {len(urls)}")

        for i, url in enumerate(urls, 1):
            try:
                url_name = company_name_from_url(url)
                if len(url_name) < 2:
                    logger.debug(f"Skipping {url}: no usable name")
                elif find_existing(self.store, url_name, url) is not None:
                    logger.info(f"[{i}/{len(urls)}] Already known: {url}")
                else:
                    logger.info(f"[{i}/{len(urls)}] Harvesting {url}")
                    candidate = harvest(url, self.fetch, default_country, delay=self.detail_delay)
                    if not candidate.country:
                        candidate.country = country_from_url(url, default_country)
                    persist_candidate(self.store, candidate, url, source_tag, counters)
            except Exception as e:
                logger.error(f"Error processing company {url}: {e}")
            progress.item_done("processing", counters, urlsFound=len(listing.urls))

        summary = {
            **_counts(counters),
            "totalProcessed": progress.items,
            "pagesProcessed": listing.pages_processed,
            "urlsFound": len(listing.urls),
        }
        return progress.items, summary

    # ── Single page ───────────────────────────────────────────────────────────

    def _run_general(self, job: ScrapeJob) -> tuple[int, dict]:
        counters = ScrapeCounters()
        progress = JobProgress(self.store, job.id, self.progress_every)
        progress.set_total(1, "fetching", counters)

        page = self.fetch(job.url)
        if not page.ok:
            raise ScrapeError(page.error or f"Could not fetch {job.url}")
        logger.info(f"Fetched {len(page.text)} chars from {job.url}")

        signals = extract_signals(page.text)
        emails = signals.emails
        name = signals.title or urlparse(job.url).hostname or job.url

        company = self.store.create_company(
            name=name[:255],
            website=job.url,
            source_url=job.url,
            email=emails[0] if emails else None,
            phone=signals.phones[0] if signals.phones else None,
            linkedin_url=signals.linkedin_url,
            twitter_url=signals.twitter_url,
            description=signals.text[:GENERAL_DESCRIPTION_CHARS] or None,
            scraped_at=utcnow(),
        )
        counters.companies_found = 1
        counters.emails_found = len(emails)

        for email in emails[: self.general_max_leads]:
            self.store.create_lead(
                company_id=company.id,
                company_name=company.name,
                email=email,
                source=SOURCE_TAGS[JobType.GENERAL],
                notes=f"Scraped from {job.url}",
            )
            counters.leads_created += 1

        progress.item_done("processing", counters)
        summary = {**_counts(counters), "totalProcessed": progress.items, "pagesProcessed": 1}
        return progress.items, summary
