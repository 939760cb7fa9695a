"""
Runs scrape jobs in background worker threads.

Submitting a job inserts the row, flips it to running and hands the pipeline to
a thread pool; the HTTP caller gets the job record back immediately and polls
for progress. The Future kept per job is its handle. There is no cancellation:
a submitted job ends only by completing or failing.
"""
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional

import config
from processors.scrape_job import ScrapeJobController
from storage.memory import InMemoryStore
from storage.models import JobStatus, JobType, ScrapeJob, utcnow

logger = logging.getLogger(__name__)

RESTART_ERROR = "Interrupted by server restart"


class JobRunner:
    def __init__(self, store, controller: Optional[ScrapeJobController] = None,
                 max_workers: Optional[int] = None):
        self.store = store
        self.controller = controller or ScrapeJobController(store)
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or config.SCRAPER_WORKERS,
            thread_name_prefix="scrape-job",
        )
        self._futures: dict[int, Future] = {}
        self._lock = threading.Lock()

    def submit(self, url: str, job_type: JobType, max_pages: Optional[int] = None) -> ScrapeJob:
        """Create a job, start the pipeline in background, return the job row."""
        job = self.store.create_job(url, job_type)
        self.controller.start(job.id)
        job = self.store.get_job(job.id)

        future = self._executor.submit(self._run, job.id, max_pages)
        with self._lock:
            self._futures[job.id] = future
        logger.info(f"Submitted scrape job {job.id} ({job_type.value}) for {url}")
        return job

    def _run(self, job_id: int, max_pages: Optional[int]):
        try:
            return self.controller.run(job_id, max_pages=max_pages)
        except Exception as e:
            logger.exception(f"Scrape job {job_id} crashed outside the pipeline: {e}")
            self.store.update_job(
                job_id, status=JobStatus.FAILED, completed_at=utcnow(), error_message=str(e) or "Unknown error"
            )
            return self.store.get_job(job_id)

    def handle(self, job_id: int) -> Optional[Future]:
        with self._lock:
            return self._futures.get(job_id)

    def wait(self, job_id: int, timeout: Optional[float] = None) -> Optional[ScrapeJob]:
        future = self.handle(job_id)
        if future is not None:
            future.result(timeout=timeout)
        return self.store.get_job(job_id)

    def recover_interrupted(self) -> list[int]:
        """Fail jobs a previous process left pending/running (they have no live handle)."""
        with self._lock:
            live = set(self._futures)
        recovered = []
        for job in self.store.running_jobs():
            if job.id in live:
                continue
            if self.store.update_job(job.id, status=JobStatus.FAILED, completed_at=utcnow(),
                                     error_message=RESTART_ERROR):
                recovered.append(job.id)
        if recovered:
            logger.warning(f"Marked {len(recovered)} interrupted scrape job(s) as failed: {recovered}")
        return recovered

    def shutdown(self, wait: bool = False):
        self._executor.shutdown(wait=wait)


# ── Process-wide instances ─────────────────────────────────────────────────────

store = InMemoryStore()
runner = JobRunner(store)


def get_store():
    return store


def get_runner() -> JobRunner:
    return runner
