import json

import pytest

from api.pipeline_runner import RESTART_ERROR, JobRunner
from processors.scrape_job import JobProgress, ScrapeJobController
from processors.dedup_gate import ScrapeCounters
from storage.memory import InMemoryStore, TerminalJobError
from storage.models import JobStatus, JobType

LISTING = "https://thehub.io/startups"
SLUGS = ["volt-labs", "north-ai", "fjord-freight", "aurora-health", "pine-analytics", "kelp-farms"]


def _listing(slugs):
    return "".join(f'<a href="/startups/{s}">{s}</a>' for s in slugs)


def _detail(name, email):
    return f"<html><head><title>{name}</title></head><body><h1>{name}</h1><p>Mail {email}</p></body></html>"


@pytest.fixture
def hub(site):
    site.pages[LISTING] = _listing(SLUGS[:4])
    site.pages[LISTING + "?page=2"] = _listing(SLUGS[4:])
    site.pages[LISTING + "?page=3"] = _listing(SLUGS[:2])
    for slug in SLUGS:
        name = slug.replace("-", " ").title()
        site.pages[f"{LISTING}/{slug}"] = _detail(name, f"hello@{slug}.se")
    return site


class RecordingStore(InMemoryStore):
    def __init__(self):
        super().__init__()
        self.snapshots = []

    def update_job(self, job_id, strict=False, **fields):
        changed = super().update_job(job_id, strict=strict, **fields)
        job = self.get_job(job_id)
        self.snapshots.append((job.status, job.items_scraped, job.progress))
        return changed


def _controller(store, site, **kwargs):
    kwargs.setdefault("page_delay", 0)
    kwargs.setdefault("detail_delay", 0)
    return ScrapeJobController(store, fetch=site, **kwargs)


def test_listing_job_creates_one_company_and_lead_per_detail_page(store, hub):
    job = store.create_job(LISTING, JobType.THEHUB)

    job = _controller(store, hub).run(job.id, max_pages=50)

    assert job.status == JobStatus.COMPLETED
    assert job.completed_at is not None
    assert job.progress == 100
    assert job.total_items == len(SLUGS)
    assert job.items_scraped == len(SLUGS)
    summary = json.loads(job.result_summary)
    assert summary["companiesFound"] == len(SLUGS)
    assert summary["leadsCreated"] == len(SLUGS)
    assert summary["emailsFound"] == len(SLUGS)
    assert summary["pagesProcessed"] == 3
    assert {c.name for c in store.list_companies()} == {s.replace("-", " ").title() for s in SLUGS}
    assert all(lead.source == "thehub.io" for lead in store.list_leads())


def test_rerun_over_same_listing_creates_nothing(store, hub):
    controller = _controller(store, hub)
    controller.run(store.create_job(LISTING, JobType.THEHUB).id)
    companies = len(store.list_companies())
    leads = len(store.list_leads())

    second = controller.run(store.create_job(LISTING, JobType.THEHUB).id)

    assert second.status == JobStatus.COMPLETED
    assert json.loads(second.result_summary)["companiesFound"] == 0
    assert len(store.list_companies()) == companies
    assert len(store.list_leads()) == leads


def test_detail_cap(store, hub):
    job = _controller(store, hub, max_items=2).run(store.create_job(LISTING, JobType.THEHUB).id)

    assert job.total_items == 2
    assert len(store.list_companies()) == 2
    assert json.loads(job.result_summary)["urlsFound"] == len(SLUGS)


def test_progress_is_monotonic(hub):
    store = RecordingStore()
    job = store.create_job(LISTING, JobType.THEHUB)

    _controller(store, hub, progress_every=1).run(job.id)

    items = [s[1] for s in store.snapshots]
    progress = [s[2] for s in store.snapshots]
    assert items == sorted(items)
    assert progress == sorted(progress)
    assert all(0 <= p <= 100 for p in progress)
    assert store.snapshots[-1][0] == JobStatus.COMPLETED


def test_first_listing_page_failure_fails_job(store, site):
    job = _controller(store, site).run(store.create_job(LISTING, JobType.THEHUB).id)

    assert job.status == JobStatus.FAILED
    assert job.error_message == "HTTP 404: Not Found"
    assert job.completed_at is not None
    assert store.list_companies() == []


def test_unreachable_detail_page_still_persists_name(store, hub):
    del hub.pages[f"{LISTING}/north-ai"]

    job = _controller(store, hub).run(store.create_job(LISTING, JobType.THEHUB).id)

    assert job.status == JobStatus.COMPLETED
    company = store.find_company(source_url=f"{LISTING}/north-ai")
    assert company.name == "North Ai"
    assert company.email is None


def test_update_after_completion_is_ignored(store, hub):
    job = _controller(store, hub).run(store.create_job(LISTING, JobType.THEHUB).id)

    assert store.update_job(job.id, status=JobStatus.RUNNING, items_scraped=0) is False
    assert store.get_job(job.id).status == JobStatus.COMPLETED
    assert store.get_job(job.id).items_scraped == len(SLUGS)
    with pytest.raises(TerminalJobError):
        store.update_job(job.id, strict=True, status=JobStatus.FAILED)


def test_run_on_finished_job_is_a_noop(store, hub):
    controller = _controller(store, hub)
    job = controller.run(store.create_job(LISTING, JobType.THEHUB).id)
    calls = len(hub.calls)

    again = controller.run(job.id)

    assert again.status == JobStatus.COMPLETED
    assert len(hub.calls) == calls


def test_general_page_caps_leads(store, site):
    url = "https://firm.example/contact"
    emails = " ".join(f"person{i}@firm.se" for i in range(15))
    site.pages[url] = f"<html><head><title>Firm AB</title></head><body><p>{emails}</p></body></html>"

    job = _controller(store, site).run(store.create_job(url, JobType.GENERAL).id)

    assert job.status == JobStatus.COMPLETED
    summary = json.loads(job.result_summary)
    assert summary == {
        "companiesFound": 1,
        "leadsCreated": 10,
        "emailsFound": 15,
        "totalProcessed": 1,
        "pagesProcessed": 1,
    }
    [company] = store.list_companies()
    assert company.name == "Firm AB"
    assert company.email == "person0@firm.se"
    leads = store.list_leads()
    assert len(leads) == 10
    assert all(l.source == "web_scrape" and l.company_id == company.id for l in leads)


def test_general_page_unreachable_fails(store, site):
    job = _controller(store, site).run(store.create_job("https://gone.example", JobType.GENERAL).id)

    assert job.status == JobStatus.FAILED
    assert job.error_message.startswith("HTTP 404")


def test_progress_writer_clamps_to_total(store):
    job = store.create_job(LISTING, JobType.THEHUB)
    progress = JobProgress(store, job.id, every=1)
    counters = ScrapeCounters()
    progress.set_total(2, "processing", counters)

    for _ in range(4):
        progress.item_done("processing", counters)

    assert store.get_job(job.id).items_scraped == 2
    assert store.get_job(job.id).progress == 100


def test_runner_executes_in_background(store, hub):
    runner = JobRunner(store, controller=_controller(store, hub), max_workers=1)
    try:
        job = runner.submit(LISTING, JobType.THEHUB, max_pages=1)
        assert job.status == JobStatus.RUNNING
        assert job.started_at is not None

        done = runner.wait(job.id, timeout=10)
    finally:
        runner.shutdown(wait=True)

    assert done.status == JobStatus.COMPLETED
    assert json.loads(done.result_summary)["pagesProcessed"] == 1


def test_runner_fails_orphaned_jobs(store):
    orphan = store.create_job(LISTING, JobType.THEHUB)
    finished = store.create_job(LISTING, JobType.GENERAL)
    store.update_job(finished.id, status=JobStatus.COMPLETED)
    runner = JobRunner(store, max_workers=1)
    try:
        assert runner.recover_interrupted() == [orphan.id]
    finally:
        runner.shutdown()

    job = store.get_job(orphan.id)
    assert job.status == JobStatus.FAILED
    assert job.error_message == RESTART_ERROR
