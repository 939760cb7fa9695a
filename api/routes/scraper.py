import asyncio
import json
import logging
import os
import traceback
from typing import AsyncIterator

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse, StreamingResponse

from api.models import ScrapeRequest
from api.pipeline_runner import JobRunner, get_runner, get_store
from processors.lead_export import export_leads_csv, job_leads

_log = logging.getLogger(__name__)

STREAM_POLL_SECONDS = 1.0
STREAM_KEEPALIVE_SECONDS = 30.0

router = APIRouter()


def _get_job_or_404(store, job_id: int):
    job = store.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return job


@router.post("/scraper")
def start_scrape(req: ScrapeRequest, runner: JobRunner = Depends(get_runner)):
    """Create a scrape job and start it in background. Returns the job immediately."""
    url = req.url.strip()
    if not url:
        raise HTTPException(status_code=400, detail="URL is required")

    try:
        job = runner.submit(url, req.job_type, max_pages=req.max_pages)
    except Exception as exc:
        detail = f"{type(exc).__name__}: {exc}"
        _log.error(f"[/api/scraper] submit failed:\n{traceback.format_exc()}")
        raise HTTPException(status_code=500, detail=detail)
    return job.to_public()


@router.get("/scraper")
def list_scrape_jobs(store=Depends(get_store)):
    return [job.to_public() for job in store.list_jobs(limit=50)]


@router.get("/scraper/{job_id}")
def get_scrape_job(job_id: int, store=Depends(get_store)):
    return _get_job_or_404(store, job_id).to_public()


@router.get("/scraper/{job_id}/stream")
async def stream_progress(job_id: int, store=Depends(get_store)):
    """SSE endpoint — streams job snapshots until the job completes or fails."""
    _get_job_or_404(store, job_id)

    async def event_generator() -> AsyncIterator[str]:
        last = None
        idle = 0.0
        while True:
            job = store.get_job(job_id)
            payload = json.dumps(job.to_public())
            if payload != last:
                last, idle = payload, 0.0
                event_type = job.status.value if job.status.is_terminal else "progress"
                yield f"event: {event_type}\ndata: {payload}\n\n"
                if job.status.is_terminal:
                    break
            elif idle >= STREAM_KEEPALIVE_SECONDS:
                idle = 0.0
                yield "event: ping\ndata: {}\n\n"

            await asyncio.sleep(STREAM_POLL_SECONDS)
            idle += STREAM_POLL_SECONDS

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
        },
    )


@router.get("/scraper/{job_id}/export")
def download_csv(job_id: int, store=Depends(get_store)):
    """Download the leads a finished job created as CSV."""
    job = _get_job_or_404(store, job_id)
    if not job.status.is_terminal:
        raise HTTPException(status_code=409, detail="Job is not complete yet")

    path = export_leads_csv(store, job_leads(store, job), f"scrape_job_{job_id}.csv")
    if not os.path.exists(path):
        raise HTTPException(status_code=404, detail="CSV file not found")

    return FileResponse(
        path=path,
        media_type="text/csv",
        filename=os.path.basename(path),
    )
