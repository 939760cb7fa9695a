from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class JobType(str, Enum):
    THEHUB = "thehub"     # paginated listing crawl
    GENERAL = "general"   # single page


class ScrapeJob(BaseModel):
    id: int
    url: str
    job_type: JobType = JobType.GENERAL
    status: JobStatus = JobStatus.PENDING
    total_items: Optional[int] = None
    items_scraped: int = 0
    error_message: Optional[str] = None
    result_summary: Optional[str] = None   # JSON-encoded, keys vary by phase
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)

    @property
    def progress(self) -> int:
        if self.status == JobStatus.COMPLETED:
            return 100
        if not self.total_items:
            return 0
        return min(100, int(100 * self.items_scraped / self.total_items))

    def to_public(self) -> dict:
        """Stable poll shape returned to HTTP clients."""
        def iso(dt):
            return dt.isoformat() if dt else None

        return {
            "id": self.id,
            "url": self.url,
            "jobType": self.job_type.value,
            "status": self.status.value,
            "progress": self.progress,
            "totalItems": self.total_items,
            "itemsScraped": self.items_scraped,
            "errorMessage": self.error_message,
            "resultSummary": self.result_summary,
            "startedAt": iso(self.started_at),
            "completedAt": iso(self.completed_at),
            "createdAt": iso(self.created_at),
        }


class CandidateRecord(BaseModel):
    """In-memory result of one detail page; has no identity until persisted."""
    name: str
    description: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    industry: Optional[str] = None
    employee_count: Optional[str] = None
    linkedin_url: Optional[str] = None
    twitter_url: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None


class Company(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    industry: Optional[str] = None
    employee_count: Optional[str] = None
    linkedin_url: Optional[str] = None
    twitter_url: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    source_url: Optional[str] = None
    scraped_at: Optional[datetime] = None
    raw_data: Optional[str] = None   # opaque JSON blob (AI analysis)
    created_at: datetime = Field(default_factory=utcnow)


class Lead(BaseModel):
    id: int
    company_id: Optional[int] = None   # back-reference only, may dangle
    company_name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    job_title: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    linkedin_url: Optional[str] = None
    source: Optional[str] = None
    notes: Optional[str] = None
    ai_summary: Optional[str] = None
    ai_recommended_approach: Optional[str] = None   # JSON-encoded
    created_at: datetime = Field(default_factory=utcnow)

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()
