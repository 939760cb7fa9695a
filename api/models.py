from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from storage.models import JobType


class _CamelRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class LoginRequest(BaseModel):
    username: str
    password: str


class ScrapeRequest(_CamelRequest):
    url: str
    job_type: JobType = Field(default=JobType.GENERAL, alias="jobType")
    max_pages: Optional[int] = Field(default=None, alias="maxPages", ge=1, le=100)


class CompanyRequest(_CamelRequest):
    company_id: int = Field(alias="companyId")


class LeadRequest(_CamelRequest):
    lead_id: int = Field(alias="leadId")


class ExtractContactsRequest(LeadRequest):
    search: bool = True


class SuggestServicesRequest(_CamelRequest):
    company_name: str = Field(alias="companyName")
    description: str = ""
    industry: Optional[str] = None
