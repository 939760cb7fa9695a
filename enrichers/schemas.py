"""
JSON contracts expected back from the completion service, their fallback
payloads, and the parser that turns free text into one or the other.

The model is asked for a bare JSON object; it sometimes wraps it in a
```json fence, which is stripped. Anything that still does not parse or does
not match the contract is replaced by the fixed fallback, so callers never see
a parse error.
"""
import json
import logging
import re
from typing import Any, Callable, Optional, TypeVar

from pydantic import BaseModel, Field, TypeAdapter, ValidationError, field_validator

logger = logging.getLogger(__name__)

T = TypeVar("T")

_FENCE_RE = re.compile(r"```(?:json|JSON)?[ \t]*\n?|\n?```")

# ── Services offered to prospects ─────────────────────────────────────────────

SERVICES = {
    "socialMedia": {
        "name": "Social Media Management",
        "description": "Complete social media presence management including content creation, scheduling, engagement, and analytics",
        "keywords": ["social", "instagram", "linkedin", "twitter", "facebook", "marketing", "brand", "content"],
    },
    "leadGeneration": {
        "name": "Lead Generation",
        "description": "AI-powered lead generation, prospecting, and qualification services",
        "keywords": ["sales", "leads", "b2b", "outreach", "prospecting", "growth", "customers"],
    },
    "contentManagement": {
        "name": "Content Generation & Management",
        "description": "Blog posts, articles, newsletters, and content strategy with AI assistance",
        "keywords": ["content", "blog", "writing", "articles", "newsletter", "seo", "copywriting"],
    },
    "customerSupport": {
        "name": "Customer Support & Ticket Management",
        "description": "24/7 customer support, ticket resolution, and help desk management",
        "keywords": ["support", "customer", "tickets", "helpdesk", "service", "complaints", "queries"],
    },
    "paymentVerification": {
        "name": "Payment Verification & Refunds",
        "description": "Payment processing verification, refund management, and fraud prevention",
        "keywords": ["payment", "refund", "billing", "invoice", "verification", "finance"],
    },
    "communityManagement": {
        "name": "Community & Forum Management",
        "description": "Forum moderation, community building, and user engagement",
        "keywords": ["community", "forum", "users", "engagement", "moderation", "members"],
    },
    "dataEntry": {
        "name": "Data Entry & Processing",
        "description": "Accurate data entry, processing, and database management",
        "keywords": ["data", "entry", "processing", "database", "records", "administrative"],
    },
    "virtualAssistant": {
        "name": "Virtual Assistant Services",
        "description": "Email management, scheduling, research, and administrative support",
        "keywords": ["assistant", "admin", "scheduling", "email", "research", "administrative"],
    },
}


def _text_items(value: Any) -> Any:
    # Models often answer a list-of-strings field with a single string or with
    # {"objection": ..., "response": ...} objects.
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        items = []
        for item in value:
            if isinstance(item, dict):
                items.append(": ".join(str(v) for v in item.values() if v))
            else:
                items.append(item)
        return items
    return value


def _approach_text(value: Any) -> Any:
    # bullet lists and objects are kept as their JSON text
    if value is None or isinstance(value, str):
        return value
    return json.dumps(value)


# ── Contracts ─────────────────────────────────────────────────────────────────

class CompanyAnalysis(BaseModel):
    summary: str
    painPoints: list[str]
    suggestedServices: list[str]
    proposalPoints: list[str]
    outreachAngle: str

    @field_validator("painPoints", "suggestedServices", "proposalPoints", mode="before")
    @classmethod
    def coerce_lists(cls, value):
        return _text_items(value)


class LeadAnalysis(BaseModel):
    summary: str
    recommendedApproach: str
    talkingPoints: list[str]
    objectionHandling: list[str]
    nextSteps: list[str]

    @field_validator("talkingPoints", "objectionHandling", "nextSteps", mode="before")
    @classmethod
    def coerce_lists(cls, value):
        return _text_items(value)

    @field_validator("recommendedApproach", mode="before")
    @classmethod
    def approach_as_text(cls, value):
        return _approach_text(value)


class Contact(BaseModel):
    name: Optional[str] = None
    title: Optional[str] = None
    email: Optional[str] = None
    linkedin: Optional[str] = None


class ContactExtraction(BaseModel):
    ceo: Optional[str] = None
    ceoEmail: Optional[str] = None
    ceoLinkedin: Optional[str] = None
    contacts: list[Contact] = Field(default_factory=list)
    companyInsights: str
    recommendedApproach: str
    talkingPoints: list[str]

    @field_validator("talkingPoints", mode="before")
    @classmethod
    def coerce_lists(cls, value):
        return _text_items(value)

    @field_validator("recommendedApproach", mode="before")
    @classmethod
    def approach_as_text(cls, value):
        return _approach_text(value)


class LeadEnrichment(BaseModel):
    summary: str
    recommendedApproach: str

    @field_validator("recommendedApproach", mode="before")
    @classmethod
    def approach_as_text(cls, value):
        return _approach_text(value)


class EmailDraft(BaseModel):
    subject: str
    body: str


class ServiceSuggestion(BaseModel):
    service: str
    relevance: int
    reason: str


# ── Fallback payloads ─────────────────────────────────────────────────────────

def fallback_company_analysis(company_name: str = "") -> CompanyAnalysis:
    return CompanyAnalysis(
        summary=f"{company_name or 'This company'} is a growing business that could benefit from scalable operational support.",
        painPoints=[
            "Scaling operations cost-effectively",
            "Managing customer support",
            "Content creation at scale",
        ],
        suggestedServices=[
            "Customer Support & Ticket Management",
            "Social Media Management",
            "Content Generation & Management",
        ],
        proposalPoints=[
            "Reduce operational costs by 60-70%",
            "Scale support team without hiring overhead",
            "Focus on core business while we handle operations",
        ],
        outreachAngle="Help them scale their operations efficiently with dedicated offshore resources.",
    )


def fallback_lead_analysis(first_name: str = "", last_name: str = "", company_name: str = "") -> LeadAnalysis:
    who = f"{first_name} {last_name}".strip() or "This contact"
    return LeadAnalysis(
        summary=f"{who} at {company_name or 'their company'} - potential prospect for our services.",
        recommendedApproach="Reach out with a personalized message highlighting cost savings and scalability.",
        talkingPoints=[
            "Cost savings of 60-70% compared to local hiring",
            "Skilled, dedicated team members",
            "Quick ramp-up time (1-2 weeks)",
        ],
        objectionHandling=[
            "Quality concerns: Our teams are trained and monitored for quality",
            "Communication: We work in overlapping hours and use async tools",
        ],
        nextSteps=[
            "Send personalized outreach email",
            "Connect on LinkedIn",
            "Schedule discovery call",
        ],
    )


def fallback_contact_extraction(company_name: str = "") -> ContactExtraction:
    return ContactExtraction(
        companyInsights=f"No verified contact information could be extracted for {company_name or 'this company'}.",
        recommendedApproach="Reach the company through its general contact channels and ask to be introduced to the founder or CEO.",
        talkingPoints=[
            "Cost-effective scaling with dedicated offshore teams",
            "Fast onboarding without local hiring overhead",
            "Flexible engagement that grows with the company",
        ],
    )


def fallback_lead_enrichment(raw_text: str) -> LeadEnrichment:
    return LeadEnrichment(summary=(raw_text or "").strip(), recommendedApproach="")


def fallback_email(company_name: str, contact_name: str, services: list[str]) -> EmailDraft:
    focus = " and ".join(services[:2]) or "operational support"
    return EmailDraft(
        subject=f"Partnership opportunity for {company_name}",
        body=(
            f"<p>Hi {contact_name or 'there'},</p>\n"
            f"<p>I came across {company_name} and was impressed by what you're building.</p>\n"
            "<p>At Outrinsic, we help Scandinavian startups scale their operations cost-effectively "
            "with our talented teams in India and Indonesia.</p>\n"
            f"<p>We specialize in: {focus}.</p>\n"
            f"<p>Would you be open to a quick 15-minute call to explore if we could help {company_name}?</p>\n"
            "<p>Best regards,<br/>Outrinsic Team</p>"
        ),
    )


def fallback_service_suggestions() -> list[ServiceSuggestion]:
    return [
        ServiceSuggestion(service="customerSupport", relevance=8, reason="Most startups need scalable support"),
        ServiceSuggestion(service="socialMedia", relevance=7, reason="Growing brand presence is crucial"),
        ServiceSuggestion(service="contentManagement", relevance=7, reason="Content helps with growth"),
    ]


# ── Parsing ───────────────────────────────────────────────────────────────────

def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text or "").strip()


def parse_llm_json(text: str, model: type[T], fallback: Callable[[], T]) -> T:
    """Parse `text` into `model`; on any failure return `fallback()`."""
    cleaned = strip_code_fences(text)
    try:
        data = json.loads(cleaned)
        return TypeAdapter(model).validate_python(data)
    except (ValueError, ValidationError) as e:
        logger.warning(f"Unusable AI response ({type(e).__name__}); using fallback. Response: {cleaned[:200]!r}")
        return fallback()
