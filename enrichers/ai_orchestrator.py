"""
AI enrichment. Turns what we know about a lead/company into sales artifacts.

Operations:
  analyze_company   company summary, pain points, services to pitch
  analyze_lead      lead profile, approach, talking points, objections
  extract_contacts  targeted web search + CEO / contact extraction
  enrich_lead       short summary + approach from the alternate hosted model
  generate_email    personalised cold email
  suggest_services  services ranked by relevance

Every DeepSeek-backed call degrades to a fixed fallback payload when the model
is unreachable, unconfigured or answers with something that is not the JSON
we asked for. Merging back is safe: summaries are overwritten, contact fields
(email, phone, LinkedIn, website, names) are only filled when empty.
"""
import json
import logging
from typing import Callable, Optional, TypeVar

from pydantic import BaseModel

import config
from enrichers.llm_client import ClaudeClient, CompletionClient, DeepSeekClient, LLMError, LLMNotConfigured
from enrichers.schemas import (
    SERVICES,
    CompanyAnalysis,
    ContactExtraction,
    EmailDraft,
    LeadAnalysis,
    LeadEnrichment,
    ServiceSuggestion,
    fallback_company_analysis,
    fallback_contact_extraction,
    fallback_email,
    fallback_lead_analysis,
    fallback_lead_enrichment,
    fallback_service_suggestions,
    parse_llm_json,
)
from enrichers.web_search import WebIntel, gather_company_intel
from processors.templates import lead_template_vars, render_template
from scrapers.extractor import extract_text
from scrapers.fetcher import Fetcher, fetch_secondary
from storage.models import Company, Lead, utcnow

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Never overwritten once populated
PROTECTED_FIELDS = frozenset({"email", "phone", "linkedin_url", "website", "first_name", "last_name", "job_title"})
WEBSITE_CONTENT_CHARS = 5000

SERVICES_TEXT = "\n".join(f"- {s['name']}: {s['description']}" for s in SERVICES.values())

COMPANY_SYSTEM = (
    "You are a business analyst specializing in B2B sales for service companies. "
    "Analyze companies and suggest relevant services. Always respond with valid JSON only."
)
COMPANY_PROMPT = """Analyze this Scandinavian company and suggest how Outrinsic can help them:

Company: {name}
Industry: {industry}
Website: {website}
Description: {description}

Outrinsic offers these services with resources in India and Indonesia at competitive rates:
{services}

Provide a JSON response with:
1. "summary": Brief 2-3 sentence summary of what the company does
2. "painPoints": Array of 3-4 likely pain points or challenges they face
3. "suggestedServices": Array of top 3 most relevant services from our list
4. "proposalPoints": Array of 3-4 specific value propositions for this company
5. "outreachAngle": Best angle to approach this company (1-2 sentences)

Return ONLY valid JSON, no markdown."""

LEAD_SYSTEM = (
    "You are a sales coach and lead analyst. Provide actionable insights for B2B sales. "
    "Always respond with valid JSON only."
)
LEAD_PROMPT = """Analyze this lead and provide sales insights:

Contact: {first_name} {last_name}
Title: {job_title}
Company: {company}
Email: {email}
Notes: {notes}
Company Info: {company_info}

Outrinsic offers operational services (customer support, social media, content, lead gen) with resources in India & Indonesia at 60-70% cost savings.

Provide JSON with:
1. "summary": 2-3 sentence lead profile
2. "recommendedApproach": Best way to approach this person
3. "talkingPoints": Array of 3-4 specific talking points
4. "objectionHandling": Array of 2-3 likely objections and responses
5. "nextSteps": Array of recommended next actions

Return ONLY valid JSON."""

CONTACTS_SYSTEM = (
    "You are a B2B research assistant. Extract decision makers and contact details from "
    "company web content. Never invent emails or URLs that are not supported by the content. "
    "Always respond with valid JSON only."
)
CONTACTS_PROMPT = """Find the decision makers for this company using the context below.

{context}

Return JSON with:
1. "ceo": Full name of the CEO or founder, or null
2. "ceoEmail": CEO email address if present in the content, or null
3. "ceoLinkedin": CEO LinkedIn profile URL if present, or null
4. "contacts": Array of {{"name", "title", "email", "linkedin"}} for other key people
5. "companyInsights": 2-3 sentences on what the company does and its current situation
6. "recommendedApproach": How to approach the decision maker (1-2 sentences)
7. "talkingPoints": Array of 3 talking points

Return ONLY valid JSON."""

ENRICH_SYSTEM = """You are a sales expert. Analyze this lead and provide:
1. A brief summary of the lead (2-3 sentences)
2. Recommended approach for outreach (3-4 bullet points)

Format your response as JSON with keys: summary, recommendedApproach"""

EMAIL_SYSTEM = (
    "You are an expert cold email copywriter. Write personalized, high-converting outreach emails. "
    "Always respond with valid JSON only."
)
EMAIL_PROMPT = """Generate a personalized cold outreach email for:

Company: {company}
Contact: {contact}
Company Info: {company_info}
Suggested Services: {services}
Value Propositions: {proposals}

About Outrinsic:
- We provide AI MVP development and operational services
- We have skilled resources in India and Indonesia
- We offer 60-70% cost savings compared to local hiring

Guidelines:
- Keep it short (under 150 words)
- Reference something specific about their company
- Clear CTA to schedule a call

Return JSON with "subject" and "body" (HTML formatted). Return ONLY valid JSON."""

SUGGEST_SYSTEM = (
    "You are a B2B sales strategist. Analyze companies and match them with relevant services. "
    "Respond with valid JSON only."
)
SUGGEST_PROMPT = """Based on this company, rank our services by relevance:

Company: {name}
Industry: {industry}
Description: {description}

Our services:
{services}

Return a JSON array of objects with "service" (service key), "relevance" (1-10), and "reason" (why it's relevant).
Order by relevance descending. Return top 5 services.
Return ONLY valid JSON array."""


class EntityNotFound(LookupError):
    pass


def safe_merge(target: BaseModel, updates: dict, protected=PROTECTED_FIELDS) -> dict:
    """Changes to apply: empty values dropped, protected fields only filled when empty."""
    changes = {}
    for field, value in updates.items():
        if value is None or value == "":
            continue
        if field in protected and getattr(target, field, None):
            continue
        changes[field] = value
    return changes


def _same_person(a: str, b: str) -> bool:
    return " ".join(a.lower().split()) == " ".join(b.lower().split())


def _load_raw(raw_data: Optional[str]) -> dict:
    if not raw_data:
        return {}
    try:
        data = json.loads(raw_data)
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


class AIOrchestrator:
    def __init__(
        self,
        store,
        llm: Optional[CompletionClient] = None,
        alt_llm: Optional[CompletionClient] = None,
        fetch: Fetcher = fetch_secondary,
        search_delay: Optional[float] = None,
    ):
        self.store = store
        self.llm = llm or DeepSeekClient()
        self.alt_llm = alt_llm or ClaudeClient()
        self.fetch = fetch
        self.search_delay = search_delay

    # ── Plumbing ──────────────────────────────────────────────────────────────

    def _ask(self, system: str, prompt: str, temperature: float,
             model: type[T], fallback: Callable[[], T]) -> T:
        messages = [
            {"role": "system", "content": system},
            {"role": "user", "content": prompt},
        ]
        try:
            raw = self.llm.complete(messages, temperature=temperature)
        except LLMError as e:
            logger.error(f"AI call failed, using fallback payload: {e}")
            return fallback()
        return parse_llm_json(raw, model, fallback)

    def _lead(self, lead_id: int) -> Lead:
        lead = self.store.get_lead(lead_id)
        if lead is None:
            raise EntityNotFound(f"Lead {lead_id} not found")
        return lead

    def _company(self, company_id: Optional[int]) -> Optional[Company]:
        return self.store.get_company(company_id) if company_id else None

    def _website_text(self, url: Optional[str]) -> str:
        if not url:
            return ""
        page = self.fetch(url)
        if not page.ok:
            logger.warning(f"Failed to fetch website {url}: {page.error}")
            return ""
        return extract_text(page.text)[:WEBSITE_CONTENT_CHARS]

    @staticmethod
    def _company_info(company: Optional[Company]) -> str:
        if company is None:
            return ""
        info = company.description or ""
        analysis = _load_raw(company.raw_data).get("aiAnalysis")
        if analysis:
            info += "\n" + json.dumps(analysis)
        return info.strip()

    # ── Company analysis ──────────────────────────────────────────────────────

    def company_analysis(self, name: str, description: str, industry: Optional[str] = None,
                         website: Optional[str] = None) -> CompanyAnalysis:
        prompt = COMPANY_PROMPT.format(
            name=name,
            industry=industry or "Unknown",
            website=website or "Not provided",
            description=(description or "No description available")[: config.AI_CONTEXT_CHARS],
            services=SERVICES_TEXT,
        )
        return self._ask(COMPANY_SYSTEM, prompt, 0.5, CompanyAnalysis,
                         lambda: fallback_company_analysis(name))

    def analyze_company(self, company_id: int) -> CompanyAnalysis:
        company = self._company(company_id)
        if company is None:
            raise EntityNotFound(f"Company {company_id} not found")

        url = company.website or company.source_url
        website_content = self._website_text(url)
        analysis = self.company_analysis(
            company.name, company.description or website_content, company.industry, url
        )

        raw = _load_raw(company.raw_data)
        raw.update(aiAnalysis=analysis.model_dump(), analyzedAt=utcnow().isoformat())
        self.store.update_company(company_id, raw_data=json.dumps(raw))
        logger.info(f"Company #{company_id} '{company.name}' analyzed")
        return analysis

    # ── Lead analysis ─────────────────────────────────────────────────────────

    def analyze_lead(self, lead_id: int) -> LeadAnalysis:
        lead = self._lead(lead_id)
        company = self._company(lead.company_id)

        prompt = LEAD_PROMPT.format(
            first_name=lead.first_name or "",
            last_name=lead.last_name or "",
            job_title=lead.job_title or "Unknown",
            company=lead.company_name or "Unknown",
            email=lead.email or "Not provided",
            notes=lead.notes or "None",
            company_info=self._company_info(company)[: config.AI_CONTEXT_CHARS] or "No additional info",
        )
        analysis = self._ask(
            LEAD_SYSTEM, prompt, 0.6, LeadAnalysis,
            lambda: fallback_lead_analysis(lead.first_name or "", lead.last_name or "", lead.company_name or ""),
        )

        self.store.update_lead(
            lead_id,
            ai_summary=analysis.summary,
            ai_recommended_approach=json.dumps({
                "approach": analysis.recommendedApproach,
                "talkingPoints": analysis.talkingPoints,
                "objectionHandling": analysis.objectionHandling,
                "nextSteps": analysis.nextSteps,
            }),
        )
        logger.info(f"Lead #{lead_id} analyzed")
        return analysis

    # ── Contact extraction ────────────────────────────────────────────────────

    @staticmethod
    def _contact_context(lead: Lead, company: Optional[Company], intel: WebIntel) -> str:
        lines = [
            f"Company: {lead.company_name or (company.name if company else '')}",
            f"Known contact: {lead.full_name or 'Unknown'} ({lead.job_title or 'unknown title'})",
            f"Website: {intel.website or (company.website if company else '') or 'Unknown'}",
            f"Company description: {(company.description if company else '') or 'None'}",
            f"Notes: {lead.notes or 'None'}",
        ]
        if intel.ceo_name:
            lines.append(f"CEO/founder mentioned on site: {intel.ceo_name}")
        if intel.emails:
            lines.append(f"Emails found on site: {', '.join(intel.emails)}")
        if intel.phones:
            lines.append(f"Phones found on site: {', '.join(intel.phones)}")
        if intel.linkedin_url:
            lines.append(f"Company LinkedIn: {intel.linkedin_url}")
        lines.append(f"Website content: {intel.text or 'Not available'}")
        return "\n".join(lines)[: config.AI_CONTEXT_CHARS]

    def extract_contacts(self, lead_id: int, search: bool = True) -> dict:
        lead = self._lead(lead_id)
        company = self._company(lead.company_id)
        company_name = lead.company_name or (company.name if company else "")
        website = company.website if company else None

        if search and (company_name or website):
            intel = gather_company_intel(company_name, website, fetch=self.fetch, delay=self.search_delay)
        else:
            intel = WebIntel(website=website)

        prompt = CONTACTS_PROMPT.format(context=self._contact_context(lead, company, intel))
        result = self._ask(CONTACTS_SYSTEM, prompt, 0.3, ContactExtraction,
                           lambda: fallback_contact_extraction(company_name))

        ceo = result.ceo or intel.ceo_name
        # CEO details only land on a lead that is (or becomes) the CEO
        is_ceo = bool(ceo) and (not lead.full_name or _same_person(lead.full_name, ceo))
        updates = {
            "email": (result.ceoEmail if is_ceo else None) or (intel.emails[0] if intel.emails else None),
            "phone": intel.phones[0] if intel.phones else None,
            "linkedin_url": result.ceoLinkedin if is_ceo else None,
        }
        if is_ceo and not lead.full_name:
            first_name, _, last_name = ceo.partition(" ")
            updates.update(first_name=first_name, last_name=last_name or None, job_title="CEO")
        lead_updates = safe_merge(lead, updates)

        lead_updates.update(
            ai_summary=result.companyInsights,
            ai_recommended_approach=json.dumps({
                "approach": result.recommendedApproach,
                "talkingPoints": result.talkingPoints,
                "ceo": ceo,
                "ceoEmail": result.ceoEmail,
                "ceoLinkedin": result.ceoLinkedin,
                "contacts": [c.model_dump() for c in result.contacts],
            }),
        )
        self.store.update_lead(lead_id, **lead_updates)

        company_updates = {}
        if company is not None:
            company_updates = safe_merge(company, {
                "email": intel.emails[0] if intel.emails else None,
                "phone": intel.phones[0] if intel.phones else None,
                "linkedin_url": intel.linkedin_url,
                "website": intel.website,
            })
            if company_updates:
                self.store.update_company(company.id, **company_updates)

        logger.info(
            f"Contacts for lead #{lead_id}: CEO={ceo!r}, "
            f"lead fields set={sorted(k for k in lead_updates if not k.startswith('ai_'))}, "
            f"company fields set={sorted(company_updates)}"
        )
        return {
            "extraction": result.model_dump(),
            "ceo": ceo,
            "pagesFetched": intel.pages_fetched,
            "leadUpdates": sorted(k for k in lead_updates if not k.startswith("ai_")),
            "companyUpdates": sorted(company_updates),
        }

    # ── Alternate-model enrichment ────────────────────────────────────────────

    def enrich_lead(self, lead_id: int) -> LeadEnrichment:
        """Summary + approach from the alternate hosted model. A missing key is an error."""
        if not getattr(self.alt_llm, "configured", True):
            raise LLMNotConfigured("ANTHROPIC_API_KEY not configured")

        lead = self._lead(lead_id)
        company = self._company(lead.company_id)
        context = "\n".join([
            f"Name: {lead.full_name}",
            f"Company: {lead.company_name or ''}",
            f"Job Title: {lead.job_title or ''}",
            f"Email: {lead.email or ''}",
            f"Source: {lead.source or ''}",
            f"Notes: {lead.notes or ''}",
            f"Company Description: {(company.description if company else '') or ''}",
        ])[: config.AI_CONTEXT_CHARS]

        raw = self.alt_llm.complete(
            [{"role": "system", "content": ENRICH_SYSTEM}, {"role": "user", "content": context}],
            temperature=0.7,
        )
        result = parse_llm_json(raw, LeadEnrichment, lambda: fallback_lead_enrichment(raw))

        self.store.update_lead(
            lead_id,
            ai_summary=result.summary,
            ai_recommended_approach=json.dumps({"approach": result.recommendedApproach}),
        )
        return result

    # ── Outreach helpers ──────────────────────────────────────────────────────

    def generate_email(self, lead_id: int) -> EmailDraft:
        lead = self._lead(lead_id)
        company = self._company(lead.company_id)
        company_info = (company.description if company else None) or lead.notes or ""

        analysis = _load_raw(company.raw_data if company else None).get("aiAnalysis") or {}
        services = analysis.get("suggestedServices") or []
        proposals = analysis.get("proposalPoints") or []
        if not services:
            fresh = self.company_analysis(
                lead.company_name or "Unknown Company",
                company_info,
                company.industry if company else None,
                company.website if company else None,
            )
            services, proposals, company_info = fresh.suggestedServices, fresh.proposalPoints, fresh.summary

        company_name = lead.company_name or "your company"
        prompt = EMAIL_PROMPT.format(
            company=company_name,
            contact=lead.first_name or "there",
            company_info=company_info[: config.AI_CONTEXT_CHARS],
            services=", ".join(services),
            proposals="; ".join(proposals),
        )
        draft = self._ask(EMAIL_SYSTEM, prompt, 0.7, EmailDraft,
                          lambda: fallback_email(company_name, lead.first_name or "", services))
        # models sometimes leave {{ first_name }}-style placeholders in the copy
        variables = lead_template_vars(lead)
        return EmailDraft(
            subject=render_template(draft.subject, variables),
            body=render_template(draft.body, variables),
        )

    def suggest_services(self, company_name: str, description: str,
                         industry: Optional[str] = None) -> list[dict]:
        services = "\n".join(f"{key}: {s['name']} - {s['description']}" for key, s in SERVICES.items())
        prompt = SUGGEST_PROMPT.format(
            name=company_name,
            industry=industry or "Unknown",
            description=(description or "")[: config.AI_CONTEXT_CHARS],
            services=services,
        )
        suggestions = self._ask(SUGGEST_SYSTEM, prompt, 0.4, list[ServiceSuggestion],
                                fallback_service_suggestions)
        return [
            {**s.model_dump(), "serviceDetails": SERVICES.get(s.service)}
            for s in suggestions
        ]
