"""AI enrichment endpoints. Every one writes back into the store before returning."""
import logging
from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException

from api.models import CompanyRequest, ExtractContactsRequest, LeadRequest, SuggestServicesRequest
from api.pipeline_runner import get_store
from enrichers.ai_orchestrator import AIOrchestrator, EntityNotFound
from enrichers.llm_client import LLMError, LLMNotConfigured

_log = logging.getLogger(__name__)

router = APIRouter()


@lru_cache(maxsize=1)
def get_orchestrator() -> AIOrchestrator:
    return AIOrchestrator(get_store())


def _call(operation, *args, **kwargs):
    try:
        return operation(*args, **kwargs)
    except EntityNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except LLMNotConfigured as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except LLMError as exc:
        _log.error(f"{operation.__name__} failed: {exc}")
        raise HTTPException(status_code=500, detail=str(exc))


@router.post("/ai/analyze-company")
def analyze_company(req: CompanyRequest, ai: AIOrchestrator = Depends(get_orchestrator)):
    analysis = _call(ai.analyze_company, req.company_id)
    return {"success": True, "analysis": analysis.model_dump()}


@router.post("/ai/analyze-lead")
def analyze_lead(req: LeadRequest, ai: AIOrchestrator = Depends(get_orchestrator)):
    analysis = _call(ai.analyze_lead, req.lead_id)
    return {"success": True, "analysis": analysis.model_dump()}


@router.post("/ai/extract-contacts")
def extract_contacts(req: ExtractContactsRequest, ai: AIOrchestrator = Depends(get_orchestrator)):
    result = _call(ai.extract_contacts, req.lead_id, search=req.search)
    return {"success": True, **result}


@router.post("/leads/enrich/{lead_id}")
def enrich_lead(lead_id: int, ai: AIOrchestrator = Depends(get_orchestrator)):
    enrichment = _call(ai.enrich_lead, lead_id)
    return {"success": True, **enrichment.model_dump()}


@router.post("/ai/generate-email")
def generate_email(req: LeadRequest, ai: AIOrchestrator = Depends(get_orchestrator)):
    draft = _call(ai.generate_email, req.lead_id)
    return {"success": True, **draft.model_dump()}


@router.post("/ai/suggest-services")
def suggest_services(req: SuggestServicesRequest, ai: AIOrchestrator = Depends(get_orchestrator)):
    if not req.company_name.strip():
        raise HTTPException(status_code=400, detail="companyName is required")
    suggestions = _call(ai.suggest_services, req.company_name, req.description, req.industry)
    return {"success": True, "suggestions": suggestions}
