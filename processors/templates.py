"""Outreach template rendering: `{{ key }}` placeholders filled from a lead."""
import re

from storage.models import Lead

_PLACEHOLDER_RE = re.compile(r"\{\{\s*(\w+)\s*\}\}")


def render_template(template: str, data: dict) -> str:
    """Replace every `{{ key }}`; missing or None values render as an empty string."""
    def replace(match):
        value = data.get(match.group(1))
        return "" if value is None else str(value)

    return _PLACEHOLDER_RE.sub(replace, template or "")


def lead_template_vars(lead: Lead) -> dict:
    return {
        "first_name": lead.first_name or "",
        "last_name": lead.last_name or "",
        "full_name": lead.full_name,
        "email": lead.email or "",
        "company": lead.company_name or "",
        "job_title": lead.job_title or "",
    }
