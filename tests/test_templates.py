from processors.templates import lead_template_vars, render_template
from storage.models import Lead


def test_placeholders_are_filled():
    out = render_template("Hi {{first_name}}, how is {{ company }}?", {"first_name": "Anna", "company": "Volt"})
    assert out == "Hi Anna, how is Volt?"


def test_missing_and_none_values_render_empty():
    assert render_template("Hi {{ first_name }}{{unknown}}!", {"first_name": None}) == "Hi !"


def test_lead_vars():
    lead = Lead(id=1, first_name="Anna", last_name="Berg", company_name="Volt Labs", email="anna@volt.se")
    data = lead_template_vars(lead)

    assert data["full_name"] == "Anna Berg"
    assert data["job_title"] == ""
    assert render_template("{{full_name}} @ {{company}}", data) == "Anna Berg @ Volt Labs"
