from datetime import timedelta

import pandas as pd

from processors.lead_export import CSV_COLUMNS, export_leads_csv, job_leads
from storage.models import JobStatus, JobType, utcnow


def test_export_fills_gaps_from_company(store, tmp_path):
    company = store.create_company(name="Volt Labs", email="info@volt.se", website="https://volt.se",
                                   country="Sweden", scraped_at=utcnow())
    store.create_lead(company_id=company.id, company_name="Volt Labs", source="thehub.io")
    store.create_lead(company_id=company.id, company_name="Volt Labs", email="anna@volt.se", first_name="Anna")

    path = export_leads_csv(store, store.list_leads(), "leads.csv", output_dir=str(tmp_path))

    df = pd.read_csv(path, encoding="utf-8-sig")
    assert list(df.columns) == CSV_COLUMNS
    assert list(df["email"]) == ["info@volt.se", "anna@volt.se"]
    assert set(df["website"]) == {"https://volt.se"}
    assert set(df["country"]) == {"Sweden"}


def test_job_leads_selects_companies_scraped_during_the_job(store):
    old = store.create_company(name="Old Co", scraped_at=utcnow() - timedelta(minutes=5))
    store.create_lead(company_id=old.id, company_name="Old Co")

    job = store.create_job("https://thehub.io/startups", JobType.THEHUB)
    store.update_job(job.id, status=JobStatus.RUNNING, started_at=utcnow())
    new = store.create_company(name="New Co", scraped_at=utcnow())
    lead = store.create_lead(company_id=new.id, company_name="New Co")
    store.update_job(job.id, status=JobStatus.COMPLETED, completed_at=utcnow())

    assert [l.id for l in job_leads(store, store.get_job(job.id))] == [lead.id]


def test_job_leads_for_unstarted_job(store):
    job = store.create_job("https://thehub.io/startups", JobType.THEHUB)
    assert job_leads(store, job) == []
