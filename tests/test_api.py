import pytest
from fastapi.testclient import TestClient

import config
from api import auth
from api.pipeline_runner import JobRunner, get_runner, get_store
from api.routes.ai import get_orchestrator
from api.server import app
from enrichers.ai_orchestrator import AIOrchestrator
from processors.scrape_job import ScrapeJobController
from storage.models import JobStatus, JobType

PAGE_URL = "https://firm.example"


@pytest.fixture(autouse=True)
def _secrets(monkeypatch, tmp_path):
    monkeypatch.setattr(config, "SESSION_SECRET", "test-secret")
    monkeypatch.setattr(config, "ADMIN_USERNAME", "admin")
    monkeypatch.setattr(config, "ADMIN_PASSWORD", "hunter2")
    monkeypatch.setattr(config, "OUTPUT_DIR", str(tmp_path))


@pytest.fixture
def runner(store, site):
    site.pages[PAGE_URL] = "<html><head><title>Firm AB</title></head><body>sales@firm.se</body></html>"
    controller = ScrapeJobController(store, fetch=site, page_delay=0, detail_delay=0)
    runner = JobRunner(store, controller=controller, max_workers=1)
    yield runner
    runner.shutdown(wait=True)


@pytest.fixture
def client(store, site, runner, fake_llm):
    ai = AIOrchestrator(store, llm=fake_llm("no json here"), alt_llm=fake_llm(configured=False), fetch=site)
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_runner] = lambda: runner
    app.dependency_overrides[get_orchestrator] = lambda: ai
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def authed(client):
    resp = client.post("/api/auth/login", json={"username": "admin", "password": "hunter2"})
    assert resp.status_code == 200
    return client


def test_health_is_public(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


@pytest.mark.parametrize("method,path", [
    ("get", "/api/scraper"),
    ("post", "/api/scraper"),
    ("post", "/api/ai/analyze-lead"),
    ("post", "/api/leads/enrich/1"),
])
def test_protected_routes_require_session(client, store, method, path):
    resp = getattr(client, method)(path)
    assert resp.status_code == 401
    assert store.list_jobs() == []


def test_wrong_password(client):
    resp = client.post("/api/auth/login", json={"username": "admin", "password": "nope"})
    assert resp.status_code == 401


def test_bearer_token_is_accepted(client):
    token = auth.create_session_token("admin")
    resp = client.get("/api/scraper", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 200
    assert resp.json() == []


def test_tampered_and_expired_tokens():
    token = auth.create_session_token("admin")
    assert auth.verify_session_token(token) == "admin"
    assert auth.verify_session_token(token[:-1] + ("0" if token[-1] != "0" else "1")) is None
    assert auth.verify_session_token(auth.create_session_token("admin", ttl_seconds=-10)) is None
    assert auth.verify_session_token("garbage") is None


def test_scrape_job_lifecycle(authed, runner):
    resp = authed.post("/api/scraper", json={"url": PAGE_URL, "jobType": "general"})
    assert resp.status_code == 200
    job = resp.json()
    assert job["status"] == "running"
    assert job["jobType"] == "general"

    runner.wait(job["id"], timeout=10)
    polled = authed.get(f"/api/scraper/{job['id']}").json()
    assert polled["status"] == "completed"
    assert polled["progress"] == 100
    assert polled["completedAt"] is not None

    jobs = authed.get("/api/scraper").json()
    assert [j["id"] for j in jobs] == [job["id"]]

    export = authed.get(f"/api/scraper/{job['id']}/export")
    assert export.status_code == 200
    assert export.headers["content-type"].startswith("text/csv")
    assert "sales@firm.se" in export.text


def test_failed_job_reports_error(authed, runner):
    job = authed.post("/api/scraper", json={"url": "https://gone.example", "jobType": "general"}).json()
    runner.wait(job["id"], timeout=10)

    polled = authed.get(f"/api/scraper/{job['id']}").json()
    assert polled["status"] == "failed"
    assert polled["errorMessage"] == "HTTP 404: Not Found"


def test_bad_scrape_requests(authed):
    assert authed.post("/api/scraper", json={"url": "  ", "jobType": "general"}).status_code == 400
    assert authed.post("/api/scraper", json={"url": PAGE_URL, "jobType": "ftp"}).status_code == 422


def test_unknown_job(authed):
    assert authed.get("/api/scraper/999").status_code == 404


def test_export_before_job_finishes(authed, store):
    job = store.create_job(PAGE_URL, JobType.GENERAL)
    store.update_job(job.id, status=JobStatus.RUNNING)
    assert authed.get(f"/api/scraper/{job.id}/export").status_code == 409


def test_ai_routes(authed, store):
    company = store.create_company(name="Volt Labs")
    lead = store.create_lead(company_id=company.id, company_name="Volt Labs")

    resp = authed.post("/api/ai/analyze-lead", json={"leadId": lead.id})
    assert resp.status_code == 200
    assert resp.json()["analysis"]["summary"].endswith("potential prospect for our services.")

    assert authed.post("/api/ai/analyze-lead", json={"leadId": 999}).status_code == 404
    assert authed.post("/api/ai/analyze-company", json={"companyId": 999}).status_code == 404

    resp = authed.post(f"/api/leads/enrich/{lead.id}")
    assert resp.status_code == 400
    assert "ANTHROPIC_API_KEY" in resp.json()["detail"]

    resp = authed.post("/api/ai/suggest-services", json={"companyName": "Volt Labs", "description": "Batteries"})
    assert resp.status_code == 200
    assert resp.json()["suggestions"][0]["service"] == "customerSupport"


def test_startup_requires_secrets(monkeypatch):
    monkeypatch.setattr(config, "SESSION_SECRET", "")
    with pytest.raises(config.ConfigError):
        with TestClient(app):
            pass


def test_job_endpoints_return_bare_rows(authed, runner):
    created = authed.post("/api/scraper", json={"url": PAGE_URL, "jobType": "general"}).json()
    assert {"id", "url", "jobType", "status", "progress"} <= set(created)
    runner.wait(created["id"], timeout=10)

    listed = authed.get("/api/scraper").json()
    assert isinstance(listed, list)
    assert listed[0]["id"] == created["id"]
    assert authed.get(f"/api/scraper/{created['id']}").json()["id"] == created["id"]
