import json

import pytest

import config
from scrapers.fetcher import FetchFailure, RawPage
from storage.memory import InMemoryStore


class FakeSite:
    """Fetcher stand-in: URL -> HTML; unknown URLs fail like a 404."""

    def __init__(self, pages=None):
        self.pages = dict(pages or {})
        self.calls = []

    def __call__(self, url):
        self.calls.append(url)
        html = self.pages.get(url)
        if html is None:
            return FetchFailure(url=url, status_code=404, error="HTTP 404: Not Found")
        return RawPage(url=url, status_code=200, text=html)


class FakeLLM:
    """Completion client stand-in returning queued replies (the last one repeats)."""

    def __init__(self, *replies, configured=True, error=None):
        self.replies = list(replies) or ["{}"]
        self.configured = configured
        self.error = error
        self.calls = []

    def complete(self, messages, temperature=0.7):
        self.calls.append({"messages": messages, "temperature": temperature})
        if self.error is not None:
            raise self.error
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        return reply if isinstance(reply, str) else json.dumps(reply)


@pytest.fixture(autouse=True)
def _no_delays(monkeypatch):
    monkeypatch.setattr(config, "LISTING_PAGE_DELAY", 0)
    monkeypatch.setattr(config, "DETAIL_PAGE_DELAY", 0)
    monkeypatch.setattr(config, "ENRICH_PAGE_DELAY", 0)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def site():
    return FakeSite()


@pytest.fixture
def fake_llm():
    return FakeLLM
