from scrapers import paginator

BASE = "https://thehub.io/startups?countryCodes=SE"


def _listing(*slugs):
    links = "".join(f'<a href="/startups/{s}">{s}</a>' for s in slugs)
    return f"<html><body>{links}</body></html>"


def test_page_url():
    assert paginator.page_url(BASE, 1) == BASE
    assert paginator.page_url(BASE, 3) == "https://thehub.io/startups?countryCodes=SE&page=3"
    assert paginator.page_url(BASE + "&page=2", 4) == "https://thehub.io/startups?countryCodes=SE&page=4"


def test_extract_detail_urls_absolutizes_and_filters():
    html = """
    <a href="/startups/volt-labs?utm=x">Volt</a>
    <a href="/startups/volt-labs#team">Volt again</a>
    <a href="https://thehub.io/companies/sweden/north-ai">North</a>
    <a href="https://www.linkedin.com/company/someone">LinkedIn</a>
    <a href="/startups/x">Too short</a>
    """
    urls = paginator.extract_detail_urls(html, "https://thehub.io")

    assert urls == [
        "https://thehub.io/startups/volt-labs",
        "https://thehub.io/companies/sweden/north-ai",
    ]


def test_stops_when_a_page_yields_nothing_new(site):
    site.pages.update({
        BASE: _listing("alpha", "beta"),
        paginator.page_url(BASE, 2): _listing("gamma"),
        paginator.page_url(BASE, 3): _listing("alpha"),
    })
    pages = []

    result = paginator.crawl_listing(BASE, 50, site, on_page=lambda p, n: pages.append((p, n)), delay=0)

    assert len(site.calls) == 3
    assert result.stop_reason == "no_new_results"
    assert result.pages_processed == 3
    assert [u.rsplit("/", 1)[-1] for u in result.urls] == ["alpha", "beta", "gamma"]
    assert pages == [(1, 2), (2, 3), (3, 3)]


def test_page_ceiling(site):
    site.pages.update({paginator.page_url(BASE, p): _listing(f"co-{p}") for p in range(1, 6)})

    result = paginator.crawl_listing(BASE, 2, site, delay=0)

    assert result.pages_processed == 2
    assert result.stop_reason == "page_limit"
    assert len(result.urls) == 2


def test_first_page_failure_is_reported(site):
    result = paginator.crawl_listing(BASE, 5, site, delay=0)

    assert result.first_page_failed
    assert result.urls == []
    assert result.error == "HTTP 404: Not Found"


def test_later_failure_keeps_collected_urls(site):
    site.pages[BASE] = _listing("alpha", "beta")

    result = paginator.crawl_listing(BASE, 5, site, delay=0)

    assert not result.first_page_failed
    assert result.stop_reason == "fetch_failed"
    assert len(result.urls) == 2
