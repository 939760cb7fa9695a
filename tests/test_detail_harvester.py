from scrapers import detail_harvester

DETAIL_URL = "https://thehub.io/startups/volt-labs"

DETAIL_HTML = """
<html><head>
  <title>Volt Labs | The Hub</title>
  <meta property="og:description" content="Volt Labs builds solid-state batteries for e-bikes.">
</head><body>
  <h1>Volt Labs</h1>
  <p>Industry: Energy Storage. 11-50 employees. Location: Stockholm, Sweden.</p>
  <p>Reach us at hello@voltlabs.se or +46 70 123 4567</p>
  <a href="https://thehub.io/startups">Back</a>
  <a href="https://www.linkedin.com/company/volt-labs">LinkedIn</a>
  <a href="https://partner.example.org">Partner</a>
  <a href="https://voltlabs.se">Visit website</a>
</body></html>
"""


def test_build_candidate_from_detail_page():
    candidate = detail_harvester.build_candidate(DETAIL_HTML, DETAIL_URL)

    assert candidate.name == "Volt Labs"
    assert candidate.description == "Volt Labs builds solid-state batteries for e-bikes."
    assert candidate.email == "hello@voltlabs.se"
    assert candidate.website == "https://voltlabs.se"
    assert candidate.linkedin_url == "https://www.linkedin.com/company/volt-labs"
    assert candidate.industry == "Energy Storage"
    assert candidate.employee_count == "11-50"
    assert candidate.city == "Stockholm"
    assert candidate.country == "Sweden"


def test_name_falls_back_to_title_then_url():
    html = "<html><head><title>North AI - Home</title></head></html>"
    assert detail_harvester.build_candidate(html, DETAIL_URL).name == "North AI"
    assert detail_harvester.build_candidate("<html></html>", DETAIL_URL).name == "Volt Labs"


def test_long_paragraph_used_when_no_meta_description():
    text = "We help logistics companies cut empty truck miles with route planning software."
    html = f"<html><body><p>short</p><p>{text}</p></body></html>"
    assert detail_harvester.build_candidate(html, DETAIL_URL).description == text


def test_country_from_listing_url():
    assert detail_harvester.country_from_url("https://thehub.io/companies/norway/x") == "Norway"
    assert detail_harvester.country_from_url("https://thehub.io/startups", "Sweden") == "Sweden"
    assert detail_harvester.country_from_url("https://thehub.io/startups") is None


def test_unreachable_page_yields_name_only(site):
    url = "https://site.tld/startups/green-energy-ab"

    candidate = detail_harvester.harvest(url, site, delay=0)

    assert candidate.name == "Green Energy Ab"
    others = candidate.model_dump(exclude={"name"})
    assert all(value is None for value in others.values())


def test_fetcher_exception_is_contained():
    def broken(url):
        raise RuntimeError("boom")

    candidate = detail_harvester.harvest(DETAIL_URL, broken, delay=0)
    assert candidate.name == "Volt Labs"
    assert candidate.email is None


def test_heading_wins_over_site_jsonld():
    html = """<html><head>
    <script type="application/ld+json">{"@type": "Organization", "name": "The Hub"}</script>
    </head><body><h1>Volt Labs</h1></body></html>"""
    assert detail_harvester.build_candidate(html, DETAIL_URL).name == "Volt Labs"
