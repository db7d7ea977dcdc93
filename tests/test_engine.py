# File: tests/test_engine.py
# End-to-end discovery runs over an in-memory transport
import logging

import pytest
from conftest import FIXED_NOW, FakeTransport, html_page

from domain_scout.config import DiscoveryOptions
from domain_scout.crawler.models import DiscoveryMethod
from domain_scout.engine import DiscoveryOrchestrator, discover_domain_urls

XML = "application/xml"
NS = 'xmlns="http://www.sitemaps.org/schemas/sitemap/0.9"'
LONG_TEXT = "Insulin pumps deliver a steady flow of insulin through the day. " * 5


def urlset(*locs):
    return f"<urlset {NS}>" + "".join(f"<url><loc>{loc}</loc></url>" for loc in locs) + "</urlset>"


def sitemapindex(*locs):
    return f"<sitemapindex {NS}>" + "".join(f"<sitemap><loc>{loc}</loc></sitemap>" for loc in locs) + "</sitemapindex>"


def assert_unique(result):
    urls = [u.url for u in result.urls]
    assert len(urls) == len(set(urls))


@pytest.mark.asyncio()
async def test_scenario_tracking_and_slash_variants(make_orchestrator, options):
    transport = FakeTransport()
    transport.page("https://example.org/", html_page(
        "https://example.org/about?utm_source=x", "https://example.org/about/"))
    transport.page("https://example.org/about", html_page())

    result = await make_orchestrator(transport, options.with_overrides(seed_paths=["/"])).run()
    assert [u.url for u in result.urls] == ["https://example.org/about"]
    assert result.breakdown_by_method["link-following"] == 1


@pytest.mark.asyncio()
async def test_scenario_sitemap_index_with_two_children(make_orchestrator, options):
    transport = FakeTransport()
    transport.page("https://example.org/", html_page())
    transport.add("https://example.org/sitemap_index.xml", content_type=XML, body=sitemapindex(
        "https://example.org/sitemap-1.xml", "https://example.org/sitemap-2.xml"))
    first = [f"https://example.org/one/{i}" for i in range(3)]
    second = [f"https://example.org/two/{i}" for i in range(4)]
    transport.add("https://example.org/sitemap-1.xml", content_type=XML, body=urlset(*first))
    transport.add("https://example.org/sitemap-2.xml", content_type=XML, body=urlset(*second))
    for url in first + second:
        transport.page(url, html_page())

    result = await make_orchestrator(transport, options.with_overrides(max_depth=0)).run()
    assert result.total_urls == 7
    assert all(u.discovery_method is DiscoveryMethod.SITEMAP for u in result.urls)
    assert result.breakdown_by_method == {
        "sitemap": 7,
        "link-following": 0,
        "path-generation": 0,
        "archive-discovery": 0,
        "manual": 0,
    }


@pytest.mark.asyncio()
async def test_scenario_budget_of_five(make_orchestrator, options):
    transport = FakeTransport()
    links = [f"/page-{i}" for i in range(50)]
    transport.page("https://example.org/", html_page(*links))
    for link in links:
        transport.page(f"https://example.org{link}", html_page())

    result = await make_orchestrator(transport, options.with_overrides(max_urls=5)).run()
    assert result.total_urls == 5
    assert_unique(result)
    assert result.terminated_reason == "budget"
    assert [u.url for u in result.urls] == [f"https://example.org/page-{i}" for i in range(5)]


@pytest.mark.asyncio()
async def test_scenario_identical_content_keeps_first(make_orchestrator, options):
    transport = FakeTransport()
    transport.page("https://example.org/", html_page("/first", "/second"))
    transport.page("https://example.org/first", html_page(text=LONG_TEXT))
    transport.page("https://example.org/second", html_page(text="\n" + LONG_TEXT.replace(". ", ".\n\n  ")))

    result = await make_orchestrator(transport, options.with_overrides(seed_paths=["/"])).run()
    assert [u.url for u in result.urls] == ["https://example.org/first"]
    assert result.aliases == {"https://example.org/second": "https://example.org/first"}
    assert result.metrics.duplicates_filtered >= 1


@pytest.mark.asyncio()
async def test_robots_disallow_all_returns_empty_result(make_orchestrator, options):
    transport = FakeTransport()
    transport.add("https://example.org/robots.txt", body="User-agent: *\nDisallow: /\n", content_type="text/plain")
    transport.page("https://example.org/", html_page("/about"))

    result = await make_orchestrator(transport, options).run()
    assert result.total_urls == 0
    assert result.terminated_reason == "robots-disallow"
    assert transport.count("GET", "https://example.org/") == 0


@pytest.mark.asyncio()
async def test_robots_ignored_when_not_respected(make_orchestrator, options):
    transport = FakeTransport()
    transport.add("https://example.org/robots.txt", body="User-agent: *\nDisallow: /\n", content_type="text/plain")
    transport.page("https://example.org/", html_page("/about"))
    transport.page("https://example.org/about", html_page())

    opts = options.with_overrides(respect_robots_txt=False, seed_paths=["/"])
    result = await make_orchestrator(transport, opts).run()
    assert [u.url for u in result.urls] == ["https://example.org/about"]
    assert result.terminated_reason is None


@pytest.mark.asyncio()
async def test_robots_crawl_delay_paces_requests(make_orchestrator, options, clock):
    transport = FakeTransport()
    transport.add("https://example.org/robots.txt", body="User-agent: *\nCrawl-delay: 3\n", content_type="text/plain")
    transport.page("https://example.org/", html_page())

    await make_orchestrator(transport, options.with_overrides(seed_paths=["/"])).run()
    assert clock.sleeps
    assert all(s == pytest.approx(3.0) for s in clock.sleeps)


@pytest.mark.asyncio()
async def test_unreachable_domain_returns_zero_urls(make_orchestrator, options):
    result = await make_orchestrator(FakeTransport(unreachable=True), options).run()
    assert result.total_urls == 0
    assert result.urls == []
    assert result.terminated_reason == "unreachable"
    assert result.metrics.fetch_errors >= 1


@pytest.mark.asyncio()
async def test_off_domain_links_never_reach_result(make_orchestrator, options):
    transport = FakeTransport()
    transport.page("https://example.org/", html_page("https://other.org/diabetes", "/diabetes"))
    transport.page("https://example.org/diabetes", html_page("https://evil.example.com/x"))
    transport.add("https://example.org/sitemap.xml", content_type=XML,
                  body=urlset("https://other.org/page", "https://example.org/diabetes/faq"))
    transport.page("https://example.org/diabetes/faq", html_page())

    result = await make_orchestrator(transport, options.with_overrides(seed_paths=["/"])).run()
    hosts = {u.url.split("/")[2] for u in result.urls}
    assert hosts == {"example.org"}
    assert {u.url for u in result.urls} == {"https://example.org/diabetes", "https://example.org/diabetes/faq"}


@pytest.mark.asyncio()
async def test_strategy_order_and_generated_existence(make_orchestrator, options):
    transport = FakeTransport()
    transport.page("https://example.org/", html_page(nav=("/menu-item",)))
    transport.page("https://example.org/menu-item", html_page())
    transport.page("https://example.org/resources", html_page())
    transport.page("https://example.org/news/2024/06", html_page())
    opts = options.with_overrides(
        seed_paths=["/"],
        max_depth=0,
        extract_navigation=True,
        allowed_path_patterns=["/resources", "/programs"],
        path_suffixes=["faq"],
        max_generated_paths=10,
        archive_prefixes=["/news"],
        archive_years=1,
        max_archive_candidates=20,
    )

    result = await make_orchestrator(transport, opts).run()
    by_url = {u.url: u.discovery_method for u in result.urls}
    assert by_url == {
        "https://example.org/menu-item": DiscoveryMethod.PATH_GENERATION,
        "https://example.org/resources": DiscoveryMethod.PATH_GENERATION,
        "https://example.org/news/2024/06": DiscoveryMethod.ARCHIVE_DISCOVERY,
    }


@pytest.mark.asyncio()
async def test_manual_urls_come_first(make_orchestrator, options):
    transport = FakeTransport()
    transport.page("https://example.org/", html_page("/insulin"))
    transport.page("https://example.org/insulin", html_page())
    transport.page("https://example.org/campaign", html_page())

    orchestrator = make_orchestrator(
        transport, options.with_overrides(seed_paths=["/"]),
        manual_urls=["https://example.org/campaign", "https://example.org/insulin"],
    )
    result = await orchestrator.run()
    assert [(u.url, u.discovery_method) for u in result.urls] == [
        ("https://example.org/campaign", DiscoveryMethod.MANUAL),
        ("https://example.org/insulin", DiscoveryMethod.MANUAL),
    ]


@pytest.mark.asyncio()
async def test_budget_skips_remaining_strategies(make_orchestrator, options):
    transport = FakeTransport()
    transport.page("https://example.org/", html_page("/never-fetched"))
    transport.add("https://example.org/sitemap.xml", content_type=XML,
                  body=urlset(*(f"https://example.org/s{i}" for i in range(4))))
    for i in range(4):
        transport.page(f"https://example.org/s{i}", html_page())

    result = await make_orchestrator(transport, options.with_overrides(max_urls=2)).run()
    assert result.total_urls == 2
    assert result.terminated_reason == "budget"
    assert transport.count("HEAD", "https://example.org/never-fetched") == 0


@pytest.mark.asyncio()
async def test_strategy_crash_is_isolated(make_orchestrator, options, monkeypatch, caplog):
    transport = FakeTransport()
    transport.page("https://example.org/", html_page("/about"))
    transport.page("https://example.org/about", html_page())

    async def boom(self, ctx):
        raise RuntimeError("sitemap exploded")

    monkeypatch.setattr(DiscoveryOrchestrator, "_sitemap", boom)
    logging.getLogger("DomainScout").propagate = True
    try:
        with caplog.at_level(logging.ERROR, logger="DomainScout"):
            result = await make_orchestrator(transport, options.with_overrides(seed_paths=["/"])).run()
    finally:
        logging.getLogger("DomainScout").propagate = False
    assert [u.url for u in result.urls] == ["https://example.org/about"]
    assert "Strategy sitemap failed" in caplog.text


@pytest.mark.asyncio()
async def test_result_metrics_and_coverage(make_orchestrator, options):
    transport = FakeTransport()
    transport.page("https://example.org/", html_page("/diabetes", "/contact"))
    transport.page("https://example.org/diabetes", html_page())
    transport.page("https://example.org/contact", html_page())

    opts = options.with_overrides(seed_paths=["/"], expected_total_urls=4)
    result = await make_orchestrator(transport, opts).run()
    assert result.total_urls == 2
    assert result.coverage_estimate == 50.0
    assert result.metrics.average_relevance == pytest.approx(0.6)
    assert result.metrics.average_depth == 1
    assert result.metrics.requests > 0
    data = result.to_dict()
    assert data["totalUrls"] == 2
    assert data["urls"][0]["discoveredAt"] == FIXED_NOW.isoformat()


@pytest.mark.asyncio()
async def test_discover_domain_urls_accepts_overrides():
    transport = FakeTransport()
    transport.page("https://example.org/", html_page("/a", "/b", "/c"))
    for path in ("/a", "/b", "/c"):
        transport.page(f"https://example.org{path}", html_page())

    opts = DiscoveryOptions(rate_limit_delay_ms=0, retry_times=0, max_generated_paths=0, max_archive_candidates=0)
    result = await discover_domain_urls(
        "https://Example.org/", opts, transport=transport, max_urls=2, seed_paths=["/"]
    )
    assert result.total_urls == 2
