"""Tests for the site crawler orchestrator and aggregation."""

import asyncio

import pytest

from brand_audit.modules.site_audit.crawler import SiteCrawler, aggregate_pages
from brand_audit.modules.site_audit.llmo_auditor import audit_llmo
from brand_audit.modules.site_audit.seo_auditor import audit_html
from conftest import FakeFetcher, make_page

BASE = "https://example.com"


def _sitemap(urls) -> str:
    entries = "".join(f"<url><loc>{u}</loc></url>" for u in urls)
    return f'<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{entries}</urlset>'


class InFlightFetcher(FakeFetcher):
    """Fetcher that records the peak number of in-flight page fetches."""

    def __init__(self, pages):
        super().__init__(pages)
        self.in_flight = 0
        self.peak = 0

    async def __call__(self, url):
        if "sitemap" in url:
            return await super().__call__(url)
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(0.01)
            return await super().__call__(url)
        finally:
            self.in_flight -= 1


def _page_audit(url, html):
    page = audit_html(url, html)
    page["llmo"] = audit_llmo(html)
    page["gsc_data"] = None
    return page


class TestCrawlSite:

    @pytest.mark.asyncio
    async def test_falls_back_to_homepage(self):
        fetcher = FakeFetcher({BASE: make_page()})
        result = await SiteCrawler(fetcher=fetcher).crawl_site(BASE + "/")

        assert result["sitemap_url"] is None
        assert result["pages_discovered"] == 1
        assert result["pages_audited"] == 1
        assert result["pages"][0]["url"] == BASE
        assert result["aggregated"]["avg_seo_score"] == 86

    @pytest.mark.asyncio
    async def test_concurrency_is_capped_at_four(self):
        urls = [f"{BASE}/p{i}" for i in range(10)]
        pages = {f"{BASE}/sitemap.xml": _sitemap(urls)}
        pages.update({u: make_page() for u in urls})
        fetcher = InFlightFetcher(pages)

        result = await SiteCrawler(fetcher=fetcher).crawl_site(BASE)

        assert result["pages_audited"] == 10
        assert 1 < fetcher.peak <= 4
        assert [p["url"] for p in result["pages"]] == urls

    @pytest.mark.asyncio
    async def test_one_fetch_per_page(self):
        urls = [f"{BASE}/a", f"{BASE}/b"]
        pages = {f"{BASE}/sitemap.xml": _sitemap(urls), **{u: make_page() for u in urls}}
        fetcher = FakeFetcher(pages)

        await SiteCrawler(fetcher=fetcher).crawl_site(BASE)

        for url in urls:
            assert fetcher.calls.count(url) == 1

    @pytest.mark.asyncio
    async def test_max_pages_truncates_but_reports_discovered(self):
        urls = [f"{BASE}/p{i}" for i in range(12)]
        pages = {f"{BASE}/sitemap.xml": _sitemap(urls), **{u: make_page() for u in urls}}

        result = await SiteCrawler(fetcher=FakeFetcher(pages)).crawl_site(BASE, max_pages=5)

        assert result["pages_discovered"] == 12
        assert result["pages_audited"] == 5

    @pytest.mark.asyncio
    async def test_unreachable_pages_are_excluded_from_averages(self):
        urls = [f"{BASE}/ok", f"{BASE}/down"]
        pages = {f"{BASE}/sitemap.xml": _sitemap(urls), f"{BASE}/ok": make_page()}

        result = await SiteCrawler(fetcher=FakeFetcher(pages)).crawl_site(BASE)

        down = result["pages"][1]
        assert down["fetch_error"]
        assert down["llmo"]["issues"] == ["Page unreachable"]
        assert result["aggregated"]["avg_seo_score"] == 86

    @pytest.mark.asyncio
    async def test_undecodable_json_ld_only_skips_the_block(self):
        huge_number = '{"@type": "FAQPage", "n": ' + "9" * 5000 + "}"
        deep_array = "[" * 100000 + "]" * 100000
        html = make_page(json_ld=[huge_number, deep_array, '{"@type": "Organization"}'])

        result = await SiteCrawler(fetcher=FakeFetcher({BASE: html})).crawl_site(BASE)

        assert result["pages_audited"] == 1
        page = result["pages"][0]
        assert not page.get("fetch_error")
        assert page["llmo"]["signals"]["has_organization_schema"] is True
        assert "Organization" in page["schema"]["types"]

    @pytest.mark.asyncio
    async def test_gsc_data_attached(self):
        urls = [f"{BASE}/blog/"]
        pages = {f"{BASE}/sitemap.xml": _sitemap(urls), urls[0]: make_page()}
        gsc_pages = [{"page": "/blog", "impressions": 300, "clicks": 6, "position": 3.14}]

        result = await SiteCrawler(fetcher=FakeFetcher(pages)).crawl_site(BASE, gsc_pages=gsc_pages)

        assert result["pages"][0]["gsc_data"] == {
            "impressions": 300, "clicks": 6, "position": 3.1, "ctr": 2.0,
        }


class TestAggregatePages:

    def test_no_valid_pages(self):
        pages = [_page_audit(f"{BASE}/x", None)]
        agg = aggregate_pages(pages)
        assert agg["avg_seo_score"] == 0
        assert agg["avg_llmo_score"] == 0
        assert agg["top_seo_issues"] == []
        assert agg["schema_type_distribution"] == {}
        assert agg["pages_without_llmo"] == 0

    def test_counts_and_histograms(self):
        faq = '{"@type": "FAQPage"}'
        org = '{"@type": "Organization"}'
        pages = [
            _page_audit(f"{BASE}/1", make_page(json_ld=[faq, org])),
            _page_audit(f"{BASE}/2", make_page(title="Short", json_ld=[org])),
            _page_audit(f"{BASE}/3", make_page(title="Short", meta="")),
            _page_audit(f"{BASE}/4", None),
        ]
        agg = aggregate_pages(pages)

        assert agg["schema_type_distribution"] == {"FAQPage": 1, "Organization": 2}
        assert agg["pages_with_faq_schema"] == 1
        assert agg["pages_with_good_title"] == 1
        assert agg["pages_with_meta"] == 2
        assert agg["pages_without_llmo"] == 3
        assert agg["top_seo_issues"][0] == {"issue": "Title tag too short (5 chars, min 30)", "count": 2}
        assert {"issue": "Meta description missing", "count": 1} in agg["top_seo_issues"]

    def test_issue_tables_capped_at_eight(self):
        pages = []
        for i in range(10):
            page = _page_audit(f"{BASE}/{i}", make_page())
            page["llmo"]["issues"] = [f"issue {i}", "shared"]
            pages.append(page)
        agg = aggregate_pages(pages)
        assert len(agg["top_llmo_issues"]) == 8
        assert agg["top_llmo_issues"][0] == {"issue": "shared", "count": 10}

    def test_average_rounds_half_up(self):
        a = _page_audit(f"{BASE}/a", make_page())
        b = _page_audit(f"{BASE}/b", make_page())
        a["overall_score"], b["overall_score"] = 60, 61
        assert aggregate_pages([a, b])["avg_seo_score"] == 61
