"""Site crawler: discover a site's pages and run the SEO + LLMO audits on each.

Provides sitemap-driven discovery with a homepage fallback, one shared fetch
per page for both auditors, fixed-size concurrent batches, Search Console
cross-referencing and site-level aggregation.
"""

import logging
from collections import Counter
from typing import Any, Optional

from brand_audit.modules.site_audit.fetcher import Fetcher, fetch_text
from brand_audit.modules.site_audit.gsc_matcher import match_gsc
from brand_audit.modules.site_audit.llmo_auditor import audit_llmo
from brand_audit.modules.site_audit.seo_auditor import audit_html
from brand_audit.modules.site_audit.sitemap import discover_sitemap_urls
from brand_audit.utils.concurrency import gather_in_batches
from brand_audit.utils.helpers import normalize_base_url, round_half_up

logger = logging.getLogger(__name__)

DEFAULT_MAX_PAGES = 30
TOP_ISSUES_LIMIT = 8
GOOD_TITLE_THRESHOLD = 80
ADEQUATE_META_THRESHOLD = 60
LOW_LLMO_THRESHOLD = 40


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

def _average(values: list[float]) -> int:
    if not values:
        return 0
    return int(round_half_up(sum(values) / len(values)))


def _top_issues(counter: Counter) -> list[dict[str, Any]]:
    return [
        {"issue": issue, "count": count}
        for issue, count in counter.most_common(TOP_ISSUES_LIMIT)
    ]


def aggregate_pages(pages: list[dict[str, Any]]) -> dict[str, Any]:
    """Site-level aggregates over the pages that were fetched successfully.

    Pages carrying ``fetch_error`` are left out of every average and count;
    with no valid page at all every aggregate is zero or empty.
    """
    valid = [p for p in pages if not p.get("fetch_error")]

    seo_issues: Counter = Counter()
    llmo_issues: Counter = Counter()
    schema_types: Counter = Counter()
    for page in valid:
        for section in ("title", "meta_description", "h1", "images"):
            seo_issues.update(page[section]["issues"])
        llmo_issues.update(page["llmo"]["issues"])
        schema_types.update(page["schema"]["types"])

    return {
        "avg_seo_score": _average([p["overall_score"] for p in valid]),
        "avg_llmo_score": _average([p["llmo"]["score"] for p in valid]),
        "top_seo_issues": _top_issues(seo_issues),
        "top_llmo_issues": _top_issues(llmo_issues),
        "schema_type_distribution": dict(schema_types),
        "pages_with_faq_schema": sum(1 for p in valid if p["llmo"]["signals"]["has_faq_schema"]),
        "pages_with_article_schema": sum(1 for p in valid if p["llmo"]["signals"]["has_article_schema"]),
        "pages_with_good_title": sum(1 for p in valid if p["title"]["score"] >= GOOD_TITLE_THRESHOLD),
        "pages_with_meta": sum(
            1 for p in valid if p["meta_description"]["score"] >= ADEQUATE_META_THRESHOLD
        ),
        "pages_without_llmo": sum(1 for p in valid if p["llmo"]["score"] < LOW_LLMO_THRESHOLD),
    }


# ---------------------------------------------------------------------------
# SiteCrawler
# ---------------------------------------------------------------------------

class SiteCrawler:
    """Async crawler producing a full technical SEO + LLMO audit of a site."""

    CRAWL_CONCURRENCY = 4

    def __init__(
        self,
        fetcher: Fetcher = fetch_text,
        concurrency: int = CRAWL_CONCURRENCY,
    ) -> None:
        self._fetcher = fetcher
        self._concurrency = concurrency

    async def _audit_url(
        self,
        url: str,
        gsc_pages: Optional[list[dict[str, Any]]],
    ) -> dict[str, Any]:
        """Fetch *url* once and feed the same HTML to both auditors."""
        html = await self._fetcher(url)
        if html is None:
            logger.warning("Crawl: could not fetch %s", url)

        page = audit_html(url, html)
        page["llmo"] = audit_llmo(html)
        page["gsc_data"] = match_gsc(url, gsc_pages)
        return page

    async def crawl_site(
        self,
        website_url: str,
        gsc_pages: Optional[list[dict[str, Any]]] = None,
        max_pages: int = DEFAULT_MAX_PAGES,
    ) -> dict[str, Any]:
        """Discover and audit a whole site.

        Args:
            website_url: Site root, e.g. ``https://example.com/``.
            gsc_pages: Search Console ``top_search_pages`` rows to attach
                per-page performance data.
            max_pages: Upper bound on the number of pages audited.

        Returns:
            Dict with ``sitemap_url``, ``pages_discovered``,
            ``pages_audited``, ``pages`` and ``aggregated``.
        """
        normalized = normalize_base_url(website_url)
        logger.info("Crawl started for %s (max %d pages)", normalized, max_pages)

        discovery = await discover_sitemap_urls(normalized, fetcher=self._fetcher)
        discovered = discovery["urls"]
        if discovered:
            urls_to_audit = discovered[:max_pages]
            pages_discovered = len(discovered)
        else:
            logger.info("No sitemap URLs for %s, auditing the homepage only", normalized)
            urls_to_audit = [normalized]
            pages_discovered = 1

        async def _audit(url: str) -> dict[str, Any]:
            return await self._audit_url(url, gsc_pages)

        pages = await gather_in_batches(urls_to_audit, _audit, self._concurrency)
        aggregated = aggregate_pages(pages)

        logger.info(
            "Crawl complete for %s: %d pages audited, avg SEO %d, avg LLMO %d",
            normalized, len(pages), aggregated["avg_seo_score"], aggregated["avg_llmo_score"],
        )
        return {
            "sitemap_url": discovery["sitemap_url"],
            "pages_discovered": pages_discovered,
            "pages_audited": len(pages),
            "pages": pages,
            "aggregated": aggregated,
        }


async def crawl_site(
    website_url: str,
    gsc_pages: Optional[list[dict[str, Any]]] = None,
    max_pages: int = DEFAULT_MAX_PAGES,
) -> dict[str, Any]:
    """Crawl *website_url* with the default fetcher."""
    return await SiteCrawler().crawl_site(website_url, gsc_pages=gsc_pages, max_pages=max_pages)
