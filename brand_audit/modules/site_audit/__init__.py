"""Site audit module: sitemap discovery, technical SEO and LLMO scoring."""

from brand_audit.modules.site_audit.crawler import SiteCrawler, aggregate_pages, crawl_site
from brand_audit.modules.site_audit.fetcher import fetch_text
from brand_audit.modules.site_audit.gsc_matcher import match_gsc
from brand_audit.modules.site_audit.llmo_auditor import audit_llmo
from brand_audit.modules.site_audit.seo_auditor import audit_html, audit_page
from brand_audit.modules.site_audit.sitemap import discover_sitemap_urls

__all__ = [
    "SiteCrawler",
    "aggregate_pages",
    "audit_html",
    "audit_llmo",
    "audit_page",
    "crawl_site",
    "discover_sitemap_urls",
    "fetch_text",
    "match_gsc",
]
