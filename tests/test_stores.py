"""Tests for the SQLAlchemy-backed stores and models."""

from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy import inspect

from brand_audit.database import get_engine, get_session
from brand_audit.models import BrandConfig, MentionScan, SerpMonitoringScan, WebsiteAnalytics
from brand_audit.modules.reporting.brand_report_engine import BrandConfigError, BrandReportEngine
from brand_audit.modules.reporting.stores import (
    AnalyticsStore,
    BrandConfigStore,
    MentionScanStore,
    ReportStore,
    SerpScanStore,
)

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


class TestDatabaseSetup:

    def test_init_db_creates_tables(self, test_db):
        tables = inspect(get_engine()).get_table_names()
        for table in ("brand_configs", "brand_reports", "mention_scans",
                      "serp_monitoring_scans", "website_analytics"):
            assert table in tables


class TestReportStore:

    def test_create_and_complete(self, test_db):
        store = ReportStore()
        report_id = store.create_report("cfg-1")["id"]
        assert store.find_running("cfg-1")["id"] == report_id

        store.update_report(report_id, {"status": "completed", "overall_score": 61})

        assert store.find_running("cfg-1") is None
        latest = store.find_latest_completed("cfg-1")
        assert latest["id"] == report_id
        assert latest["overall_score"] == 61

    def test_terminal_rows_are_immutable(self, test_db):
        store = ReportStore()
        report_id = store.create_report("cfg-1")["id"]
        store.update_report(report_id, {"status": "failed", "error_message": "boom"})

        with pytest.raises(RuntimeError):
            store.update_report(report_id, {"status": "completed"})
        assert store.get_report(report_id)["status"] == "failed"

    def test_unknown_fields_rejected(self, test_db):
        store = ReportStore()
        report_id = store.create_report("cfg-1")["id"]
        with pytest.raises(ValueError):
            store.update_report(report_id, {"colour": "red"})

    def test_missing_report(self, test_db):
        with pytest.raises(LookupError):
            ReportStore().update_report(999, {"status": "failed"})

    def test_latest_is_scoped_and_ordered(self, test_db):
        store = ReportStore()
        first = store.create_report("cfg-1")["id"]
        second = store.create_report("cfg-1")["id"]
        other = store.create_report("cfg-2")["id"]
        for report_id in (first, second, other):
            store.update_report(report_id, {"status": "completed"})

        assert store.find_latest_completed("cfg-1")["id"] == second
        assert store.find_latest_completed("cfg-2")["id"] == other
        assert store.find_latest_completed("cfg-3") is None

    def test_json_columns_round_trip(self, test_db):
        store = ReportStore()
        report_id = store.create_report("cfg-1")["id"]
        crawl = {"pages": [{"url": "https://a.example/"}], "aggregated": {"avg_seo_score": 70}}
        store.update_report(report_id, {"status": "completed", "seo_audit_data": crawl, "generated_at": NOW})
        assert store.get_report(report_id)["seo_audit_data"] == crawl


class TestCollaboratorStores:

    def test_brand_config(self, test_db):
        with get_session() as session:
            session.add(BrandConfig(id="cfg-1", brand_name="Acme", website_url="https://acme.example",
                                    language="it", organization_id="org-1"))
        config = BrandConfigStore().get_config("cfg-1")
        assert config["brand_name"] == "Acme"
        assert config["language"] == "it"
        assert BrandConfigStore().get_config("nope") is None

    def test_latest_analytics(self, test_db):
        with get_session() as session:
            session.add(WebsiteAnalytics(organization_id="org-1", snapshot_date=date(2024, 5, 1),
                                         top_search_pages=[{"page": "/old"}]))
            session.add(WebsiteAnalytics(organization_id="org-1", snapshot_date=date(2024, 5, 2),
                                         top_search_pages=[{"page": "/new"}], bounce_rate=40.5))
        data = AnalyticsStore().get_latest_analytics("org-1")
        assert data["top_search_pages"] == [{"page": "/new"}]
        assert data["top_search_queries"] == []
        assert data["avg_bounce_rate"] == 40.5
        assert AnalyticsStore().get_latest_analytics(None) is None

    def test_latest_completed_scans(self, test_db):
        with get_session() as session:
            session.add(MentionScan(config_id="cfg-1", status="completed", score=30, completed_at=NOW))
            session.add(MentionScan(config_id="cfg-1", status="completed", score=55,
                                    completed_at=NOW + timedelta(days=1)))
            session.add(MentionScan(config_id="cfg-1", status="running", score=99))
            session.add(SerpMonitoringScan(config_id="cfg-1", status="completed", total_results=10,
                                           positive_count=5, avg_importance=0.5, completed_at=NOW))
        assert MentionScanStore().get_latest_completed_scan("cfg-1")["score"] == 55
        serp = SerpScanStore().get_latest_completed_scan("cfg-1")
        assert serp["total_results"] == 10
        assert SerpScanStore().get_latest_completed_scan("cfg-2") is None


class StubCrawler:

    async def crawl_site(self, website_url, gsc_pages=None, max_pages=30):
        return {
            "sitemap_url": None,
            "pages_discovered": 1,
            "pages_audited": 1,
            "pages": [{"url": website_url}],
            "aggregated": {
                "avg_seo_score": 80, "avg_llmo_score": 60,
                "top_seo_issues": [], "top_llmo_issues": [],
                "schema_type_distribution": {}, "pages_with_faq_schema": 0,
                "pages_with_article_schema": 0, "pages_with_good_title": 1,
                "pages_with_meta": 1, "pages_without_llmo": 0,
            },
        }


class TestEngineWithDatabase:

    def _engine(self, llm):
        return BrandReportEngine(
            ReportStore(), BrandConfigStore(), AnalyticsStore(),
            MentionScanStore(), SerpScanStore(), llm, StubCrawler(),
        )

    @pytest.mark.asyncio
    async def test_generate_persists_completed_report(self, test_db, mock_llm_client):
        with get_session() as session:
            session.add(BrandConfig(id="cfg-1", brand_name="Acme", website_url="https://acme.example",
                                    organization_id="org-1"))
            session.add(MentionScan(config_id="cfg-1", status="completed", score=50, completed_at=NOW))
            session.add(SerpMonitoringScan(config_id="cfg-1", status="completed", total_results=10,
                                           positive_count=4, avg_importance=0.4, completed_at=NOW))
        engine = self._engine(mock_llm_client)

        report_id = await engine.generate("cfg-1")

        latest = await engine.get_latest("cfg-1")
        assert latest["id"] == report_id
        assert latest["overall_score"] == 61
        assert latest["geo_data"]["scanned_at"].startswith("2024-06-01")
        assert await engine.get_running("cfg-1") is None

    @pytest.mark.asyncio
    async def test_config_error_leaves_no_rows(self, test_db, mock_llm_client):
        engine = self._engine(mock_llm_client)
        with pytest.raises(BrandConfigError):
            await engine.generate("missing")
        status = await engine.get_status("missing")
        assert status == {"report": None, "is_running": False, "running_report_id": None}
