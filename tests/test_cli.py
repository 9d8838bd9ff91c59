"""CLI smoke tests via Typer's CliRunner."""

import json
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from brand_audit.cli import app
from brand_audit.modules.site_audit.crawler import SiteCrawler
from conftest import FakeFetcher, make_page

runner = CliRunner()


@pytest.fixture()
def settings_file(tmp_path, monkeypatch):
    """Settings pointing at a temporary database, with no LLM keys."""
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    path = tmp_path / "settings.yaml"
    path.write_text(f"database:\n  url: sqlite:///{tmp_path / 'cli.db'}\n", encoding="utf-8")
    return path


class TestCLICommands:

    def test_main_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "Brand site audit" in result.output

    @pytest.mark.parametrize("command", ["crawl", "report", "status", "init-db"])
    def test_command_help(self, command):
        result = runner.invoke(app, [command, "--help"])
        assert result.exit_code == 0

    def test_crawl_rejects_invalid_url(self):
        with patch("brand_audit.app.BrandAuditApp.build_crawler") as build_crawler:
            result = runner.invoke(app, ["crawl", "ftp://example.com"])
        assert result.exit_code == 1
        assert "Invalid scheme" in result.output
        build_crawler.assert_not_called()

    def test_crawl_writes_json(self, tmp_path):
        crawler = SiteCrawler(fetcher=FakeFetcher({"https://example.com": make_page()}))
        output = tmp_path / "crawl.json"
        with patch("brand_audit.app.BrandAuditApp.build_crawler", return_value=crawler):
            result = runner.invoke(app, [
                "crawl", "example.com", "--output", str(output),
                "--config", str(tmp_path / "missing.yaml"),
            ])
        assert result.exit_code == 0, result.output
        data = json.loads(output.read_text(encoding="utf-8"))
        assert data["pages_audited"] == 1
        assert data["aggregated"]["avg_seo_score"] == 86

    def test_init_db(self, settings_file, tmp_path):
        result = runner.invoke(app, ["init-db", "--config", str(settings_file)])
        assert result.exit_code == 0, result.output
        assert (tmp_path / "cli.db").exists()

    def test_status_without_reports(self, settings_file):
        result = runner.invoke(app, ["status", "cfg-x", "--config", str(settings_file)])
        assert result.exit_code == 0, result.output
        assert "No completed report" in result.output

    def test_report_unknown_config(self, settings_file):
        result = runner.invoke(app, ["report", "cfg-x", "--config", str(settings_file)])
        assert result.exit_code == 1
        assert "not found" in result.output
