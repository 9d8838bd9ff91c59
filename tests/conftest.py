"""Shared pytest fixtures for the brand audit test-suite."""

import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

# Ensure project root is on sys.path so 'brand_audit' is importable.
_project_root = str(Path(__file__).resolve().parent.parent)
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)


# ---------------------------------------------------------------------------
# HTML fixtures
# ---------------------------------------------------------------------------

GOOD_TITLE = "Brand Audit Guide for Modern Websites 2024"  # 42 chars
GOOD_META = (
    "Learn how to audit your website for classic search engines and AI answer "
    "engines with this practical step-by-step guide."
)  # 120 chars


def make_page(
    title: str = GOOD_TITLE,
    meta: str = GOOD_META,
    h1: str = "The complete brand audit guide",
    body: str = "<p>Some useful content.</p>",
    json_ld: list = (),
    head_extra: str = "",
) -> str:
    """Build an HTML document for auditor tests."""
    scripts = "".join(
        f'<script type="application/ld+json">{block}</script>' for block in json_ld
    )
    return (
        "<html><head>"
        f"<title>{title}</title>"
        f'<meta name="description" content="{meta}">'
        f"{head_extra}{scripts}"
        "</head><body>"
        f"<h1>{h1}</h1>{body}"
        "</body></html>"
    )


class FakeFetcher:
    """Async fetcher serving canned bodies; records every requested URL."""

    def __init__(self, pages: dict[str, str] | None = None):
        self.pages = pages or {}
        self.calls: list[str] = []

    async def __call__(self, url: str):
        self.calls.append(url)
        return self.pages.get(url)


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _reset_db_engine():
    """Reset the global DB engine before and after every test."""
    from brand_audit.database import reset_engine
    reset_engine()
    yield
    reset_engine()


@pytest.fixture()
def test_db(tmp_path):
    """Provide a file-backed SQLite database with all tables created.

    A file is used instead of ``:memory:`` because the report engine reads
    the stores from worker threads.
    """
    from brand_audit.database import init_db, reset_engine
    reset_engine()
    db_url = f"sqlite:///{tmp_path / 'test.db'}"
    init_db(database_url=db_url, echo=False)
    yield db_url


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------

@pytest.fixture()
def mock_llm_client():
    """Mock LLMClient whose structured generation returns a canned tips payload."""
    from brand_audit.modules.reporting.ai_tips import AITipsResponse

    tip = {
        "category": "llmo_schema",
        "priority": "high",
        "title": "Add FAQ schema",
        "description": "No page exposes FAQPage markup.",
        "impact": "More AI citations.",
        "implementation": "Add FAQPage JSON-LD to the top pages.",
        "estimated_effort": "quick_win",
    }
    client = MagicMock()
    client.generate_structured = AsyncMock(return_value=AITipsResponse.model_validate({
        "tips": [dict(tip, title=f"Tip {i}") for i in range(4)],
        "summary_insight": "The site is not ready for AI engines yet.",
    }))
    return client


class FakeReportStore:
    """In-memory report store enforcing the terminal-state rule."""

    def __init__(self):
        self.rows: dict[int, dict] = {}
        self.updates: list[tuple[int, dict]] = []
        self._next_id = 1

    def create_report(self, config_id):
        report_id = self._next_id
        self._next_id += 1
        self.rows[report_id] = {"id": report_id, "config_id": config_id, "status": "running"}
        return {"id": report_id}

    def update_report(self, report_id, patch):
        row = self.rows[report_id]
        if row["status"] != "running":
            raise RuntimeError("terminal")
        self.updates.append((report_id, dict(patch)))
        row.update(patch)

    def _latest(self, config_id, status):
        matches = [
            r for r in self.rows.values()
            if r["config_id"] == config_id and r["status"] == status
        ]
        return max(matches, key=lambda r: r["id"]) if matches else None

    def find_latest_completed(self, config_id):
        return self._latest(config_id, "completed")

    def find_running(self, config_id):
        return self._latest(config_id, "running")


class FakeConfigStore:
    def __init__(self, configs=None):
        self.configs = configs or {}

    def get_config(self, config_id):
        return self.configs.get(config_id)


class FakeAnalyticsStore:
    def __init__(self, analytics=None):
        self.analytics = analytics
        self.requested: list = []

    def get_latest_analytics(self, organization_id):
        self.requested.append(organization_id)
        return self.analytics


class FakeScanStore:
    def __init__(self, scan=None):
        self.scan = scan

    def get_latest_completed_scan(self, config_id):
        return self.scan
