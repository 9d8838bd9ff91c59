"""Recommendation schema and prompt for the brand report's AI tips.

The generator is asked for an :class:`AITipsResponse`; the prompt embeds the
crawl aggregates, the brand's strategic context and Search Console signals.
"""

import logging
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from brand_audit.modules.site_audit.gsc_matcher import compute_ctr

logger = logging.getLogger(__name__)

PROMPT_TOP_ISSUES = 8
PROMPT_TOP_QUERIES = 5
PROMPT_LOW_CTR_PAGES = 3
LOW_CTR_MIN_IMPRESSIONS = 200
LOW_CTR_THRESHOLD = 0.03
MAX_AFFECTED_PAGES = 3

TipCategory = Literal[
    "seo_onpage",
    "seo_technical",
    "llmo_schema",
    "llmo_content",
    "content_strategy",
    "gsc_performance",
    "geo_visibility",
]
TipPriority = Literal["critical", "high", "medium", "low"]
TipEffort = Literal["quick_win", "medium", "complex"]


class AITip(BaseModel):
    """One prioritised, actionable recommendation."""

    category: TipCategory
    priority: TipPriority
    title: str = Field(description="Short, actionable title (max 80 chars)")
    description: str = Field(description="2-3 sentence explanation of the opportunity")
    impact: str = Field(description="Specific expected outcome if implemented")
    implementation: str = Field(description="Step-by-step action (max 3 steps)")
    estimated_effort: TipEffort
    affected_pages: Optional[list[str]] = Field(
        default=None,
        max_length=MAX_AFFECTED_PAGES,
        description="Audited page URLs affected (max 3)",
    )
    strategy_alignment: Optional[str] = Field(
        default=None,
        description="How the tip aligns to the brand's strategic objectives",
    )


class AITipsResponse(BaseModel):
    tips: list[AITip] = Field(min_length=4, max_length=20)
    summary_insight: str = Field(
        description="Overall 2-sentence strategic insight about the site's AI readiness",
    )


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------

def _issue_lines(issues: list[dict[str, Any]]) -> str:
    lines = [f"- {i['issue']} ({i['count']} pages)" for i in issues[:PROMPT_TOP_ISSUES]]
    return "\n".join(lines) or "None detected"


def low_ctr_pages(gsc_data: Optional[dict[str, Any]]) -> list[dict[str, Any]]:
    """Pages with more than 200 impressions and a CTR below 3 % (top 3)."""
    if not gsc_data:
        return []
    flagged = [
        p for p in gsc_data.get("top_search_pages") or []
        if (p.get("impressions") or 0) > LOW_CTR_MIN_IMPRESSIONS
        and (p.get("clicks") or 0) / p["impressions"] < LOW_CTR_THRESHOLD
    ]
    return flagged[:PROMPT_LOW_CTR_PAGES]


def _low_ctr_text(gsc_data: Optional[dict[str, Any]]) -> str:
    pages = low_ctr_pages(gsc_data)
    if not pages:
        return "none"
    return ", ".join(
        f"{p['page']} (pos {float(p.get('position') or 0):.1f}, "
        f"CTR {compute_ctr(p.get('clicks') or 0, p['impressions']):.1f}%)"
        for p in pages
    )


def _top_queries_text(gsc_data: Optional[dict[str, Any]]) -> str:
    queries = (gsc_data or {}).get("top_search_queries") or []
    if not queries:
        return "none"
    return ", ".join(
        f"\"{q['query']}\" ({q.get('impressions', 0)} imp, pos {float(q.get('position') or 0):.1f})"
        for q in queries[:PROMPT_TOP_QUERIES]
    )


def build_tips_prompt(
    crawl: dict[str, Any],
    mention_score: int,
    serp_score: int,
    gsc_data: Optional[dict[str, Any]],
    config: dict[str, Any],
) -> str:
    """Assemble the single structured prompt sent to the text generator."""
    agg = crawl["aggregated"]
    audited = crawl["pages_audited"]
    strategy = config.get("strategic_plan") or config.get("description") or "Not specified"
    language = "Italian" if config.get("language") == "it" else "English"
    audited_urls = "\n".join(f"- {p['url']}" for p in crawl.get("pages", [])) or "- (none)"

    bounce_line = ""
    bounce_rate = (gsc_data or {}).get("avg_bounce_rate")
    if bounce_rate:
        bounce_line = f"\n- Average bounce rate: {float(bounce_rate):.1f}%"

    return f"""You are a senior SEO and LLMO (LLM Optimization / GEO, Generative Engine Optimization) consultant.
Analyse the data for the "{config.get('brand_name', '')}" website and produce specific, prioritised recommendations.

## STRATEGIC CONTEXT
{strategy}

## SITE AUDIT DATA
- Pages audited: {audited}
- Average technical SEO score: {agg['avg_seo_score']}/100
- Average LLMO score (AI visibility): {agg['avg_llmo_score']}/100
- Brand mention score (mentions in AI assistants): {mention_score}/100
- Search presence score: {serp_score}/100
- Pages with FAQ schema: {agg['pages_with_faq_schema']}/{audited}
- Pages with Article schema: {agg['pages_with_article_schema']}/{audited}
- Pages with LLMO score below 40: {agg['pages_without_llmo']}

## TOP SEO ISSUES
{_issue_lines(agg['top_seo_issues'])}

## TOP LLMO ISSUES
{_issue_lines(agg['top_llmo_issues'])}

## SEARCH CONSOLE DATA
- Top queries: {_top_queries_text(gsc_data)}
- High-impression, low-CTR pages: {_low_ctr_text(gsc_data)}{bounce_line}

## AUDITED PAGES
{audited_urls}

## INSTRUCTIONS
1. Produce between 4 and 20 SPECIFIC, ACTIONABLE recommendations.
2. Prioritise by impact on both classic SEO and AI visibility.
3. Include at least 2 tips on LLMO schema, 2 on content for AI and 2 on technical SEO.
4. If Search Console shows high-impression, low-CTR pages, add a dedicated tip.
5. Align the recommendations with the brand's strategic objectives.
6. Answer in {language}.
7. For "affected_pages" use only URLs from the audited pages list above. Never invent URLs."""


def filter_affected_pages(response: AITipsResponse, audited_urls: set[str]) -> AITipsResponse:
    """Drop ``affected_pages`` entries that are not audited URLs."""
    for tip in response.tips:
        if not tip.affected_pages:
            continue
        kept = [url for url in tip.affected_pages if url in audited_urls]
        if len(kept) != len(tip.affected_pages):
            logger.debug(
                "Dropped %d unknown URL(s) from tip %r",
                len(tip.affected_pages) - len(kept), tip.title,
            )
        tip.affected_pages = kept or None
    return response
