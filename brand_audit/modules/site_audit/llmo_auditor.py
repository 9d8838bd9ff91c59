"""LLMO auditor: how well a page is structured for AI engines to extract and cite.

LLMO (LLM Optimization, also called GEO) goes beyond classic SEO: it rewards
structured data that answer engines consume directly (FAQ, Article with
author/date, HowTo), question-shaped headings, substantial body copy and a
clear brand/site identity.

The score is additive.  Each dimension is scored by its own pure function
returning a :class:`Contribution`; the page score is the clamped sum.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from bs4 import BeautifulSoup

from brand_audit.modules.site_audit.structured_data import flatten_schema_nodes, load_json_ld_blocks
from brand_audit.utils.text_processing import count_words, is_question_heading

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Schema type sets
# ---------------------------------------------------------------------------

ARTICLE_TYPES = frozenset({"Article", "BlogPosting", "NewsArticle", "TechArticle", "ScholarlyArticle"})
FAQ_TYPES = frozenset({"FAQPage", "FAQ"})
ORGANIZATION_TYPES = frozenset({"Organization", "LocalBusiness", "Corporation"})

# ---------------------------------------------------------------------------
# Point table
# ---------------------------------------------------------------------------

FAQ_POINTS = 25
ARTICLE_FULL_POINTS = 20
ARTICLE_PARTIAL_POINTS = 10
HOWTO_POINTS = 10
QUESTION_HEADINGS_FULL_POINTS = 15
QUESTION_HEADINGS_PARTIAL_POINTS = 7
QUESTION_HEADINGS_TARGET = 3
WORDS_FULL_POINTS = 12
WORDS_PARTIAL_POINTS = 6
WORDS_FULL_THRESHOLD = 1000
WORDS_PARTIAL_THRESHOLD = 500
BREADCRUMB_POINTS = 5
ORGANIZATION_POINTS = 8
VIDEO_POINTS = 5
MAX_SCORE = 100

UNREACHABLE_ISSUE = "Page unreachable"

# Stripped before counting words; boilerplate is not citable content.
_NON_CONTENT_TAGS = ["script", "style", "nav", "footer", "header"]


@dataclass
class Contribution:
    """Points awarded by one dimension plus the messages explaining them."""
    points: int = 0
    issues: list[str] = field(default_factory=list)
    strengths: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Per-dimension scoring
# ---------------------------------------------------------------------------

def score_faq(has_faq: bool) -> Contribution:
    if has_faq:
        return Contribution(FAQ_POINTS, strengths=["FAQ schema present: great for AI citations"])
    return Contribution(issues=["No FAQ schema (FAQPage JSON-LD): add one to earn AI citations"])


def score_article(has_article: bool, has_author: bool, has_date: bool) -> Contribution:
    if not has_article:
        return Contribution(issues=["No Article/BlogPosting schema: useful for editorial content"])
    if has_author and has_date:
        return Contribution(
            ARTICLE_FULL_POINTS,
            strengths=["Article schema with author and date: strong E-E-A-T signal"],
        )
    contribution = Contribution(ARTICLE_PARTIAL_POINTS)
    if not has_author:
        contribution.issues.append('Article schema without author: add an "author" field for E-E-A-T')
    if not has_date:
        contribution.issues.append('Article schema without publication date: add "datePublished"')
    return contribution


def score_howto(has_howto: bool) -> Contribution:
    if has_howto:
        return Contribution(HOWTO_POINTS, strengths=["HowTo schema: excellent for procedural AI queries"])
    return Contribution()


def score_question_headings(count: int) -> Contribution:
    if count >= QUESTION_HEADINGS_TARGET:
        return Contribution(
            QUESTION_HEADINGS_FULL_POINTS,
            strengths=[f"{count} question-style headings: ideal structure for AI answers"],
        )
    if count >= 1:
        return Contribution(
            QUESTION_HEADINGS_PARTIAL_POINTS,
            issues=[
                f"Only {count} question-style heading(s): aim for "
                f"{QUESTION_HEADINGS_TARGET}+ for better AI visibility"
            ],
        )
    return Contribution(issues=["No question-style headings (How/What/Why): rephrase some sections"])


def score_word_count(word_count: int) -> Contribution:
    if word_count >= WORDS_FULL_THRESHOLD:
        return Contribution(
            WORDS_FULL_POINTS,
            strengths=[f"Rich content ({word_count} words): supports detailed AI citations"],
        )
    if word_count >= WORDS_PARTIAL_THRESHOLD:
        return Contribution(
            WORDS_PARTIAL_POINTS,
            issues=[
                f"Average content length ({word_count} words): aim for "
                f"{WORDS_FULL_THRESHOLD}+ for more authority"
            ],
        )
    return Contribution(issues=[f"Thin content ({word_count} words): likely to be ignored by AI engines"])


def score_breadcrumb(has_breadcrumb: bool) -> Contribution:
    if has_breadcrumb:
        return Contribution(
            BREADCRUMB_POINTS,
            strengths=["Breadcrumb schema: helps AI understand the site structure"],
        )
    return Contribution(issues=["No Breadcrumb schema: add one to clarify the site structure"])


def score_organization(has_organization: bool) -> Contribution:
    if has_organization:
        return Contribution(
            ORGANIZATION_POINTS,
            strengths=["Organization schema: reinforces the brand identity for AI"],
        )
    return Contribution(issues=["No Organization/LocalBusiness schema: add the brand identity"])


def score_video(has_video: bool) -> Contribution:
    if has_video:
        return Contribution(
            VIDEO_POINTS,
            strengths=["VideoObject schema: multimedia format valued by AI engines"],
        )
    return Contribution()


def score_signals(signals: dict[str, Any]) -> tuple[int, list[str], list[str]]:
    """Combine every dimension into ``(score, issues, strengths)``."""
    contributions = [
        score_faq(signals["has_faq_schema"]),
        score_article(
            signals["has_article_schema"],
            signals["has_author_info"],
            signals["has_date_published"],
        ),
        score_howto(signals["has_howto_schema"]),
        score_question_headings(signals["question_headings_count"]),
        score_word_count(signals["word_count"]),
        score_breadcrumb(signals["has_breadcrumb"]),
        score_organization(signals["has_organization_schema"]),
        score_video(signals["has_video_object"]),
    ]
    issues: list[str] = []
    strengths: list[str] = []
    for c in contributions:
        issues.extend(c.issues)
        strengths.extend(c.strengths)
    score = min(MAX_SCORE, sum(c.points for c in contributions))
    return score, issues, strengths


# ---------------------------------------------------------------------------
# Signal extraction
# ---------------------------------------------------------------------------

def empty_signals() -> dict[str, Any]:
    return {
        "has_faq_schema": False,
        "has_article_schema": False,
        "has_howto_schema": False,
        "has_breadcrumb": False,
        "has_organization_schema": False,
        "has_author_info": False,
        "has_date_published": False,
        "question_headings_count": 0,
        "word_count": 0,
        "internal_links_count": 0,
        "has_video_object": False,
    }


def _meta_content(soup: BeautifulSoup, **attrs: str) -> Optional[str]:
    tag = soup.find("meta", attrs=attrs)
    if tag is None:
        return None
    return tag.get("content") or None


def _count_internal_links(soup: BeautifulSoup) -> int:
    """Relative links, plus absolute ones mentioning the ``og:url`` host.

    Without ``og:url`` the host is empty and every link matches.
    """
    og_url = _meta_content(soup, property="og:url") or ""
    parts = og_url.split("/")
    og_host = parts[2] if len(parts) > 2 else ""
    count = 0
    for a_tag in soup.find_all("a", href=True):
        href = a_tag.get("href") or ""
        if not href.startswith("http") or og_host in href:
            count += 1
    return count


def extract_signals(html: str) -> dict[str, Any]:
    """Parse *html* into the raw LLMO signal flags and counters."""
    soup = BeautifulSoup(html, "html.parser")

    typed_nodes = flatten_schema_nodes(load_json_ld_blocks(soup))
    schema_types = {type_name for type_name, _ in typed_nodes}
    article_obj = next((node for type_name, node in typed_nodes if type_name in ARTICLE_TYPES), None)

    has_author_info = bool(
        (article_obj and (article_obj.get("author") or article_obj.get("creator")))
        or _meta_content(soup, name="author")
        or soup.find(attrs={"rel": "author"})
    )
    has_date_published = bool(
        (article_obj and (article_obj.get("datePublished") or article_obj.get("dateModified")))
        or _meta_content(soup, property="article:published_time")
        or soup.find("time", attrs={"datetime": True})
    )

    question_headings = sum(
        1 for h in soup.find_all(["h2", "h3"]) if is_question_heading(h.get_text())
    )

    for tag in soup.find_all(_NON_CONTENT_TAGS):
        tag.extract()
    container = soup.body or soup.find("main") or soup
    word_count = count_words(container.get_text(separator=" "))

    return {
        "has_faq_schema": bool(schema_types & FAQ_TYPES),
        "has_article_schema": bool(schema_types & ARTICLE_TYPES),
        "has_howto_schema": "HowTo" in schema_types,
        "has_breadcrumb": "BreadcrumbList" in schema_types,
        "has_organization_schema": bool(schema_types & ORGANIZATION_TYPES),
        "has_author_info": has_author_info,
        "has_date_published": has_date_published,
        "question_headings_count": question_headings,
        "word_count": word_count,
        "internal_links_count": _count_internal_links(soup),
        "has_video_object": "VideoObject" in schema_types,
    }


def audit_llmo(html: Optional[str]) -> dict[str, Any]:
    """Run the LLMO audit on already-fetched *html*.

    Returns:
        Dict with ``score`` (0-100), ``signals``, ``issues`` and
        ``strengths``.  A missing body yields a zero audit whose only issue
        is the unreachable marker.
    """
    if not html:
        return {
            "score": 0,
            "signals": empty_signals(),
            "issues": [UNREACHABLE_ISSUE],
            "strengths": [],
        }

    signals = extract_signals(html)
    score, issues, strengths = score_signals(signals)
    return {
        "score": score,
        "signals": signals,
        "issues": issues,
        "strengths": strengths,
    }
