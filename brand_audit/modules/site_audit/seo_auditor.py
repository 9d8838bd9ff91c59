"""Technical SEO auditor: scores one page's title, meta, headings, images and schema.

Every ``score_*`` helper is a pure function returning ``(score, issues)`` so
the thresholds below stay individually testable.
"""

import logging
import re
from typing import Any, Optional

from bs4 import BeautifulSoup

from brand_audit.modules.site_audit.fetcher import Fetcher, fetch_text
from brand_audit.modules.site_audit.structured_data import load_json_ld_blocks, top_level_types
from brand_audit.utils.helpers import clamp, round_half_up

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Scoring thresholds
# ---------------------------------------------------------------------------

TITLE_MIN_LENGTH = 30
TITLE_MAX_LENGTH = 65
META_MIN_LENGTH = 100
META_MAX_LENGTH = 165
TOO_SHORT_PENALTY = 40
TOO_LONG_PENALTY = 20

H1_MULTIPLE_PENALTY = 30
H1_MIN_LENGTH = 10
H1_SHORT_PENALTY = 20
H1_SAMPLE_SIZE = 3

SCHEMA_FOUND_SCORE = 100
SCHEMA_MISSING_SCORE = 30

SEO_WEIGHTS: dict[str, float] = {
    "title": 0.25,
    "meta_description": 0.20,
    "h1": 0.20,
    "images": 0.15,
    "schema": 0.20,
}

UNREACHABLE_ISSUE = "Page unreachable"
FETCH_ERROR_MESSAGE = "Could not retrieve the page"


# ---------------------------------------------------------------------------
# Per-field scoring
# ---------------------------------------------------------------------------

def _score_length(
    value: Optional[str],
    label: str,
    min_length: int,
    max_length: int,
) -> tuple[int, list[str]]:
    if not value or not value.strip():
        return 0, [f"{label} missing"]
    length = len(value.strip())
    score = 100
    issues: list[str] = []
    if length < min_length:
        issues.append(f"{label} too short ({length} chars, min {min_length})")
        score -= TOO_SHORT_PENALTY
    elif length > max_length:
        issues.append(f"{label} too long ({length} chars, max {max_length})")
        score -= TOO_LONG_PENALTY
    return max(0, score), issues


def score_title(title: Optional[str]) -> tuple[int, list[str]]:
    return _score_length(title, "Title tag", TITLE_MIN_LENGTH, TITLE_MAX_LENGTH)


def score_meta(meta: Optional[str]) -> tuple[int, list[str]]:
    return _score_length(meta, "Meta description", META_MIN_LENGTH, META_MAX_LENGTH)


def score_h1(h1_values: list[str]) -> tuple[int, list[str]]:
    """Score H1 usage: exactly one, reasonably descriptive heading."""
    if not h1_values:
        return 0, ["H1 missing"]
    score = 100
    issues: list[str] = []
    if len(h1_values) > 1:
        issues.append(f"{len(h1_values)} H1 tags found (there should be exactly one)")
        score -= H1_MULTIPLE_PENALTY
    if len(h1_values[0].strip()) < H1_MIN_LENGTH:
        issues.append(f"H1 too short (under {H1_MIN_LENGTH} characters)")
        score -= H1_SHORT_PENALTY
    return max(0, score), issues


def score_images(total: int, with_alt: int) -> tuple[int, list[str]]:
    """Alt-text coverage; a page without images passes vacuously."""
    if total == 0:
        return 100, []
    score = int(clamp(round_half_up(with_alt / total * 100)))
    missing = total - with_alt
    issues: list[str] = []
    if missing > 0:
        noun = "image" if missing == 1 else "images"
        issues.append(f"{missing} {noun} without alt text")
    return score, issues


def score_schema(schema_types: list[str]) -> int:
    return SCHEMA_FOUND_SCORE if schema_types else SCHEMA_MISSING_SCORE


def weighted_seo_score(sub_scores: dict[str, int]) -> int:
    """Weighted composite of the five scored fields."""
    total = sum(sub_scores[field] * weight for field, weight in SEO_WEIGHTS.items())
    return int(clamp(round_half_up(total)))


# ---------------------------------------------------------------------------
# Page audit
# ---------------------------------------------------------------------------

def unreachable_page_audit(url: str) -> dict[str, Any]:
    """Audit for a page whose HTML could not be retrieved."""
    return {
        "url": url,
        "title": {"value": None, "length": 0, "score": 0, "issues": [UNREACHABLE_ISSUE]},
        "meta_description": {"value": None, "length": 0, "score": 0, "issues": []},
        "h1": {"count": 0, "values": [], "score": 0, "issues": []},
        "h2_count": 0,
        "images": {"total": 0, "with_alt": 0, "coverage_percent": 0, "score": 0, "issues": []},
        "schema": {"found": False, "types": [], "score": 0},
        "canonical": {"present": False, "value": None},
        "overall_score": 0,
        "fetch_error": FETCH_ERROR_MESSAGE,
    }


def audit_html(url: str, html: Optional[str]) -> dict[str, Any]:
    """Score already-fetched *html* for *url*.

    A ``None`` or empty body produces :func:`unreachable_page_audit`.
    """
    if not html:
        return unreachable_page_audit(url)

    soup = BeautifulSoup(html, "html.parser")

    # Title
    title_tag = soup.find("title")
    title_value = (title_tag.get_text().strip() if title_tag else "") or None
    title_score, title_issues = score_title(title_value)

    # Meta description
    meta_tag = soup.find("meta", attrs={"name": re.compile(r"^description$", re.I)})
    meta_value = ((meta_tag.get("content") or "").strip() if meta_tag else "") or None
    meta_score, meta_issues = score_meta(meta_value)

    # Headings
    h1_values = [h.get_text().strip() for h in soup.find_all("h1")]
    h1_score, h1_issues = score_h1(h1_values)
    h2_count = len(soup.find_all("h2"))

    # Images
    img_tags = soup.find_all("img")
    total_images = len(img_tags)
    images_with_alt = sum(1 for img in img_tags if (img.get("alt") or "").strip())
    image_score, image_issues = score_images(total_images, images_with_alt)
    coverage = round_half_up(images_with_alt / total_images * 100) if total_images else 100

    # Schema.org JSON-LD
    schema_types = top_level_types(load_json_ld_blocks(soup))
    schema_score = score_schema(schema_types)

    # Canonical
    canonical_tag = soup.find("link", rel="canonical")
    canonical_value = (canonical_tag.get("href") or None) if canonical_tag else None

    overall = weighted_seo_score({
        "title": title_score,
        "meta_description": meta_score,
        "h1": h1_score,
        "images": image_score,
        "schema": schema_score,
    })

    return {
        "url": url,
        "title": {
            "value": title_value,
            "length": len(title_value) if title_value else 0,
            "score": title_score,
            "issues": title_issues,
        },
        "meta_description": {
            "value": meta_value,
            "length": len(meta_value) if meta_value else 0,
            "score": meta_score,
            "issues": meta_issues,
        },
        "h1": {
            "count": len(h1_values),
            "values": h1_values[:H1_SAMPLE_SIZE],
            "score": h1_score,
            "issues": h1_issues,
        },
        "h2_count": h2_count,
        "images": {
            "total": total_images,
            "with_alt": images_with_alt,
            "coverage_percent": coverage,
            "score": image_score,
            "issues": image_issues,
        },
        "schema": {
            "found": bool(schema_types),
            "types": schema_types,
            "score": schema_score,
        },
        "canonical": {
            "present": canonical_value is not None,
            "value": canonical_value,
        },
        "overall_score": overall,
    }


async def audit_page(url: str, fetcher: Fetcher = fetch_text) -> dict[str, Any]:
    """Fetch *url* (8 s timeout, crawler user-agent) and audit it."""
    html = await fetcher(url)
    if html is None:
        logger.warning("Technical audit: %s unreachable", url)
    return audit_html(url, html)
