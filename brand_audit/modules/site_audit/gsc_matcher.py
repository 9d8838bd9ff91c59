"""Cross-reference audited pages with Search Console performance rows."""

import logging
from typing import Any, Optional

from brand_audit.utils.helpers import round_half_up, url_path

logger = logging.getLogger(__name__)


def compute_ctr(clicks: float, impressions: float) -> float:
    """Click-through rate in percent, one decimal; 0 without impressions."""
    if not impressions or impressions <= 0:
        return 0.0
    return float(round_half_up(clicks / impressions * 100, 1))


def match_gsc(url: str, gsc_pages: Optional[list[dict[str, Any]]]) -> Optional[dict[str, Any]]:
    """Find the Search Console row for *url* by comparing paths.

    GSC rows may hold full URLs or bare paths; scheme, host, query string
    and trailing slash are ignored on both sides.  Data is attached only
    when exactly one row shares the path.

    Returns:
        ``{"impressions", "clicks", "position", "ctr"}`` or None.
    """
    if not gsc_pages:
        return None
    page_path = url_path(url)
    matches = [
        row for row in gsc_pages
        if row.get("page") and url_path(str(row["page"])) == page_path
    ]
    if len(matches) != 1:
        if len(matches) > 1:
            logger.debug("Ambiguous GSC match for %s (%d rows)", url, len(matches))
        return None

    row = matches[0]
    impressions = row.get("impressions") or 0
    clicks = row.get("clicks") or 0
    position = row.get("position") or 0
    return {
        "impressions": impressions,
        "clicks": clicks,
        "position": float(round_half_up(position, 1)),
        "ctr": compute_ctr(clicks, impressions),
    }
