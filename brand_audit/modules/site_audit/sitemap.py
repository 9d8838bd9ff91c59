"""Sitemap discovery: resolve sitemap.xml / sitemap-index files into page URLs."""

import logging
from typing import Any, Optional
from xml.etree import ElementTree as ET

from brand_audit.modules.site_audit.fetcher import Fetcher, fetch_text
from brand_audit.utils.helpers import normalize_base_url

logger = logging.getLogger(__name__)

MAX_SITEMAP_URLS = 50
MAX_SUB_SITEMAPS = 5
SITEMAP_CANDIDATE_PATHS = ("/sitemap.xml", "/sitemap_index.xml", "/sitemap/")


def _local_name(tag: Any) -> str:
    """Tag name without its ``{namespace}`` prefix."""
    if not isinstance(tag, str):
        return ""
    return tag.split("}")[-1] if "}" in tag else tag


def _child_locs(root: ET.Element, parent: str) -> list[str]:
    """Text of every ``<loc>`` directly under a ``<parent>`` element."""
    locs: list[str] = []
    for el in root.iter():
        if _local_name(el.tag) != parent:
            continue
        for child in el:
            if _local_name(child.tag) == "loc":
                loc = (child.text or "").strip()
                if loc:
                    locs.append(loc)
    return locs


def _parse_xml(xml_text: str, source: str) -> Optional[ET.Element]:
    try:
        return ET.fromstring(xml_text.strip())
    except ET.ParseError as exc:
        logger.debug("Skipping %s: XML parse error (%s)", source, exc)
        return None


def parse_sitemap_document(xml_text: str, source: str = "") -> dict[str, list[str]]:
    """Split a sitemap document into page URLs and sub-sitemap URLs.

    Returns:
        Dict with ``urls`` (``<url><loc>`` entries) and ``sub_sitemaps``
        (``<sitemap><loc>`` entries that look like sitemap files).  Both are
        empty when the document is not parseable XML.
    """
    root = _parse_xml(xml_text, source)
    if root is None:
        return {"urls": [], "sub_sitemaps": []}
    sub_sitemaps = [
        loc for loc in _child_locs(root, "sitemap")
        if loc.endswith(".xml") or "sitemap" in loc
    ]
    return {"urls": _child_locs(root, "url"), "sub_sitemaps": sub_sitemaps}


async def _collect_from_index(sub_sitemaps: list[str], fetcher: Fetcher) -> list[str]:
    """Fetch sub-sitemaps one after another until the URL cap is reached."""
    collected: list[str] = []
    for sub_url in sub_sitemaps[:MAX_SUB_SITEMAPS]:
        sub_xml = await fetcher(sub_url)
        if not sub_xml:
            logger.debug("Sub-sitemap unreachable: %s", sub_url)
            continue
        collected.extend(parse_sitemap_document(sub_xml, sub_url)["urls"])
        if len(collected) >= MAX_SITEMAP_URLS:
            break
    return collected


async def discover_sitemap_urls(
    base_url: str,
    fetcher: Fetcher = fetch_text,
) -> dict[str, Any]:
    """Discover page URLs for *base_url* from its sitemap.

    Tries ``/sitemap.xml``, ``/sitemap_index.xml`` and ``/sitemap/`` in
    order and returns as soon as one candidate yields at least one URL.

    Returns:
        ``{"urls": [...], "sitemap_url": str | None}`` with at most
        ``MAX_SITEMAP_URLS`` URLs.  Both are empty/None when no candidate
        produced anything; callers then fall back to the base URL alone.
    """
    normalized = normalize_base_url(base_url)

    for path in SITEMAP_CANDIDATE_PATHS:
        candidate = normalized + path
        xml_text = await fetcher(candidate)
        if not xml_text:
            logger.debug("No sitemap at %s", candidate)
            continue

        parsed = parse_sitemap_document(xml_text, candidate)
        direct_urls = parsed["urls"]

        if parsed["sub_sitemaps"] and not direct_urls:
            index_urls = await _collect_from_index(parsed["sub_sitemaps"], fetcher)
            if index_urls:
                logger.info(
                    "Sitemap index %s: %d URLs from %d sub-sitemaps",
                    candidate, len(index_urls), min(len(parsed["sub_sitemaps"]), MAX_SUB_SITEMAPS),
                )
                return {"urls": index_urls[:MAX_SITEMAP_URLS], "sitemap_url": candidate}

        if direct_urls:
            logger.info("Sitemap %s: %d URLs", candidate, len(direct_urls))
            return {"urls": direct_urls[:MAX_SITEMAP_URLS], "sitemap_url": candidate}

    logger.info("No usable sitemap found for %s", normalized)
    return {"urls": [], "sitemap_url": None}
