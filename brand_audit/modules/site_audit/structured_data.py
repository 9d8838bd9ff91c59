"""JSON-LD extraction shared by the technical SEO and LLMO auditors."""

import json
import logging
from typing import Any

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)


def load_json_ld_blocks(soup: BeautifulSoup) -> list[Any]:
    """Parse every ``<script type="application/ld+json">`` block.

    Blocks that cannot be decoded are skipped individually, including
    pathological ones (oversized integer literals, runaway nesting).
    """
    blocks: list[Any] = []
    for script_tag in soup.find_all("script", type="application/ld+json"):
        raw = script_tag.string or script_tag.get_text() or ""
        if not raw.strip():
            continue
        try:
            blocks.append(json.loads(raw))
        except (ValueError, RecursionError) as exc:
            logger.debug("Skipping malformed JSON-LD block: %s", type(exc).__name__)
    return blocks


def _type_values(node: dict) -> list[str]:
    raw_type = node.get("@type")
    if isinstance(raw_type, str):
        return [raw_type]
    if isinstance(raw_type, list):
        return [t for t in raw_type if isinstance(t, str)]
    return []


def top_level_types(blocks: list[Any]) -> list[str]:
    """Raw ``@type`` values of each block's root object (duplicates kept).

    A block holding a JSON array contributes the types of its items.
    """
    types: list[str] = []
    for block in blocks:
        nodes = block if isinstance(block, list) else [block]
        for node in nodes:
            if isinstance(node, dict):
                types.extend(_type_values(node))
    return types


def flatten_schema_nodes(blocks: list[Any]) -> list[tuple[str, dict]]:
    """Walk blocks depth-first, yielding ``(type, node)`` for every typed node.

    ``@type`` may be a string or an array (one pair per entry) and ``@graph``
    arrays are descended into.  Top-level arrays are treated like ``@graph``.
    Document order is preserved.
    """
    pairs: list[tuple[str, dict]] = []
    stack: list[Any] = list(reversed(blocks))
    while stack:
        node = stack.pop()
        if isinstance(node, list):
            stack.extend(reversed(node))
            continue
        if not isinstance(node, dict):
            continue
        for type_name in _type_values(node):
            pairs.append((type_name, node))
        graph = node.get("@graph")
        if isinstance(graph, list):
            stack.extend(reversed(graph))
    return pairs
