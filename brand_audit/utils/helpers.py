"""General-purpose helper utilities for the brand audit engine."""

from decimal import ROUND_HALF_UP, Decimal
from urllib.parse import urlparse


def round_half_up(value: float, ndigits: int = 0) -> float | int:
    """Round half away from zero (not banker's rounding).

    Args:
        value: Number to round.
        ndigits: Decimal places to keep.

    Returns:
        An ``int`` when *ndigits* is 0, otherwise a ``float``.

    Examples:
        >>> round_half_up(60.5)
        61
        >>> round_half_up(2.5)
        3
        >>> round_half_up(12.345, 1)
        12.3
        >>> round_half_up(-0.5)
        -1
    """
    quantum = Decimal(1).scaleb(-ndigits)
    rounded = Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    if ndigits == 0:
        return int(rounded)
    return float(rounded)


def clamp(value: float, low: float = 0, high: float = 100) -> float:
    """Clamp *value* into ``[low, high]``."""
    return max(low, min(high, value))


def normalize_base_url(url: str) -> str:
    """Strip whitespace and a single trailing slash.

    Examples:
        >>> normalize_base_url("https://example.com/")
        'https://example.com'
    """
    url = url.strip()
    if url.endswith("/"):
        url = url[:-1]
    return url


def url_path(url: str) -> str:
    """Return the path of *url* without trailing slash (``/`` for the root).

    Scheme, host, query string and fragment are ignored, so
    ``https://site.com/blog/post/?utm=1`` and ``http://www.site.com/blog/post``
    share the path ``/blog/post``.  Bare paths are accepted as well.
    """
    url = url.strip()
    if "://" in url:
        path = urlparse(url).path
    else:
        path = url.split("?", 1)[0].split("#", 1)[0]
    return path.rstrip("/") or "/"
