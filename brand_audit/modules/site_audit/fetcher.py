"""HTML fetch transport: bounded-timeout GET returning body text or None."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

import aiohttp

logger = logging.getLogger(__name__)

FETCH_TIMEOUT_MS = 8000
USER_AGENT = "Mozilla/5.0 (compatible; BrandAuditBot/1.0)"

# Signature shared by every fetch implementation the crawler accepts.
Fetcher = Callable[[str], Awaitable[Optional[str]]]


async def fetch_text(
    url: str,
    timeout_ms: int = FETCH_TIMEOUT_MS,
    user_agent: str = USER_AGENT,
) -> Optional[str]:
    """GET *url* and return the decoded body, or None on any failure.

    Non-2xx responses, timeouts and network errors all yield None; the
    request is never retried.
    """
    timeout = aiohttp.ClientTimeout(total=timeout_ms / 1000)
    headers = {"User-Agent": user_agent}
    try:
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(url, headers=headers, allow_redirects=True) as resp:
                if resp.status < 200 or resp.status >= 300:
                    logger.info("Fetch %s returned status %d", url, resp.status)
                    return None
                return await resp.text(errors="replace")
    except asyncio.TimeoutError:
        logger.warning("Timeout fetching %s after %dms", url, timeout_ms)
    except (aiohttp.ClientError, ValueError) as exc:
        logger.warning("Error fetching %s: %s", url, exc)
    return None
