"""Open the viewer in the user's default browser."""

from __future__ import annotations

import asyncio
import logging
import webbrowser

logger = logging.getLogger(__name__)


async def open_browser(url: str) -> bool:
    """Open *url*; failures are logged, never raised."""
    logger.info("Opening browser: %s", url)
    try:
        opened = await asyncio.to_thread(webbrowser.open, url)
    except webbrowser.Error as exc:
        logger.warning("Failed to open browser: %s", exc)
        opened = False

    if opened:
        logger.debug("Browser opened successfully")
    else:
        logger.info("Please open %s manually", url)
    return opened


__all__ = ["open_browser"]
