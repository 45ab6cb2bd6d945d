"""Page readiness synchronization."""

import asyncio
import time
from typing import Any

import structlog
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from core.errors import PageLoadTimeout

logger = structlog.get_logger()

# Waited in this order, each one must fire
LOAD_STATES = ("domcontentloaded", "load", "networkidle")


async def wait_entire_page_to_load(page: Any, additional_wait_seconds: float = 3) -> None:
    """
    Wait for the page to parse, load and go network-idle, then settle.

    The extra wait absorbs client-side rendering that happens after the
    network is quiet.

    Args:
        page: Page handle
        additional_wait_seconds: Settle time after the last load state

    Raises:
        PageLoadTimeout: a load state was not reached within the engine's timeout
    """
    start_time = time.monotonic()

    for state in LOAD_STATES:
        try:
            await page.wait_for_load_state(state)
        except (PlaywrightTimeoutError, asyncio.TimeoutError) as e:
            url = getattr(page, "url", None)
            logger.warning("page_load_state_timeout", state=state, url=url)
            raise PageLoadTimeout(
                f"Page did not reach '{state}': {e}",
                state=state,
                url=url,
            ) from e
        logger.debug("page_load_state_reached", state=state)

    await page.wait_for_timeout(1000 * additional_wait_seconds)

    logger.info(
        "page_fully_loaded",
        duration_ms=round((time.monotonic() - start_time) * 1000),
        additional_wait_seconds=additional_wait_seconds,
    )
