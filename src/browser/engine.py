"""
Browser Engine - Session acquisition behind a narrow contract.

The orchestrator only needs to launch a session (ephemeral or backed by a
persistent profile), open one page and close everything again. Playwright
is the shipped implementation.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

import structlog
from playwright.async_api import async_playwright, Browser, BrowserContext, Page, Playwright

logger = structlog.get_logger()


@dataclass
class LaunchOptions:
    """Options shared by ephemeral and persistent launches."""
    headless: bool = False
    user_agent: Optional[str] = None
    args: list[str] = field(default_factory=lambda: ["--start-maximized"])


class BrowserSession(ABC):
    """One browser execution context. Closed exactly once by its owner."""

    @abstractmethod
    async def new_page(self) -> Any:
        """Open the session's page."""

    @abstractmethod
    async def close(self) -> None:
        """Release the execution context and everything it holds."""


class BrowserEngine(ABC):
    """Launches browser sessions."""

    @abstractmethod
    async def launch(self, options: LaunchOptions) -> BrowserSession:
        """Launch an ephemeral session."""

    @abstractmethod
    async def launch_persistent(
        self,
        profile_dir: Union[str, Path],
        options: LaunchOptions,
    ) -> BrowserSession:
        """Launch a session that reuses (or creates) a persistent profile."""


class PlaywrightSession(BrowserSession):
    """
    Playwright-backed session.

    Wraps either a Browser (ephemeral) or a persistent BrowserContext,
    together with the Playwright driver that has to be stopped afterwards.
    """

    def __init__(
        self,
        playwright: Playwright,
        handle: Union[Browser, BrowserContext],
        options: LaunchOptions,
        persistent: bool = False,
    ):
        self._playwright = playwright
        self._handle = handle
        self.options = options
        self.persistent = persistent
        self._closed = False

    async def new_page(self) -> Page:
        if self.persistent:
            # Persistent contexts come up with a page already open
            pages = self._handle.pages
            if pages:
                return pages[0]
            return await self._handle.new_page()

        return await self._handle.new_page(
            user_agent=self.options.user_agent,
            no_viewport=True,
        )

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._handle.close()
        finally:
            await self._playwright.stop()
        logger.debug("browser_session_closed", persistent=self.persistent)


class PlaywrightEngine(BrowserEngine):
    """Launches Chromium (or another Playwright browser type)."""

    def __init__(self, browser_type: str = "chromium"):
        self.browser_type = browser_type

    async def launch(self, options: LaunchOptions) -> PlaywrightSession:
        logger.info("browser_launching", browser=self.browser_type, headless=options.headless)
        playwright = await async_playwright().start()
        try:
            browser = await getattr(playwright, self.browser_type).launch(
                headless=options.headless,
                args=options.args,
            )
        except Exception:
            await playwright.stop()
            raise

        logger.info("browser_launched", persistent=False)
        return PlaywrightSession(playwright, browser, options)

    async def launch_persistent(
        self,
        profile_dir: Union[str, Path],
        options: LaunchOptions,
    ) -> PlaywrightSession:
        profile_dir = Path(profile_dir)
        profile_dir.mkdir(parents=True, exist_ok=True)

        logger.info(
            "browser_launching",
            browser=self.browser_type,
            headless=options.headless,
            user_data_dir=str(profile_dir),
        )
        playwright = await async_playwright().start()
        try:
            context = await getattr(playwright, self.browser_type).launch_persistent_context(
                str(profile_dir),
                headless=options.headless,
                args=options.args,
                user_agent=options.user_agent,
                no_viewport=True,
            )
        except Exception:
            await playwright.stop()
            raise

        logger.info("browser_launched", persistent=True)
        return PlaywrightSession(playwright, context, options, persistent=True)
