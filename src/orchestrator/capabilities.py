"""Capabilities handed to caller-supplied automation logic."""

from pathlib import Path
from typing import Any, Optional

from browser.capture import FailureCapture
from browser.readiness import wait_entire_page_to_load
from core.config import RunConfiguration
from interaction.channel import PromptChannel


class CapabilityBundle:
    """
    Functions bound to the current page and run configuration.

    Built fresh for each run. Holds references only; the orchestrator
    keeps ownership of the page and the prompt channel.
    """

    def __init__(
        self,
        page: Any,
        config: RunConfiguration,
        prompt: PromptChannel,
        capture: FailureCapture,
    ):
        self._page = page
        self._config = config
        self._prompt = prompt
        self._capture = capture

    @property
    def config(self) -> RunConfiguration:
        return self._config

    @property
    def demo_mode(self) -> bool:
        return self._config.demo_mode

    async def ask_user(self, question: str, timeout: Optional[float] = None) -> str:
        """
        Ask the operator and wait for an answer.

        Raises:
            PromptTimeout: no answer within ``timeout`` (default QUESTION_TIMEOUT_SECONDS)
        """
        if timeout is None:
            timeout = self._config.question_timeout_seconds
        return await self._prompt.ask(question, timeout)

    async def take_screenshot(self, label: str = "") -> Optional[Path]:
        """Screenshot the current page. Never raises."""
        return await self._capture.capture(self._page, label)

    async def wait_entire_page_to_load(self, additional_wait_seconds: Optional[float] = None) -> None:
        """Wait for the page to settle after a navigation the caller triggered."""
        if additional_wait_seconds is None:
            additional_wait_seconds = self._config.default_additional_wait_time_seconds
        await wait_entire_page_to_load(self._page, additional_wait_seconds)
