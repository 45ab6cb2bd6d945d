"""
Session Orchestrator - Drives one browser session through one automation run.

Validates configuration, acquires the session, waits for the page, hands
control to caller logic and always releases what it acquired. Failures are
reported through logs and a diagnostic screenshot; the process exit status
is 0 either way.
"""

import asyncio
import signal
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Awaitable, Callable, Mapping, Optional

import structlog

from browser.capture import FailureCapture
from browser.engine import BrowserEngine, BrowserSession, LaunchOptions, PlaywrightEngine
from browser.readiness import wait_entire_page_to_load
from core.config import ConfigValidator, RunConfiguration
from core.errors import AutomationError, ConfigurationError, HarnessError, SessionError
from core.log_setup import configure_logging
from interaction.channel import PromptChannel
from orchestrator.capabilities import CapabilityBundle

logger = structlog.get_logger()

ProcessingCallback = Callable[[Any, CapabilityBundle], Awaitable[None]]


class RunState(Enum):
    """Orchestrator lifecycle states."""
    IDLE = "idle"
    VALIDATING = "validating"
    ACQUIRING = "acquiring"
    READY = "ready"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CLOSING_SESSION = "closing_session"
    TERMINATED = "terminated"


@dataclass
class RunReport:
    """What happened during a run."""
    state: RunState = RunState.IDLE
    history: list[RunState] = field(default_factory=list)
    error: Optional[BaseException] = None
    screenshot: Optional[Path] = None
    capture_attempts: int = 0

    @property
    def succeeded(self) -> bool:
        return RunState.SUCCEEDED in self.history


class SessionOrchestrator:
    """
    Runs a caller-supplied automation callback inside a managed session.

    The orchestrator is the only holder of the session and the prompt
    channel; both are closed exactly once, on every exit path.
    """

    def __init__(
        self,
        processing: ProcessingCallback,
        engine: Optional[BrowserEngine] = None,
        environ: Optional[Mapping[str, str]] = None,
        prompt_channel: Optional[PromptChannel] = None,
        setup_logging: bool = True,
    ):
        """
        Initialize the orchestrator.

        Args:
            processing: ``async (page, tools) -> None``, the automation steps
            engine: Browser engine, Playwright when omitted
            environ: Environment input, ``os.environ`` when omitted
            prompt_channel: Operator channel, stdin/stdout when omitted
            setup_logging: Configure console and file logging during validation
        """
        self.processing = processing
        self.engine = engine or PlaywrightEngine()
        self.validator = ConfigValidator(environ)
        self.setup_logging = setup_logging

        self.config: Optional[RunConfiguration] = None
        self.report = RunReport()

        self._prompt = prompt_channel
        self._session: Optional[BrowserSession] = None
        self._page: Optional[Any] = None
        self._capture: Optional[FailureCapture] = None

    @property
    def state(self) -> RunState:
        return self.report.state

    async def run(self) -> RunReport:
        """Run the automation once. Never raises for run failures."""
        loop = asyncio.get_running_loop()
        previous_handler = loop.get_exception_handler()
        loop.set_exception_handler(self._handle_loop_exception)

        logger.info("run_starting")
        try:
            self._transition(RunState.VALIDATING)
            try:
                self.config = self.validator.validate(
                    on_logs_ready=configure_logging if self.setup_logging else None,
                )
            except ConfigurationError as e:
                logger.error("setup_failed", **e.to_dict())
                self.report.error = e
                return self.report

            self._capture = FailureCapture(
                self.config.screenshot_folder_path,
                demo_mode=self.config.demo_mode,
            )
            if self._prompt is None:
                self._prompt = PromptChannel(default_timeout=self.config.question_timeout_seconds)

            await self._execute(self.config)

        finally:
            try:
                await self._teardown()
            finally:
                loop.set_exception_handler(previous_handler)
                self._transition(RunState.TERMINATED)
                logger.info("run_done")

        return self.report

    async def _execute(self, config: RunConfiguration) -> None:
        try:
            self._transition(RunState.ACQUIRING)
            await self._acquire(config)

            self._transition(RunState.READY)
            await wait_entire_page_to_load(self._page, config.default_additional_wait_time_seconds)

            self._transition(RunState.RUNNING)
            await self._invoke(config)

            logger.info("run_finishing")
            self._transition(RunState.SUCCEEDED)

        except asyncio.CancelledError:
            logger.warning("run_cancelled", state=self.state.value)
            raise

        except Exception as e:
            failed_in = self.state
            self._transition(RunState.FAILED)
            self.report.error = e
            logger.exception(
                "run_failed",
                failed_in=failed_in.value,
                error=str(e),
                error_type=type(e).__name__,
            )
            self.report.capture_attempts += 1
            self.report.screenshot = await self._capture.capture(self._page, "error")

    async def _acquire(self, config: RunConfiguration) -> None:
        options = LaunchOptions(headless=config.headless, user_agent=config.user_agent)

        try:
            if config.uses_persistent_profile:
                self._session = await self.engine.launch_persistent(config.user_data_dir, options)
            else:
                self._session = await self.engine.launch(options)

            self._page = await self._session.new_page()

            logger.info("navigating", url=config.base_url)
            await self._page.goto(config.base_url)

        except HarnessError:
            raise
        except Exception as e:
            raise SessionError(f"Could not open {config.base_url}: {e}", url=config.base_url) from e

    async def _invoke(self, config: RunConfiguration) -> None:
        tools = CapabilityBundle(self._page, config, self._prompt, self._capture)
        try:
            await self.processing(self._page, tools)
        except (HarnessError, asyncio.CancelledError, KeyboardInterrupt):
            raise
        except BaseException as e:
            # sys.exit() inside caller logic is a failed run, not a process exit
            raise AutomationError(f"Automation callback failed: {e!r}", cause=e) from e

    async def _teardown(self) -> None:
        """Close prompt channel, page and session. Every step is attempted."""
        if self.config is not None:
            self._transition(RunState.CLOSING_SESSION)

        logger.info("closing_resources")
        self._close_prompt()

        page, self._page = self._page, None
        if page is not None:
            try:
                await page.close()
            except Exception as e:
                logger.error("page_close_failed", error=str(e), error_type=type(e).__name__)
            else:
                logger.info("page_closed")

        session, self._session = self._session, None
        if session is not None:
            try:
                await session.close()
            except Exception as e:
                logger.error("session_close_failed", error=str(e), error_type=type(e).__name__)
            else:
                logger.info("session_closed")

    def _close_prompt(self) -> None:
        if self._prompt is None:
            return
        try:
            self._prompt.close()
        except Exception as e:
            logger.error("prompt_close_failed", error=str(e), error_type=type(e).__name__)

    def _handle_loop_exception(self, loop: asyncio.AbstractEventLoop, context: dict) -> None:
        """Errors from stray tasks: log them and release the operator prompt."""
        exception = context.get("exception")
        logger.error(
            "unhandled_async_error",
            message=context.get("message"),
            error=str(exception) if exception is not None else None,
            exc_info=exception,
        )
        self._close_prompt()

    def _transition(self, state: RunState) -> None:
        self.report.state = state
        self.report.history.append(state)
        logger.info("run_state_changed", state=state.value)


async def _run_with_signals(orchestrator: SessionOrchestrator) -> RunReport:
    """Run the orchestrator, cancelling it on SIGINT/SIGTERM so teardown still happens."""
    loop = asyncio.get_running_loop()
    task = asyncio.current_task()

    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, task.cancel)
            installed.append(sig)
        except (NotImplementedError, RuntimeError, ValueError):
            logger.debug("signal_handler_unavailable", signal=sig.name)

    try:
        return await orchestrator.run()
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)


def run_automation(processing: ProcessingCallback, **options: Any) -> int:
    """
    Run ``processing`` in a managed browser session and return the exit status.

    The status is always 0. Failures show up in the logs and as an
    ``error`` screenshot, so monitoring must not rely on the exit code.
    """
    orchestrator = SessionOrchestrator(processing, **options)
    try:
        asyncio.run(_run_with_signals(orchestrator))
    except (KeyboardInterrupt, asyncio.CancelledError):
        logger.warning("run_interrupted", state=orchestrator.state.value)
    except SystemExit as e:
        logger.warning("run_exit_requested", code=e.code, state=orchestrator.state.value)
    except Exception:
        logger.exception("run_crashed", state=orchestrator.state.value)
    return 0
