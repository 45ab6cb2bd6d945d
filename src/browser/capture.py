"""
Failure Capture - Diagnostic screenshots of the current page.

Capturing is best-effort: every failure becomes a log event and the
caller always gets control back.
"""

import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional

import structlog

logger = structlog.get_logger()

_PATH_UNSAFE = re.compile(r"[:.]")


def iso_timestamp(moment: datetime) -> str:
    """UTC ISO-8601 with millisecond precision and a ``Z`` suffix."""
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def screenshot_filename(demo_mode: bool, label: str = "", moment: Optional[datetime] = None) -> str:
    """
    Build ``{DEMO-}{label-}screenshot-{timestamp}.png``.

    ``:`` and ``.`` in the timestamp are replaced with ``-``.
    """
    moment = moment or datetime.now(timezone.utc)
    stamp = _PATH_UNSAFE.sub("-", iso_timestamp(moment))
    demo_label = "DEMO-" if demo_mode else ""
    prefix = f"{label}-" if label else ""
    return f"{demo_label}{prefix}screenshot-{stamp}.png"


class FailureCapture:
    """Writes timestamped screenshots into the screenshot directory."""

    def __init__(
        self,
        screenshot_dir: Path,
        demo_mode: bool,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.screenshot_dir = Path(screenshot_dir)
        self.demo_mode = demo_mode
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def capture(self, page: Optional[Any], label: str = "") -> Optional[Path]:
        """
        Screenshot the page. Never raises.

        Returns:
            Path of the written file, or None when nothing was captured.
        """
        if page is None:
            logger.warning("screenshot_skipped", reason="no page available", label=label)
            return None

        try:
            if page.is_closed():
                logger.warning("screenshot_skipped", reason="page closed", label=label)
                return None

            filename = screenshot_filename(self.demo_mode, label, self._clock())
            path = self.screenshot_dir / filename
            await page.screenshot(path=str(path))

        except Exception as e:
            logger.error(
                "screenshot_failed",
                label=label,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

        logger.info("screenshot_taken", file=filename)
        return path
