"""Tests for page readiness and failure capture."""

import os
import re
import sys
from datetime import datetime, timezone

import pytest
from structlog.testing import capture_logs

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from fakes import FakePage
from browser.capture import FailureCapture, screenshot_filename
from browser.readiness import LOAD_STATES, wait_entire_page_to_load
from core.errors import PageLoadTimeout

FIXED_MOMENT = datetime(2024, 5, 17, 9, 30, 12, 345000, tzinfo=timezone.utc)


class TestReadiness:
    """Test page readiness synchronization."""

    @pytest.mark.asyncio
    async def test_all_states_then_settle(self):
        """Every load state is awaited in order before the settle wait."""
        page = FakePage()

        await wait_entire_page_to_load(page, 3)

        assert page.calls == [
            ("wait_for_load_state", "domcontentloaded"),
            ("wait_for_load_state", "load"),
            ("wait_for_load_state", "networkidle"),
            ("wait_for_timeout", 3000),
        ]

    @pytest.mark.asyncio
    async def test_custom_settle_time(self):
        page = FakePage()
        await wait_entire_page_to_load(page, 0.5)
        assert page.calls[-1] == ("wait_for_timeout", 500)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("state", LOAD_STATES)
    async def test_timeout_raises_page_load_timeout(self, state):
        """A missed load state stops the wait and names the state."""
        page = FakePage(timeout_on=state)

        with pytest.raises(PageLoadTimeout) as exc_info:
            await wait_entire_page_to_load(page, 3)

        assert exc_info.value.state == state
        assert ("wait_for_timeout", 3000) not in page.calls

    @pytest.mark.asyncio
    async def test_logs_duration(self):
        page = FakePage()

        with capture_logs() as logs:
            await wait_entire_page_to_load(page, 1)

        loaded = [entry for entry in logs if entry["event"] == "page_fully_loaded"]
        assert len(loaded) == 1
        assert loaded[0]["duration_ms"] >= 0


class TestScreenshotNaming:
    """Test screenshot file names."""

    def test_demo_with_label(self):
        name = screenshot_filename(True, "error", FIXED_MOMENT)
        assert name == "DEMO-error-screenshot-2024-05-17T09-30-12-345Z.png"

    def test_live_without_label(self):
        name = screenshot_filename(False, "", FIXED_MOMENT)
        assert name == "screenshot-2024-05-17T09-30-12-345Z.png"

    def test_timestamp_is_path_safe(self):
        name = screenshot_filename(True, "error", FIXED_MOMENT)
        stamp = name[len("DEMO-error-screenshot-"):-len(".png")]
        assert ":" not in stamp
        assert "." not in stamp
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2}-\d{3}Z", stamp)


class TestFailureCapture:
    """Test best-effort screenshots."""

    @pytest.mark.asyncio
    async def test_writes_screenshot(self, tmp_path):
        page = FakePage()
        capture = FailureCapture(tmp_path, demo_mode=True, clock=lambda: FIXED_MOMENT)

        path = await capture.capture(page, "error")

        assert path == tmp_path / "DEMO-error-screenshot-2024-05-17T09-30-12-345Z.png"
        assert path.exists()

    @pytest.mark.asyncio
    async def test_no_page_skipped(self, tmp_path):
        capture = FailureCapture(tmp_path, demo_mode=True)

        with capture_logs() as logs:
            assert await capture.capture(None, "error") is None

        assert logs[0]["event"] == "screenshot_skipped"
        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_closed_page_skipped(self, tmp_path):
        page = FakePage()
        await page.close()
        capture = FailureCapture(tmp_path, demo_mode=False)

        assert await capture.capture(page) is None
        assert not any(call[0] == "screenshot" for call in page.calls)

    @pytest.mark.asyncio
    async def test_engine_failure_never_raises(self, tmp_path):
        """A failing screenshot becomes a log event."""
        page = FakePage(fail_screenshot=True)
        capture = FailureCapture(tmp_path, demo_mode=False)

        with capture_logs() as logs:
            assert await capture.capture(page, "error") is None

        failed = [entry for entry in logs if entry["event"] == "screenshot_failed"]
        assert len(failed) == 1
        assert failed[0]["log_level"] == "error"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
