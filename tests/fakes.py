"""In-memory stand-ins for the browser engine."""

import os
import sys
from pathlib import Path
from typing import Optional

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from browser.engine import BrowserEngine, BrowserSession, LaunchOptions


class FakePage:
    """Records every call made against it."""

    def __init__(
        self,
        calls: Optional[list] = None,
        timeout_on: Optional[str] = None,
        fail_close: bool = False,
        fail_screenshot: bool = False,
        fail_goto: bool = False,
    ):
        self.calls = calls if calls is not None else []
        self.timeout_on = timeout_on
        self.fail_close = fail_close
        self.fail_screenshot = fail_screenshot
        self.fail_goto = fail_goto
        self.url = "about:blank"
        self.screenshots: list[str] = []
        self._closed = False

    async def goto(self, url):
        self.calls.append(("goto", url))
        if self.fail_goto:
            raise RuntimeError("net::ERR_NAME_NOT_RESOLVED")
        self.url = url

    async def wait_for_load_state(self, state):
        self.calls.append(("wait_for_load_state", state))
        if state == self.timeout_on:
            raise PlaywrightTimeoutError(f"Timeout 30000ms exceeded waiting for {state}")

    async def wait_for_timeout(self, ms):
        self.calls.append(("wait_for_timeout", ms))

    async def screenshot(self, path=None):
        self.calls.append(("screenshot", path))
        if self.fail_screenshot:
            raise RuntimeError("Target page, context or browser has been closed")
        Path(path).write_bytes(b"\x89PNG")
        self.screenshots.append(path)
        return b"\x89PNG"

    async def close(self):
        self.calls.append(("page.close",))
        if self.fail_close:
            raise RuntimeError("page already detached")
        self._closed = True

    def is_closed(self):
        return self._closed


class FakeSession(BrowserSession):
    def __init__(self, page: FakePage, calls: list, fail_close: bool = False):
        self.page = page
        self.calls = calls
        self.fail_close = fail_close
        self.close_count = 0

    async def new_page(self):
        self.calls.append(("new_page",))
        return self.page

    async def close(self):
        self.close_count += 1
        self.calls.append(("session.close",))
        if self.fail_close:
            raise RuntimeError("browser has disconnected")


class FakeEngine(BrowserEngine):
    def __init__(self, page: Optional[FakePage] = None, fail_launch: bool = False, fail_session_close: bool = False):
        self.calls: list = []
        self.page = page or FakePage()
        self.page.calls = self.calls
        self.fail_launch = fail_launch
        self.session = FakeSession(self.page, self.calls, fail_close=fail_session_close)
        self.launch_options: Optional[LaunchOptions] = None
        self.profile_dir = None

    async def launch(self, options):
        self.calls.append(("launch",))
        self.launch_options = options
        if self.fail_launch:
            raise RuntimeError("Executable doesn't exist")
        return self.session

    async def launch_persistent(self, profile_dir, options):
        self.calls.append(("launch_persistent", str(profile_dir)))
        self.launch_options = options
        self.profile_dir = profile_dir
        if self.fail_launch:
            raise RuntimeError("Executable doesn't exist")
        return self.session
