"""Browser session module using Playwright."""

from .engine import BrowserEngine, BrowserSession, LaunchOptions, PlaywrightEngine
from .readiness import wait_entire_page_to_load
from .capture import FailureCapture, screenshot_filename

__all__ = [
    "BrowserEngine",
    "BrowserSession",
    "LaunchOptions",
    "PlaywrightEngine",
    "wait_entire_page_to_load",
    "FailureCapture",
    "screenshot_filename",
]
