"""Core harness components."""

from .config import ConfigValidator, RunConfiguration
from .log_setup import configure_logging
from .errors import (
    HarnessError,
    ConfigurationError,
    SessionError,
    PageLoadTimeout,
    PromptError,
    PromptTimeout,
    PromptCancelled,
    PromptBusyError,
    PromptChannelClosed,
    AutomationError,
)

__all__ = [
    "ConfigValidator",
    "RunConfiguration",
    "configure_logging",
    "HarnessError",
    "ConfigurationError",
    "SessionError",
    "PageLoadTimeout",
    "PromptError",
    "PromptTimeout",
    "PromptCancelled",
    "PromptBusyError",
    "PromptChannelClosed",
    "AutomationError",
]
