"""Harness error definitions."""

from typing import Optional, Any
from enum import Enum


class ErrorSeverity(Enum):
    """Error severity levels for classification."""
    LOW = "low"           # Recoverable inside the run
    MEDIUM = "medium"     # Fails the run, teardown proceeds
    HIGH = "high"         # Aborts before a session exists
    CRITICAL = "critical" # Resource could not be released


class ErrorCategory(Enum):
    """Error categories for routing and logging."""
    CONFIGURATION = "configuration"   # Missing or malformed operating parameter
    BROWSER = "browser"               # Engine launch, navigation, page load
    INTERACTION = "interaction"       # Operator prompt
    AUTOMATION = "automation"         # Raised by caller-supplied logic


class HarnessError(Exception):
    """Base exception for all harness errors."""

    def __init__(
        self,
        message: str,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        category: ErrorCategory = ErrorCategory.AUTOMATION,
        context: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.severity = severity
        self.category = category
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize error for logging."""
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "severity": self.severity.value,
            "category": self.category.value,
            "context": self.context,
        }


class ConfigurationError(HarnessError):
    """Missing or malformed operating parameter. Fatal, raised before any session exists."""

    def __init__(self, message: str, parameter: Optional[str] = None, **kwargs):
        kwargs.setdefault("severity", ErrorSeverity.HIGH)
        kwargs.setdefault("category", ErrorCategory.CONFIGURATION)
        super().__init__(message, **kwargs)
        self.parameter = parameter
        self.context["parameter"] = parameter


class SessionError(HarnessError):
    """Browser session could not be acquired or navigated."""

    def __init__(self, message: str, url: Optional[str] = None, **kwargs):
        kwargs.setdefault("category", ErrorCategory.BROWSER)
        super().__init__(message, **kwargs)
        self.context["url"] = url


class PageLoadTimeout(HarnessError):
    """A readiness signal was not reached within the engine's ceiling."""

    def __init__(self, message: str, state: Optional[str] = None, url: Optional[str] = None, **kwargs):
        kwargs.setdefault("category", ErrorCategory.BROWSER)
        super().__init__(message, **kwargs)
        self.state = state
        self.context["state"] = state
        self.context["url"] = url


class PromptError(HarnessError):
    """Operator prompt did not produce an answer."""

    def __init__(self, message: str, question: Optional[str] = None, **kwargs):
        kwargs.setdefault("severity", ErrorSeverity.LOW)
        kwargs.setdefault("category", ErrorCategory.INTERACTION)
        super().__init__(message, **kwargs)
        self.question = question
        self.context["question"] = question


class PromptTimeout(PromptError):
    """No answer arrived before the question timed out."""

    def __init__(self, message: str, question: Optional[str] = None, timeout: Optional[float] = None, **kwargs):
        super().__init__(message, question=question, **kwargs)
        self.timeout = timeout
        self.context["timeout_seconds"] = timeout


class PromptCancelled(PromptError):
    """Question was cancelled because the channel closed or input ended."""


class PromptBusyError(PromptError):
    """A question was asked while another one is still outstanding."""


class PromptChannelClosed(PromptError):
    """The prompt channel no longer accepts questions."""


class AutomationError(HarnessError):
    """Wraps any error raised by caller-supplied automation logic."""

    def __init__(self, message: str, cause: Optional[BaseException] = None, **kwargs):
        kwargs.setdefault("category", ErrorCategory.AUTOMATION)
        super().__init__(message, **kwargs)
        self.cause = cause
        self.context["cause_type"] = type(cause).__name__ if cause is not None else None
