"""Run configuration loading and validation."""

import os
from pathlib import Path
from typing import Any, Callable, Mapping, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigurationError

logger = structlog.get_logger()


DEFAULT_LOGS_FOLDER_PATH = "data/logs"
DEFAULT_SCREENSHOT_FOLDER_PATH = "data/screenshots"
DEFAULT_ADDITIONAL_WAIT_TIME_SECONDS = 3
DEFAULT_QUESTION_TIMEOUT_SECONDS = 30
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/58.0.3029.110 Safari/537.3"
)


class RunConfiguration(BaseModel):
    """Resolved operating parameters for one automation run."""
    model_config = ConfigDict(frozen=True)

    demo_mode: bool = Field(default=True)
    logs_folder_path: Path = Field(default=Path(DEFAULT_LOGS_FOLDER_PATH))
    screenshot_folder_path: Path = Field(default=Path(DEFAULT_SCREENSHOT_FOLDER_PATH))
    base_url: str = Field(min_length=1)
    user_agent: str = Field(default=DEFAULT_USER_AGENT, min_length=1)
    default_additional_wait_time_seconds: int = Field(default=DEFAULT_ADDITIONAL_WAIT_TIME_SECONDS, ge=0)
    question_timeout_seconds: int = Field(default=DEFAULT_QUESTION_TIMEOUT_SECONDS, gt=0)
    user_data_dir: Optional[Path] = Field(default=None)
    headless: bool = Field(default=False)

    @field_validator("base_url")
    @classmethod
    def _ensure_trailing_slash(cls, value: str) -> str:
        return value if value.endswith("/") else value + "/"

    @property
    def run_mode(self) -> str:
        """Tag used in log events and screenshot names."""
        return "demo" if self.demo_mode else "live"

    @property
    def uses_persistent_profile(self) -> bool:
        return self.user_data_dir is not None


def parse_demo_mode(value: Optional[str]) -> bool:
    """Demo mode stays on unless explicitly set to ``false``."""
    if value is None:
        return True
    return value != "false"


def parse_flag(value: Optional[str], default: bool = False) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def parse_seconds(value: Optional[str], name: str, default: int) -> int:
    """Parse a whole number of seconds, falling back to ``default`` when unset."""
    if value is None or not value.strip():
        return default
    try:
        seconds = int(value.strip(), 10)
    except ValueError:
        raise ConfigurationError(
            f"{name} must be a whole number of seconds, got {value!r}.",
            parameter=name,
        )
    if seconds < 0:
        raise ConfigurationError(f"{name} must not be negative, got {seconds}.", parameter=name)
    return seconds


def require_value(value: Any, name: str, required: bool = True) -> Any:
    """
    Check that a parameter has a value and log its resolution.

    Raises:
        ConfigurationError: value is missing and ``required`` is set
    """
    missing = value is None or (isinstance(value, str) and not value.strip())
    if missing and required:
        raise ConfigurationError(f"{name} environment variable is not set.", parameter=name)

    if missing:
        logger.info("config_value_not_set", parameter=name)
    else:
        logger.info("config_value_set", parameter=name, value=str(value))
    return None if missing else value


def ensure_directory(path_value: Optional[str], name: str) -> Path:
    """
    Check a directory parameter and create the directory if needed.

    Pre-existing directories are accepted as they are.

    Raises:
        ConfigurationError: value is empty or the directory cannot be created
    """
    if path_value is None or not str(path_value).strip():
        raise ConfigurationError(f"{name} is not set.", parameter=name)

    path = Path(str(path_value).strip())
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ConfigurationError(
            f"{name} directory could not be created: {path} ({e})",
            parameter=name,
            context={"path": str(path)},
        )

    logger.info("config_value_set", parameter=name, value=str(path))
    return path


class ConfigValidator:
    """Builds a RunConfiguration from environment input, failing fast on bad values."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self.environ = os.environ if environ is None else environ

    def validate(
        self,
        on_logs_ready: Optional[Callable[[bool, Path], None]] = None,
    ) -> RunConfiguration:
        """
        Validate every operating parameter.

        Args:
            on_logs_ready: Called with (demo_mode, logs_dir) as soon as the logs
                directory exists, so logging can be configured before the
                remaining parameters are reported.

        Raises:
            ConfigurationError: a required parameter is missing or malformed
        """
        env = self.environ
        logger.info("setup_starting")

        demo_mode = parse_demo_mode(env.get("DEMO_MODE"))
        logs_dir = ensure_directory(
            env.get("LOGS_FOLDER_PATH") or DEFAULT_LOGS_FOLDER_PATH, "LOGS_FOLDER_PATH"
        )
        if on_logs_ready is not None:
            on_logs_ready(demo_mode, logs_dir)

        logger.info("config_value_set", parameter="DEMO_MODE", value=str(demo_mode))

        screenshots_dir = ensure_directory(
            env.get("SCREENSHOT_FOLDER_PATH") or DEFAULT_SCREENSHOT_FOLDER_PATH,
            "SCREENSHOT_FOLDER_PATH",
        )

        base_url = require_value(env.get("BASE_URL"), "BASE_URL")
        user_agent = require_value(env.get("USER_AGENT") or DEFAULT_USER_AGENT, "USER_AGENT")
        additional_wait = require_value(
            parse_seconds(
                env.get("DEFAULT_ADDITIONAL_WAIT_TIME_SECONDS"),
                "DEFAULT_ADDITIONAL_WAIT_TIME_SECONDS",
                DEFAULT_ADDITIONAL_WAIT_TIME_SECONDS,
            ),
            "DEFAULT_ADDITIONAL_WAIT_TIME_SECONDS",
        )
        question_timeout = require_value(
            parse_seconds(
                env.get("QUESTION_TIMEOUT_SECONDS"),
                "QUESTION_TIMEOUT_SECONDS",
                DEFAULT_QUESTION_TIMEOUT_SECONDS,
            ),
            "QUESTION_TIMEOUT_SECONDS",
        )
        user_data_dir = require_value(env.get("USER_DATA_DIR"), "USER_DATA_DIR", required=False)
        headless = parse_flag(env.get("HEADLESS"))

        try:
            config = RunConfiguration(
                demo_mode=demo_mode,
                logs_folder_path=logs_dir,
                screenshot_folder_path=screenshots_dir,
                base_url=base_url,
                user_agent=user_agent,
                default_additional_wait_time_seconds=additional_wait,
                question_timeout_seconds=question_timeout,
                user_data_dir=user_data_dir,
                headless=headless,
            )
        except ValidationError as e:
            first = e.errors()[0]
            field_name = str(first["loc"][0]).upper() if first.get("loc") else None
            raise ConfigurationError(f"Invalid run configuration: {e}", parameter=field_name)

        logger.info("setup_completed", run_mode=config.run_mode)
        return config
