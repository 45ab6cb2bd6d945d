"""Structured logging setup for automation runs."""

import logging
import os
from datetime import date
from pathlib import Path
from typing import Any, Optional

import structlog

from .errors import ConfigurationError

GREEN = "\x1b[32m"


def _run_mode_tagger(demo_mode: bool):
    run_mode = "demo" if demo_mode else "live"

    def tag_run_mode(logger: Any, method_name: str, event_dict: dict) -> dict:
        event_dict.setdefault("run_mode", run_mode)
        return event_dict

    return tag_run_mode


def log_file_path(logs_dir: Path, demo_mode: bool, today: Optional[date] = None) -> Path:
    """Daily log file, prefixed so demo runs never mix with live ones."""
    today = today or date.today()
    prefix = "DEMO-" if demo_mode else ""
    return Path(logs_dir) / f"{prefix}automation-{today.isoformat()}.log"


def configure_logging(demo_mode: bool, logs_dir: Path, level: Optional[str] = None) -> Path:
    """
    Route structlog through stdlib logging to the console and a JSON log file.

    Demo runs are tagged ``run_mode=demo`` and rendered in green on the console.

    Returns:
        Path of the log file being written.

    Raises:
        ConfigurationError: unknown LOG_LEVEL or the log file cannot be opened
    """
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).strip().upper()
    if not isinstance(logging.getLevelName(level_name), int):
        raise ConfigurationError(f"LOG_LEVEL {level_name!r} is not a logging level.", parameter="LOG_LEVEL")

    path = log_file_path(logs_dir, demo_mode)
    try:
        file_handler = logging.FileHandler(path, encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(
            f"Log file could not be opened: {path} ({e})",
            parameter="LOGS_FOLDER_PATH",
            context={"path": str(path)},
        )

    shared_processors = [
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        _run_mode_tagger(demo_mode),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if os.getenv("LOG_FORMAT") == "json":
        console_renderers = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    elif demo_mode:
        level_styles = structlog.dev.ConsoleRenderer.get_default_level_styles()
        console_renderers = [structlog.dev.ConsoleRenderer(
            level_styles={name: GREEN for name in level_styles},
        )]
    else:
        console_renderers = [structlog.dev.ConsoleRenderer()]

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *console_renderers,
        ],
    ))

    file_handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
    ))

    root = logging.getLogger()
    for handler in [h for h in root.handlers if getattr(h, "_harness_handler", False)]:
        root.removeHandler(handler)
        handler.close()
    for handler in (console_handler, file_handler):
        handler._harness_handler = True
        root.addHandler(handler)
    root.setLevel(level_name)

    return path
