"""
Main entry point for the browser session harness.

Loads the environment, resolves the automation callback and runs it in a
managed browser session:

    python src/main.py my_automation.steps:process_visitors --env-file .env

The exit status is 0 for every run outcome. Command line usage errors
are reported on stderr by argparse and also end with status 0.
"""

import argparse
import importlib
import os
import sys
from typing import Optional

import structlog
from dotenv import load_dotenv

from orchestrator.runner import ProcessingCallback, run_automation

logger = structlog.get_logger()


def resolve_callback(target: str) -> ProcessingCallback:
    """Import ``package.module:function``."""
    module_name, _, attribute = target.partition(":")
    if not module_name or not attribute:
        raise ValueError(f"Callback must look like 'package.module:function', got {target!r}")

    module = importlib.import_module(module_name)
    callback = getattr(module, attribute, None)
    if callback is None or not callable(callback):
        raise ValueError(f"{attribute!r} in {module_name!r} is not callable")
    return callback


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Run an automation callback in a managed browser session.",
    )
    parser.add_argument("callback", help="Automation callback as 'package.module:function'")
    parser.add_argument("--env-file", default=".env", help="Environment file to load (default: .env)")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    try:
        args = build_parser().parse_args(argv)
    except SystemExit as e:
        if e.code:
            logger.error("usage_error", status=e.code)
        return 0

    load_dotenv(args.env_file)

    # Callbacks live in the caller's project, not next to this script
    if os.getcwd() not in sys.path:
        sys.path.insert(0, os.getcwd())

    try:
        processing = resolve_callback(args.callback)
    except (ImportError, ValueError) as e:
        logger.error("callback_unavailable", callback=args.callback, error=str(e))
        return 0

    return run_automation(processing)


if __name__ == "__main__":
    sys.exit(main())
