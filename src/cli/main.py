"""CLI entry point for the spot trading agent."""

from __future__ import annotations

import argparse
import asyncio
import getpass
import json
import logging
import tomllib
from pathlib import Path
from typing import Any

import yaml

from actions.types import (
    ACTION_META,
    DEFAULT_WEIGHTS,
    ActionCategory,
    actions_in_category,
)
from engine.agent_runner import run_agent, run_cancel_all
from utils.config_validator import ConfigValidationError, validate_agent_config
from utils.credentials import store_api_token
from utils.logging_config import setup_logging

LOGGER = logging.getLogger("spot_agent.cli")

SUPPORTED_FORMATS = (".json", ".toml", ".yaml", ".yml")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="spot market trading agent")
    parser.add_argument("--version", action="version", version="spot-agent 0.1.0")
    subparsers = parser.add_subparsers(dest="command", required=True)

    start_parser = subparsers.add_parser(
        "start", help="Run the agent against a market until interrupted."
    )
    start_parser.add_argument(
        "--config", required=True, help="Path to JSON/TOML/YAML config file."
    )
    start_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log the picked action instead of calling the exchange.",
    )
    start_parser.add_argument(
        "--state-path",
        help="Optional path where the final agent status is written as JSON.",
    )
    _add_logging_args(start_parser)
    start_parser.set_defaults(handler=run_start)

    cancel_parser = subparsers.add_parser(
        "cancel-all", help="Cancel every open order (and optionally trigger)."
    )
    cancel_parser.add_argument(
        "--config", required=True, help="Path to JSON/TOML/YAML config file."
    )
    cancel_parser.add_argument(
        "--triggers", action="store_true", help="Also cancel all triggers."
    )
    _add_logging_args(cancel_parser)
    cancel_parser.set_defaults(handler=run_cancel)

    actions_parser = subparsers.add_parser(
        "actions", help="List the action catalog with default weights."
    )
    actions_parser.set_defaults(handler=run_list_actions)

    token_parser = subparsers.add_parser(
        "store-token", help="Store the gateway API token in the OS keychain."
    )
    token_parser.set_defaults(handler=run_store_token)
    return parser


def _add_logging_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (DEBUG, INFO, WARNING, ERROR).",
    )
    parser.add_argument(
        "--structured-logs",
        action="store_true",
        help="Emit one JSON object per log line.",
    )


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if hasattr(args, "handler"):
        return args.handler(args)
    parser.print_help()
    return 1


def run_start(args: argparse.Namespace) -> int:
    configure_logging(args.log_level, args.structured_logs)
    try:
        config = load_config(Path(args.config).expanduser())
        if args.dry_run:
            config["dry_run"] = True
        try:
            validate_agent_config(config)
        except ConfigValidationError as exc:
            LOGGER.error("Configuration validation failed: %s", exc)
            return 2
        state_path = Path(args.state_path).expanduser() if args.state_path else None
        LOGGER.info("Agent running. Press Ctrl+C to stop.")
        asyncio.run(run_agent(config, state_path=state_path))
    except KeyboardInterrupt:
        LOGGER.info("Interrupted, agent stopped.")
    except (FileNotFoundError, RuntimeError, ValueError) as exc:
        LOGGER.error(str(exc))
        return 2
    except Exception as exc:  # pragma: no cover - safeguard for unexpected issues.
        LOGGER.exception("Unexpected error while running the agent: %s", exc)
        return 3
    return 0


def run_cancel(args: argparse.Namespace) -> int:
    configure_logging(args.log_level, args.structured_logs)
    try:
        config = load_config(Path(args.config).expanduser())
        orders, triggers = asyncio.run(
            run_cancel_all(config, include_triggers=args.triggers)
        )
    except ConfigValidationError as exc:
        LOGGER.error("Configuration validation failed: %s", exc)
        return 2
    except (FileNotFoundError, RuntimeError, ValueError) as exc:
        LOGGER.error(str(exc))
        return 2
    except Exception as exc:  # pragma: no cover - safeguard for unexpected issues.
        LOGGER.exception("Unexpected error while cancelling: %s", exc)
        return 3
    LOGGER.info("Cancelled %s orders and %s triggers", orders, triggers)
    return 0


def run_list_actions(args: argparse.Namespace) -> int:
    for category in ActionCategory:
        print(f"{category.value}:")
        for action in actions_in_category(category):
            print(
                f"  {action.value:<22} {DEFAULT_WEIGHTS[action]:>5g}  "
                f"{ACTION_META[action].label}"
            )
    return 0


def run_store_token(args: argparse.Namespace) -> int:
    try:
        store_api_token(getpass.getpass("API token: "))
    except (RuntimeError, ValueError) as exc:
        print(f"Failed to store token: {exc}")
        return 2
    print("Token stored in the OS keychain.")
    return 0


def configure_logging(level: str, structured: bool = False) -> None:
    setup_logging(level=level, sanitize=True, structured=structured)


def load_config(config_path: Path) -> dict[str, Any]:
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}. Ensure the path is correct and readable."
        )
    suffix = config_path.suffix.lower()
    if suffix not in SUPPORTED_FORMATS:
        supported = ", ".join(SUPPORTED_FORMATS)
        raise ValueError(
            f"Unsupported config format '{suffix}'. Supported formats: {supported}."
        )
    text = config_path.read_text(encoding="utf-8")
    try:
        if suffix == ".json":
            data = json.loads(text)
        elif suffix == ".toml":
            data = tomllib.loads(text)
        else:
            data = yaml.safe_load(text) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(
            f"Invalid JSON in config file {config_path}: {exc}. Validate the file format."
        ) from exc
    except (tomllib.TOMLDecodeError, yaml.YAMLError) as exc:
        raise ValueError(f"Failed to parse config file {config_path}: {exc}.") from exc
    if not isinstance(data, dict):
        raise ValueError(
            f"Config file {config_path} must contain a JSON/TOML/YAML object mapping."
        )
    return data


if __name__ == "__main__":
    raise SystemExit(main())
