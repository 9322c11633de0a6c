"""
toolbridge CLI - run one adapter as a JSON-RPC server on stdin/stdout.

Usage:
    toolbridge confluence [--log-level LEVEL] [--log-format FORMAT]
    toolbridge jira [--log-level LEVEL] [--log-format FORMAT]
    python -m toolbridge --help

Required environment:
    confluence    CONFLUENCE_BASE_URL, CONFLUENCE_API_TOKEN
    jira          JIRA_BASE_URL, JIRA_API_TOKEN

Exit status is 0 when input ends or a termination signal arrives, and 1 when
the configuration is missing or invalid (nothing is read from stdin then).
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Awaitable, Callable, Sequence
from typing import TYPE_CHECKING

from pydantic import ValidationError
from pydantic_settings import BaseSettings

from toolbridge import __version__
from toolbridge.foundation.config import BridgeSettings, ConfluenceSettings, JiraSettings, get_settings
from toolbridge.runtime.observability import configure_logging, get_logger
from toolbridge.runtime.rpc import Dispatcher, serve_stdio

if TYPE_CHECKING:
    import httpx

ADAPTERS: dict[str, type[BaseSettings]] = {"confluence": ConfluenceSettings, "jira": JiraSettings}

log = get_logger("cli")


# ─────────────────────────────────────────────────────────────────────────────
# Wiring
# ─────────────────────────────────────────────────────────────────────────────


def build_dispatcher(
    adapter: str,
    bridge: BridgeSettings,
    backend: BaseSettings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> tuple[Dispatcher, Callable[[], Awaitable[None]]]:
    """Client, registry and dispatcher for one adapter. Returns the dispatcher and the client's close hook."""
    match adapter:
        case "confluence":
            from toolbridge.adapters import confluence
            client = confluence.ConfluenceClient.from_settings(backend, bridge, transport=transport)  # type: ignore[arg-type]
            registry = confluence.build_registry(client)
        case "jira":
            from toolbridge.adapters import jira
            client = jira.JiraClient.from_settings(backend, bridge, transport=transport)  # type: ignore[arg-type]
            registry = jira.build_registry(client)
        case _:
            raise ValueError(f"Unknown adapter: {adapter}")
    return Dispatcher(registry, name=f"toolbridge-{adapter}", version=__version__), client.aclose


def describe_config_error(exc: ValidationError, settings: type[BaseSettings]) -> str:
    """One line per missing or invalid setting, named by its environment variable."""
    config = settings.model_config
    prefix = config.get("env_prefix") or ""
    delimiter = config.get("env_nested_delimiter") or "_"
    lines = [f"toolbridge: invalid configuration ({settings.__name__})"]
    for err in exc.errors():
        field = delimiter.join(str(p) for p in err.get("loc", ())).upper()
        lines.append(f"  {prefix}{field}: {err.get('msg', 'invalid')}")
    return "\n".join(lines)


# ─────────────────────────────────────────────────────────────────────────────
# Argument parsing
# ─────────────────────────────────────────────────────────────────────────────


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="toolbridge",
        description="Serve backend tools over newline-delimited JSON-RPC on stdin/stdout.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Examples:\n"
               "  toolbridge confluence\n"
               "  toolbridge jira --log-level DEBUG\n"
               "  toolbridge confluence --log-format json\n",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "adapter",
        choices=sorted(ADAPTERS),
        help="Backend to bridge.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Log level (default: TOOLBRIDGE_LOG_LEVEL or INFO). Logs go to stderr.",
    )
    parser.add_argument(
        "--log-format",
        default=None,
        choices=["console", "json", "none"],
        help="Log format (default: TOOLBRIDGE_LOG_FORMAT or console).",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    settings_cls: type[BaseSettings] = BridgeSettings
    try:
        bridge = get_settings()
        settings_cls = ADAPTERS[args.adapter]
        backend = settings_cls()
    except ValidationError as e:
        print(describe_config_error(e, settings_cls), file=sys.stderr)
        return 1

    try:
        dispatcher, cleanup = build_dispatcher(args.adapter, bridge, backend)
    except ValueError as e:
        print(f"toolbridge: invalid configuration ({settings_cls.__name__})\n  {e}", file=sys.stderr)
        return 1

    configure_logging(args.log_format or bridge.logging.format, args.log_level or bridge.logging.level)
    log.info("starting", adapter=args.adapter, version=__version__)
    return serve_stdio(dispatcher, cleanup)


if __name__ == "__main__":
    raise SystemExit(main())
