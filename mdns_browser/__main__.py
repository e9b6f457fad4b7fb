"""CLI entry point for mdns_browser."""

import argparse
import json
import logging
import sys
import traceback
from datetime import datetime
from pathlib import Path

from . import __version__
from .config import LOG_LEVELS, Config, load_config
from .exceptions import ConfigError, DiscoveryError
from .tui import BrowserApp

logger = logging.getLogger("mdns_browser")

EPILOG = """\
TUI Controls:
  ?     Show the help popup with all key bindings
  q     Quit the application

For the complete key binding reference, press '?' in the application."""


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "component": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = "".join(traceback.format_exception(*record.exc_info))

        try:
            return json.dumps(log_data)
        except (TypeError, ValueError):
            log_data["message"] = str(log_data["message"])
            if "exception" in log_data:
                log_data["exception"] = str(log_data["exception"])
            return json.dumps(log_data)


def setup_logging(
    log_level: str = "warning",
    log_file: str | Path | None = None,
    json_output: bool = False,
) -> None:
    """Configure logging.

    The terminal belongs to the UI, so records only go to a file. Without
    a log file they are discarded.

    Args:
        log_level: One of "warning", "info", "debug".
        log_file: File to append log records to.
        json_output: Write log records as JSON lines.
    """
    level_map = {
        "warning": logging.WARNING,
        "info": logging.INFO,
        "debug": logging.DEBUG,
    }
    level = level_map.get(log_level, logging.WARNING)

    if log_file:
        handler: logging.Handler = logging.FileHandler(Path(log_file).expanduser())
    else:
        handler = logging.NullHandler()

    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)

    logging.basicConfig(
        level=level,
        handlers=[handler],
        force=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mdns-browser",
        description="A terminal-based mDNS service browser",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-V", "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to YAML config file",
    )
    parser.add_argument(
        "-t", "--type",
        dest="service_types",
        action="append",
        default=[],
        metavar="TYPE",
        help="Service type to browse, e.g. _http._tcp (repeatable)",
    )
    parser.add_argument(
        "--no-auto",
        action="store_true",
        help="Do not auto-detect service types via the DNS-SD meta query",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging (ignored if --log-level is set)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=LOG_LEVELS,
        default=None,
        help="Set log level explicitly (overrides -v/--verbose)",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Write logs to this file (logs are discarded otherwise)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Write logs as JSON lines",
    )
    return parser


def apply_args(config: Config, args: argparse.Namespace) -> Config:
    """Layer command line flags over the loaded configuration."""
    if args.service_types:
        config.discovery.service_types = config.discovery.service_types + args.service_types
    if args.no_auto:
        config.discovery.auto_detect = False
    if args.log_level:
        config.logging.level = args.log_level
    elif args.verbose:
        config.logging.level = "debug"
    if args.log_file:
        config.logging.file = str(args.log_file)
    if args.json:
        config.logging.json = True
    return config


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = apply_args(load_config(args.config), args)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    setup_logging(config.logging.level, config.logging.file, config.logging.json)

    if not config.discovery.service_types and not config.discovery.auto_detect:
        parser.error("nothing to browse: pass --type or drop --no-auto")

    logger.info(f"Starting mdns-browser {__version__}")
    app = BrowserApp(config)
    try:
        app.run()
    except DiscoveryError as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 0
    except OSError as e:
        logger.exception("Terminal error")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
