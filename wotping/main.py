"""Command line front end and run orchestration."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from rich.markup import escape

from ._aggregate import ProberFactory, Resolver, measure
from ._config import (
    DEFAULT_PING_COUNT,
    DEFAULT_WORKERS,
    ENV_PING_COUNT,
    ENV_SERVER_LIST,
    ENV_SERVER_LIST_FILE,
    ENV_WORKERS,
    env_int,
    env_str,
)
from ._console import configure_logging, console, logger
from ._exceptions import ConfigurationError, RawSocketPermissionError
from ._icmp import Icmp
from ._models import Batch
from ._report import ConsoleReporter, Reporter, rank, write_json
from ._resolver import resolve_ipv4
from ._servers import collect_servers, initialize_json_files

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130


def run(
    ping_count: int = DEFAULT_PING_COUNT,
    server_list: Sequence[str] = (),
    server_list_file: Optional[Path] = None,
    *,
    workers: int = DEFAULT_WORKERS,
    json_path: Optional[Path] = None,
    reporter: Optional[Reporter] = None,
    resolver: Resolver = resolve_ipv4,
    prober_factory: ProberFactory = Icmp,
) -> Optional[Batch]:
    """Gather servers, measure them and report the ranking.

    Returns ``None`` when no server was available, in which case nothing is
    probed.
    """
    reporter = reporter if reporter is not None else ConsoleReporter()
    logger.info("Initializing ping tests...")
    try:
        servers = collect_servers(server_list, server_list_file)
    except ConfigurationError as exc:
        reporter.configuration_error(str(exc))
        return None

    batch = measure(
        servers,
        ping_count,
        resolver=resolver,
        prober_factory=prober_factory,
        reporter=reporter,
        workers=workers,
    )
    reporter.report(rank(batch.results))
    if json_path is not None:
        write_json(batch, json_path)
    return batch


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="wotping",
        description="Server Name Resolving Ping Utility",
    )
    parser.add_argument(
        "--ping-count",
        type=int,
        default=env_int(ENV_PING_COUNT, DEFAULT_PING_COUNT),
        help="number of pings per server "
        f"(default: {DEFAULT_PING_COUNT} or env {ENV_PING_COUNT})",
    )
    parser.add_argument(
        "--server-list",
        action="append",
        default=None,
        metavar="HOSTS",
        help="comma-separated list of servers to ping, repeatable "
        f"(env {ENV_SERVER_LIST})",
    )
    parser.add_argument(
        "--server-list-file",
        type=Path,
        default=env_str(ENV_SERVER_LIST_FILE),
        help=f"JSON file containing server list (env {ENV_SERVER_LIST_FILE})",
    )
    parser.add_argument(
        "--init",
        action="store_true",
        help="write example server list files into --path and exit",
    )
    parser.add_argument(
        "--path",
        type=Path,
        default=Path.cwd(),
        help="target folder for --init (defaults to current directory)",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=env_int(ENV_WORKERS, DEFAULT_WORKERS),
        help="addresses probed in parallel; 1 keeps everything sequential "
        f"(default: {DEFAULT_WORKERS} or env {ENV_WORKERS})",
    )
    parser.add_argument(
        "--json",
        dest="json_path",
        type=Path,
        default=None,
        help="also write every result to this JSON file",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="debug output")
    verbosity.add_argument(
        "-q", "--quiet", action="store_true", help="warnings and results only"
    )

    args = parser.parse_args(argv)
    if args.server_list is None:
        env_servers = env_str(ENV_SERVER_LIST)
        args.server_list = [env_servers] if env_servers else []
    return args


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    if args.verbose:
        configure_logging(logging.DEBUG)
    elif args.quiet:
        configure_logging(logging.WARNING)
    else:
        configure_logging(logging.INFO)

    logger.debug("Configuration: %s", escape(str(vars(args))))

    if args.init:
        try:
            initialize_json_files(args.path)
        except OSError as exc:
            console.print(f"[red]{escape(str(exc))}[/red]")
            return EXIT_ERROR
        return EXIT_OK

    try:
        batch = run(
            ping_count=max(0, args.ping_count),
            server_list=args.server_list,
            server_list_file=args.server_list_file,
            workers=max(1, args.workers),
            json_path=args.json_path,
        )
    except RawSocketPermissionError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        return EXIT_ERROR
    except OSError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        return EXIT_ERROR

    if batch is not None and batch.interrupted:
        return EXIT_INTERRUPTED
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
