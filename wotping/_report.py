"""Ranking and reporting of batch results."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable, Optional, Union

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ._console import console as default_console
from ._console import logger
from ._models import Batch, PingResult


def rank(results: Iterable[PingResult]) -> list[PingResult]:
    """Successful results by ascending average time; ties keep discovery order."""
    successful = [result for result in results if result.succeeded]
    return sorted(successful, key=lambda result: result.average_time)


def optimal(ranked: list[PingResult]) -> Optional[PingResult]:
    return ranked[0] if ranked else None


def _format_ms(value: Optional[float]) -> str:
    if value is None:
        return "-"
    return f"{value:.2f}"


class Reporter:
    """Sink for everything a run wants to tell the user.

    Every hook is a no-op here; subclasses override what they display.
    """

    def starting(self, server_count: int, ping_count: int) -> None:
        pass

    def resolving(self, name: str, host: str) -> None:
        pass

    def resolve_failed(self, name: str, host: str, error: str) -> None:
        pass

    def probe_failed(self, name: str, address: str, attempt: int, error: str) -> None:
        pass

    def address_done(self, result: PingResult) -> None:
        pass

    def interrupted(self) -> None:
        pass

    def configuration_error(self, message: str) -> None:
        pass

    def report(self, ranked: list[PingResult]) -> None:
        pass


class ConsoleReporter(Reporter):
    """Progress through the ``wotping`` logger, results as a rich table."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console if console is not None else default_console

    def starting(self, server_count: int, ping_count: int) -> None:
        logger.info(
            "Starting ping tests for %d servers, %d pings each",
            server_count,
            ping_count,
        )
        self.console.rule()

    def resolving(self, name: str, host: str) -> None:
        logger.info("Processing %s...", escape(host))

    def resolve_failed(self, name: str, host: str, error: str) -> None:
        logger.warning(
            "Failed to resolve %s (%s): %s", escape(host), escape(name), escape(error)
        )

    def probe_failed(self, name: str, address: str, attempt: int, error: str) -> None:
        logger.warning("Ping %d to %s failed: %s", attempt, address, escape(error))

    def address_done(self, result: PingResult) -> None:
        logger.debug("%s", escape(str(result)))

    def interrupted(self) -> None:
        logger.warning("Interrupted, reporting the results gathered so far")

    def configuration_error(self, message: str) -> None:
        logger.error("[red]Error: %s[/red]", escape(message))

    def build_table(self, ranked: list[PingResult]) -> Table:
        table = Table(title="Results", box=box.SQUARE)
        table.add_column("Host", style="cyan", no_wrap=True)
        table.add_column("IP", style="magenta")
        table.add_column("Result", style="green")
        table.add_column("Avg Time", justify="right")
        table.add_column("Dispersion", justify="right")
        for result in ranked:
            table.add_row(
                escape(result.host_cluster_name),
                result.ip_address,
                result.status.value,
                _format_ms(result.average_time),
                _format_ms(result.average_dispersion),
            )
        return table

    def report(self, ranked: list[PingResult]) -> None:
        self.console.print()
        self.console.print(self.build_table(ranked))

        best = optimal(ranked)
        if best is None:
            return
        self.console.print(
            "\nOptimal server: "
            f"[bold green]{escape(best.host_cluster_name)}[/bold green]"
            f" ({best.ip_address})",
            highlight=False,
        )
        self.console.print(
            f"Average time: {_format_ms(best.average_time)}ms", highlight=False
        )
        self.console.print(
            f"Dispersion: {_format_ms(best.average_dispersion)}ms", highlight=False
        )


def write_json(batch: Batch, path: Union[str, Path]) -> Path:
    """Export every result of ``batch`` in discovery order, plus the optimal pick."""
    path = Path(path)
    best = optimal(rank(batch.results))
    document = {
        "results": [result.to_dict() for result in batch.results],
        "unresolved": list(batch.unresolved),
        "interrupted": batch.interrupted,
        "optimal": best.to_dict() if best is not None else None,
    }
    path.write_text(json.dumps(document, indent=2) + "\n", encoding="utf-8")
    logger.info("Results written to %s", escape(str(path)))
    return path
