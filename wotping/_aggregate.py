"""Resolve, probe and aggregate: the batch at the heart of wotping."""

from __future__ import annotations

import queue
import secrets
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Mapping, Optional

from ._config import DEFAULT_WORKERS
from ._console import logger
from ._exceptions import RawSocketPermissionError, ResolveError
from ._icmp import Icmp
from ._models import Batch, PingResult
from ._report import Reporter
from ._resolver import resolve_ipv4

Resolver = Callable[[str], list[str]]
ProberFactory = Callable[[], Icmp]


def probe_address(
    prober: Icmp,
    name: str,
    address: str,
    ping_count: int,
    reporter: Reporter,
) -> PingResult:
    """Run ``ping_count`` probes against one address, one after the other."""
    samples: list[int] = []
    for attempt in range(1, ping_count + 1):
        try:
            sample = prober.probe(address)
        except RawSocketPermissionError:
            raise
        except (OSError, ValueError) as exc:
            reason = str(exc) or type(exc).__name__
            reporter.probe_failed(name, address, attempt, reason)
            continue

        if sample.rtt is not None:
            logger.debug(
                "Ping %d/%d to %s: %d ms", attempt, ping_count, address, sample.rtt
            )
            samples.append(sample.rtt)
        else:
            reporter.probe_failed(name, address, attempt, sample.error or "timed out")

    result = PingResult.from_samples(name, address, samples, sent=ping_count)
    reporter.address_done(result)
    return result


def resolve_server(
    name: str, host: str, resolver: Resolver, reporter: Reporter
) -> Optional[list[str]]:
    """Resolve ``host``; ``None`` means the name is dropped from the batch."""
    reporter.resolving(name, host)
    try:
        addresses = resolver(host)
    except ResolveError as exc:
        reporter.resolve_failed(name, host, exc.reason)
        return None
    if not addresses:
        reporter.resolve_failed(name, host, "no IPv4 addresses")
        return None
    return addresses


def _open_probers(prober_factory: ProberFactory, count: int) -> list[Icmp]:
    """Open ``count`` ICMP sockets with consecutive identifiers.

    Every raw socket receives every echo reply, so two sockets sharing an
    identifier could accept each other's replies.
    """
    probers: list[Icmp] = []
    base = secrets.randbelow(0x10000)
    try:
        for index in range(count):
            prober = prober_factory()
            prober.identifier = (base + index) & 0xFFFF
            prober.open()
            probers.append(prober)
    except BaseException:
        _close_probers(probers)
        raise
    return probers


def _close_probers(probers: list[Icmp]) -> None:
    for prober in probers:
        prober.close()


def _measure_sequential(
    servers: Mapping[str, str],
    ping_count: int,
    resolver: Resolver,
    prober_factory: ProberFactory,
    reporter: Reporter,
    batch: Batch,
) -> None:
    probers = _open_probers(prober_factory, 1)
    try:
        for name, host in servers.items():
            addresses = resolve_server(name, host, resolver, reporter)
            if addresses is None:
                batch.unresolved.append(name)
                continue
            for address in addresses:
                batch.results.append(
                    probe_address(probers[0], name, address, ping_count, reporter)
                )
    finally:
        _close_probers(probers)


def _measure_pooled(
    servers: Mapping[str, str],
    ping_count: int,
    resolver: Resolver,
    prober_factory: ProberFactory,
    reporter: Reporter,
    batch: Batch,
    workers: int,
) -> None:
    probers = _open_probers(prober_factory, workers)
    try:
        targets: list[tuple[str, str]] = []
        for name, host in servers.items():
            addresses = resolve_server(name, host, resolver, reporter)
            if addresses is None:
                batch.unresolved.append(name)
                continue
            targets.extend((name, address) for address in addresses)

        # A prober is checked out by one task at a time.
        idle: "queue.Queue[Icmp]" = queue.Queue()
        for prober in probers:
            idle.put(prober)

        slots: list[Optional[PingResult]] = [None] * len(targets)

        def task(index: int, name: str, address: str) -> None:
            prober = idle.get()
            try:
                slots[index] = probe_address(
                    prober, name, address, ping_count, reporter
                )
            finally:
                idle.put(prober)

        executor = ThreadPoolExecutor(
            max_workers=max(1, min(workers, len(targets))),
            thread_name_prefix="wotping",
        )
        try:
            futures = [
                executor.submit(task, index, name, address)
                for index, (name, address) in enumerate(targets)
            ]
            for future in as_completed(futures):
                future.result()
        except BaseException:
            executor.shutdown(wait=True, cancel_futures=True)
            raise
        finally:
            executor.shutdown(wait=True)
            batch.results.extend(result for result in slots if result is not None)
    finally:
        _close_probers(probers)


def measure(
    servers: Mapping[str, str],
    ping_count: int,
    *,
    resolver: Resolver = resolve_ipv4,
    prober_factory: ProberFactory = Icmp,
    reporter: Optional[Reporter] = None,
    workers: int = DEFAULT_WORKERS,
) -> Batch:
    """Resolve every server, probe every IPv4 address and aggregate the samples.

    Servers are visited in mapping order and results keep that discovery
    order whatever ``workers`` is. With ``workers`` above one, addresses are
    probed concurrently, each by a worker that owns its own prober; the probes
    of one address always run sequentially.

    A :class:`KeyboardInterrupt` stops the batch early; the returned
    :class:`Batch` then holds the addresses completed so far and has
    ``interrupted`` set. :class:`RawSocketPermissionError` propagates.
    """
    reporter = reporter if reporter is not None else Reporter()
    ping_count = max(ping_count, 0)
    batch = Batch()

    reporter.starting(len(servers), ping_count)
    try:
        if workers <= 1:
            _measure_sequential(
                servers, ping_count, resolver, prober_factory, reporter, batch
            )
        else:
            _measure_pooled(
                servers, ping_count, resolver, prober_factory, reporter, batch, workers
            )
    except KeyboardInterrupt:
        batch.interrupted = True
        reporter.interrupted()

    logger.debug(
        "Batch done: %d results, %d unresolved",
        len(batch.results),
        len(batch.unresolved),
    )
    return batch
