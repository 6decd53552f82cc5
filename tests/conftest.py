from __future__ import annotations

import logging
from typing import Callable, Optional, Union

import pytest

from wotping import ProbeSample, Reporter, ResolveError
from wotping._console import logger

Outcome = Union[int, None, BaseException, Callable[[], Optional[int]]]


class FakeProber:
    """Plays back scripted outcomes per address.

    An ``int`` is a reply time in ms, ``None`` a timeout and an exception
    instance is raised from :meth:`probe`. A callable is invoked when reached
    and its return value used as the outcome.
    """

    def __init__(self, script: dict[str, list[Outcome]]):
        self.script = script
        self.identifier = 0
        self.opened = False
        self.closed = False
        self.calls: list[str] = []

    def open(self) -> "FakeProber":
        self.opened = True
        return self

    def close(self) -> None:
        self.closed = True

    def probe(self, address: str) -> ProbeSample:
        self.calls.append(address)
        attempt = sum(1 for called in self.calls if called == address) - 1
        outcomes = self.script.get(address, [])
        outcome = outcomes[attempt] if attempt < len(outcomes) else None
        if callable(outcome):
            outcome = outcome()
        if isinstance(outcome, BaseException):
            raise outcome
        if outcome is None:
            return ProbeSample(error="timed out")
        return ProbeSample(rtt=outcome)


class ProberPool:
    """Factory handing out :class:`FakeProber` instances that share one script."""

    def __init__(self, script: Optional[dict[str, list[Outcome]]] = None):
        self.script = script or {}
        self.created: list[FakeProber] = []

    def __call__(self) -> FakeProber:
        prober = FakeProber(self.script)
        self.created.append(prober)
        return prober

    @property
    def calls(self) -> list[str]:
        return [call for prober in self.created for call in prober.calls]


class RecordingReporter(Reporter):
    def __init__(self) -> None:
        self.events: list[tuple] = []
        self.ranked = None

    def starting(self, server_count, ping_count):
        self.events.append(("starting", server_count, ping_count))

    def resolving(self, name, host):
        self.events.append(("resolving", name, host))

    def resolve_failed(self, name, host, error):
        self.events.append(("resolve_failed", name, host, error))

    def probe_failed(self, name, address, attempt, error):
        self.events.append(("probe_failed", name, address, attempt, error))

    def address_done(self, result):
        self.events.append(
            ("address_done", result.host_cluster_name, result.ip_address)
        )

    def interrupted(self):
        self.events.append(("interrupted",))

    def configuration_error(self, message):
        self.events.append(("configuration_error", message))

    def report(self, ranked):
        self.ranked = list(ranked)

    def kinds(self) -> list[str]:
        return [event[0] for event in self.events]


def static_resolver(table: dict[str, list[str]]):
    def resolve(host: str) -> list[str]:
        if host not in table:
            raise ResolveError(host, "Name or service not known")
        return list(table[host])

    return resolve


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture(autouse=True)
def _restore_logger():
    handlers = logger.handlers[:]
    level = logger.level
    propagate = logger.propagate
    yield
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    for handler in handlers:
        logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = propagate


@pytest.fixture
def caplog_wotping(caplog):
    caplog.set_level(logging.DEBUG, logger="wotping")
    return caplog
