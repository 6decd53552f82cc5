import threading

import pytest

from wotping import PingStatus, RawSocketPermissionError, measure, probe_address

from .conftest import FakeProber, ProberPool, RecordingReporter, static_resolver

TWO_NAMES = static_resolver({"a.example": ["10.0.0.1"], "b.example": ["10.0.0.2"]})


def test_all_probes_succeed(reporter):
    pool = ProberPool({"10.0.0.1": [10, 12, 11]})

    batch = measure(
        {"A": "host-ok"},
        3,
        resolver=static_resolver({"host-ok": ["10.0.0.1"]}),
        prober_factory=pool,
        reporter=reporter,
    )

    [result] = batch.results
    assert result.host_cluster_name == "A"
    assert result.ip_address == "10.0.0.1"
    assert result.status is PingStatus.SUCCESS
    assert result.average_time == 11.0
    assert result.average_dispersion == 2.0
    assert not batch.interrupted


def test_all_probes_fail(reporter):
    pool = ProberPool({"10.0.0.2": [None, None, None, None]})

    batch = measure(
        {"B": "host-unreachable"},
        4,
        resolver=static_resolver({"host-unreachable": ["10.0.0.2"]}),
        prober_factory=pool,
        reporter=reporter,
    )

    [result] = batch.results
    assert result.status is PingStatus.FAILURE
    assert result.average_time is None
    assert result.average_dispersion is None
    assert reporter.kinds().count("probe_failed") == 4


def test_probe_errors_do_not_stop_the_address(reporter):
    prober = FakeProber(
        {"10.0.0.3": [OSError("network is unreachable"), 20, OSError("boom"), 30]}
    )

    result = probe_address(prober, "C", "10.0.0.3", 4, reporter)

    assert prober.calls == ["10.0.0.3"] * 4
    assert result.status is PingStatus.SUCCESS
    assert result.average_time == 25.0
    assert result.received == 2
    failures = [event for event in reporter.events if event[0] == "probe_failed"]
    assert [event[3] for event in failures] == [1, 3]
    assert failures[0][4] == "network is unreachable"


def test_zero_ping_count_yields_failures(reporter):
    pool = ProberPool({"10.0.0.1": [10]})

    batch = measure(
        {"A": "host-ok"},
        0,
        resolver=static_resolver({"host-ok": ["10.0.0.1", "10.0.0.9"]}),
        prober_factory=pool,
        reporter=reporter,
    )

    assert [result.status for result in batch.results] == [PingStatus.FAILURE] * 2
    assert pool.calls == []


def test_no_ipv4_addresses_produces_no_results(reporter):
    pool = ProberPool({"10.0.0.1": [5]})

    batch = measure(
        {"V6": "v6only.example", "A": "host-ok"},
        1,
        resolver=static_resolver({"v6only.example": [], "host-ok": ["10.0.0.1"]}),
        prober_factory=pool,
        reporter=reporter,
    )

    assert [result.host_cluster_name for result in batch.results] == ["A"]
    assert batch.unresolved == ["V6"]
    failure = ("resolve_failed", "V6", "v6only.example", "no IPv4 addresses")
    assert failure in reporter.events


def test_resolution_failure_continues_with_next_name(reporter):
    pool = ProberPool({"10.0.0.1": [5]})

    batch = measure(
        {"gone": "nowhere.invalid", "A": "host-ok"},
        1,
        resolver=static_resolver({"host-ok": ["10.0.0.1"]}),
        prober_factory=pool,
        reporter=reporter,
    )

    assert [result.host_cluster_name for result in batch.results] == ["A"]
    assert batch.unresolved == ["gone"]
    assert reporter.kinds()[:3] == ["starting", "resolving", "resolve_failed"]


def test_one_result_per_address_in_discovery_order(reporter):
    pool = ProberPool({"10.0.0.1": [40], "10.0.0.2": [None], "10.0.1.1": [5]})

    batch = measure(
        {"EU": "eu.example", "NA": "na.example"},
        1,
        resolver=static_resolver(
            {"eu.example": ["10.0.0.1", "10.0.0.2"], "na.example": ["10.0.1.1"]}
        ),
        prober_factory=pool,
        reporter=reporter,
    )

    assert [(r.host_cluster_name, r.ip_address) for r in batch.results] == [
        ("EU", "10.0.0.1"),
        ("EU", "10.0.0.2"),
        ("NA", "10.0.1.1"),
    ]
    assert len(pool.created) == 1
    assert pool.created[0].closed


def test_pooled_run_matches_sequential_order():
    script = {f"10.0.0.{i}": [50 - i, 60 - i] for i in range(1, 9)}
    servers = {f"S{i}": f"s{i}.example" for i in range(1, 9)}
    resolver = static_resolver({f"s{i}.example": [f"10.0.0.{i}"] for i in range(1, 9)})

    sequential = measure(
        servers, 2, resolver=resolver, prober_factory=ProberPool(script)
    )
    pool = ProberPool(script)
    pooled = measure(servers, 2, resolver=resolver, prober_factory=pool, workers=4)

    assert pooled.results == sequential.results
    assert len(pool.created) == 4
    assert all(prober.opened and prober.closed for prober in pool.created)
    for prober in pool.created:
        # every address is handled by a single prober
        for address in set(prober.calls):
            assert prober.calls.count(address) == 2


def test_missing_privileges_propagate(reporter):
    def factory():
        raise RawSocketPermissionError("Raw socket requires elevated privileges.")

    with pytest.raises(RawSocketPermissionError):
        measure(
            {"A": "host-ok"},
            1,
            resolver=static_resolver({"host-ok": ["10.0.0.1"]}),
            prober_factory=factory,
            reporter=reporter,
        )
    assert "resolving" not in reporter.kinds()


def test_interrupt_keeps_completed_results(reporter):
    pool = ProberPool({"10.0.0.1": [10, 20], "10.0.0.2": [15, KeyboardInterrupt()]})

    batch = measure(
        {"A": "a.example", "B": "b.example"},
        2,
        resolver=TWO_NAMES,
        prober_factory=pool,
        reporter=reporter,
    )

    assert batch.interrupted
    assert [result.host_cluster_name for result in batch.results] == ["A"]
    assert reporter.kinds()[-1] == "interrupted"
    assert pool.created[0].closed


class SignallingReporter(RecordingReporter):
    def __init__(self) -> None:
        super().__init__()
        self.first_done = threading.Event()

    def address_done(self, result):
        super().address_done(result)
        self.first_done.set()


def test_interrupt_in_worker_keeps_completed_results():
    reporter = SignallingReporter()

    def interrupt_after_first_address():
        assert reporter.first_done.wait(timeout=5)
        raise KeyboardInterrupt()

    pool = ProberPool(
        {"10.0.0.1": [10, 20], "10.0.0.2": [15, interrupt_after_first_address]}
    )

    batch = measure(
        {"A": "a.example", "B": "b.example"},
        2,
        resolver=TWO_NAMES,
        prober_factory=pool,
        reporter=reporter,
        workers=2,
    )

    assert batch.interrupted
    assert [result.host_cluster_name for result in batch.results] == ["A"]
    assert reporter.kinds()[-1] == "interrupted"
    assert len(pool.created) == 2
    assert all(prober.closed for prober in pool.created)


def test_pooled_workers_get_distinct_identifiers():
    pool = ProberPool({"10.0.0.1": [3], "10.0.0.2": [4]})

    measure(
        {"A": "a.example", "B": "b.example"},
        1,
        resolver=TWO_NAMES,
        prober_factory=pool,
        workers=3,
    )

    identifiers = [prober.identifier for prober in pool.created]
    assert len(pool.created) == 3
    assert len(set(identifiers)) == 3
    assert all(0 <= identifier <= 0xFFFF for identifier in identifiers)


def test_default_reporter_is_silent():
    batch = measure(
        {"A": "host-ok"},
        1,
        resolver=static_resolver({"host-ok": ["10.0.0.1"]}),
        prober_factory=ProberPool({"10.0.0.1": [3]}),
    )
    assert batch.successful[0].average_time == 3.0


def test_recording_reporter_sees_every_address():
    reporter = RecordingReporter()
    measure(
        {"A": "host-ok"},
        1,
        resolver=static_resolver({"host-ok": ["10.0.0.1", "10.0.0.2"]}),
        prober_factory=ProberPool({"10.0.0.1": [3], "10.0.0.2": [4]}),
        reporter=reporter,
    )
    assert [event for event in reporter.events if event[0] == "address_done"] == [
        ("address_done", "A", "10.0.0.1"),
        ("address_done", "A", "10.0.0.2"),
    ]
