"""Data types shared by the resolver, prober, aggregator and reporters."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Sequence


@dataclass(frozen=True)
class ServerEntry:
    name: str
    url: str

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "url": self.url}


@dataclass(frozen=True)
class ProbeSample:
    """Outcome of a single echo probe.

    ``rtt`` holds the round trip time in whole milliseconds when a reply
    arrived; otherwise it is ``None`` and ``error`` may describe why.
    """

    rtt: Optional[int] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.rtt is not None

    def __str__(self) -> str:
        if self.rtt is not None:
            return f"time={self.rtt} ms"
        if self.error:
            return f"Error: {self.error}"
        return "Request timed out."


class PingStatus(str, Enum):
    SUCCESS = "Success"
    FAILURE = "Failure"


@dataclass(frozen=True)
class PingResult:
    host_cluster_name: str
    ip_address: str
    status: PingStatus
    average_time: Optional[float] = None
    average_dispersion: Optional[float] = None
    sent: int = 0
    received: int = 0

    @classmethod
    def from_samples(
        cls,
        host_cluster_name: str,
        ip_address: str,
        samples: Sequence[int],
        *,
        sent: Optional[int] = None,
    ) -> "PingResult":
        """Build a result from the successful round trip times of one address."""
        sent = len(samples) if sent is None else sent
        if not samples:
            return cls(
                host_cluster_name=host_cluster_name,
                ip_address=ip_address,
                status=PingStatus.FAILURE,
                sent=sent,
                received=0,
            )
        return cls(
            host_cluster_name=host_cluster_name,
            ip_address=ip_address,
            status=PingStatus.SUCCESS,
            average_time=sum(samples) / len(samples),
            average_dispersion=float(max(samples) - min(samples)),
            sent=sent,
            received=len(samples),
        )

    @property
    def succeeded(self) -> bool:
        return self.status is PingStatus.SUCCESS

    @property
    def loss_percent(self) -> float:
        if not self.sent:
            return 0.0
        return ((self.sent - self.received) / self.sent) * 100

    def to_dict(self) -> dict[str, Any]:
        return {
            "hostClusterName": self.host_cluster_name,
            "ipAddress": self.ip_address,
            "status": self.status.value,
            "averageTime": self.average_time,
            "averageDispersion": self.average_dispersion,
            "sent": self.sent,
            "received": self.received,
        }

    def __str__(self) -> str:
        if self.average_time is None or self.average_dispersion is None:
            return f"{self.host_cluster_name} ({self.ip_address}): {self.status.value}"
        return (
            f"{self.host_cluster_name} ({self.ip_address}): {self.status.value}, "
            f"avg {self.average_time:.2f} ms, "
            f"dispersion {self.average_dispersion:.2f} ms"
        )


@dataclass
class Batch:
    """Everything one run measured, in discovery order."""

    results: list[PingResult] = field(default_factory=list)
    unresolved: list[str] = field(default_factory=list)
    interrupted: bool = False

    @property
    def successful(self) -> list[PingResult]:
        return [result for result in self.results if result.succeeded]
