from ._aggregate import measure, probe_address
from ._exceptions import (
    ConfigurationError,
    RawSocketPermissionError,
    ResolveError,
    ServerFileError,
    WotPingError,
)
from ._icmp import Icmp
from ._models import Batch, PingResult, PingStatus, ProbeSample, ServerEntry
from ._report import ConsoleReporter, Reporter, optimal, rank, write_json
from ._resolver import resolve_ipv4
from ._servers import (
    collect_servers,
    initialize_json_files,
    load_server_file,
    merge_servers,
    split_server_list,
)
from .main import run

__all__ = [
    "Batch",
    "ConfigurationError",
    "ConsoleReporter",
    "Icmp",
    "PingResult",
    "PingStatus",
    "ProbeSample",
    "RawSocketPermissionError",
    "Reporter",
    "ResolveError",
    "ServerEntry",
    "ServerFileError",
    "WotPingError",
    "collect_servers",
    "initialize_json_files",
    "load_server_file",
    "measure",
    "merge_servers",
    "optimal",
    "probe_address",
    "rank",
    "resolve_ipv4",
    "run",
    "split_server_list",
    "write_json",
]
