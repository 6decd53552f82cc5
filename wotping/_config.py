"""Defaults, environment overrides and the bundled example server lists."""

from __future__ import annotations

import os
from typing import Optional

DEFAULT_PING_COUNT = 4
DEFAULT_WORKERS = 1
PROBE_TIMEOUT = 1.0  # seconds, per probe

ENV_PING_COUNT = "WOTPING_PING_COUNT"
ENV_SERVER_LIST = "WOTPING_SERVER_LIST"
ENV_SERVER_LIST_FILE = "WOTPING_SERVER_LIST_FILE"
ENV_WORKERS = "WOTPING_WORKERS"

EXAMPLE_SERVER_LISTS: dict[str, list[tuple[str, str]]] = {
    "serverListMirTankov.json": [
        ("LESTA_RU-1", "login.p1.tanki.su"),
        ("LESTA_RU-2", "login.p2.tanki.su"),
        ("LESTA_RU-4", "login.p4.tanki.su"),
        ("LESTA_RU-6", "login.p6.tanki.su"),
        ("LESTA_RU-8", "login.p8.tanki.su"),
        ("LESTA_RU-9", "login.p9.tanki.su"),
    ],
    "serverListWoT.json": [
        ("WOT_EU1", "login.p1.worldoftanks.eu"),
        ("WOT_EU2", "login.p2.worldoftanks.eu"),
        ("WOT_EU3", "login.p3.worldoftanks.eu"),
        ("WOT_North_America_Central", "wotna3.login.wargaming.net"),
        ("WOT_South_America_Brazil", "wotna4.login.wargaming.net"),
    ],
}


def env_int(name: str, default: int) -> int:
    """Read an integer from the environment, falling back to ``default``."""
    value = os.getenv(name, "").strip()
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def env_str(name: str) -> Optional[str]:
    value = os.getenv(name, "").strip()
    return value or None
