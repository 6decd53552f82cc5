"""IPv4 resolver adapter."""

from __future__ import annotations

import socket

from ._console import logger
from ._exceptions import ResolveError


def valid_ipv4(host: str) -> bool:
    try:
        socket.inet_pton(socket.AF_INET, host)
        return True
    except OSError:
        return False


def resolve_ipv4(host: str) -> list[str]:
    """Return the IPv4 addresses of ``host`` without duplicates, in resolver order.

    Raises :class:`ResolveError` when the lookup fails. A host that only has
    addresses of other families resolves to an empty list.
    """
    if valid_ipv4(host):
        return [host]
    try:
        _, _, addresses = socket.gethostbyname_ex(host)
    except (OSError, UnicodeError) as exc:
        raise ResolveError(host, str(exc)) from exc

    unique = list(dict.fromkeys(addr for addr in addresses if valid_ipv4(addr)))
    logger.debug("Resolved %s to %s", host, ", ".join(unique) or "nothing")
    return unique
