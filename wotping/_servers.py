"""Server map construction: merging sources, loading JSON files, example scaffolding."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence, Union

from rich.markup import escape

from ._config import EXAMPLE_SERVER_LISTS
from ._console import logger
from ._exceptions import ConfigurationError, ServerFileError
from ._models import ServerEntry

PathLike = Union[str, Path]


def split_server_list(values: Iterable[str]) -> list[str]:
    """Flatten comma-separated ``--server-list`` values, dropping blanks."""
    servers: list[str] = []
    for value in values:
        servers.extend(part.strip() for part in value.split(",") if part.strip())
    return servers


def merge_servers(pairs: Iterable[tuple[str, str]]) -> dict[str, str]:
    """Apply ``(name, url)`` pairs in order; a later pair overwrites an earlier name.

    Pairs with a blank name or url are ignored.
    """
    servers: dict[str, str] = {}
    for name, url in pairs:
        name = (name or "").strip()
        url = (url or "").strip()
        if name and url:
            servers[name] = url
    return servers


def _field(obj: dict[str, Any], name: str) -> Any:
    """Case-insensitive key lookup."""
    if name in obj:
        return obj[name]
    for key, value in obj.items():
        if isinstance(key, str) and key.lower() == name.lower():
            return value
    return None


def parse_server_list(data: Any) -> list[ServerEntry]:
    """Validate a decoded ``{"servers": [{"name", "url"}, ...]}`` document."""
    if not isinstance(data, dict):
        raise ServerFileError("Expected a JSON object with a 'servers' field")
    raw_servers = _field(data, "servers")
    if raw_servers is None:
        return []
    if not isinstance(raw_servers, list):
        raise ServerFileError("'servers' must be an array")

    entries: list[ServerEntry] = []
    for index, item in enumerate(raw_servers):
        if not isinstance(item, dict):
            raise ServerFileError(f"servers[{index}] must be an object")
        name = _field(item, "name")
        url = _field(item, "url")
        if not isinstance(name, str) or not isinstance(url, str):
            logger.debug("Skipping servers[%d]: name or url missing", index)
            continue
        if name.strip() and url.strip():
            entries.append(ServerEntry(name=name.strip(), url=url.strip()))
        else:
            logger.debug("Skipping servers[%d]: blank name or url", index)
    return entries


def load_server_file(path: PathLike) -> list[ServerEntry]:
    path = Path(path)
    if not path.is_file():
        raise ServerFileError(f"Server list file not found: {path}")
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ServerFileError(f"Cannot read {path}: {exc}") from exc
    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise ServerFileError(f"Malformed JSON in {path}: {exc}") from exc
    return parse_server_list(data)


def collect_servers(
    server_list: Sequence[str] = (),
    server_list_file: Optional[PathLike] = None,
) -> dict[str, str]:
    """Build the server map: command-line names first, then the file's entries.

    File problems are logged as warnings; :class:`ConfigurationError` is raised
    only when neither source contributed a server.
    """
    pairs: list[tuple[str, str]] = []

    servers = split_server_list(server_list)
    if servers:
        logger.info(
            "[cyan]Processing %d servers from command line[/cyan]", len(servers)
        )
        pairs.extend((server, server) for server in servers)

    if server_list_file is not None:
        logger.info(
            "[cyan]Processing servers from %s[/cyan]",
            escape(Path(server_list_file).name),
        )
        try:
            entries = load_server_file(server_list_file)
        except ServerFileError as exc:
            logger.warning(
                "Failed to process server list file: %s", escape(str(exc))
            )
        else:
            if entries:
                pairs.extend((entry.name, entry.url) for entry in entries)
                logger.info("Added %d servers from JSON file", len(entries))
            else:
                logger.warning("No servers found in JSON file or invalid format")

    merged = merge_servers(pairs)
    if not merged:
        raise ConfigurationError("No valid servers provided")
    return merged


def initialize_json_files(folder: PathLike) -> list[Path]:
    """Write the example server lists into ``folder``, keeping existing files.

    Returns the paths that were created.
    """
    folder = Path(folder)
    logger.info("Initializing JSON files in: %s", escape(str(folder)))
    created: list[Path] = []
    try:
        if not folder.is_dir():
            folder.mkdir(parents=True, exist_ok=True)
            logger.info("Created directory: %s", escape(str(folder)))

        for filename, servers in EXAMPLE_SERVER_LISTS.items():
            path = folder / filename
            if path.exists():
                logger.info("File already exists: %s", escape(str(path)))
                continue
            document = {
                "servers": [ServerEntry(name, url).to_dict() for name, url in servers]
            }
            path.write_text(json.dumps(document, indent=2) + "\n", encoding="utf-8")
            created.append(path)
            logger.info("Created: %s", escape(str(path)))
    except OSError as exc:
        logger.error("Error initializing JSON files: %s", escape(str(exc)))
        raise

    logger.info("JSON files initialization completed successfully.")
    return created
