"""CLI entry point for running wotping as a module."""

import sys

from ._console import console
from .main import EXIT_INTERRUPTED, main as _main


def main() -> None:
    try:
        sys.exit(_main())
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(EXIT_INTERRUPTED)


if __name__ == "__main__":
    main()
