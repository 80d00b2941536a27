"""Entry point for running one catalog indexing pass."""
from __future__ import annotations

import sys

from backend.indexer.app import EXIT_CODE, run_once


def main() -> None:
    """Index the remote library and exit with the scheduler's status code."""

    run_once()
    sys.exit(EXIT_CODE)


if __name__ == "__main__":  # pragma: no cover - manual entrypoint
    main()
