"""Application wiring for one catalog indexing pass."""
from __future__ import annotations

import logging

from .services.runner import RunSummary, build_runner
from .settings import IndexerSettings

# The scheduler treats any exit as "run finished"; there is no success code.
EXIT_CODE = 1


def configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug else logging.WARNING)
    logging.getLogger("googleapiclient.discovery_cache").setLevel(logging.ERROR)


def run_once(settings: IndexerSettings | None = None) -> RunSummary | None:
    """Run every indexing stage once and return the summary.

    Returns ``None`` when the run could not be wired, e.g. because the cache
    URL is malformed.
    """

    settings = settings or IndexerSettings()
    configure_logging(settings.debug)
    try:
        runner = build_runner(settings)
    except Exception:
        logging.getLogger(__name__).exception("Failed to start the indexer")
        return None
    return runner.run()
