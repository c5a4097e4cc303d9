import logging

import pytest

from prefixagg.errors import FetchConnectionError


class FakeFetcher:
    """Returns canned bodies keyed by source; unknown sources fail like a dead host."""

    def __init__(self, bodies: dict[str, str]):
        self.bodies = bodies
        self.requested: list[str] = []

    def fetch_all(self, sources: list[str]) -> list[str]:
        self.requested.extend(sources)
        results = []
        for source in sources:
            if source not in self.bodies:
                raise FetchConnectionError(source, "ConnectError: connection refused")
            results.append(self.bodies[source])
        return results


@pytest.fixture
def fake_fetcher():
    return FakeFetcher


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logging.captureWarnings(False)
    for name in ("prefixagg", "py.warnings"):
        logger = logging.getLogger(name)
        logger.handlers.clear()
        logger.propagate = True
        logger.setLevel(logging.NOTSET)
