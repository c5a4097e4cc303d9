"""
Fetch, extract, aggregate and publish.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import logging
import sys
import time
from dataclasses import dataclass, field
from typing import Protocol, TextIO

from prefixagg.config import Config
from prefixagg.http.client import SourceFetcher
from prefixagg.ip.core import NetworkSet, aggregate, write_networks
from prefixagg.ip.extract import extract_networks
from prefixagg.publish.core import AtomicPublisher

logger = logging.getLogger(__name__)


class Fetcher(Protocol):
    """Anything that turns source identifiers into their text bodies, raising FetchError."""

    def fetch_all(self, sources: list[str]) -> list[str]:
        ...


@dataclass
class RunReport:
    """Statistics for one run."""
    destination: str
    sources: int = 0
    extracted: int = 0
    networks: NetworkSet = field(default_factory=NetworkSet)
    elapsed_ms: float = 0.0

    @property
    def published(self) -> int:
        return len(self.networks)

    @property
    def ipv4(self) -> int:
        return len(self.networks.ipv4)

    @property
    def ipv6(self) -> int:
        return len(self.networks.ipv6)

    @property
    def reduction_pct(self) -> float:
        if not self.extracted:
            return 0.0
        return (self.extracted - self.published) / self.extracted * 100


def fetcher_from_config(config: Config) -> SourceFetcher:
    return SourceFetcher(
        timeout=config.timeout,
        connect_timeout=config.connect_timeout,
        concurrency=config.concurrency,
        user_agent=config.user_agent,
    )


def collect(sources: list[str], fetcher: Fetcher, report: RunReport) -> NetworkSet:
    """Download every source and aggregate the networks found in them.

    Any fetch error propagates; nothing is aggregated from a partial download.
    """
    bodies = fetcher.fetch_all(sources)
    report.sources = len(bodies)

    networks = []
    for source, body in zip(sources, bodies):
        found = extract_networks(body)
        logger.debug(f"{source}: {len(found)} networks")
        networks.extend(found)
    report.extracted = len(networks)

    report.networks = aggregate(networks)
    logger.info(
        f"Aggregated {report.extracted} networks from {report.sources} sources "
        f"into {report.published} ({report.ipv4} IPv4, {report.ipv6} IPv6)"
    )
    return report.networks


def run(config: Config, fetcher: Fetcher | None = None, stdout: TextIO | None = None) -> RunReport:
    """Run one aggregation as described by ``config``.

    For a file destination the staging file is created and the destination
    checked before anything is downloaded. Every failure aborts the run with
    the destination untouched.
    """
    fetcher = fetcher or fetcher_from_config(config)
    report = RunReport(destination=str(config.destination))
    start = time.monotonic()

    if config.is_stdout:
        nets = collect(config.sources, fetcher, report)
        write_networks(stdout or sys.stdout, nets)
    else:
        with AtomicPublisher(config.destination, config.staging_dir) as publisher:
            nets = collect(config.sources, fetcher, report)
            publisher.commit(nets)

    report.elapsed_ms = (time.monotonic() - start) * 1000
    return report
