"""
Extraction of network literals from loosely formatted text.

Published prefix lists come with comments, headers, trailing annotations and
sometimes HTML around them. Every line is reduced to its leading run of
characters that can appear in a CIDR literal and whatever does not parse is
dropped.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import logging
import re

from netaddr import AddrFormatError

from prefixagg.ip.core import Network, parse_network

logger = logging.getLogger(__name__)

# Leading whitespace, then hex digits, dots, colons and slashes
CANDIDATE_PATTERN = re.compile(r"\s*([0-9A-Fa-f.:/]*)")


def candidate(line: str) -> str:
    """Strip a line down to the part that could be an IPv4 or IPv6 network.

    >>> candidate("    192.0.2.0/24 pelican")
    '192.0.2.0/24'
    """
    return CANDIDATE_PATTERN.match(line).group(1)


def extract_networks(text: str) -> list[Network]:
    """Find IPv4 and IPv6 networks in text, one per line, silently skipping everything else."""
    networks = []
    skipped = 0
    for line in text.split("\n"):
        try:
            networks.append(parse_network(candidate(line)))
        except (AddrFormatError, ValueError):
            skipped += 1
    logger.debug(f"Extracted {len(networks)} networks, skipped {skipped} lines")
    return networks
