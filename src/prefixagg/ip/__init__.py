"""
IP/CIDR Module

Parsing, extraction, aggregation and serialization of IPv4/IPv6 networks.
"""

from prefixagg.ip.core import (
    Network,
    NetworkSet,
    parse_network,
    aggregate,
    format_networks,
    write_networks,
)
from prefixagg.ip.extract import extract_networks

__all__ = [
    "Network",
    "NetworkSet",
    "parse_network",
    "aggregate",
    "format_networks",
    "write_networks",
    "extract_networks",
]
