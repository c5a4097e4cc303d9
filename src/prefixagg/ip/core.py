"""
Core IP/CIDR functionality.

Networks are kept as plain integers so that aggregation is exact bit
arithmetic; netaddr is only used to convert addresses to and from text.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

from dataclasses import dataclass
from typing import Iterable, Iterator, TextIO

from netaddr import AddrFormatError, IPAddress


ADDRESS_BITS = {4: 32, 6: 128}


@dataclass(frozen=True)
class Network:
    """An IPv4 or IPv6 network in canonical form (host bits zero)."""
    version: int
    value: int
    prefixlen: int

    def __post_init__(self):
        if self.version not in ADDRESS_BITS:
            raise ValueError(f"unknown IP version {self.version}")
        bits = ADDRESS_BITS[self.version]
        if not 0 <= self.prefixlen <= bits:
            raise ValueError(f"invalid prefix length /{self.prefixlen} for IPv{self.version}")
        if not 0 <= self.value < 1 << bits or self.value & ((1 << (bits - self.prefixlen)) - 1):
            raise ValueError(f"{self.value:#x}/{self.prefixlen} is not a canonical IPv{self.version} network")

    @classmethod
    def from_address(cls, address: int, prefixlen: int, version: int) -> "Network":
        """Build a network from any address inside it, masking off host bits."""
        bits = ADDRESS_BITS[version]
        if not 0 <= prefixlen <= bits:
            raise AddrFormatError(f"invalid prefix length /{prefixlen} for IPv{version}")
        host_bits = bits - prefixlen
        return cls(version, (address >> host_bits) << host_bits, prefixlen)

    @property
    def bits(self) -> int:
        return ADDRESS_BITS[self.version]

    @property
    def first(self) -> int:
        return self.value

    @property
    def last(self) -> int:
        return self.value | ((1 << (self.bits - self.prefixlen)) - 1)

    def contains(self, other: "Network") -> bool:
        """True if ``other`` lies entirely inside this network."""
        return (
            self.version == other.version
            and self.prefixlen <= other.prefixlen
            and self.first <= other.first
            and other.last <= self.last
        )

    def is_sibling(self, other: "Network") -> bool:
        """True if this network is the lower half and ``other`` the upper half of one block."""
        if self.version != other.version or self.prefixlen != other.prefixlen:
            return False
        if self.prefixlen == 0:
            return False
        half = 1 << (self.bits - self.prefixlen)
        return self.value & half == 0 and other.value == self.value | half

    def supernet(self) -> "Network":
        """The enclosing network one bit shorter."""
        if self.prefixlen == 0:
            raise ValueError(f"{self} has no supernet")
        return Network.from_address(self.value, self.prefixlen - 1, self.version)

    def __str__(self) -> str:
        return f"{IPAddress(self.value, self.version)}/{self.prefixlen}"


@dataclass(frozen=True)
class NetworkSet:
    """Aggregated, disjoint, sorted networks ready for publishing."""
    networks: tuple[Network, ...] = ()

    def __iter__(self) -> Iterator[Network]:
        return iter(self.networks)

    def __len__(self) -> int:
        return len(self.networks)

    def __getitem__(self, index: int) -> Network:
        return self.networks[index]

    def __contains__(self, item: object) -> bool:
        return item in self.networks

    @property
    def ipv4(self) -> tuple[Network, ...]:
        return tuple(net for net in self.networks if net.version == 4)

    @property
    def ipv6(self) -> tuple[Network, ...]:
        return tuple(net for net in self.networks if net.version == 6)

    def to_text(self) -> str:
        return format_networks(self.networks)


def parse_network(text: str) -> Network:
    """Parse ``address/prefixlen`` into a canonical Network.

    Host bits set beyond the prefix are masked off. Raises
    :class:`netaddr.AddrFormatError` for anything that is not a CIDR literal.
    """
    address, slash, prefix = text.partition("/")
    if not slash or not (prefix.isascii() and prefix.isdigit()):
        raise AddrFormatError(f"not a CIDR literal: {text!r}")
    ip = IPAddress(address)
    return Network.from_address(int(ip), int(prefix), ip.version)


def _aggregate_family(networks: Iterable[Network]) -> list[Network]:
    """Aggregate networks of a single address family.

    Input is swept in (address, prefixlen) order while the output is built on a
    stack of disjoint, ascending blocks. A network starting inside the top
    block is contained by it; a pushed network that completes its sibling is
    folded into the supernet, which may in turn complete the next one down.
    """
    stack: list[Network] = []
    for net in sorted(set(networks), key=lambda n: (n.value, n.prefixlen)):
        if stack and stack[-1].last >= net.first:
            continue
        stack.append(net)
        while len(stack) >= 2 and stack[-2].is_sibling(stack[-1]):
            stack.pop()
            stack.append(stack.pop().supernet())
    return stack


def aggregate(networks: Iterable[Network]) -> NetworkSet:
    """Merge networks into the minimal set of CIDR blocks covering the same addresses.

    IPv4 and IPv6 are aggregated independently; IPv4 sorts first.
    """
    by_version: dict[int, list[Network]] = {4: [], 6: []}
    for net in networks:
        by_version[net.version].append(net)
    return NetworkSet(tuple(_aggregate_family(by_version[4]) + _aggregate_family(by_version[6])))


def format_networks(networks: Iterable[Network]) -> str:
    """One CIDR per line with a single trailing newline.

    Empty input gives '' rather than a lone newline, so an empty result
    publishes an empty file.
    """
    return "".join(f"{net}\n" for net in networks)


def write_networks(stream: TextIO, networks: Iterable[Network]) -> None:
    """Write networks to a text stream and flush it."""
    stream.write(format_networks(networks))
    stream.flush()
