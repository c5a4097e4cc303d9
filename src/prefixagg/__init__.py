"""
prefixagg - IP prefix list aggregation and publishing

Downloads plain-text lists of IP network prefixes, aggregates them into the
minimal equivalent set of CIDR blocks and atomically replaces a destination
file with the result, preserving its ownership and permissions.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

__version__ = "0.1.0"
__author__ = "DNS Science.io"
__copyright__ = "Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company"
