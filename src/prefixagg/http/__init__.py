"""
HTTP Sources Module

Downloads the prefix lists to aggregate.
"""

from prefixagg.http.client import (
    FetchResult,
    SourceFetcher,
    validate_source,
)

__all__ = [
    "FetchResult",
    "SourceFetcher",
    "validate_source",
]
