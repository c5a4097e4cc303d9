"""
Exceptions raised by prefixagg.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""


class PrefixAggError(Exception):
    """Base exception for prefixagg errors."""
    pass


class FetchError(PrefixAggError):
    """A source could not be retrieved."""

    def __init__(self, source: str, message: str, status_code: int | None = None):
        super().__init__(f"{source}: {message}")
        self.source = source
        self.status_code = status_code


class FetchConnectionError(FetchError):
    """The request never produced a response (DNS, connect, TLS, timeout)."""
    pass


class FetchStatusError(FetchError):
    """The server answered with a non-success status."""
    pass


class PublishError(PrefixAggError):
    """The destination could not be replaced."""
    pass


class StagingUnavailable(PublishError):
    """No writable location for the staging file."""
    pass


class UnsafeDestination(PublishError):
    """The destination path is a symbolic link."""
    pass


class MetadataError(PublishError):
    """Reading or applying ownership/permissions failed."""
    pass


class ConfigError(PrefixAggError):
    """A configuration value could not be parsed."""
    pass


class CrossDeviceWarning(UserWarning):
    """Staging file and destination are on different filesystems."""
    pass
