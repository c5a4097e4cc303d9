"""
Publishing Module

Atomic, ownership- and permission-preserving replacement of the
destination file, with a plain stdout mode.
"""

from prefixagg.publish.core import (
    AtomicPublisher,
    PublishTarget,
    StagingFile,
    check_same_device,
    create_staging_file,
    publish,
)

__all__ = [
    "AtomicPublisher",
    "PublishTarget",
    "StagingFile",
    "check_same_device",
    "create_staging_file",
    "publish",
]
