"""
Atomic, metadata-preserving replacement of the destination file.

The aggregated list is written to a staging file, given the destination's
owner and permissions, flushed to disk and renamed over the destination in
a single rename(2). Readers see either the old file or the new one, never a
partial write, and a failed run leaves the old file untouched.

Only one writer per destination is supported; concurrent runs against the
same path are not coordinated and the last rename wins.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import logging
import os
import stat
import sys
import tempfile
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO

from prefixagg.config import STDOUT_MARKER
from prefixagg.errors import (
    CrossDeviceWarning,
    MetadataError,
    PublishError,
    StagingUnavailable,
    UnsafeDestination,
)
from prefixagg.ip.core import NetworkSet, write_networks

logger = logging.getLogger(__name__)

STAGING_PREFIX = ".prefixagg-"
STAGING_SUFFIX = ".tmp"


def default_file_mode() -> int:
    """Permission bits a newly created file would get under the current umask."""
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


class StagingFile:
    """A uniquely named temporary file that is either renamed into place or removed."""

    def __init__(self, path: Path, fd: int):
        self.path = path
        self.file: TextIO = os.fdopen(fd, "w", encoding="utf-8", newline="\n")
        self.persisted = False

    @classmethod
    def create(cls, directory: Path | None = None) -> "StagingFile":
        """Create a staging file in ``directory`` (system temp dir if None)."""
        fd, name = tempfile.mkstemp(prefix=STAGING_PREFIX, suffix=STAGING_SUFFIX, dir=directory)
        return cls(Path(name), fd)

    @property
    def fd(self) -> int:
        return self.file.fileno()

    def stat(self) -> os.stat_result:
        return os.fstat(self.fd)

    def write(self, text: str) -> None:
        """Write content and force it to stable storage."""
        self.file.write(text)
        self.file.flush()
        os.fsync(self.fd)

    def persist(self, destination: Path) -> None:
        """Rename onto ``destination``, then flush the renamed file."""
        os.replace(self.path, destination)
        self.persisted = True
        os.fsync(self.fd)
        self.file.close()

    def discard(self) -> None:
        """Close and remove the file unless it was renamed into place."""
        if not self.file.closed:
            self.file.close()
        if not self.persisted:
            self.path.unlink(missing_ok=True)
            logger.debug(f"Removed staging file {self.path}")

    def __enter__(self) -> "StagingFile":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.discard()

    def __repr__(self) -> str:
        return f"StagingFile({str(self.path)!r}, persisted={self.persisted})"


def create_staging_file(destination: Path, staging_dir: Path | None = None) -> StagingFile:
    """Create the staging file, preferably on the destination's filesystem.

    An explicit ``staging_dir`` is used as given. Otherwise the destination's
    directory is tried first and the system temp directory second.

    Raises:
        StagingUnavailable: no candidate directory accepted a new file
    """
    if staging_dir is not None:
        candidates: list[Path | None] = [Path(staging_dir)]
    else:
        candidates = [Path(destination).parent, None]

    failures = []
    for directory in candidates:
        try:
            staging = StagingFile.create(directory)
        except OSError as e:
            where = directory if directory is not None else tempfile.gettempdir()
            logger.debug(f"Cannot create staging file in {where}: {e}")
            failures.append(f"{where}: {e.strerror or e}")
            continue
        logger.debug(f"Staging file {staging.path}")
        return staging

    raise StagingUnavailable(f"Failed to open temporary file ({'; '.join(failures)})")


@dataclass(frozen=True)
class PublishTarget:
    """Destination path and the metadata it had when the run started."""
    path: Path
    exists: bool
    is_symlink: bool = False
    is_regular: bool = False
    uid: int | None = None
    gid: int | None = None
    mode: int | None = None
    # Device of the destination, or of its directory when it does not exist yet
    dev: int | None = None

    @classmethod
    def capture(cls, path: Path) -> "PublishTarget":
        """Read the destination's status without following symlinks.

        Raises:
            MetadataError: the status could not be read
        """
        path = Path(path)
        try:
            st = os.lstat(path)
        except FileNotFoundError:
            try:
                parent_dev = os.stat(path.parent).st_dev
            except OSError:
                parent_dev = None
            return cls(path=path, exists=False, dev=parent_dev)
        except OSError as e:
            raise MetadataError(f"Cannot read status of {path}: {e}") from e

        return cls(
            path=path,
            exists=True,
            is_symlink=stat.S_ISLNK(st.st_mode),
            is_regular=stat.S_ISREG(st.st_mode),
            uid=st.st_uid,
            gid=st.st_gid,
            mode=stat.S_IMODE(st.st_mode),
            dev=st.st_dev,
        )

    def check_safe(self) -> None:
        """Refuse destinations that a rename would not replace as a plain file.

        Raises:
            UnsafeDestination: the destination is a symlink or not a regular file
        """
        if self.is_symlink:
            raise UnsafeDestination(f"Destination {self.path} is a symbolic link; refusing to write through it")
        if self.exists and not self.is_regular:
            raise UnsafeDestination(f"Destination {self.path} is not a regular file")


def check_same_device(staging: StagingFile, target: PublishTarget) -> bool:
    """Warn with CrossDeviceWarning if staging file and destination are on different filesystems.

    Returns True when both are on the same device (or the destination's device is unknown).
    """
    staging_dev = staging.stat().st_dev
    if target.dev is None or target.dev == staging_dev:
        return True
    warnings.warn(
        f"Staging file {staging.path} and destination {target.path} are on different filesystems; "
        "the final rename cannot be atomic and may fail",
        CrossDeviceWarning,
        stacklevel=2,
    )
    return False


def copy_ownership(staging: StagingFile, target: PublishTarget) -> None:
    """Give the staging file the destination's owner and group. Must run before writing."""
    if not target.exists:
        return
    try:
        st = staging.stat()
        if (st.st_uid, st.st_gid) != (target.uid, target.gid):
            logger.debug(f"chown {staging.path} {target.uid}:{target.gid}")
            os.fchown(staging.fd, target.uid, target.gid)
    except OSError as e:
        raise MetadataError(f"Cannot set owner {target.uid}:{target.gid} on {staging.path}: {e}") from e


def copy_permissions(staging: StagingFile, target: PublishTarget) -> None:
    """Give the staging file the destination's permission bits. Must run after writing.

    A destination that did not exist gets the mode a fresh file would get under the umask.
    """
    mode = target.mode if target.exists else default_file_mode()
    try:
        if stat.S_IMODE(staging.stat().st_mode) != mode:
            logger.debug(f"chmod {staging.path} {mode:o}")
            os.fchmod(staging.fd, mode)
    except OSError as e:
        raise MetadataError(f"Cannot set mode {mode:o} on {staging.path}: {e}") from e


def sync_directory(directory: Path) -> None:
    """fsync a directory so a rename inside it is durable."""
    fd = os.open(directory, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


class AtomicPublisher:
    """
    Stages and atomically publishes an aggregated network list.

    The staging file is created (and the destination inspected) on entry, so
    setup problems surface before any expensive work:

        with AtomicPublisher(path) as publisher:
            nets = build_networks()
            publisher.commit(nets)

    Leaving the block without a successful commit removes the staging file.
    """

    def __init__(self, destination: Path | str, staging_dir: Path | str | None = None):
        self.destination = Path(destination)
        self.staging_dir = Path(staging_dir) if staging_dir is not None else None
        self.staging: StagingFile | None = None
        self.target: PublishTarget | None = None
        self.same_device: bool = True

    def open(self) -> None:
        """Create the staging file, capture destination metadata and run safety checks."""
        self.staging = create_staging_file(self.destination, self.staging_dir)
        try:
            self.target = PublishTarget.capture(self.destination)
            self.target.check_safe()
            self.same_device = check_same_device(self.staging, self.target)
        except BaseException:
            self.discard()
            raise

    def commit(self, nets: NetworkSet) -> None:
        """Write ``nets`` and rename the staging file over the destination.

        Raises:
            MetadataError: ownership or permissions could not be applied
            PublishError: writing, renaming or flushing failed
        """
        if self.staging is None or self.target is None:
            raise PublishError("Publisher is not open")

        copy_ownership(self.staging, self.target)

        try:
            self.staging.write(nets.to_text())
        except OSError as e:
            raise PublishError(f"Cannot write staging file {self.staging.path}: {e}") from e

        copy_permissions(self.staging, self.target)

        try:
            self.staging.persist(self.destination)
        except OSError as e:
            if self.staging.persisted:
                raise PublishError(f"Replaced {self.destination} but could not flush it: {e}") from e
            raise PublishError(f"Cannot rename {self.staging.path} to {self.destination}: {e}") from e

        try:
            sync_directory(self.destination.parent)
        except OSError as e:
            raise PublishError(f"Replaced {self.destination} but could not flush its directory: {e}") from e

        logger.info(f"Published {len(nets)} networks to {self.destination}")

    def discard(self) -> None:
        if self.staging is not None:
            self.staging.discard()

    def __enter__(self) -> "AtomicPublisher":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.discard()


def publish(
    nets: NetworkSet,
    destination: Path | str,
    staging_dir: Path | str | None = None,
    stream: TextIO | None = None,
) -> None:
    """Publish ``nets`` to ``destination``, or to ``stream`` (stdout) if destination is ``-``."""
    if str(destination) == STDOUT_MARKER:
        write_networks(stream or sys.stdout, nets)
        return

    with AtomicPublisher(destination, staging_dir) as publisher:
        publisher.commit(nets)
