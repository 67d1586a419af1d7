from __future__ import annotations

import gzip
import os
import stat
import tarfile
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO

from repo_archive.exceptions import ArchiveIOError
from repo_archive.logging import logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from repo_archive.config import Entry


def make_tarinfo(entry: Entry) -> tarfile.TarInfo:
    """Build the tar header of an entry from its source metadata.

    Symlinks are followed: the header describes the target.

    Args:
        entry (Entry): the entry to describe

    Returns:
        tarfile.TarInfo: a directory header (size 0) or a regular file header
    """
    st = os.stat(entry.path)
    info = tarfile.TarInfo(entry.arcname)
    info.mode = stat.S_IMODE(st.st_mode)
    info.mtime = int(st.st_mtime)
    if entry.is_dir:
        info.type = tarfile.DIRTYPE
        info.size = 0
    else:
        info.type = tarfile.REGTYPE
        info.size = st.st_size
    return info


def build_archive(entries: Sequence[Entry], fileobj: BinaryIO, *, compresslevel: int = 9) -> int:
    """Write the entries as a gzip-compressed tar stream into `fileobj`.

    The tar stream ("w|") is written through a gzip layer: `fileobj` only
    needs a `write` method and nothing is buffered beyond tarfile's record
    size. The gzip header carries no timestamp, so identical inputs give
    identical bytes.

    Args:
        entries (Sequence[Entry]): the entries to archive, in any order
        fileobj (BinaryIO): the writable destination
        compresslevel (int): gzip compression level (0-9)

    Raises:
        ArchiveIOError: if a source cannot be read or the destination cannot be written

    Returns:
        int: the number of entries written
    """
    ordered = sorted(entries, key=lambda e: e.rel)
    current: Path | None = None
    try:
        with (
            gzip.GzipFile(fileobj=fileobj, mode="wb", compresslevel=compresslevel, mtime=0) as gz,
            tarfile.open(fileobj=gz, mode="w|") as tar,
        ):
            for entry in ordered:
                current = entry.path
                info = make_tarinfo(entry)
                if entry.is_dir:
                    tar.addfile(info)
                    current = None
                    continue
                with entry.path.open("rb") as f:
                    tar.addfile(info, f)
                current = None
    except OSError as e:
        raise ArchiveIOError(
            path=current or Path(),
            reason=str(e),
            message=f"{current}: {e}" if current else f"writing archive: {e}",
        ) from e
    logger.info("archive_written", entries=len(ordered))
    return len(ordered)
