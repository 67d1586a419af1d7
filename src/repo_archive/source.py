from __future__ import annotations

import stat
import tarfile
from typing import TYPE_CHECKING

from repo_archive.config import GZIP_MAGIC, Pipeline
from repo_archive.exceptions import ArchiveIOError, NotFoundError, UnsupportedOptionsError
from repo_archive.logging import logger

if TYPE_CHECKING:
    from pathlib import Path

    from repo_archive.settings import ArchiveOpts


def is_compressed_archive(path: Path) -> bool:
    """Check if a file is a gzip-compressed tar archive.

    The gzip magic bytes are checked first, then the first tar header is
    decoded. The file is opened on its own handle, so a later reader starts
    from the first byte.

    Args:
        path (Path): the file to probe

    Returns:
        bool: True if both the gzip and the tar headers are valid
    """
    try:
        with path.open("rb") as f:
            if f.read(len(GZIP_MAGIC)) != GZIP_MAGIC:
                return False
        # Opening decodes the first tar header.
        tarfile.open(path, mode="r:gz").close()
    except (tarfile.TarError, EOFError, OSError):
        return False
    return True


def classify_source(path: Path, opts: ArchiveOpts) -> Pipeline:
    """Decide which pipeline archives `path` and validate `opts` against it.

    - A directory accepts any options.
    - A gzip tar file is passed through untouched and accepts no options.
    - Any other regular file is archived alone and accepts no options.

    Args:
        path (Path): the path to archive
        opts (ArchiveOpts): the requested options

    Raises:
        NotFoundError: if `path` does not exist
        ArchiveIOError: if `path` cannot be inspected (permissions, symlink loops)
        UnsupportedOptionsError: if `opts.is_set()` for a non-directory source,
            or if `path` is neither a regular file nor a directory

    Returns:
        Pipeline: the pipeline to run
    """
    try:
        st = path.stat()
    except (FileNotFoundError, NotADirectoryError) as e:
        raise NotFoundError(path=path, message=f"{path}: no such file or directory") from e
    except OSError as e:
        raise ArchiveIOError(path=path, reason=str(e), message=f"{path}: {e}") from e

    if stat.S_ISDIR(st.st_mode):
        pipeline = Pipeline.DIRECTORY
    elif stat.S_ISREG(st.st_mode):
        pipeline = Pipeline.PASSTHROUGH if is_compressed_archive(path) else Pipeline.FILE
        if opts.is_set():
            raise UnsupportedOptionsError(
                path=path,
                pipeline=str(pipeline),
                message=f"{path}: options cannot be used when archiving a single file",
            )
    else:
        raise UnsupportedOptionsError(
            path=path,
            message=f"{path}: not a regular file or directory",
        )

    logger.info("source_classified", path=str(path), pipeline=str(pipeline))
    return pipeline
