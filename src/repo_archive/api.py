from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO

from repo_archive.config import Entry, Pipeline
from repo_archive.file_manipulation import apply_filters, merge_extra
from repo_archive.logging import logger, setup_logging
from repo_archive.output_construction import build_archive
from repo_archive.settings import ArchiveOpts, Settings
from repo_archive.source import classify_source
from repo_archive.stream import ArchiveStream, passthrough_stream, start_stream
from repo_archive.vcs import list_entries, select_lister

if TYPE_CHECKING:
    from os import PathLike

    from repo_archive.vcs import Lister


def archive(
    path: str | PathLike[str],
    opts: ArchiveOpts | None = None,
    *,
    settings: Settings | None = None,
) -> ArchiveStream:
    """Package `path` into a gzip-compressed tar stream.

    - A directory is listed (plain walk, or git/hg when `opts.vcs`), filtered
      with `opts.include` then `opts.exclude`, extended with `opts.extra` and
      archived on a background thread.
    - A regular file is archived alone under its base name, plus `opts.extra`.
    - A file that already is a gzip tar is returned byte for byte.

    Errors found before streaming starts are raised here. Errors found while
    streaming are recorded in the returned stream's `outcome`, which must be
    checked once the stream has been read to the end.

    Args:
        path (str | PathLike[str]): the file or directory to archive
        opts (ArchiveOpts | None): archive options; None means no options
        settings (Settings | None): runtime configuration; read from the
            environment when None

    Raises:
        NotFoundError: if `path` does not exist
        UnsupportedOptionsError: if restricting options are given for a file
        NoVCSError: if `opts.vcs` is set and no repository encloses `path`
        ArchiveIOError: if `path` cannot be inspected (permissions, symlink loops)

    Returns:
        ArchiveStream: the readable archive, with its outcome
    """
    opts = opts or ArchiveOpts()
    settings = settings or Settings.from_env()
    setup_logging(settings.log_file or None, settings.log_level)
    source = Path(path)
    pipeline = classify_source(source, opts)

    if pipeline is Pipeline.PASSTHROUGH:
        if opts.extra:
            logger.warning("extra_entries_ignored", path=str(source), count=len(opts.extra))
        return passthrough_stream(source)

    if pipeline is Pipeline.FILE:
        entries = [Entry(path=source.absolute(), rel=source.name)]

        def produce_file(writer: BinaryIO) -> None:
            build_archive(merge_extra(entries, opts.extra), writer, compresslevel=settings.compresslevel)

        return start_stream(pipeline, produce_file)

    root = source.resolve()
    lister = select_lister(root, opts, settings)

    def produce_directory(writer: BinaryIO) -> None:
        selected = collect_entries(root, lister, opts)
        build_archive(selected, writer, compresslevel=settings.compresslevel)

    return start_stream(pipeline, produce_directory)


def collect_entries(root: Path, lister: Lister, opts: ArchiveOpts) -> list[Entry]:
    """List, filter and extend the entries of a directory.

    Args:
        root (Path): the directory being archived
        lister (Lister): the lister producing candidate entries
        opts (ArchiveOpts): include/exclude patterns and extra files

    Returns:
        list[Entry]: the entries to write
    """
    candidates = list_entries(root, lister)
    kept = apply_filters(candidates, opts.include, opts.exclude)
    return merge_extra(kept, opts.extra)
