from __future__ import annotations

import fnmatch
import os
from pathlib import Path
from typing import TYPE_CHECKING

from repo_archive.config import VCS_METADATA_DIRS, Entry
from repo_archive.logging import logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence


def relpath(path: Path, root: Path) -> str:
    """Send the relative path of path from root.

    Args:
        path (Path): the path to "relativise"
        root (Path): the root to relativise from

    Returns:
        str: the relative path from root to path, with POSIX separators.
            If path is not under root, returns the original path as a string.
    """
    try:
        return str(path.relative_to(root)).replace("\\", "/")
    except ValueError:
        return str(path)


def walk_tree(root: Path) -> tuple[list[str], list[str]]:
    """Walk the directory tree rooted at `root`.

    VCS control directories (`.git`, `.hg`) are pruned at every depth.

    Args:
        root (Path): the root directory to walk

    Returns:
        tuple[list[str], list[str]]: relative paths of the files and of the
            directories found under `root` (the root itself excluded)
    """
    files: list[str] = []
    dirs_found: list[str] = []

    def on_error(err: OSError) -> None:
        raise err

    for current, dirs, names in os.walk(root, onerror=on_error):
        dirs[:] = sorted(d for d in dirs if d not in VCS_METADATA_DIRS)
        here = Path(current)
        dirs_found.extend(relpath(here / d, root) for d in dirs)
        for name in names:
            p = here / name
            if p.is_file():
                files.append(relpath(p, root))
            else:
                logger.warning("skipping_non_regular_file", path=str(p))
    return files, dirs_found


def parent_dirs(rel: str) -> list[str]:
    """List every ancestor directory of a relative path.

    Args:
        rel (str): a forward-slash relative path (e.g. "a/b/c.txt")

    Returns:
        list[str]: the ancestors, outermost first (e.g. ["a", "a/b"])
    """
    parts = rel.split("/")[:-1]
    return ["/".join(parts[: i + 1]) for i in range(len(parts))]


def build_entries(root: Path, files: Iterable[str], dirs: Iterable[str] = ()) -> list[Entry]:
    """Turn relative file paths into entries, adding one entry per parent directory.

    Args:
        root (Path): the directory the paths are relative to
        files (Iterable[str]): relative file paths
        dirs (Iterable[str]): relative directory paths to emit even when empty

    Returns:
        list[Entry]: directory and file entries, sorted by relative path
    """
    file_set = set(files)
    dir_set = set(dirs)
    for rel in file_set:
        dir_set.update(parent_dirs(rel))
    entries = [Entry(path=root / d, rel=d, is_dir=True) for d in dir_set]
    entries.extend(Entry(path=root / f, rel=f) for f in file_set)
    return sorted(entries, key=lambda e: e.rel)


def match_any_glob(rel: str, globs: Sequence[str]) -> bool:
    """Check if a relative path matches any of the provided glob patterns.

    Args:
        rel (str): the relative path to check
        globs (Sequence[str]): the glob patterns to match against

    Returns:
        bool: True if `rel` matches any pattern in `globs`, False otherwise
    """
    return any(fnmatch.fnmatch(rel, g) for g in globs)


def apply_filters(
    entries: Sequence[Entry],
    includes: Sequence[str],
    excludes: Sequence[str],
) -> list[Entry]:
    """Apply include then exclude globbing to a list of entries.

    - If `includes` is provided, an entry must match at least one include pattern.
    - An entry matching any exclude pattern is removed afterwards.
    - Directories are matched by their path without trailing slash; a
      directory and its contents are separate entries (use "dir" and "dir/*").

    Args:
        entries (Sequence[Entry]): the candidate entries
        includes (Sequence[str]): glob patterns to include (relative to the root)
        excludes (Sequence[str]): glob patterns to exclude (relative to the root)

    Returns:
        list[Entry]: the surviving entries, in their original order
    """
    if not includes and not excludes:
        return list(entries)

    out: list[Entry] = []
    for entry in entries:
        if includes and not match_any_glob(entry.rel, includes):
            continue
        if excludes and match_any_glob(entry.rel, excludes):
            continue
        out.append(entry)
    logger.info("entries_filtered", before=len(entries), after=len(out))
    return out


def merge_extra(entries: Sequence[Entry], extra: Mapping[str, Path]) -> list[Entry]:
    """Add the extra files to the entry list.

    An extra file wins over every walked entry it collides with:

    - the entry with the same archive name;
    - when that entry is a directory, everything below it as well;
    - a walked file sitting where one of the extra's parent directories goes.

    Args:
        entries (Sequence[Entry]): the filtered entries
        extra (Mapping[str, Path]): archive-relative name -> source file

    Returns:
        list[Entry]: the merged entries
    """
    if not extra:
        return list(entries)
    parents = {p for name in extra for p in parent_dirs(name)}

    def collides(entry: Entry) -> bool:
        if entry.rel in extra or any(entry.rel.startswith(name + "/") for name in extra):
            return True
        return not entry.is_dir and entry.rel in parents

    out = [e for e in entries if not collides(e)]
    if len(out) != len(entries):
        logger.info("extra_entries_replaced", count=len(entries) - len(out))
    out.extend(Entry(path=Path(src).absolute(), rel=name) for name, src in extra.items())
    return out
