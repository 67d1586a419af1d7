"""Entry listers: plain filesystem walk, git and mercurial."""

from __future__ import annotations

import os
import subprocess  # noqa: S404
from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, ClassVar

from repo_archive.config import GIT_DIR, HG_DIR, Entry
from repo_archive.exceptions import NoVCSError, VCSToolError
from repo_archive.file_manipulation import build_entries, relpath, walk_tree
from repo_archive.logging import logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from repo_archive.settings import ArchiveOpts, Settings


class Lister(ABC):
    """Produce the candidate entries of a directory."""

    name: ClassVar[str] = ""

    @abstractmethod
    def list_entries(self, root: Path) -> list[Entry]:
        """List the entries under `root`, relative to it."""


class PlainWalkLister(Lister):
    """Every file and directory under the root, minus VCS control directories."""

    name = "plain"

    def list_entries(self, root: Path) -> list[Entry]:
        files, dirs = walk_tree(root)
        return build_entries(root, files, dirs)


class VCSLister(Lister):
    """Delegate listing to a VCS command run at the repository top level.

    The command prints NUL-separated paths relative to the repository root;
    they are rebased onto the directory being archived.
    """

    control_dir: ClassVar[str] = ""

    def __init__(self, repo: Path, executable: str) -> None:
        self.repo = repo
        self.executable = executable

    @abstractmethod
    def command(self) -> list[str]:
        """Build the listing command line."""

    def environment(self) -> dict[str, str] | None:
        return None

    def run(self) -> str:
        """Run the listing command and return its decoded stdout.

        Output is read as bytes and decoded without newline translation, so
        names containing carriage returns or newlines reach `parse` intact.
        """
        cmd = self.command()
        printable = " ".join(cmd)
        try:
            out = subprocess.run(  # noqa: S603
                cmd,
                cwd=str(self.repo),
                env=self.environment(),
                capture_output=True,
                check=False,
            )
        except OSError as e:
            raise VCSToolError(
                command=printable,
                returncode=-1,
                stderr=str(e),
                message=f"{printable}: {e}",
            ) from e
        stdout = out.stdout.decode("utf-8", errors="surrogateescape")
        stderr = out.stderr.decode("utf-8", errors="replace")
        if out.returncode != 0:
            logger.warning("vcs_command_failed", command=printable, returncode=out.returncode)
            raise VCSToolError(
                command=printable,
                returncode=out.returncode,
                stdout=stdout,
                stderr=stderr,
                message=f"{printable} exited with status {out.returncode}: {stderr.strip()}",
            )
        return stdout

    def parse(self, stdout: str) -> list[str]:
        """Split and validate the NUL-separated repository-relative paths printed by the tool.

        Names are kept as printed, newlines included; only a lone newline after the last NUL
        is dropped.

        Raises:
            VCSToolError: if a path is absolute or escapes the repository.
        """
        items = stdout.split("\0")
        if items and items[-1] in {"", "\n"}:
            items.pop()
        paths: list[str] = []
        for item in items:
            if not item:
                continue
            pure = PurePosixPath(item)
            if pure.is_absolute() or ".." in pure.parts:
                raise VCSToolError(
                    command=" ".join(self.command()),
                    stdout=stdout,
                    message=f"unexpected path in {self.name} output: {item!r}",
                )
            paths.append(pure.as_posix())
        return paths

    def list_files(self, root: Path) -> list[str]:
        """Files under `root` known to the VCS, relative to `root`."""
        prefix = relpath(root, self.repo)
        prefix = "" if prefix == "." else prefix + "/"
        files: list[str] = []
        for rel in self.parse(self.run()):
            if not rel.startswith(prefix):
                continue
            local = rel[len(prefix) :]
            if not (root / local).is_file():
                logger.warning("skipping_missing_vcs_file", path=local, vcs=self.name)
                continue
            files.append(local)
        return files

    def list_entries(self, root: Path) -> list[Entry]:
        return build_entries(root, self.list_files(root))


class GitLister(VCSLister):
    """Tracked files plus untracked files git does not ignore."""

    name = "git"
    control_dir = GIT_DIR

    def command(self) -> list[str]:
        return [self.executable, "ls-files", "-z", "--cached", "--others", "--exclude-standard"]


class MercurialLister(VCSLister):
    """Clean, modified, added and unknown (not ignored) files."""

    name = "hg"
    control_dir = HG_DIR

    def command(self) -> list[str]:
        return [
            self.executable,
            "status",
            "--modified",
            "--added",
            "--clean",
            "--unknown",
            "--no-status",
            "--print0",
        ]

    def environment(self) -> dict[str, str] | None:
        return {**os.environ, "HGPLAIN": "1"}


VCS_LISTERS: Sequence[type[VCSLister]] = (GitLister, MercurialLister)


def detect_vcs(root: Path, settings: Settings) -> VCSLister:
    """Find the repository enclosing `root` by searching upwards for a control directory.

    The nearest repository wins; git is checked before mercurial at each level.

    Args:
        root (Path): the directory being archived
        settings (Settings): provides the VCS executables

    Raises:
        NoVCSError: if neither `.git` nor `.hg` is found in `root` or its parents.

    Returns:
        VCSLister: a lister bound to the repository top level
    """
    root = root.resolve()
    executables = {GitLister: settings.git_executable, MercurialLister: settings.hg_executable}
    for candidate in (root, *root.parents):
        for lister_cls in VCS_LISTERS:
            if (candidate / lister_cls.control_dir).exists():
                logger.info("vcs_detected", vcs=lister_cls.name, repo=str(candidate))
                return lister_cls(candidate, executables[lister_cls])
    raise NoVCSError(folder=root, message=f"{root}: no git or mercurial repository found")


def select_lister(root: Path, opts: ArchiveOpts, settings: Settings) -> Lister:
    """Pick the lister for a directory: a VCS lister when `opts.vcs`, else a plain walk."""
    if opts.vcs:
        return detect_vcs(root, settings)
    return PlainWalkLister()


def list_entries(root: Path, lister: Lister) -> list[Entry]:
    """Run `lister` on `root` and log how many entries it produced."""
    entries = lister.list_entries(root)
    logger.info("entries_listed", lister=lister.name, root=str(root), count=len(entries))
    return entries
