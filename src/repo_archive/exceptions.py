from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class ArchiveError(Exception):
    """Base exception for errors in the repo_archive module."""

    message: str = "Archiving failed."

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class NotFoundError(ArchiveError):
    """Raised when the path to archive does not exist."""

    path: Path = Path()
    message: str = "The path to archive does not exist."


@dataclass(frozen=True)
class UnsupportedOptionsError(ArchiveError):
    """Raised when archive options are given for a source that cannot honor them."""

    path: Path = Path()
    pipeline: str = ""
    message: str = "Archive options are not supported for this source."


@dataclass(frozen=True)
class NoVCSError(ArchiveError):
    """Raised when VCS mode is requested but no repository encloses the folder."""

    folder: Path = Path()
    message: str = "No git or mercurial repository found."


@dataclass(frozen=True)
class VCSToolError(ArchiveError):
    """Raised when a VCS command fails or returns output that cannot be used."""

    command: str = ""
    returncode: int = 0
    stdout: str = ""
    stderr: str = ""
    message: str = "The VCS command failed."


@dataclass(frozen=True)
class ArchiveIOError(ArchiveError):
    """Raised when reading a source file or writing the archive stream fails."""

    path: Path = Path()
    reason: str = ""
    message: str = "I/O error while writing the archive."
