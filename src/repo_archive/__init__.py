"""repo_archive: package a file, a directory or a VCS checkout as a streamed tar.gz."""

from repo_archive.api import archive
from repo_archive.settings import ArchiveOpts, Settings
from repo_archive.stream import ArchiveStream, Outcome

__version__ = "0.1.0"

__all__ = ["ArchiveOpts", "ArchiveStream", "Outcome", "Settings", "__version__", "archive"]
