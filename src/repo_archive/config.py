from __future__ import annotations

from enum import StrEnum, auto
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, computed_field

_ = Path()


class Pipeline(StrEnum):
    """How a source path is turned into an archive stream."""

    FILE = auto()
    PASSTHROUGH = auto()
    DIRECTORY = auto()


GIT_DIR = ".git"
HG_DIR = ".hg"

# Control directories never archived, even with VCS mode off.
VCS_METADATA_DIRS = frozenset({GIT_DIR, HG_DIR})

GZIP_MAGIC = b"\x1f\x8b"


class Entry(BaseModel):
    """One file or directory destined for the archive.

    Attributes:
        path: Absolute path of the source on disk.
        rel: Forward-slash path inside the archive, without trailing slash.
        is_dir: Whether the entry is a directory header.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    path: Path = Field(..., description="Absolute source path")
    rel: str = Field(..., min_length=1, description="Path inside the archive")
    is_dir: bool = Field(default=False, description="Directory entry")

    @computed_field
    @property
    def arcname(self) -> str:
        """Name as written in the archive; directories end with a slash."""
        return f"{self.rel}/" if self.is_dir else self.rel
