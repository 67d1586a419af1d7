from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from dotenv import dotenv_values, find_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

ENV_FILE = find_dotenv(usecwd=True)
ENV_PREFIX = "REPO_ARCHIVE_"


def normalize_globs(globs: Any) -> tuple[str, ...]:  # noqa: ANN401
    """Normalize a sequence of path glob patterns.

    Strip whitespace, replace backslashes with forward slashes and drop
    empty patterns. A bare string is treated as a single pattern.

    Args:
        globs (Any): the glob patterns to normalize (a string or an iterable of strings)

    Returns:
        tuple[str, ...]: the normalized glob patterns, in their original order
    """
    if globs is None:
        return ()
    if isinstance(globs, str):
        globs = [globs]
    out: list[str] = []
    for g in globs:
        g2 = (g or "").strip()
        if not g2:
            continue
        out.append(g2.replace("\\", "/"))
    return tuple(out)


def normalize_arcname(name: str) -> str:
    """Normalize an archive-relative name to forward slashes without a leading `./` or `/`.

    Args:
        name (str): the archive-relative name

    Returns:
        str: the normalized name
    """
    name = name.strip().replace("\\", "/")
    while name.startswith("./"):
        name = name[2:]
    return name.strip("/")


class ArchiveOpts(BaseModel):
    """Options for one archive operation.

    Attributes:
        vcs: Restrict a directory to the files its VCS tracks (or leaves unignored).
        exclude: Glob patterns removing matching entries.
        include: Glob patterns an entry must match to be kept.
        extra: Additional files, mapping archive-relative name to source path.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    vcs: bool = Field(default=False, description="Use git/hg to list files.")
    exclude: tuple[str, ...] = Field(default=(), description="Exclude glob.")
    include: tuple[str, ...] = Field(default=(), description="Include glob.")
    extra: dict[str, Path] = Field(
        default_factory=dict,
        description="Extra files: archive name -> source path.",
    )

    @field_validator("exclude", "include", mode="before")
    @classmethod
    def _normalize_globs(cls, value: Any) -> tuple[str, ...]:  # noqa: ANN401
        return normalize_globs(value)

    @field_validator("extra", mode="before")
    @classmethod
    def _normalize_extra(cls, value: Any) -> dict[str, Any]:  # noqa: ANN401
        if value is None:
            return {}
        out: dict[str, Any] = {}
        for name, source in dict(value).items():
            arcname = normalize_arcname(str(name))
            if not arcname:
                msg = f"extra entry name {name!r} is empty"
                raise ValueError(msg)
            out[arcname] = source
        return out

    def is_set(self) -> bool:
        """Tell whether any option restricting the archive contents is set.

        `extra` does not count: it only adds files.

        Returns:
            bool: True if VCS mode is on or any include/exclude pattern is given.
        """
        return self.vcs or bool(self.exclude) or bool(self.include)


class Settings(BaseModel):
    """Runtime configuration for the repo_archive module."""

    model_config = ConfigDict(frozen=True)

    git_executable: str = Field(default="git", description="git binary.")
    hg_executable: str = Field(default="hg", description="Mercurial binary.")
    compresslevel: int = Field(default=9, ge=0, le=9, description="gzip level.")
    log_file: str = Field(default="", description="Log file path; stderr when empty.")
    log_level: str = Field(default="INFO", description="Minimum log level name.")

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> Settings:
        """Build settings from `REPO_ARCHIVE_*` variables.

        Values from the `.env` file are read first, the process environment
        overrides them.

        Args:
            env_file (str | Path | None): dotenv file to read; defaults to the
                one found from the current directory.

        Returns:
            Settings: the resolved settings.
        """
        path = ENV_FILE if env_file is None else str(env_file)
        values: dict[str, str | None] = dict(dotenv_values(path)) if path else {}
        values.update(os.environ)
        data = {
            key[len(ENV_PREFIX) :].lower(): value
            for key, value in values.items()
            if key.startswith(ENV_PREFIX) and value is not None
        }
        return cls.model_validate({k: v for k, v in data.items() if k in cls.model_fields})
