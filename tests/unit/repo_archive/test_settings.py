from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from repo_archive.settings import ArchiveOpts, Settings, normalize_arcname, normalize_globs


@pytest.mark.unit
@pytest.mark.parametrize(
    ("opts", "expected"),
    [
        (ArchiveOpts(), False),
        (ArchiveOpts(vcs=True), True),
        (ArchiveOpts(exclude=[]), False),
        (ArchiveOpts(exclude=["foo"]), True),
        (ArchiveOpts(include=[]), False),
        (ArchiveOpts(include=["foo"]), True),
        (ArchiveOpts(extra={"foo.txt": Path("foo.txt")}), False),
    ],
)
def test_archive_opts_is_set(opts: ArchiveOpts, expected: bool) -> None:  # noqa: FBT001
    assert opts.is_set() is expected


@pytest.mark.unit
def test_archive_opts_normalizes_patterns() -> None:
    opts = ArchiveOpts(include=["  src/*.py ", "", "docs\\*"], exclude="build")

    assert opts.include == ("src/*.py", "docs/*")
    assert opts.exclude == ("build",)


@pytest.mark.unit
def test_archive_opts_whitespace_only_patterns_are_not_set() -> None:
    assert not ArchiveOpts(include=["  "], exclude=[""]).is_set()


@pytest.mark.unit
def test_archive_opts_normalizes_extra_names() -> None:
    opts = ArchiveOpts(extra={"./conf\\app.ini": "/tmp/app.ini", "/top.txt": Path("/tmp/top.txt")})

    assert opts.extra == {"conf/app.ini": Path("/tmp/app.ini"), "top.txt": Path("/tmp/top.txt")}


@pytest.mark.unit
def test_archive_opts_rejects_empty_extra_name() -> None:
    with pytest.raises(ValidationError):
        ArchiveOpts(extra={"./": "/tmp/x"})


@pytest.mark.unit
def test_archive_opts_is_frozen() -> None:
    opts = ArchiveOpts()

    with pytest.raises(ValidationError):
        opts.vcs = True  # type: ignore[misc]


@pytest.mark.unit
def test_normalize_helpers() -> None:
    assert normalize_globs(None) == ()
    assert normalize_arcname("././a/b/") == "a/b"


@pytest.mark.unit
def test_settings_defaults() -> None:
    settings = Settings()

    assert settings.git_executable == "git"
    assert settings.hg_executable == "hg"
    assert settings.compresslevel == 9  # noqa: PLR2004
    assert settings.log_file == ""
    assert settings.log_level == "INFO"


@pytest.mark.unit
def test_settings_rejects_bad_compresslevel() -> None:
    with pytest.raises(ValidationError):
        Settings(compresslevel=10)


@pytest.mark.unit
def test_settings_from_env_reads_dotenv_and_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text(
        "REPO_ARCHIVE_GIT_EXECUTABLE=/opt/git/bin/git\nREPO_ARCHIVE_COMPRESSLEVEL=1\nOTHER=1\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("REPO_ARCHIVE_COMPRESSLEVEL", "6")
    monkeypatch.delenv("REPO_ARCHIVE_HG_EXECUTABLE", raising=False)
    monkeypatch.delenv("REPO_ARCHIVE_GIT_EXECUTABLE", raising=False)

    settings = Settings.from_env(env_file)

    assert settings.git_executable == "/opt/git/bin/git"
    assert settings.compresslevel == 6  # noqa: PLR2004
    assert settings.hg_executable == "hg"


@pytest.mark.unit
def test_settings_from_env_reads_logging_options(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("REPO_ARCHIVE_LOG_LEVEL=DEBUG\n", encoding="utf-8")
    monkeypatch.setenv("REPO_ARCHIVE_LOG_FILE", str(tmp_path / "archive.log"))
    monkeypatch.delenv("REPO_ARCHIVE_LOG_LEVEL", raising=False)

    settings = Settings.from_env(env_file)

    assert settings.log_file == str(tmp_path / "archive.log")
    assert settings.log_level == "DEBUG"
