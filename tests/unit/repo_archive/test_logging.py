import logging
from pathlib import Path

import pytest
from pytest_mock import MockerFixture

from repo_archive import api
from repo_archive.logging import _resolve_level, setup_logging
from repo_archive.settings import Settings


@pytest.mark.unit
def test_resolve_level_accepts_names_and_numbers() -> None:
    assert _resolve_level("debug") == logging.DEBUG
    assert _resolve_level(" Error ") == logging.ERROR
    assert _resolve_level(logging.WARNING) == logging.WARNING
    assert _resolve_level("not-a-level") == logging.INFO


@pytest.mark.unit
def test_resolve_level_ignores_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REPO_ARCHIVE_LOG_LEVEL", "error")

    assert _resolve_level("info") == logging.INFO


@pytest.mark.unit
def test_setup_logging_returns_a_usable_logger() -> None:
    logger = setup_logging()

    logger.info("test_event", key="value")


@pytest.mark.unit
def test_archive_configures_logging_from_settings(tmp_path: Path, mocker: MockerFixture) -> None:
    target = tmp_path / "foo.txt"
    target.write_text("foo\n", encoding="utf-8")
    log_file = tmp_path / "archive.log"
    configure = mocker.patch.object(api, "setup_logging")
    settings = Settings(log_file=str(log_file), log_level="DEBUG")

    with api.archive(target, settings=settings) as stream:
        stream.read()

    configure.assert_called_once_with(str(log_file), "DEBUG")


@pytest.mark.unit
def test_archive_logs_to_stderr_when_no_log_file(tmp_path: Path, mocker: MockerFixture) -> None:
    target = tmp_path / "foo.txt"
    target.write_text("foo\n", encoding="utf-8")
    configure = mocker.patch.object(api, "setup_logging")

    with api.archive(target, settings=Settings()) as stream:
        stream.read()

    configure.assert_called_once_with(None, "INFO")
