"""Bridge a background archive writer and the caller reading the archive."""

from __future__ import annotations

import io
import os
import shutil
import threading
from typing import TYPE_CHECKING, BinaryIO

from repo_archive.config import Pipeline
from repo_archive.exceptions import ArchiveError, ArchiveIOError
from repo_archive.logging import logger

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path

    Producer = Callable[[BinaryIO], object]

CHUNK_SIZE = 64 * 1024


class Outcome:
    """Single-slot result of a background archive operation.

    Holds `None` on success or the exception that stopped the worker. It is
    written once; reading it never blocks unless `wait` is called.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._done = threading.Event()
        self._error: BaseException | None = None

    @classmethod
    def resolved(cls, error: BaseException | None = None) -> Outcome:
        outcome = cls()
        outcome.set(error)
        return outcome

    def set(self, error: BaseException | None) -> None:
        """Record the result.

        Raises:
            RuntimeError: if a result was already recorded.
        """
        with self._lock:
            if self._done.is_set():
                msg = "archive outcome already set"
                raise RuntimeError(msg)
            self._error = error
            self._done.set()

    @property
    def done(self) -> bool:
        return self._done.is_set()

    @property
    def error(self) -> BaseException | None:
        """The recorded failure, or None on success or while still running."""
        return self._error if self._done.is_set() else None

    def wait(self, timeout: float | None = None) -> BaseException | None:
        """Block until the result is recorded and return the failure, if any.

        Raises:
            TimeoutError: if `timeout` elapses first.
        """
        if not self._done.wait(timeout):
            msg = f"archive still running after {timeout}s"
            raise TimeoutError(msg)
        return self._error

    def raise_for_error(self) -> None:
        """Re-raise the recorded failure, if any."""
        error = self.error
        if error is not None:
            raise error


class ArchiveStream(io.RawIOBase):
    """Readable gzip tar stream returned by `repo_archive.archive`.

    A standard raw binary stream: it can be wrapped in `io.BufferedReader`
    or handed to anything expecting `readinto`. The caller owns the stream:
    it must be read to the end or closed, or the writer stays blocked on the
    full pipe. Once the end is reached, `outcome` tells whether the archive
    is complete.

    Attributes:
        outcome: result of the background writer.
        pipeline: the pipeline that produced the stream.
        size: byte length when known up front (passthrough), else None.
    """

    def __init__(
        self,
        reader: BinaryIO,
        outcome: Outcome,
        pipeline: Pipeline,
        size: int | None = None,
    ) -> None:
        super().__init__()
        self._reader = reader
        self.outcome = outcome
        self.pipeline = pipeline
        self.size = size

    def readable(self) -> bool:
        return True

    def readinto(self, buffer: bytearray | memoryview) -> int:
        if self.closed:
            msg = "I/O operation on closed archive stream"
            raise ValueError(msg)
        return self._reader.readinto(buffer)  # type: ignore[attr-defined]

    def read(self, size: int = -1) -> bytes:
        if self.closed:
            msg = "I/O operation on closed archive stream"
            raise ValueError(msg)
        return self._reader.read(size)

    def readall(self) -> bytes:
        return self.read()

    def close(self) -> None:
        if not self.closed:
            self._reader.close()
        super().close()

    def __iter__(self) -> Iterator[bytes]:  # type: ignore[override]
        return iter(lambda: self.read(CHUNK_SIZE), b"")

    def write_to(self, fileobj: BinaryIO) -> None:
        """Copy the whole stream into `fileobj`, close it and check the outcome.

        Raises:
            ArchiveError: the failure recorded by the writer, if any.
        """
        with self:
            shutil.copyfileobj(self._reader, fileobj, CHUNK_SIZE)
        error = self.outcome.wait()
        if error is not None:
            raise error


def _run_worker(produce: Producer, writer: BinaryIO, outcome: Outcome) -> None:
    error: BaseException | None = None
    try:
        produce(writer)
        writer.flush()
    except ArchiveError as e:
        error = e
    except OSError as e:
        error = ArchiveIOError(reason=str(e), message=f"writing archive: {e}")
    except Exception as e:  # noqa: BLE001
        error = e
    except BaseException as e:
        error = e
        raise
    finally:
        if error is not None:
            logger.warning("archive_worker_failed", error=str(error), error_type=type(error).__name__)
        outcome.set(error)
        try:
            writer.close()
        except OSError as e:
            # Only reached when the reader is gone; the failure is already recorded.
            logger.info("archive_writer_close_failed", error=str(e))


def start_stream(pipeline: Pipeline, produce: Producer) -> ArchiveStream:
    """Run `produce(writer)` on a background thread and return the read side.

    The writer is one end of an OS pipe, so the worker blocks when the
    caller stops reading. The outcome is recorded before the write end is
    closed: a reader that has seen end-of-stream can check it without waiting.

    Args:
        pipeline (Pipeline): the pipeline being run, reported on the stream
        produce (Producer): writes the archive bytes into the given file object

    Returns:
        ArchiveStream: the readable side, with its pending outcome
    """
    read_fd, write_fd = os.pipe()
    reader = os.fdopen(read_fd, "rb")
    writer = os.fdopen(write_fd, "wb")
    outcome = Outcome()
    worker = threading.Thread(
        target=_run_worker,
        args=(produce, writer, outcome),
        name="repo-archive-writer",
        daemon=True,
    )
    worker.start()
    return ArchiveStream(reader, outcome, pipeline)


def passthrough_stream(path: Path) -> ArchiveStream:
    """Stream an existing archive file unchanged; the outcome is already resolved."""
    reader = path.open("rb")
    size = os.fstat(reader.fileno()).st_size
    return ArchiveStream(reader, Outcome.resolved(), Pipeline.PASSTHROUGH, size=size)
