"""Background downloads with a pollable progress handle."""

from __future__ import annotations

import asyncio
import enum
import logging
import os
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from .classify import ErrorClassifier
from .gateway import RemoteStoreGateway
from .paths import leaf_of

log = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


class TransferState(enum.Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class TransferProgress:
    start_time: datetime
    percent_complete: int
    bytes_to_transfer: int
    bytes_transferred: int
    state: TransferState
    result: Optional[Path]
    error: Optional[BaseException]


class TransferHandle:
    """
    Progress record of one download.

    Written only by its background worker and read by the caller. All fields
    sit behind one lock per handle; once the state leaves ``PENDING`` nothing
    changes any more.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._done = threading.Event()
        self._start_time = datetime.now(timezone.utc)
        self._percent_complete = 0
        self._bytes_to_transfer = 0
        self._bytes_transferred = 0
        self._state = TransferState.PENDING
        self._result: Optional[Path] = None
        self._error: Optional[BaseException] = None

    @property
    def start_time(self) -> datetime:
        with self._lock:
            return self._start_time

    @property
    def percent_complete(self) -> int:
        with self._lock:
            return self._percent_complete

    @property
    def bytes_to_transfer(self) -> int:
        with self._lock:
            return self._bytes_to_transfer

    @property
    def bytes_transferred(self) -> int:
        with self._lock:
            return self._bytes_transferred

    @property
    def state(self) -> TransferState:
        with self._lock:
            return self._state

    @property
    def result(self) -> Optional[Path]:
        with self._lock:
            return self._result

    @property
    def error(self) -> Optional[BaseException]:
        with self._lock:
            return self._error

    @property
    def is_complete(self) -> bool:
        return self._done.is_set()

    def snapshot(self) -> TransferProgress:
        with self._lock:
            return TransferProgress(
                start_time=self._start_time,
                percent_complete=self._percent_complete,
                bytes_to_transfer=self._bytes_to_transfer,
                bytes_transferred=self._bytes_transferred,
                state=self._state,
                result=self._result,
                error=self._error,
            )

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the transfer is terminal; False if ``timeout`` ran out first."""
        return self._done.wait(timeout)

    def _ensure_pending(self) -> None:
        if self._state is not TransferState.PENDING:
            raise RuntimeError("transfer already complete")

    def _begin(self, total_size: Optional[int]) -> None:
        with self._lock:
            self._ensure_pending()
            self._start_time = datetime.now(timezone.utc)
            self._percent_complete = 0
            self._bytes_to_transfer = total_size or 0

    def _advance(self, count: int, total_size: Optional[int]) -> None:
        with self._lock:
            self._ensure_pending()
            self._bytes_transferred += count
            if total_size:
                self._bytes_to_transfer = max(0, total_size - self._bytes_transferred)
                # 100 is reserved for the terminal state
                self._percent_complete = min(
                    99, self._bytes_transferred * 100 // total_size
                )

    def _complete_with_result(self, result: Path, size: int) -> None:
        with self._lock:
            self._ensure_pending()
            self._percent_complete = 100
            self._bytes_to_transfer = 0
            self._bytes_transferred = size
            self._result = result
            self._state = TransferState.SUCCEEDED
        self._done.set()

    def _complete_with_error(self, error: BaseException) -> None:
        with self._lock:
            self._ensure_pending()
            self._error = error
            self._state = TransferState.FAILED
        self._done.set()


async def wait_for_transfer(
    handle: TransferHandle, timeout: Optional[float] = None
) -> TransferProgress:
    await asyncio.to_thread(handle.wait, timeout)
    return handle.snapshot()


class TransferCoordinator:
    """
    Runs each download on its own thread.

    There is no pool, admission limit, cancellation or deadline: a remote
    call that never returns leaves its worker (and handle) pending forever.
    """

    def __init__(
        self,
        gateway: RemoteStoreGateway,
        classifier: Optional[ErrorClassifier] = None,
    ) -> None:
        self._gateway = gateway
        self._classifier = classifier or ErrorClassifier()

    def download(
        self, object_path: str, destination: Union[str, os.PathLike]
    ) -> TransferHandle:
        handle = TransferHandle()
        target = Path(destination)
        worker = threading.Thread(
            target=self._run,
            args=(handle, object_path, target),
            name=f"mantablob-download-{leaf_of(object_path) or 'object'}",
        )
        worker.start()
        return handle

    def _run(self, handle: TransferHandle, object_path: str, destination: Path) -> None:
        try:
            self._copy(handle, object_path, destination)
        except Exception as exc:
            log.error("Download of %s failed", object_path, exc_info=True)
            handle._complete_with_error(self._classifier.classify(exc, object_path))

    def _copy(self, handle: TransferHandle, object_path: str, destination: Path) -> None:
        stream = self._gateway.get_stream(object_path)
        try:
            handle._begin(stream.size)
            destination.parent.mkdir(parents=True, exist_ok=True)
            copied = 0
            with destination.open("wb") as output:
                while True:
                    chunk = stream.body.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    output.write(chunk)
                    copied += len(chunk)
                    handle._advance(len(chunk), stream.size)
        finally:
            stream.close()
        size = stream.size if stream.size is not None else copied
        log.debug("Downloaded %s to %s (%d bytes)", object_path, destination, copied)
        handle._complete_with_result(destination, size)
