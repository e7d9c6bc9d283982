import asyncio
import io
import os
import tempfile
import threading
import unittest
from pathlib import Path

from mantablob.errors import NotFoundError, TransportFailureError
from mantablob.gateway import GatewayError, RemoteStream
from mantablob.transfer import (
    TransferCoordinator,
    TransferHandle,
    TransferState,
    wait_for_transfer,
)


class _GatedGateway:
    """Serves one object, holding every read until ``release`` is set."""

    def __init__(self, payload: bytes, size=None) -> None:
        self.payload = payload
        self.size = len(payload) if size is None else size
        self.release = threading.Event()
        self.requested: list[str] = []

    def get_stream(self, path: str) -> RemoteStream:
        self.requested.append(path)
        self.release.wait(5)
        return RemoteStream(path, io.BytesIO(self.payload), self.size)


class _FailingGateway:
    def __init__(self, exc: Exception) -> None:
        self.exc = exc

    def get_stream(self, path: str) -> RemoteStream:
        raise self.exc


class TestTransferCoordinator(unittest.TestCase):
    def test_download_is_pending_then_succeeds(self) -> None:
        payload = os.urandom(1024)
        gateway = _GatedGateway(payload)
        coordinator = TransferCoordinator(gateway)
        with tempfile.TemporaryDirectory() as temp_dir:
            destination = Path(temp_dir) / "out.bin"
            handle = coordinator.download("/acct/stor/file.bin", destination)

            self.assertEqual(handle.state, TransferState.PENDING)
            self.assertEqual(handle.percent_complete, 0)
            self.assertFalse(handle.is_complete)
            self.assertIsNotNone(handle.start_time)

            gateway.release.set()
            self.assertTrue(handle.wait(5))

            self.assertEqual(handle.state, TransferState.SUCCEEDED)
            self.assertEqual(handle.percent_complete, 100)
            self.assertEqual(handle.bytes_transferred, 1024)
            self.assertEqual(handle.bytes_to_transfer, 0)
            self.assertEqual(handle.result, destination)
            self.assertIsNone(handle.error)
            self.assertEqual(destination.read_bytes(), payload)
        self.assertEqual(gateway.requested, ["/acct/stor/file.bin"])

    def test_reported_size_is_used_for_bytes_transferred(self) -> None:
        gateway = _GatedGateway(b"abc", size=3)
        gateway.release.set()
        with tempfile.TemporaryDirectory() as temp_dir:
            handle = TransferCoordinator(gateway).download(
                "/acct/stor/a.txt", Path(temp_dir) / "nested" / "a.txt"
            )
            self.assertTrue(handle.wait(5))
            self.assertEqual(handle.bytes_transferred, 3)
            self.assertEqual((Path(temp_dir) / "nested" / "a.txt").read_bytes(), b"abc")

    def test_failure_is_captured_in_handle(self) -> None:
        coordinator = TransferCoordinator(
            _FailingGateway(GatewayError("missing", status=404))
        )
        with tempfile.TemporaryDirectory() as temp_dir:
            with self.assertLogs("mantablob.transfer", level="ERROR"):
                handle = coordinator.download("/acct/stor/nope", Path(temp_dir) / "x")
                self.assertTrue(handle.wait(5))
            self.assertEqual(handle.state, TransferState.FAILED)
            self.assertIsInstance(handle.error, NotFoundError)
            self.assertIsNone(handle.result)
            self.assertFalse((Path(temp_dir) / "x").exists())

    def test_generic_failure_becomes_transport_failure(self) -> None:
        coordinator = TransferCoordinator(_FailingGateway(ConnectionResetError("reset")))
        with tempfile.TemporaryDirectory() as temp_dir:
            with self.assertLogs("mantablob.transfer", level="ERROR"):
                handle = coordinator.download("/acct/stor/f", Path(temp_dir) / "f")
                self.assertTrue(handle.wait(5))
        self.assertEqual(handle.state, TransferState.FAILED)
        self.assertIsInstance(handle.error, TransportFailureError)

    def test_wait_for_transfer(self) -> None:
        gateway = _GatedGateway(b"payload")
        gateway.release.set()
        with tempfile.TemporaryDirectory() as temp_dir:
            handle = TransferCoordinator(gateway).download(
                "/acct/stor/p", Path(temp_dir) / "p"
            )
            snapshot = asyncio.run(wait_for_transfer(handle, timeout=5))
        self.assertEqual(snapshot.state, TransferState.SUCCEEDED)
        self.assertEqual(snapshot.bytes_transferred, 7)


class TestTransferHandle(unittest.TestCase):
    def test_progress_stays_below_100_until_terminal(self) -> None:
        handle = TransferHandle()
        handle._begin(200)
        handle._advance(200, 200)
        self.assertEqual(handle.percent_complete, 99)
        self.assertEqual(handle.bytes_to_transfer, 0)
        self.assertEqual(handle.state, TransferState.PENDING)

    def test_terminal_handle_rejects_writes(self) -> None:
        handle = TransferHandle()
        handle._complete_with_error(TransportFailureError("boom"))
        with self.assertRaises(RuntimeError):
            handle._complete_with_result(Path("x"), 1)
        with self.assertRaises(RuntimeError):
            handle._advance(1, 2)
        self.assertEqual(handle.state, TransferState.FAILED)

    def test_wait_times_out_while_pending(self) -> None:
        self.assertFalse(TransferHandle().wait(0.01))


if __name__ == "__main__":
    unittest.main()
