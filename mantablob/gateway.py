"""Capability interface the adapter uses to talk to the remote store."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import BinaryIO, Optional, Protocol, Sequence

DIRECTORY_CONTENT_TYPE = "application/x-json-stream; type=directory"
OBJECT_CONTENT_TYPE = "application/octet-stream"


class GatewayError(Exception):
    """Transport-level failure reported by a gateway, with its HTTP-like status."""

    def __init__(
        self, message: str, status: Optional[int] = None, code: Optional[str] = None
    ) -> None:
        super().__init__(message)
        self.status = status
        self.code = code


@dataclass(frozen=True)
class EntryMetadata:
    path: str
    content_type: str
    size: Optional[int] = None
    last_modified: Optional[datetime] = None

    @property
    def is_directory(self) -> bool:
        return self.content_type == DIRECTORY_CONTENT_TYPE


@dataclass(frozen=True)
class RemoteStream:
    path: str
    body: BinaryIO
    size: Optional[int] = None

    def close(self) -> None:
        self.body.close()


class RemoteStoreGateway(Protocol):
    """
    Directory/file operations of the remote store.

    ``probe`` must report the directory content type for directories; the
    adapter classifies buckets from it and never lists a parent first.
    Every method may raise a transport error (``GatewayError``, a botocore
    ``ClientError`` or an ``OSError``).
    """

    def probe(self, path: str) -> Optional[EntryMetadata]:
        ...

    def list(self, path: str) -> Sequence[EntryMetadata]:
        ...

    def put_directory(self, path: str) -> None:
        ...

    def put_object(self, path: str, stream: BinaryIO) -> None:
        ...

    def delete(self, path: str) -> None:
        ...

    def delete_recursive(self, path: str) -> None:
        ...

    def create_link(self, new_path: str, old_path: str) -> None:
        """Make ``new_path`` resolve to the content of ``old_path``, replacing whatever is there."""

    def get_stream(self, path: str) -> RemoteStream:
        ...
