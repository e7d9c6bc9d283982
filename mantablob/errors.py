"""Domain errors raised by the blob store adapter.

Gateway and transport failures never reach callers directly; they are
re-classified into one of these by :mod:`mantablob.classify`.
"""

from __future__ import annotations


class BlobStoreError(RuntimeError):
    """Base class for every error surfaced by the adapter."""


class NotFoundError(BlobStoreError):
    """Nothing exists at the requested path."""


class NotAuthorizedError(BlobStoreError):
    """The store refused the request (forbidden)."""


class UnsupportedOperationError(BlobStoreError):
    """The operation cannot be expressed with directories and files."""


class PreconditionFailedError(BlobStoreError):
    """The target exists but is the wrong kind of entry."""


class TransportFailureError(BlobStoreError):
    """Any other I/O or protocol failure."""
