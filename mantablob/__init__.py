"""Bucket/object adapter for directory-based object stores."""

from .adapter import MantaBlobStore, NameRules, StorageEntry
from .classify import ErrorClassifier
from .config import StoreSettings, load_settings, open_store
from .errors import (
    BlobStoreError,
    NotAuthorizedError,
    NotFoundError,
    PreconditionFailedError,
    TransportFailureError,
    UnsupportedOperationError,
)
from .gateway import EntryMetadata, GatewayError, RemoteStoreGateway, RemoteStream
from .transfer import TransferCoordinator, TransferHandle, TransferState

__all__ = [
    "BlobStoreError",
    "EntryMetadata",
    "ErrorClassifier",
    "GatewayError",
    "MantaBlobStore",
    "NameRules",
    "NotAuthorizedError",
    "NotFoundError",
    "PreconditionFailedError",
    "RemoteStoreGateway",
    "RemoteStream",
    "StorageEntry",
    "StoreSettings",
    "TransferCoordinator",
    "TransferHandle",
    "TransferState",
    "TransportFailureError",
    "UnsupportedOperationError",
    "load_settings",
    "open_store",
]
