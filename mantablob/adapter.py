"""
Bucket/object view over a directory-oriented remote store.

Buckets are directories and objects are files. Public visibility is decided
only by location: everything under ``/<account>/public`` is public, everything
under ``/<account>/stor`` is private.
"""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import NoReturn, Optional, Union

from .classify import ErrorClassifier
from .errors import (
    NotFoundError,
    PreconditionFailedError,
    UnsupportedOperationError,
)
from .gateway import EntryMetadata, RemoteStoreGateway
from .paths import (
    container_of,
    directory_path,
    join,
    leaf_of,
    private_root,
    public_root,
)
from .transfer import TransferCoordinator, TransferHandle

log = logging.getLogger(__name__)

MAX_OBJECTS_PER_DIRECTORY = 1_000_000


@dataclass(frozen=True)
class StorageEntry:
    """A bucket (``size is None``) or an object (``size`` in bytes)."""

    region_id: str
    container: str
    name: str
    created_at: datetime
    size: Optional[int] = None

    @property
    def is_directory(self) -> bool:
        return self.size is None

    @property
    def path(self) -> str:
        return join(self.container, self.name)


@dataclass(frozen=True)
class NameRules:
    min_length: int
    max_length: int
    allows_letters: bool
    allows_numbers: bool
    case_insensitive: bool
    forbidden_characters: tuple[str, ...]

    def accepts(self, name: str) -> bool:
        if not self.min_length <= len(name) <= self.max_length:
            return False
        for char in name:
            if char in self.forbidden_characters:
                return False
            if char.isalpha() and not self.allows_letters:
                return False
            if char.isdigit() and not self.allows_numbers:
                return False
        return True


DIRECTORY_NAME_RULES = NameRules(
    min_length=1,
    max_length=sys.maxsize,
    allows_letters=True,
    allows_numbers=True,
    case_insensitive=False,
    forbidden_characters=("-", ".", "\\"),
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class MantaBlobStore:
    def __init__(
        self,
        gateway: RemoteStoreGateway,
        account: str,
        region_id: str = "",
        classifier: Optional[ErrorClassifier] = None,
        transfers: Optional[TransferCoordinator] = None,
    ) -> None:
        self._gateway = gateway
        self._account = account
        self._region_id = region_id
        self._classifier = classifier or ErrorClassifier()
        self._transfers = transfers or TransferCoordinator(gateway, self._classifier)

    @property
    def account(self) -> str:
        return self._account

    @property
    def region_id(self) -> str:
        return self._region_id

    def _fail(self, exc: BaseException, path: Optional[str] = None) -> NoReturn:
        raise self._classifier.classify(exc, path) from exc

    # Capabilities and limits

    def allows_nested_buckets(self) -> bool:
        # The store nests directories freely, the bucket model here does not.
        return False

    def allows_root_objects(self) -> bool:
        return False

    def allows_public_sharing(self) -> bool:
        return True

    def max_buckets(self) -> int:
        return sys.maxsize

    def max_object_size(self) -> int:
        return sys.maxsize

    def max_objects_per_bucket(self) -> int:
        return MAX_OBJECTS_PER_DIRECTORY

    def bucket_name_rules(self) -> NameRules:
        return DIRECTORY_NAME_RULES

    def object_name_rules(self) -> NameRules:
        # list of allowed characters may be incomplete
        return DIRECTORY_NAME_RULES

    def provider_term_for_bucket(self) -> str:
        return "directory"

    def provider_term_for_object(self) -> str:
        return "object"

    def map_service_action(self, action: str) -> list[str]:
        return []

    # Buckets

    def create_bucket(self, bucket: str, find_free_name: bool = False) -> StorageEntry:
        """
        Create directory ``bucket``. Creating an existing directory is not an error.

        ``find_free_name`` is accepted but ignored: no alternate name is ever
        generated, the directory is created (or kept) under exactly ``bucket``.
        """
        path = directory_path(bucket)
        try:
            self._gateway.put_directory(path)
        except Exception as exc:
            self._fail(exc, path)
        return StorageEntry(self._region_id, "", bucket, _now())

    def exists(self, bucket: str) -> bool:
        path = directory_path(bucket)
        try:
            metadata = self._gateway.probe(path)
        except Exception as exc:
            if self._classifier.is_not_found(exc):
                return False
            self._fail(exc, path)
        return metadata is not None

    def get_bucket(self, bucket: str) -> StorageEntry:
        """
        Return the directory ``bucket``.

        Raises ``NotFoundError`` when nothing is there and
        ``PreconditionFailedError`` when the path is not a directory. The
        decision relies on the gateway reporting the directory content type
        on a bare probe.
        """
        path = directory_path(bucket)
        metadata = self._probe(path)
        if not metadata.is_directory:
            raise PreconditionFailedError(f'Bucket "{bucket}" is not a directory')
        return StorageEntry(self._region_id, "", bucket, _created_at(metadata))

    def list(self, bucket: Optional[str]) -> list[StorageEntry]:
        if bucket is None:
            raise UnsupportedOperationError(
                "A bucket is a directory and cannot be omitted when listing"
            )
        path = directory_path(bucket)
        try:
            entries = self._gateway.list(path)
        except Exception as exc:
            self._fail(exc, path)
        return [self._entry_for(metadata) for metadata in entries]

    def clear_bucket(self, bucket: str) -> None:
        """Delete everything in ``bucket`` and leave an empty directory of the same name."""
        path = directory_path(bucket)
        self._delete_directory(path)
        try:
            self._gateway.put_directory(path)
        except Exception as exc:
            self._fail(exc, path)

    def remove_bucket(self, bucket: str) -> None:
        self._delete_directory(directory_path(bucket))

    def rename_bucket(
        self, old_name: str, new_name: str, find_free_name: bool = False
    ) -> str:
        raise UnsupportedOperationError("Directories cannot be renamed")

    def make_public(self, bucket: Optional[str], object_name: Optional[str] = None) -> None:
        # Publishing means moving the tree under /<account>/public.
        raise UnsupportedOperationError(
            "Visibility is defined by location; move the data under the public directory"
        )

    def is_public(self, bucket: Optional[str], object_name: Optional[str] = None) -> bool:
        """``object_name`` is ignored: visibility belongs to the directory."""
        if bucket is None:
            return False
        return bucket.startswith(public_root(self._account))

    def is_subscribed(self) -> bool:
        """
        Probe access by listing the private root.

        A forbidden response means "not subscribed" and returns False; any
        other failure is raised.
        """
        root = private_root(self._account)
        try:
            self._gateway.list(root)
        except Exception as exc:
            if self._classifier.is_forbidden(exc):
                log.debug("Listing %s was forbidden", root, exc_info=True)
                return False
            self._fail(exc, root)
        return True

    # Objects

    def get_object(self, bucket: Optional[str], object_name: Optional[str]) -> Optional[StorageEntry]:
        if object_name is None:
            return None
        return self._entry_for(self._probe_object(self._object_path(bucket, object_name)))

    def get_object_size(self, bucket: Optional[str], object_name: Optional[str]) -> Optional[int]:
        if object_name is None:
            return None
        return self._probe_object(self._object_path(bucket, object_name)).size or 0

    def remove_object(self, bucket: Optional[str], object_name: str) -> None:
        """Delete ``object_name``, which is a full path; ``bucket`` is ignored."""
        try:
            self._gateway.delete(object_name)
        except Exception as exc:
            self._fail(exc, object_name)

    def rename_object(self, bucket: Optional[str], old_name: str, new_name: str) -> None:
        """
        Link ``new_name`` to the content of ``old_name``, then delete ``old_name``.

        Not atomic. If the delete fails both names keep resolving to the same
        content; retrying the rename or removing ``old_name`` finishes it.
        """
        try:
            self._gateway.create_link(new_name, old_name)
        except Exception as exc:
            self._fail(exc, new_name)
        try:
            self._gateway.delete(old_name)
        except Exception as exc:
            log.warning("Linked %s but could not remove %s", new_name, old_name)
            self._fail(exc, old_name)

    def move(
        self,
        from_bucket: Optional[str],
        object_name: Optional[str],
        to_bucket: Optional[str],
    ) -> None:
        raise UnsupportedOperationError("Objects cannot be moved between buckets")

    def upload(
        self,
        source: Union[str, os.PathLike],
        bucket: Optional[str],
        object_name: str,
    ) -> StorageEntry:
        """
        Store the local file ``source`` as ``bucket + object_name``.

        The directory is created first (a no-op when present). Nothing is
        cleaned up after a failed put; the store is expected to only
        materialise fully written objects.
        """
        source_path = Path(source)
        container = bucket if bucket is not None else private_root(self._account)
        try:
            self._gateway.put_directory(directory_path(container))
        except Exception as exc:
            self._fail(exc, container)
        target = join(container, object_name)
        try:
            with source_path.open("rb") as stream:
                self._gateway.put_object(target, stream)
            size = source_path.stat().st_size
        except Exception as exc:
            self._fail(exc, target)
        log.debug("Uploaded %s to %s", source_path, target)
        return StorageEntry(
            self._region_id, container_of(target), leaf_of(target), _now(), size
        )

    def download(
        self,
        bucket: Optional[str],
        object_name: str,
        destination: Union[str, os.PathLike],
    ) -> TransferHandle:
        """Start copying ``object_name`` to ``destination`` in the background; ``bucket`` is ignored."""
        return self._transfers.download(object_name, destination)

    # Helpers

    def _object_path(self, bucket: Optional[str], object_name: str) -> str:
        if bucket is not None:
            return join(bucket, object_name)
        return join(private_root(self._account), object_name)

    def _probe(self, path: str) -> EntryMetadata:
        try:
            metadata = self._gateway.probe(path)
        except Exception as exc:
            self._fail(exc, path)
        if metadata is None:
            raise NotFoundError(f"Nothing found at {path}")
        return metadata

    def _probe_object(self, path: str) -> EntryMetadata:
        metadata = self._probe(path)
        if metadata.is_directory:
            raise PreconditionFailedError(f'Object "{path}" is a directory')
        return metadata

    def _delete_directory(self, path: str) -> None:
        try:
            self._gateway.delete(path)
            return
        except Exception as exc:
            if not self._classifier.indicates_non_empty_directory(exc):
                self._fail(exc, path)
            log.debug("Directory %s is not empty, deleting recursively", path, exc_info=True)
        try:
            self._gateway.delete_recursive(path)
        except Exception as exc:
            self._fail(exc, path)

    def _entry_for(self, metadata: EntryMetadata) -> StorageEntry:
        if metadata.is_directory:
            return StorageEntry(self._region_id, "", metadata.path, _created_at(metadata))
        return StorageEntry(
            self._region_id,
            container_of(metadata.path),
            leaf_of(metadata.path),
            _created_at(metadata),
            metadata.size or 0,
        )


def _created_at(metadata: EntryMetadata) -> datetime:
    return metadata.last_modified or _now()

