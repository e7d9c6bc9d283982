from __future__ import annotations

import logging
from typing import BinaryIO, Optional

import boto3
from botocore.exceptions import ClientError

from .gateway import (
    DIRECTORY_CONTENT_TYPE,
    OBJECT_CONTENT_TYPE,
    EntryMetadata,
    GatewayError,
    RemoteStream,
)
from .paths import SEPARATOR

log = logging.getLogger(__name__)

DELETE_BATCH_SIZE = 1000


class S3DirectoryGateway:
    """
    Directory tree emulated on one S3-compatible bucket.

    ``/acct/stor/a/b`` is stored under key ``acct/stor/a/b``. A directory is a
    zero-byte ``<key>/`` marker carrying the directory content type; a prefix
    that only has children counts as a directory too. S3 has no hard links,
    so ``create_link`` is a server-side copy.
    """

    def __init__(
        self,
        bucket_name: str,
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        profile: Optional[str] = None,
    ) -> None:
        self.bucket_name = bucket_name
        self._region = region
        self._endpoint_url = endpoint_url
        self._profile = profile
        self._s3 = None

    def _client(self):
        if self._s3 is not None:
            return self._s3
        if self._profile is None:
            session = boto3.session.Session()
        else:
            session = boto3.session.Session(profile_name=self._profile)
        kwargs = {}
        if self._region:
            kwargs["region_name"] = self._region
        if self._endpoint_url:
            kwargs["endpoint_url"] = self._endpoint_url
        self._s3 = session.client("s3", **kwargs)
        return self._s3

    def _key(self, path: str) -> str:
        return path.strip(SEPARATOR)

    def _prefix(self, path: str) -> str:
        key = self._key(path)
        return f"{key}{SEPARATOR}" if key else ""

    def _is_missing(self, exc: ClientError) -> bool:
        error = exc.response.get("Error", {})
        status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
        return status == 404 or error.get("Code") in {"404", "NoSuchKey", "NotFound"}

    def _head(self, key: str) -> Optional[dict]:
        try:
            return self._client().head_object(Bucket=self.bucket_name, Key=key)
        except ClientError as exc:
            if self._is_missing(exc):
                return None
            raise

    def _has_children(self, prefix: str) -> bool:
        response = self._client().list_objects_v2(
            Bucket=self.bucket_name, Prefix=prefix, MaxKeys=2
        )
        for entry in response.get("Contents", []):
            if entry.get("Key") != prefix:
                return True
        return False

    def probe(self, path: str) -> Optional[EntryMetadata]:
        key = self._key(path)
        if key:
            response = self._head(key)
            if response is not None:
                return EntryMetadata(
                    path=path,
                    content_type=response.get("ContentType") or OBJECT_CONTENT_TYPE,
                    size=int(response.get("ContentLength", 0)),
                    last_modified=response.get("LastModified"),
                )
        prefix = self._prefix(path)
        marker = self._head(prefix) if prefix else None
        if marker is not None:
            return EntryMetadata(
                path, DIRECTORY_CONTENT_TYPE, None, marker.get("LastModified")
            )
        if self._has_children(prefix):
            return EntryMetadata(path, DIRECTORY_CONTENT_TYPE)
        return None

    def list(self, path: str) -> list[EntryMetadata]:
        prefix = self._prefix(path)
        base = path.rstrip(SEPARATOR)
        client = self._client()
        entries: list[EntryMetadata] = []
        continuation: Optional[str] = None
        while True:
            kwargs = {
                "Bucket": self.bucket_name,
                "Delimiter": SEPARATOR,
                "Prefix": prefix,
                "MaxKeys": 1000,
            }
            if continuation:
                kwargs["ContinuationToken"] = continuation
            response = client.list_objects_v2(**kwargs)
            for entry in response.get("CommonPrefixes", []):
                value = entry.get("Prefix")
                if value:
                    name = value[len(prefix) :].rstrip(SEPARATOR)
                    entries.append(
                        EntryMetadata(f"{base}{SEPARATOR}{name}", DIRECTORY_CONTENT_TYPE)
                    )
            for entry in response.get("Contents", []):
                key = entry.get("Key")
                if not key or key == prefix:
                    continue
                entries.append(
                    EntryMetadata(
                        path=f"{base}{SEPARATOR}{key[len(prefix):]}",
                        content_type=OBJECT_CONTENT_TYPE,
                        size=int(entry.get("Size", 0)),
                        last_modified=entry.get("LastModified"),
                    )
                )
            if response.get("IsTruncated"):
                continuation = response.get("NextContinuationToken")
            else:
                break
        if not entries and self._head(prefix) is None:
            raise GatewayError(f"{path} does not exist", status=404, code="ResourceNotFound")
        return entries

    def put_directory(self, path: str) -> None:
        self._client().put_object(
            Bucket=self.bucket_name,
            Key=self._prefix(path),
            Body=b"",
            ContentType=DIRECTORY_CONTENT_TYPE,
        )

    def put_object(self, path: str, stream: BinaryIO) -> None:
        self._client().upload_fileobj(stream, self.bucket_name, self._key(path))

    def delete(self, path: str) -> None:
        key = self._key(path)
        if self._head(key) is not None:
            self._client().delete_object(Bucket=self.bucket_name, Key=key)
            return
        prefix = self._prefix(path)
        if self._has_children(prefix):
            raise GatewayError(
                f"{path} is not empty", status=400, code="DirectoryNotEmpty"
            )
        if self._head(prefix) is None:
            raise GatewayError(f"{path} does not exist", status=404, code="ResourceNotFound")
        self._client().delete_object(Bucket=self.bucket_name, Key=prefix)

    def delete_recursive(self, path: str) -> None:
        client = self._client()
        keys = [self._key(path)] if self._key(path) else []
        keys += self._all_keys(self._prefix(path))
        for start in range(0, len(keys), DELETE_BATCH_SIZE):
            batch = keys[start : start + DELETE_BATCH_SIZE]
            response = client.delete_objects(
                Bucket=self.bucket_name,
                Delete={"Objects": [{"Key": key} for key in batch], "Quiet": True},
            )
            errors = response.get("Errors", [])
            if errors:
                first = errors[0]
                raise GatewayError(
                    f"Could not delete {first.get('Key')}: {first.get('Message')}",
                    code=first.get("Code"),
                )
        log.debug("Deleted %d keys under %s", len(keys), path)

    def _all_keys(self, prefix: str) -> list[str]:
        client = self._client()
        keys: list[str] = []
        continuation: Optional[str] = None
        while True:
            kwargs = {"Bucket": self.bucket_name, "Prefix": prefix, "MaxKeys": 1000}
            if continuation:
                kwargs["ContinuationToken"] = continuation
            response = client.list_objects_v2(**kwargs)
            for entry in response.get("Contents", []):
                key = entry.get("Key")
                if key:
                    keys.append(key)
            if response.get("IsTruncated"):
                continuation = response.get("NextContinuationToken")
            else:
                break
        return keys

    def create_link(self, new_path: str, old_path: str) -> None:
        # Managed copy switches to multipart above the 5 GB single-request limit.
        self._client().copy(
            CopySource={"Bucket": self.bucket_name, "Key": self._key(old_path)},
            Bucket=self.bucket_name,
            Key=self._key(new_path),
        )

    def get_stream(self, path: str) -> RemoteStream:
        response = self._client().get_object(Bucket=self.bucket_name, Key=self._key(path))
        size = response.get("ContentLength")
        return RemoteStream(
            path, response["Body"], size if isinstance(size, int) else None
        )
