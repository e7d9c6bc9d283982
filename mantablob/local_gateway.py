"""
Local directory tree served through the gateway interface.

Useful for development and tests: directories, hard links and the
"directory not empty" refusal all come straight from the filesystem.
"""

from __future__ import annotations

import mimetypes
import os
import shutil
import tempfile
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, Optional, Union

from .gateway import (
    DIRECTORY_CONTENT_TYPE,
    OBJECT_CONTENT_TYPE,
    EntryMetadata,
    GatewayError,
    RemoteStream,
)
from .paths import SEPARATOR, join


class LocalDirectoryGateway:
    def __init__(self, root: Union[str, os.PathLike]) -> None:
        self.root = Path(root).expanduser().resolve()

    def _resolve(self, path: str) -> Path:
        resolved = (self.root / path.lstrip(SEPARATOR)).resolve()
        if resolved != self.root and self.root not in resolved.parents:
            raise GatewayError(f"{path} is outside the storage root", status=403)
        return resolved

    def _metadata(self, path: str, local: Path) -> EntryMetadata:
        stat = local.stat()
        modified = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)
        if local.is_dir():
            return EntryMetadata(path, DIRECTORY_CONTENT_TYPE, None, modified)
        content_type = mimetypes.guess_type(local.name)[0] or OBJECT_CONTENT_TYPE
        return EntryMetadata(path, content_type, stat.st_size, modified)

    def probe(self, path: str) -> Optional[EntryMetadata]:
        local = self._resolve(path)
        if not local.exists():
            return None
        return self._metadata(path, local)

    def list(self, path: str) -> list[EntryMetadata]:
        local = self._resolve(path)
        entries: list[EntryMetadata] = []
        with os.scandir(local) as iterator:
            for entry in iterator:
                child = Path(entry.path)
                entries.append(self._metadata(join(path, entry.name), child))
        return entries

    def put_directory(self, path: str) -> None:
        self._resolve(path).mkdir(parents=True, exist_ok=True)

    def put_object(self, path: str, stream: BinaryIO) -> None:
        local = self._resolve(path)
        # Write beside the target and rename so readers never see partial data.
        fd, temp_name = tempfile.mkstemp(dir=local.parent, prefix=f".{local.name}.")
        try:
            with os.fdopen(fd, "wb") as output:
                shutil.copyfileobj(stream, output)
            os.replace(temp_name, local)
        except BaseException:
            try:
                os.unlink(temp_name)
            except FileNotFoundError:
                pass
            raise

    def delete(self, path: str) -> None:
        local = self._resolve(path)
        if local.is_dir():
            local.rmdir()
        else:
            local.unlink()

    def delete_recursive(self, path: str) -> None:
        local = self._resolve(path)
        if local.is_dir():
            shutil.rmtree(local)
        else:
            local.unlink()

    def create_link(self, new_path: str, old_path: str) -> None:
        source = self._resolve(old_path)
        local = self._resolve(new_path)
        # os.link refuses an existing target; link beside it and replace instead.
        temp = local.parent / f".{local.name}.{uuid.uuid4().hex}"
        os.link(source, temp)
        try:
            os.replace(temp, local)
        finally:
            # rename() onto a link of the same file leaves the source name behind
            try:
                os.unlink(temp)
            except FileNotFoundError:
                pass

    def get_stream(self, path: str) -> RemoteStream:
        local = self._resolve(path)
        body = local.open("rb")
        return RemoteStream(path, body, os.fstat(body.fileno()).st_size)
