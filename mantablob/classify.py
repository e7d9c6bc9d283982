from __future__ import annotations

from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError

from .errors import (
    BlobStoreError,
    NotAuthorizedError,
    NotFoundError,
    TransportFailureError,
)
from .gateway import GatewayError

FORBIDDEN_CODES = {"403", "AccessDenied", "Forbidden", "AllAccessDisabled"}
NOT_FOUND_CODES = {
    "404",
    "NoSuchKey",
    "NoSuchBucket",
    "NotFound",
    "ResourceNotFound",
}


class ErrorClassifier:
    """
    Maps raw gateway failures onto the domain error taxonomy.

    Understands ``GatewayError`` statuses, botocore client errors and plain
    ``OSError``s. Domain errors are returned unchanged.
    """

    def status_of(self, exc: BaseException) -> Optional[int]:
        if isinstance(exc, GatewayError):
            return exc.status
        if isinstance(exc, ClientError):
            metadata = exc.response.get("ResponseMetadata", {})
            status = metadata.get("HTTPStatusCode")
            if isinstance(status, int):
                return status
        return None

    def code_of(self, exc: BaseException) -> Optional[str]:
        if isinstance(exc, GatewayError):
            return exc.code
        if isinstance(exc, ClientError):
            code = exc.response.get("Error", {}).get("Code")
            if isinstance(code, str):
                return code
        return None

    def is_forbidden(self, exc: BaseException) -> bool:
        if isinstance(exc, NotAuthorizedError):
            return True
        if isinstance(exc, PermissionError):
            return True
        if self.status_of(exc) == 403:
            return True
        return self.code_of(exc) in FORBIDDEN_CODES

    def is_not_found(self, exc: BaseException) -> bool:
        if isinstance(exc, NotFoundError):
            return True
        if isinstance(exc, (FileNotFoundError, NotADirectoryError)):
            return True
        if self.status_of(exc) == 404:
            return True
        return self.code_of(exc) in NOT_FOUND_CODES

    def indicates_non_empty_directory(self, exc: BaseException) -> bool:
        """
        Guess whether a failed delete was refused because the directory has
        children.

        Gateways give no structured signal for this, so every I/O or
        transport failure that is neither "forbidden" nor "not found" counts.
        """
        if isinstance(exc, BlobStoreError):
            return False
        if not isinstance(exc, (GatewayError, ClientError, BotoCoreError, OSError)):
            return False
        return not (self.is_forbidden(exc) or self.is_not_found(exc))

    def classify(self, exc: BaseException, path: Optional[str] = None) -> BlobStoreError:
        if isinstance(exc, BlobStoreError):
            return exc
        target = f" ({path})" if path else ""
        if self.is_forbidden(exc):
            error: BlobStoreError = NotAuthorizedError(f"Access denied{target}: {exc}")
        elif self.is_not_found(exc):
            error = NotFoundError(f"Not found{target}: {exc}")
        else:
            error = TransportFailureError(f"Storage request failed{target}: {exc}")
        error.__cause__ = exc
        return error
