from __future__ import annotations

from typing import Optional

SEPARATOR = "/"
PRIVATE_DIR = "stor"
PUBLIC_DIR = "public"


def container_of(path: str) -> str:
    """Everything up to and including the last separator ("" if there is none)."""
    return path[: path.rfind(SEPARATOR) + 1]


def leaf_of(path: str) -> str:
    """Everything after the last separator (the whole string if there is none)."""
    return path[path.rfind(SEPARATOR) + 1 :]


def private_root(account: str) -> str:
    return f"{SEPARATOR}{account}{SEPARATOR}{PRIVATE_DIR}"


def public_root(account: str) -> str:
    return f"{SEPARATOR}{account}{SEPARATOR}{PUBLIC_DIR}"


def directory_path(bucket: str) -> str:
    # "/acct/stor/dir/" and "/acct/stor/dir" name the same directory
    stripped = bucket.rstrip(SEPARATOR)
    return stripped or SEPARATOR


def join(container: Optional[str], name: str) -> str:
    if not container:
        return name
    if container.endswith(SEPARATOR):
        return f"{container}{name}"
    return f"{container}{SEPARATOR}{name}"
