"""Settings for opening a store, read from a JSON config file and the environment."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .adapter import MantaBlobStore
from .gateway import RemoteStoreGateway

SUPPORTED_BACKENDS = ("s3", "local")

ENV_KEYS = {
    "account": "MANTABLOB_ACCOUNT",
    "region_id": "MANTABLOB_REGION",
    "backend": "MANTABLOB_BACKEND",
    "bucket_name": "MANTABLOB_BUCKET",
    "endpoint_url": "MANTABLOB_ENDPOINT_URL",
    "profile": "MANTABLOB_PROFILE",
    "local_root": "MANTABLOB_LOCAL_ROOT",
}


@dataclass(frozen=True)
class StoreSettings:
    account: str
    region_id: str = ""
    backend: str = "s3"
    bucket_name: Optional[str] = None
    endpoint_url: Optional[str] = None
    profile: Optional[str] = None
    local_root: Optional[Path] = None


def config_base_dir(env: Optional[Mapping[str, str]] = None) -> Path:
    env = os.environ if env is None else env
    config_home = env.get("XDG_CONFIG_HOME")
    if config_home:
        base = Path(config_home).expanduser()
    else:
        base = Path.home() / ".config"
    return base / "mantablob"


def default_config_path(env: Optional[Mapping[str, str]] = None) -> Path:
    return config_base_dir(env) / "config.json"


def _read_config_file(path: Path) -> dict[str, object]:
    try:
        payload = json.loads(path.read_text())
    except (OSError, ValueError):
        return {}
    if not isinstance(payload, dict):
        return {}
    return payload


def _clean(value: object) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def load_settings(
    env: Optional[Mapping[str, str]] = None,
    config_path: Optional[Path] = None,
    **overrides: Optional[str],
) -> StoreSettings:
    """
    Merge, lowest to highest priority: the config file, ``MANTABLOB_*``
    environment variables, then non-empty keyword ``overrides``.

    Raises ``ValueError`` naming the missing or invalid setting.
    """
    env = os.environ if env is None else env
    path = config_path or default_config_path(env)
    values: dict[str, Optional[str]] = {
        field: _clean(raw) for field, raw in _read_config_file(path).items() if field in ENV_KEYS
    }
    for field, key in ENV_KEYS.items():
        value = _clean(env.get(key))
        if value is not None:
            values[field] = value
    for field, value in overrides.items():
        if field not in ENV_KEYS:
            raise TypeError(f"Unknown setting: {field}")
        if _clean(value) is not None:
            values[field] = _clean(value)

    account = values.get("account")
    if not account:
        raise ValueError(f"Missing account: set {ENV_KEYS['account']} or 'account' in {path}")
    backend = (values.get("backend") or "s3").lower()
    if backend not in SUPPORTED_BACKENDS:
        raise ValueError(
            f"Unsupported backend: {backend!r}. Supported: {', '.join(SUPPORTED_BACKENDS)}"
        )
    if backend == "s3" and not values.get("bucket_name"):
        raise ValueError(f"Bucket name required: set {ENV_KEYS['bucket_name']}")
    local_root = values.get("local_root")
    if backend == "local" and not local_root:
        raise ValueError(f"Local root required: set {ENV_KEYS['local_root']}")

    return StoreSettings(
        account=account,
        region_id=values.get("region_id") or "",
        backend=backend,
        bucket_name=values.get("bucket_name"),
        endpoint_url=values.get("endpoint_url"),
        profile=values.get("profile"),
        local_root=Path(local_root).expanduser() if local_root else None,
    )


def create_gateway(settings: StoreSettings) -> RemoteStoreGateway:
    if settings.backend == "local":
        from .local_gateway import LocalDirectoryGateway

        return LocalDirectoryGateway(settings.local_root)
    if settings.backend == "s3":
        from .s3_gateway import S3DirectoryGateway

        return S3DirectoryGateway(
            settings.bucket_name,
            region=settings.region_id or None,
            endpoint_url=settings.endpoint_url,
            profile=settings.profile,
        )
    raise ValueError(f"Unsupported backend: {settings.backend!r}")


def open_store(settings: StoreSettings) -> MantaBlobStore:
    return MantaBlobStore(
        create_gateway(settings), settings.account, region_id=settings.region_id
    )
