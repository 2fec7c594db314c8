from __future__ import annotations

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from scribe.services.meeting_store import StoreError

_META_SUFFIX = ".meta.json"
_TEMP_SUFFIX = ".tmp"


def _atomic_write(path: str, text: str) -> None:
    # Each writer gets its own temp file; concurrent writers to one key race
    # only on os.replace, and the last one wins.
    fd, temp_path = tempfile.mkstemp(
        dir=os.path.dirname(path), prefix=f".{os.path.basename(path)}.", suffix=_TEMP_SUFFIX
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(temp_path, path)
    except OSError:
        if os.path.exists(temp_path):
            os.unlink(temp_path)
        raise


@dataclass(frozen=True)
class Blob:
    key: str
    content: str
    content_type: str
    size: int
    uploaded_at: Optional[str] = None
    metadata: dict = field(default_factory=dict)


class BlobStore(ABC):
    @abstractmethod
    def put(
        self,
        key: str,
        content: str,
        metadata: Optional[dict] = None,
        content_type: str = "text/markdown; charset=utf-8",
    ) -> Blob:
        raise NotImplementedError

    @abstractmethod
    def get(self, key: str) -> Optional[Blob]:
        raise NotImplementedError

    @abstractmethod
    def delete(self, key: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def list(self, prefix: str = "") -> list[str]:
        raise NotImplementedError

    def exists(self, key: str) -> bool:
        return self.get(key) is not None


class LocalBlobStore(BlobStore):
    """Blob store backed by a directory tree.

    Keys map to relative paths under ``root``. Content is written to a temp
    file and swapped in with ``os.replace``; metadata lives in a JSON sidecar
    next to the blob.
    """

    def __init__(self, root: str) -> None:
        self._root = os.path.abspath(root)
        self._logger = logging.getLogger("scribe.blobs")
        os.makedirs(self._root, exist_ok=True)

    def _path_for(self, key: str) -> str:
        if not key or key.startswith("/") or key.endswith(_META_SUFFIX):
            raise StoreError(f"Invalid blob key: {key!r}")
        path = os.path.abspath(os.path.join(self._root, *key.split("/")))
        if os.path.commonpath([self._root, path]) != self._root or path == self._root:
            raise StoreError(f"Blob key escapes store root: {key!r}")
        return path

    def put(
        self,
        key: str,
        content: str,
        metadata: Optional[dict] = None,
        content_type: str = "text/markdown; charset=utf-8",
    ) -> Blob:
        path = self._path_for(key)
        uploaded_at = datetime.now(timezone.utc).isoformat()
        sidecar = {
            "content_type": content_type,
            "uploaded_at": uploaded_at,
            "metadata": dict(metadata or {}),
        }
        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            _atomic_write(path, content)
            _atomic_write(f"{path}{_META_SUFFIX}", json.dumps(sidecar, indent=2, ensure_ascii=False))
        except OSError as exc:
            self._logger.error("Blob write failed: key=%s error=%s", key, exc)
            raise StoreError(f"Failed to write blob {key}: {exc}") from exc
        self._logger.debug("Blob written: key=%s bytes=%s", key, len(content.encode("utf-8")))
        return Blob(
            key=key,
            content=content,
            content_type=content_type,
            size=len(content.encode("utf-8")),
            uploaded_at=uploaded_at,
            metadata=sidecar["metadata"],
        )

    def get(self, key: str) -> Optional[Blob]:
        path = self._path_for(key)
        if not os.path.isfile(path):
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                content = f.read()
        except OSError as exc:
            raise StoreError(f"Failed to read blob {key}: {exc}") from exc
        sidecar: dict = {}
        try:
            with open(f"{path}{_META_SUFFIX}", "r", encoding="utf-8") as f:
                sidecar = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            self._logger.warning("Blob metadata unreadable: key=%s error=%s", key, exc)
        return Blob(
            key=key,
            content=content,
            content_type=sidecar.get("content_type", "application/octet-stream"),
            size=len(content.encode("utf-8")),
            uploaded_at=sidecar.get("uploaded_at"),
            metadata=sidecar.get("metadata", {}),
        )

    def delete(self, key: str) -> bool:
        path = self._path_for(key)
        if not os.path.isfile(path):
            return False
        try:
            os.unlink(path)
            if os.path.exists(f"{path}{_META_SUFFIX}"):
                os.unlink(f"{path}{_META_SUFFIX}")
        except OSError as exc:
            raise StoreError(f"Failed to delete blob {key}: {exc}") from exc
        return True

    def list(self, prefix: str = "") -> list[str]:
        keys: list[str] = []
        for dirpath, _dirnames, filenames in os.walk(self._root):
            for name in filenames:
                if name.endswith(_META_SUFFIX) or name.endswith(_TEMP_SUFFIX):
                    continue
                rel = os.path.relpath(os.path.join(dirpath, name), self._root)
                key = rel.replace(os.sep, "/")
                if key.startswith(prefix):
                    keys.append(key)
        return sorted(keys)
