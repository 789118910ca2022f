"""
Artifact store backends

Key/value object store used by the harvest (writer) and the read server (reader).
Each put replaces the whole object under its key (last writer wins); there are
no cross-key transactions.
"""
from __future__ import annotations

import hashlib
import logging
import mimetypes
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

import aiofiles
import aiofiles.os
from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError

from radiko_harvest.database import session_scope
from radiko_harvest.exceptions import StoreError
from radiko_harvest.models import Artifact


logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"


@dataclass(frozen=True, slots=True)
class StoredObject:
    """Object payload plus the metadata passed through to HTTP readers"""
    body: bytes
    content_type: str | None
    etag: str


class ArtifactStore(Protocol):
    """Collaborator contract shared by every backend"""

    async def put(self, key: str, data: bytes, *, content_type: str | None = JSON_CONTENT_TYPE) -> None:
        ...

    async def get(self, key: str) -> StoredObject | None:
        ...


def compute_etag(data: bytes) -> str:
    """Quoted MD5 of the payload, usable as an HTTP etag"""
    return f'"{hashlib.md5(data).hexdigest()}"'


class InMemoryArtifactStore:
    """Process-local store, used for tests and ephemeral deployments"""

    def __init__(self) -> None:
        self._objects: dict[str, StoredObject] = {}

    async def put(self, key: str, data: bytes, *, content_type: str | None = JSON_CONTENT_TYPE) -> None:
        self._objects[key] = StoredObject(body=bytes(data), content_type=content_type, etag=compute_etag(data))
        logger.debug("Stored %s (%s bytes) in memory", key, len(data))

    async def get(self, key: str) -> StoredObject | None:
        return self._objects.get(key)

    def keys(self) -> list[str]:
        return sorted(self._objects)


class FileSystemArtifactStore:
    """
    Store objects as files under a root directory.

    Writes go to a temporary sibling file which then replaces the target,
    so readers never observe a half-written object. Content type is derived
    from the key's extension.
    """

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root).resolve()

    def _path_for(self, key: str) -> Path | None:
        # Keys map to exactly one path: no empty, "." or ".." segments
        segments = key.split("/")
        if any(segment in ("", ".", "..") for segment in segments):
            return None
        path = (self.root / key).resolve()
        if path == self.root or not path.is_relative_to(self.root):
            return None
        return path

    async def put(self, key: str, data: bytes, *, content_type: str | None = JSON_CONTENT_TYPE) -> None:
        path = self._path_for(key)
        if path is None:
            raise StoreError(key, "put", "key does not map to a file under the storage root")

        temp_path = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
        try:
            await aiofiles.os.makedirs(path.parent, exist_ok=True)
            async with aiofiles.open(temp_path, "wb") as f:
                await f.write(data)
            await aiofiles.os.replace(temp_path, path)
        except OSError as e:
            logger.error(f"Failed to write artifact {path}: {e}")
            await _remove_quietly(temp_path)
            raise StoreError(key, "put", str(e)) from e

        logger.debug(f"Stored {key} ({len(data)} bytes) at {path}")

    async def get(self, key: str) -> StoredObject | None:
        path = self._path_for(key)
        if path is None:
            return None

        try:
            async with aiofiles.open(path, "rb") as f:
                data = await f.read()
        except (FileNotFoundError, IsADirectoryError):
            return None
        except OSError as e:
            raise StoreError(key, "get", str(e)) from e

        content_type, _ = mimetypes.guess_type(path.name)
        return StoredObject(body=data, content_type=content_type, etag=compute_etag(data))


async def _remove_quietly(path: Path) -> None:
    try:
        await aiofiles.os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Failed to delete temporary file {path}: {e}")


class SqliteArtifactStore:
    """Store objects as rows of the artifacts table (see database.init_db)"""

    _UPSERT = text(
        """
        INSERT INTO artifacts (key, body, content_type, etag, updated_at)
        VALUES (:key, :body, :content_type, :etag, :updated_at)
        ON CONFLICT(key) DO UPDATE SET
            body = excluded.body,
            content_type = excluded.content_type,
            etag = excluded.etag,
            updated_at = excluded.updated_at
        """
    )

    async def put(self, key: str, data: bytes, *, content_type: str | None = JSON_CONTENT_TYPE) -> None:
        payload = {
            "key": key,
            "body": data,
            "content_type": content_type,
            "etag": compute_etag(data),
            "updated_at": datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S.%f"),
        }
        try:
            async with session_scope() as session:
                await session.execute(self._UPSERT, payload)
        except SQLAlchemyError as e:
            logger.error("Failed to store artifact %s: %s", key, e)
            raise StoreError(key, "put", str(e)) from e

        logger.debug("Stored %s (%s bytes) in database", key, len(data))

    async def get(self, key: str) -> StoredObject | None:
        try:
            async with session_scope(begin=False) as session:
                result = await session.execute(
                    select(Artifact.body, Artifact.content_type, Artifact.etag).where(Artifact.key == key)
                )
                row = result.one_or_none()
        except SQLAlchemyError as e:
            raise StoreError(key, "get", str(e)) from e

        if row is None:
            return None
        return StoredObject(body=row.body, content_type=row.content_type, etag=row.etag)


def create_artifact_store(backend: str, *, storage_root: str | None = None) -> ArtifactStore:
    """
    Build the configured store backend.

    The sqlite backend needs database.init_db() to have run first.
    """
    if backend == "memory":
        return InMemoryArtifactStore()
    if backend == "filesystem":
        if not storage_root:
            raise ValueError("storage_root is required for the filesystem backend")
        return FileSystemArtifactStore(storage_root)
    if backend == "sqlite":
        return SqliteArtifactStore()
    raise ValueError(f"Unknown storage backend: {backend}")


__all__ = [
    "ArtifactStore",
    "FileSystemArtifactStore",
    "InMemoryArtifactStore",
    "JSON_CONTENT_TYPE",
    "SqliteArtifactStore",
    "StoredObject",
    "compute_etag",
    "create_artifact_store",
]
