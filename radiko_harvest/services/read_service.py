"""
Artifact Read Service

Maps an HTTP request path to a store key and returns the stored object.
This service handles all read operations; it never writes.
"""
from dataclasses import dataclass, field
from typing import Literal
import logging

from pydantic import ValidationError

from radiko_harvest.schemas import PublishManifest
from radiko_harvest.services.artifact_store import ArtifactStore
from radiko_harvest.services.harvest_types import MANIFEST_KEY

logger = logging.getLogger(__name__)

NOT_FOUND_BODY = b"Object Not Found"


@dataclass(slots=True)
class ReadResponse:
    """Transport-independent response of the read path"""
    status_code: int
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)


class ArtifactReader:
    """Read-through lookup of stored artifacts"""

    def __init__(self, store: ArtifactStore, *, publish_mode: Literal["direct", "staged"] = "direct") -> None:
        self.store = store
        self.publish_mode = publish_mode

    async def handle(self, method: str, path: str) -> ReadResponse:
        """
        Serve one request

        Args:
            method: HTTP method, compared case-insensitively against GET
            path: Raw request path; the leading '/' is stripped to form the key

        Returns:
            200 with the stored bytes, 404 if absent, 405 for any other method

        Raises:
            StoreError: If the store fails for a reason other than a missing key
        """
        if method.upper() != "GET":
            return ReadResponse(status_code=405)

        key = path[1:] if path.startswith("/") else path
        resolved_key = await self._resolve(key)

        stored = await self.store.get(resolved_key)
        if stored is None:
            logger.debug(f"Artifact not found: {key}")
            return ReadResponse(
                status_code=404,
                body=NOT_FOUND_BODY,
                headers={"content-type": "text/plain;charset=UTF-8"},
            )

        headers = {"etag": stored.etag}
        if stored.content_type:
            headers["content-type"] = stored.content_type
        return ReadResponse(status_code=200, body=stored.body, headers=headers)

    async def _resolve(self, key: str) -> str:
        """In staged mode, public keys point at the last published run"""
        if self.publish_mode != "staged" or key == MANIFEST_KEY:
            return key

        stored = await self.store.get(MANIFEST_KEY)
        if stored is None:
            return key

        try:
            manifest = PublishManifest.model_validate_json(stored.body)
        except ValidationError as exc:
            logger.error(f"Ignoring unreadable publish manifest: {exc}")
            return key

        return manifest.objects.get(key, key)
