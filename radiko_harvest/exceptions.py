"""
Error taxonomy for the harvest pipeline and the artifact store.

Every failure the harvest run knows how to stop on derives from HarvestError.
"""
from typing import Any


class HarvestError(Exception):
    """Base class for failures that abort a harvest run."""


class TransportError(HarvestError):
    """Upstream request failed (connection error, timeout or non-success status)."""

    def __init__(self, url: str, message: str, status_code: int | None = None):
        self.url = url
        self.status_code = status_code
        super().__init__(message)


class XMLDecodeError(HarvestError):
    """Upstream payload is not syntactically valid XML."""


class DocumentValidationError(HarvestError):
    """Decoded tree does not match its structural schema."""

    def __init__(self, document_kind: str, errors: list[dict[str, Any]]):
        self.document_kind = document_kind
        self.errors = errors
        locations = ", ".join(
            ".".join(str(part) for part in error.get("loc", ())) or "<root>"
            for error in errors[:3]
        )
        suffix = f" (+{len(errors) - 3} more)" if len(errors) > 3 else ""
        super().__init__(f"{document_kind} failed validation at: {locations}{suffix}")


class StoreError(HarvestError):
    """Artifact store read or write failed."""

    def __init__(self, key: str, operation: str, message: str):
        self.key = key
        self.operation = operation
        super().__init__(f"{operation} '{key}' failed: {message}")
