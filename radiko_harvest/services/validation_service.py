"""
Document Validation Service

All-or-nothing structural checks of decoded upstream documents.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
import logging

from pydantic import BaseModel, ValidationError

from radiko_harvest.exceptions import DocumentValidationError
from radiko_harvest.schemas import StationDirectoryDocument, WeeklyScheduleDocument


logger = logging.getLogger(__name__)


class DocumentKind(str, Enum):
    STATION_DIRECTORY = "station_directory"
    WEEKLY_SCHEDULE = "weekly_schedule"


_SCHEMAS: dict[DocumentKind, type[BaseModel]] = {
    DocumentKind.STATION_DIRECTORY: StationDirectoryDocument,
    DocumentKind.WEEKLY_SCHEDULE: WeeklyScheduleDocument,
}

# Tags decoded as lists even when they occur once
FORCE_LIST_TAGS: dict[DocumentKind, frozenset[str]] = {
    DocumentKind.STATION_DIRECTORY: frozenset({"station"}),
    DocumentKind.WEEKLY_SCHEDULE: frozenset({"progs", "prog"}),
}


@dataclass(slots=True)
class ValidationResult:
    """Outcome of validating a whole decoded tree"""
    kind: DocumentKind
    ok: bool
    document: BaseModel | None = None
    errors: list[dict[str, Any]] = field(default_factory=list)


def validate_document(kind: DocumentKind, tree: Any) -> ValidationResult:
    """
    Validate a decoded tree against the schema for its document kind.

    Never raises for a schema mismatch; the result carries either the
    validated document or every error found.
    """
    schema = _SCHEMAS[kind]
    try:
        document = schema.model_validate(tree)
    except ValidationError as exc:
        errors = exc.errors(include_url=False, include_input=False)
        return ValidationResult(kind=kind, ok=False, errors=errors)
    return ValidationResult(kind=kind, ok=True, document=document)


def require_valid(kind: DocumentKind, tree: Any) -> BaseModel:
    """
    Validate a decoded tree or fail the whole operation.

    Raises:
        DocumentValidationError: If any key is missing or any leaf has the wrong kind
    """
    result = validate_document(kind, tree)
    if not result.ok:
        logger.error(
            "%s validation failed with %s error(s): %s",
            kind.value,
            len(result.errors),
            [
                {"loc": error.get("loc"), "msg": error.get("msg")}
                for error in result.errors[:5]
            ],
        )
        raise DocumentValidationError(kind.value, result.errors)
    return result.document
