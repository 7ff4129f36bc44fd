"""Helpers shared by the task store adapters: field validation and timestamps."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping

from pydantic import ValidationError as PydanticValidationError

from taskservice.app.core.errors import ValidationError
from taskservice.app.schemas import TaskCreate, TaskUpdate

UPDATABLE_FIELDS = ("title", "description", "completed")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive timestamps read back from drivers that drop tzinfo."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def error_details(errors: Iterable[Mapping[str, Any]]) -> List[Dict[str, str]]:
    details = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        message = str(err.get("msg", "Invalid value"))
        # pydantic prefixes messages raised from validators
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        details.append({"field": ".".join(loc) or "body", "message": message})
    return details


def validation_error_from(details: List[Dict[str, str]]) -> ValidationError:
    summary = ", ".join(f"{d['field']}: {d['message']}" for d in details)
    return ValidationError(f"Task validation failed: {summary}", details=details)


def validate_new_task(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Apply create defaults and validate; returns title/description/completed."""

    try:
        parsed = TaskCreate.model_validate(dict(fields or {}))
    except PydanticValidationError as exc:
        raise validation_error_from(error_details(exc.errors())) from exc
    return parsed.model_dump()


def validate_task_patch(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Validate a partial update; only supplied, updatable fields are kept."""

    supplied = {k: v for k, v in dict(fields or {}).items() if k in UPDATABLE_FIELDS}
    try:
        parsed = TaskUpdate.model_validate(supplied)
    except PydanticValidationError as exc:
        raise validation_error_from(error_details(exc.errors())) from exc
    return parsed.model_dump(include=set(supplied))
