from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _require_title(value: Optional[str]) -> str:
    if value is None or not value.strip():
        raise ValueError("Title is required")
    return value


class TaskCreate(BaseModel):
    title: str
    description: Optional[str] = None
    completed: bool = False

    @field_validator("title", mode="before")
    @classmethod
    def title_not_blank(cls, v: Any) -> Any:
        """Reject missing, empty and whitespace-only titles."""

        if v is None or (isinstance(v, str) and not v.strip()):
            raise ValueError("Title is required")
        return v


class TaskUpdate(BaseModel):
    """Partial update body; `id` and `createdAt` are ignored if sent."""

    title: Optional[str] = None
    description: Optional[str] = None
    completed: Optional[bool] = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: Optional[str]) -> str:
        return _require_title(v)

    @field_validator("completed")
    @classmethod
    def completed_not_null(cls, v: Optional[bool]) -> bool:
        if v is None:
            raise ValueError("Completed must be a boolean")
        return v


class Task(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: str
    title: str
    description: Optional[str] = None
    completed: bool = False
    created_at: datetime = Field(..., alias="createdAt")


class HealthResponse(BaseModel):
    status: str
    environment: str
    timestamp: datetime
    database: str


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: str
    details: Optional[list[dict[str, Any]]] = None
