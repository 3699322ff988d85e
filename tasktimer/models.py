# PURPOSE: request/response schemas for the task API.
# JSON on the wire is camelCase (timerEnabled, createdAt); Python attributes stay snake_case.

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# Fields that may be omitted from a partial update but never set to null
NON_NULLABLE_UPDATE_FIELDS = ("title", "timer_enabled", "hours", "minutes", "seconds")


def _clean_title(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    if not value:
        raise ValueError("Task title cannot be empty")
    return value


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class TaskCreate(_CamelModel):
    title: str = Field(min_length=1, max_length=200)
    timer_enabled: bool = False
    hours: int = Field(default=0, ge=0, le=23)
    minutes: int = Field(default=0, ge=0, le=59)
    seconds: int = Field(default=0, ge=0, le=59)

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {"title": "Read chapter 3"},
                {"title": "Deep work", "timerEnabled": True, "hours": 0, "minutes": 25, "seconds": 0},
            ]
        },
    )

    @field_validator("title")
    @classmethod
    def strip_title(cls, value: str | None) -> str | None:
        return _clean_title(value)


class TaskUpdate(_CamelModel):
    """Partial update: only fields present in the request body are applied.

    Absent and explicit null are told apart through ``model_fields_set``;
    store_db.update_task rejects null for NON_NULLABLE_UPDATE_FIELDS.
    """

    title: str | None = Field(default=None, min_length=1, max_length=200)
    timer_enabled: bool | None = None
    hours: int | None = Field(default=None, ge=0, le=23)
    minutes: int | None = Field(default=None, ge=0, le=59)
    seconds: int | None = Field(default=None, ge=0, le=59)

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {"title": "New title"},
                {"timerEnabled": False},
                {"minutes": 45},
            ]
        },
    )

    @field_validator("title")
    @classmethod
    def strip_title(cls, value: str | None) -> str | None:
        return _clean_title(value)

    def provided(self) -> dict:
        """Return {field: value} for every field explicitly sent, nulls included."""
        return {name: getattr(self, name) for name in self.model_fields_set}


class Task(_CamelModel):
    id: int
    title: str
    timer_enabled: bool
    hours: int
    minutes: int
    seconds: int
    position: int | None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)  # ORM -> schema

    @property
    def duration_seconds(self) -> int:
        return self.hours * 3600 + self.minutes * 60 + self.seconds

