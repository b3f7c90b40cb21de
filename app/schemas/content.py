from typing import Any, ClassVar

from pydantic import ConfigDict, field_validator, model_validator
from sqlmodel import SQLModel


def strip_required(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("field cannot be empty")
    return v


def strip_optional(v: str | None) -> str | None:
    if v is None:
        return v
    return strip_required(v)


class SlugPayload(SQLModel):
    """
    Base for content create/update payloads.

    - slug is optional: if omitted, it is generated from the title/name.
    - fields listed in `not_null_fields` may be omitted from a partial
      update but never sent as null (their columns are NOT NULL).
    """

    model_config = ConfigDict(extra="forbid")

    not_null_fields: ClassVar[tuple[str, ...]] = ()

    slug: str | None = None

    @model_validator(mode="before")
    @classmethod
    def reject_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            for name in cls.not_null_fields:
                if name in data and data[name] is None:
                    raise ValueError(f"{name} cannot be null")
        return data

    @field_validator("slug")
    @classmethod
    def normalize_slug(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("slug cannot be empty if provided")
        return v
