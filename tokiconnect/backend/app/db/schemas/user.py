from datetime import datetime

from pydantic import field_validator

from .base import CamelModel


class User(CamelModel):
    id: int
    email: str
    first_name: str | None = None
    last_name: str | None = None
    role: str
    created_at: datetime | None = None

    @field_validator("role", mode="before")
    @classmethod
    def _enum_value(cls, value):
        return getattr(value, "value", value)
