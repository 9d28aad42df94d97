"""Shared schema building blocks."""

import uuid
from datetime import datetime
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from fireops.errors import ValidationError
from fireops.timeutils import ensure_utc

UTCDateTime = Annotated[datetime, AfterValidator(ensure_utc)]


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys, accepting either form."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Coordinates(CamelModel):
    """Geographic coordinates."""

    latitude: float
    longitude: float


class Pagination(BaseModel):
    """Page metadata for list endpoints."""

    current: int
    pages: int
    total: int


def parse_id(value: Any, label: str) -> uuid.UUID:
    """Parse an entity id, raising a 400 ValidationError when malformed."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid {label} ID format") from e


def envelope(data: Any = None, message: str | None = None, **extra: Any) -> dict[str, Any]:
    """Build the success envelope returned by every endpoint."""
    body: dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        if isinstance(data, BaseModel):
            data = data.model_dump(mode="json", by_alias=True)
        elif isinstance(data, list):
            data = [
                item.model_dump(mode="json", by_alias=True)
                if isinstance(item, BaseModel)
                else item
                for item in data
            ]
        body["data"] = data
    body.update(extra)
    return body
