"""Shared base for request/response models.

The mobile and web clients speak camelCase JSON; Python code uses snake_case
field names. Timestamps without an offset are taken as UTC.
"""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base model with camelCase aliases and UTC-normalized timestamps."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    @field_validator("*", mode="after")
    @classmethod
    def _timestamps_are_utc(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            if value.tzinfo is None:
                return value.replace(tzinfo=UTC)
            try:
                return value.astimezone(UTC)
            except OverflowError as e:
                raise ValueError("timestamp is outside the representable UTC range") from e
        return value

    def to_wire(self) -> dict[str, Any]:
        """Serialize for a JSON response body."""
        return self.model_dump(mode="json", by_alias=True)
