"""Pydantic base schema utilities for platform models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BaseSchema(BaseModel):
    """
    Base Pydantic model for all domain schemas.

    Configures common Pydantic behaviors:
    - ``populate_by_name=True``: Allow initialization by alias or field name.
    - ``alias_generator=to_camel``: Serialize with camelCase keys (``typeId``,
      ``createdAt``) when dumped ``by_alias``; Python code keeps snake_case.
    - ``extra="forbid"``: Prevent unknown fields from slipping into the model, ensuring strict validation.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        alias_generator=to_camel,
        extra="forbid",
    )

    def to_payload(self) -> dict:
        """JSON-safe camelCase dict, the shape tool results and API responses use."""
        return self.model_dump(mode="json", by_alias=True)
