"""Base schemas for the application."""

from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BaseSchema(BaseModel):
    """Base schema class with common configuration."""
    model_config = ConfigDict(from_attributes=True)


class CamelSchema(BaseSchema):
    """Schema whose wire names are camelCase while attributes stay snake_case."""
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class ResponseSchema(CamelSchema):
    """Standard API response schema."""
    success: bool = True
    message: Optional[str] = None
