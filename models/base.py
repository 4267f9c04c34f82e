"""Base model with camelCase serialization for API output."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for every API-facing model: camelCase out, either case in."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )
