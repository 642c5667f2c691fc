"""
Base schema for Kafka event payloads
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BaseEventData(BaseModel):
    """Base class for all event payloads (camelCase field names on the wire)"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )
