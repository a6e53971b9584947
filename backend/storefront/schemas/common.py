from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts camelCase JSON keys (the storefront UI's wire format) or field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
