from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """JSON uses camelCase keys; Python code may use either form."""

    class Config:
        from_attributes = True
        populate_by_name = True
        alias_generator = to_camel
