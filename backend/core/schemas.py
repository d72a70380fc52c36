from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Schema exchanged with clients as camelCase JSON.

    Fields are declared in snake_case and accepted under either name.
    """

    class Config:
        alias_generator = to_camel
        populate_by_name = True
