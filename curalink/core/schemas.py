from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

class ApiModel(BaseModel):
    """JSON bodies use camelCase on the wire; python code uses snake_case."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

class SuccessOut(ApiModel):
    success: bool = True
    message: str | None = None
