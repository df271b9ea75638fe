"""Shared request/response schemas."""
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ApiResponse(BaseModel, Generic[T]):
    """Uniform envelope returned by every endpoint."""

    success: bool = True
    message: str
    data: Optional[T] = None


def ok(message: str, data=None) -> dict:
    """Build a success envelope.

    Pydantic payloads are dumped by alias here so events and responses share
    the same camelCase shape.
    """
    if isinstance(data, BaseModel):
        data = data.model_dump(by_alias=True, mode="json")
    elif isinstance(data, list):
        data = [
            item.model_dump(by_alias=True, mode="json") if isinstance(item, BaseModel) else item
            for item in data
        ]
    return {"success": True, "message": message, "data": data}
