"""Shared schema base and object-storage descriptors."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base for resource schemas: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class FileDescriptor(ApiModel):
    """Uploaded file reference produced by object storage, stored verbatim."""

    public_id: str | None = Field(default=None, description="Storage public id")
    url: str = Field(..., min_length=1, description="Public URL of the file")
    name: str | None = Field(default=None, description="Original file name")


class MessageResponse(BaseModel):
    """Plain acknowledgement."""

    message: str
