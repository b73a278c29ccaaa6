"""
Pydantic schemas for the HTTP API.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BlogPost(_CamelModel):
    id: str
    title: str
    description: str
    category: str
    image_url: str
    status: Literal["published", "draft"]
    created_at: datetime
    updated_at: datetime


class BlogCreateRequest(_CamelModel):
    """Values are cast and checked by the store schema, not here."""

    title: Any = None
    description: Any = None
    category: Any = None
    image_url: Any = None
    status: Any = None


class BlogUpdateRequest(BlogCreateRequest):
    pass


class BlogListResponse(BaseModel):
    success: bool = True
    count: int
    data: list[BlogPost]


class BlogResponse(BaseModel):
    success: bool = True
    data: BlogPost


class EmptyDataResponse(BaseModel):
    success: bool = True
    data: dict = {}


class ContactRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    message: Optional[str] = None


class ContactResponse(BaseModel):
    success: bool = True
    message: str


class DatabaseStatus(BaseModel):
    connected: bool
    message: str


class EmailServerStatus(BaseModel):
    ready: bool
    message: str


class ServerStatus(BaseModel):
    status: Literal["running"] = "running"
    port: int


class StatusDetails(BaseModel):
    database: DatabaseStatus
    emailServer: EmailServerStatus
    server: ServerStatus


class StatusResponse(BaseModel):
    success: bool = True
    status: StatusDetails


class MessageResponse(BaseModel):
    message: str
