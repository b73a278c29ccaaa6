"""
Document schema for blog posts.

Validation here plays the role of the store's schema layer: values are
trimmed, required fields are enforced and the status enum is checked. Every
failing field contributes one message to a ``DocumentValidationError``.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_core import PydanticCustomError

BLOG_STATUSES = ("published", "draft")
DEFAULT_BLOG_STATUS = "draft"
TITLE_MAX_LENGTH = 100

REQUIRED_MESSAGES = {
    "title": "Blog title is required",
    "description": "Blog description is required",
    "category": "Blog category is required",
    "imageUrl": "Blog image URL is required",
    "status": "Blog status is required",
}


class DocumentValidationError(ValueError):
    """Raised when a document violates the schema."""

    def __init__(self, messages: list[str]):
        super().__init__("; ".join(messages))
        self.messages = messages


def _cast_string(value: Any, path: str) -> Any:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise PydanticCustomError(
            "string_cast",
            'Cast to string failed for value "{value}" at path "{path}"',
            {"value": value, "path": path},
        )
    return str(value).strip()


class BlogDocument(BaseModel):
    """Full document as stored; used when creating a post."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    title: str
    description: str
    category: str
    image_url: str = Field(alias="imageUrl")
    status: str = DEFAULT_BLOG_STATUS

    @field_validator("title", "description", "category", "image_url", mode="before")
    @classmethod
    def _required_trimmed(cls, value: Any, info) -> Any:
        path = cls.model_fields[info.field_name].alias or info.field_name
        value = _cast_string(value, path)
        if not value:
            raise PydanticCustomError("required", REQUIRED_MESSAGES[path])
        return value

    @field_validator("title")
    @classmethod
    def _title_length(cls, value: str) -> str:
        if len(value) > TITLE_MAX_LENGTH:
            raise PydanticCustomError(
                "maxlength",
                f"Title cannot be more than {TITLE_MAX_LENGTH} characters",
            )
        return value

    @field_validator("status", mode="before")
    @classmethod
    def _status_enum(cls, value: Any) -> Any:
        value = _cast_string(value, "status")
        if not value:
            raise PydanticCustomError("required", REQUIRED_MESSAGES["status"])
        if value not in BLOG_STATUSES:
            raise PydanticCustomError(
                "enum",
                "`{value}` is not a valid enum value for path `status`.",
                {"value": value},
            )
        return value


class BlogPatch(BlogDocument):
    """Partial document for updates; only fields that are present are validated."""

    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    status: Optional[str] = None


def _messages(exc: ValidationError) -> list[str]:
    messages = []
    for err in exc.errors():
        if err["type"] == "missing":
            field = str(err["loc"][0])
            messages.append(REQUIRED_MESSAGES.get(field, f"Path `{field}` is required."))
        else:
            messages.append(err["msg"])
    return messages


def validate_blog_fields(fields: dict, *, partial: bool = False) -> dict:
    """
    Validate and normalize blog fields against the schema.

    Returns a dict keyed by the stored (camelCase) field names. With
    ``partial=True`` only the fields present in ``fields`` are validated and
    returned.
    """
    model = BlogPatch if partial else BlogDocument
    try:
        doc = model.model_validate(fields)
    except ValidationError as exc:
        raise DocumentValidationError(_messages(exc)) from exc
    return doc.model_dump(by_alias=True, exclude_unset=partial)
