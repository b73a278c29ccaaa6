"""
HTTP routes for the blog API, contact form and status pages.
"""

from __future__ import annotations

import contextlib
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import HTMLResponse

from impex_api.config import Settings, get_settings
from impex_api.contact import SUCCESS_MESSAGE, ContactSubmission, relay_submission
from impex_api.db import BlogStore, InvalidObjectIdError
from impex_api.dependencies import get_blog_store, get_mail_relay, get_service_status
from impex_api.errors import (
    InvalidIdentifier,
    InvalidStatus,
    MissingFields,
    NotFound,
    ValidationFailed,
)
from impex_api.mail import MailRelay
from impex_api.models import BLOG_STATUSES, DocumentValidationError
from impex_api.rendering import render_status_page
from impex_api.schemas import (
    BlogCreateRequest,
    BlogListResponse,
    BlogResponse,
    BlogUpdateRequest,
    ContactRequest,
    ContactResponse,
    EmptyDataResponse,
    MessageResponse,
    StatusResponse,
)
from impex_api.status import ServiceStatus

logger = logging.getLogger(__name__)

router = APIRouter()

_REQUIRED_BLOG_FIELDS = ("title", "description", "category", "status", "image_url")


@contextlib.contextmanager
def _classify_store_errors():
    """Map store-level error shapes onto client errors."""
    try:
        yield
    except InvalidObjectIdError as exc:
        raise InvalidIdentifier() from exc
    except DocumentValidationError as exc:
        raise ValidationFailed(exc.messages) from exc


async def _get_existing(store: BlogStore, blog_id: str) -> dict:
    with _classify_store_errors():
        blog = await store.find_by_id(blog_id)
    if not blog:
        raise NotFound()
    return blog


@router.get("/api/blogs", response_model=BlogListResponse)
async def list_blogs(
    status: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    store: BlogStore = Depends(get_blog_store),
):
    filter = {}
    if status:
        filter["status"] = status
    if category:
        filter["category"] = category
    blogs = await store.find(filter)
    return BlogListResponse(count=len(blogs), data=blogs)


@router.get("/api/blog/{blog_id}", response_model=BlogResponse)
async def get_blog(blog_id: str, store: BlogStore = Depends(get_blog_store)):
    blog = await _get_existing(store, blog_id)
    return BlogResponse(data=blog)


@router.post("/api/blog/new", response_model=BlogResponse, status_code=201)
async def create_blog(
    payload: BlogCreateRequest, store: BlogStore = Depends(get_blog_store)
):
    if not all(getattr(payload, name) for name in _REQUIRED_BLOG_FIELDS):
        raise MissingFields(
            "Please provide title, description, category, status, and imageUrl"
        )
    if payload.status not in BLOG_STATUSES:
        raise InvalidStatus()

    with _classify_store_errors():
        blog = await store.create(payload.model_dump(by_alias=True, exclude_unset=True))
    logger.info("Created blog %s", blog["id"])
    return BlogResponse(data=blog)


@router.put("/api/blog/{blog_id}", response_model=BlogResponse)
async def update_blog(
    blog_id: str,
    payload: BlogUpdateRequest,
    store: BlogStore = Depends(get_blog_store),
):
    await _get_existing(store, blog_id)
    with _classify_store_errors():
        blog = await store.find_by_id_and_update(
            blog_id, payload.model_dump(by_alias=True, exclude_unset=True)
        )
    if not blog:
        raise NotFound()
    return BlogResponse(data=blog)


@router.delete("/api/blog/{blog_id}", response_model=EmptyDataResponse)
async def delete_blog(blog_id: str, store: BlogStore = Depends(get_blog_store)):
    await _get_existing(store, blog_id)
    with _classify_store_errors():
        await store.delete_one(blog_id)
    logger.info("Deleted blog %s", blog_id)
    return EmptyDataResponse()


@router.post("/api/contact", response_model=ContactResponse)
async def submit_contact_form(
    payload: ContactRequest,
    relay: MailRelay = Depends(get_mail_relay),
    settings: Settings = Depends(get_settings),
):
    if not (payload.name and payload.email and payload.message):
        raise MissingFields("Please provide name, email and message")

    submission = ContactSubmission(
        name=payload.name,
        email=payload.email,
        message=payload.message,
        phone=payload.phone or None,
    )
    await relay_submission(submission, relay, settings)
    return ContactResponse(message=SUCCESS_MESSAGE)


@router.get("/api/status", response_model=StatusResponse)
async def api_status(status: ServiceStatus = Depends(get_service_status)):
    return StatusResponse(status=status.snapshot())


@router.get("/test", response_model=MessageResponse)
async def test_endpoint():
    return MessageResponse(message="Test API is working!")


@router.get("/", response_class=HTMLResponse)
async def status_page(
    status: ServiceStatus = Depends(get_service_status),
    settings: Settings = Depends(get_settings),
):
    return render_status_page(
        brand_name=settings.brand_name,
        db_connected=status.db_connected,
        email_ready=status.email_ready,
        port=status.port,
    )
