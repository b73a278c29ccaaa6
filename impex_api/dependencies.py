"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from impex_api.config import get_settings
from impex_api.db import BlogStore, InMemoryBlogStore, MongoBlogStore
from impex_api.mail import InMemoryMailRelay, MailRelay, SmtpMailRelay
from impex_api.status import ServiceStatus

_blog_store: BlogStore | None = None
_mail_relay: MailRelay | None = None
_service_status: ServiceStatus | None = None


def get_blog_store() -> BlogStore:
    """
    Return a singleton store so every request shares one connection pool.
    """
    global _blog_store
    if _blog_store:
        return _blog_store

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.mongo_uri:
        _blog_store = InMemoryBlogStore()
    else:
        _blog_store = MongoBlogStore(
            settings.mongo_uri,
            settings.mongo_db_name,
            server_selection_timeout_ms=settings.mongo_server_selection_timeout_ms,
            socket_timeout_ms=settings.mongo_socket_timeout_ms,
            max_pool_size=settings.mongo_max_pool_size,
        )
    return _blog_store


def get_mail_relay() -> MailRelay:
    global _mail_relay
    if _mail_relay:
        return _mail_relay

    settings = get_settings()
    if settings.use_in_memory_backends:
        _mail_relay = InMemoryMailRelay()
    else:
        _mail_relay = SmtpMailRelay(
            hostname=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.email_user,
            password=settings.email_pass,
            timeout=settings.smtp_timeout,
        )
    return _mail_relay


def get_service_status() -> ServiceStatus:
    global _service_status
    if _service_status:
        return _service_status

    _service_status = ServiceStatus(port=get_settings().port)
    return _service_status
