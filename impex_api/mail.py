"""
Mail relay abstraction for SMTP (aiosmtplib) and an in-memory test double.

A relay offers ``verify()`` to check connectivity and credentials, and
``session()``, an async context manager yielding a session whose ``send()``
delivers one message. The session is always closed when the block exits.
"""

from __future__ import annotations

import contextlib
import logging
from dataclasses import dataclass, field
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, formatdate, make_msgid
from typing import AsyncIterator, Optional, Protocol

import aiosmtplib

from impex_api.errors import MailTransportError

logger = logging.getLogger(__name__)


@dataclass
class OutgoingMessage:
    sender_name: str
    sender_address: Optional[str]
    to: Optional[str]
    subject: str
    html: str
    text: str
    reply_to: Optional[str] = None
    headers: dict[str, str] = field(default_factory=dict)


def build_mime_message(message: OutgoingMessage) -> MIMEMultipart:
    """Build a multipart/alternative message with text and HTML parts."""
    if not message.to:
        raise MailTransportError("No recipient address configured")
    if not message.sender_address:
        raise MailTransportError("No sender address configured")

    msg = MIMEMultipart("alternative")
    msg["From"] = formataddr((message.sender_name, message.sender_address))
    msg["To"] = message.to
    msg["Subject"] = message.subject
    msg["Date"] = formatdate(localtime=True)
    msg["Message-ID"] = make_msgid()
    if message.reply_to:
        msg["Reply-To"] = message.reply_to
    for name, value in message.headers.items():
        msg[name] = value

    msg.attach(MIMEText(message.text, "plain", "utf-8"))
    msg.attach(MIMEText(message.html, "html", "utf-8"))
    return msg


class MailSession(Protocol):
    async def send(self, message: OutgoingMessage) -> None:
        ...


class MailRelay(Protocol):
    """Defines the operations the API needs from the mail relay."""

    async def verify(self) -> None:
        ...

    def session(self) -> contextlib.AbstractAsyncContextManager[MailSession]:
        ...


@dataclass
class InMemoryMailRelay:
    """Test double recording every delivered message."""

    fail_verify: Optional[Exception] = None
    fail_connect: Optional[Exception] = None
    fail_recipients: set = field(default_factory=set)
    sent: list = field(default_factory=list)
    sessions_opened: int = 0
    sessions_closed: int = 0

    async def verify(self) -> None:
        if self.fail_verify is not None:
            raise MailTransportError(str(self.fail_verify)) from self.fail_verify

    @contextlib.asynccontextmanager
    async def session(self) -> AsyncIterator["InMemoryMailSession"]:
        if self.fail_connect is not None:
            raise MailTransportError(str(self.fail_connect)) from self.fail_connect
        self.sessions_opened += 1
        try:
            yield InMemoryMailSession(self)
        finally:
            self.sessions_closed += 1


@dataclass
class InMemoryMailSession:
    relay: InMemoryMailRelay

    async def send(self, message: OutgoingMessage) -> None:
        mime = build_mime_message(message)
        if message.to in self.relay.fail_recipients:
            raise MailTransportError(f"Recipient rejected: {message.to}")
        self.relay.sent.append(mime)


@dataclass
class SmtpMailRelay:
    """
    SMTP relay client. Port 465 uses implicit TLS; other ports upgrade with
    STARTTLS when the server offers it.
    """

    hostname: str
    port: int
    username: Optional[str] = None
    password: Optional[str] = None
    timeout: float = 30.0

    def _client(self) -> aiosmtplib.SMTP:
        return aiosmtplib.SMTP(
            hostname=self.hostname,
            port=self.port,
            timeout=self.timeout,
            use_tls=self.port == 465,
        )

    async def _open(self) -> aiosmtplib.SMTP:
        smtp = self._client()
        try:
            await smtp.connect()
            if self.username and self.password:
                await smtp.login(self.username, self.password)
        except (aiosmtplib.SMTPException, OSError) as exc:
            smtp.close()
            raise MailTransportError(
                f"Could not open SMTP session with {self.hostname}:{self.port}: {exc}"
            ) from exc
        return smtp

    @staticmethod
    async def _close(smtp: aiosmtplib.SMTP) -> None:
        if not smtp.is_connected:
            return
        try:
            await smtp.quit()
        except (aiosmtplib.SMTPException, OSError):
            smtp.close()

    async def verify(self) -> None:
        if not (self.username and self.password):
            raise MailTransportError("Mail credentials are not configured")
        smtp = await self._open()
        await self._close(smtp)

    @contextlib.asynccontextmanager
    async def session(self) -> AsyncIterator["SmtpMailSession"]:
        smtp = await self._open()
        try:
            yield SmtpMailSession(smtp)
        finally:
            await self._close(smtp)


@dataclass
class SmtpMailSession:
    smtp: aiosmtplib.SMTP

    async def send(self, message: OutgoingMessage) -> None:
        mime = build_mime_message(message)
        try:
            await self.smtp.send_message(mime)
        except (aiosmtplib.SMTPException, OSError) as exc:
            raise MailTransportError(f"Failed to send to {message.to}: {exc}") from exc
