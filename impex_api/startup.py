"""
Startup sequence: verify the mail relay, connect the document store (retrying
forever on a fixed delay), then bind a listening port and serve.

Store connectivity events keep ``ServiceStatus.db_connected`` in sync for the
lifetime of the process; a disconnect re-runs the same connect routine.
"""

from __future__ import annotations

import asyncio
import enum
import errno
import logging
import socket
from typing import Optional

import uvicorn

from impex_api.config import Settings
from impex_api.db import BlogStore, StoreEvent
from impex_api.errors import MailTransportError, StartupError
from impex_api.mail import MailRelay
from impex_api.status import ServiceStatus

logger = logging.getLogger(__name__)

MAX_PORT = 65535


class ConnectionState(enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


def bind_listening_socket(host: str, port: int, backlog: int = 2048) -> socket.socket:
    """
    Bind and listen on ``port``, moving to the next port while the address is
    in use. Raises ``StartupError`` past ``MAX_PORT`` or on any other error.
    """
    candidate = port
    while True:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((host, candidate))
            sock.listen(backlog)
        except OSError as exc:
            sock.close()
            if exc.errno != errno.EADDRINUSE:
                raise StartupError(f"Server error binding port {candidate}: {exc}") from exc
            logger.error("Port %d is already in use.", candidate)
            if candidate >= MAX_PORT:
                raise StartupError("No available ports found") from exc
            candidate += 1
            continue
        sock.set_inheritable(True)
        return sock


class StartupSequencer:
    """Brings the service up and owns writes to the shared ``ServiceStatus``."""

    def __init__(
        self,
        settings: Settings,
        store: BlogStore,
        relay: MailRelay,
        status: ServiceStatus,
    ):
        self.settings = settings
        self.store = store
        self.relay = relay
        self.status = status
        self.db_state = ConnectionState.DISCONNECTED
        self._reconnect_task: Optional[asyncio.Task] = None
        self._retrying = False
        store.subscribe(self._on_store_event)

    async def verify_mail_relay(self) -> bool:
        try:
            await self.relay.verify()
        except MailTransportError as exc:
            self.status.email_ready = False
            logger.error("Email server verification failed: %s", exc)
            return False
        self.status.email_ready = True
        logger.info("Email server is ready to send messages")
        return True

    async def connect_store(self) -> bool:
        """Single connection attempt."""
        self.db_state = ConnectionState.CONNECTING
        try:
            await self.store.connect()
        except Exception as exc:
            self.db_state = ConnectionState.DISCONNECTED
            self.status.db_connected = False
            logger.error("MongoDB connection error: %s", exc)
            return False
        self.db_state = ConnectionState.CONNECTED
        self.status.db_connected = True
        logger.info("MongoDB connected successfully")
        return True

    async def connect_store_with_retry(self) -> None:
        """Retry ``connect_store`` on a fixed delay until it succeeds."""
        delay = self.settings.db_retry_delay_seconds
        self._retrying = True
        try:
            while not await self.connect_store():
                logger.info("Retrying connection in %s seconds...", delay)
                await asyncio.sleep(delay)
        finally:
            self._retrying = False

    def _schedule_reconnect(self) -> None:
        if self._retrying:
            return
        if self._reconnect_task is not None and not self._reconnect_task.done():
            return
        self._reconnect_task = asyncio.get_running_loop().create_task(
            self.connect_store_with_retry()
        )

    def _on_store_event(self, event: StoreEvent, error: Optional[BaseException]) -> None:
        if event is StoreEvent.CONNECTED:
            self.db_state = ConnectionState.CONNECTED
            self.status.db_connected = True
            logger.info("MongoDB connection established")
        elif event is StoreEvent.ERROR:
            self.status.db_connected = False
            logger.error("MongoDB connection error: %s", error)
        elif event is StoreEvent.DISCONNECTED:
            self.db_state = ConnectionState.DISCONNECTED
            self.status.db_connected = False
            logger.warning("MongoDB disconnected. Attempting to reconnect...")
            self._schedule_reconnect()

    def bind(self) -> socket.socket:
        sock = bind_listening_socket(self.settings.host, self.settings.port)
        self.status.port = sock.getsockname()[1]
        return sock

    async def start(self) -> socket.socket:
        """Run the startup steps in order and return the bound socket."""
        logger.info("Verifying email server configuration...")
        await self.verify_mail_relay()
        logger.info("Connecting to MongoDB...")
        await self.connect_store_with_retry()
        return self.bind()

    async def serve(self, app) -> None:
        sock = await self.start()
        port = self.status.port
        logger.info("Server is running on port %d", port)
        logger.info("Status dashboard available at http://localhost:%d", port)
        logger.info("API status available at http://localhost:%d/api/status", port)
        config = uvicorn.Config(
            app,
            log_level=self.settings.log_level.lower(),
            lifespan="off",
        )
        server = uvicorn.Server(config)
        try:
            await server.serve(sockets=[sock])
        finally:
            if self._reconnect_task is not None:
                self._reconnect_task.cancel()
            await self.store.close()
