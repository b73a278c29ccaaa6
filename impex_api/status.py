"""
Process-wide connectivity flags shared by the startup sequencer and the
status endpoints.
"""

from __future__ import annotations

from dataclasses import dataclass

from impex_api.schemas import (
    DatabaseStatus,
    EmailServerStatus,
    ServerStatus,
    StatusDetails,
)


@dataclass
class ServiceStatus:
    """
    Written only by the startup sequencer and the store event callbacks it
    installs; everything else reads.
    """

    port: int
    db_connected: bool = False
    email_ready: bool = False

    def snapshot(self) -> StatusDetails:
        return StatusDetails(
            database=DatabaseStatus(
                connected=self.db_connected,
                message=(
                    "MongoDB is connected"
                    if self.db_connected
                    else "MongoDB is disconnected"
                ),
            ),
            emailServer=EmailServerStatus(
                ready=self.email_ready,
                message=(
                    "Email server is ready"
                    if self.email_ready
                    else "Email server is not ready"
                ),
            ),
            server=ServerStatus(port=self.port),
        )
