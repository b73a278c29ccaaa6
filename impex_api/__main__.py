"""
Command-line entry point: ``python -m impex_api``.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from impex_api.app import create_app
from impex_api.config import get_settings
from impex_api.dependencies import get_blog_store, get_mail_relay, get_service_status
from impex_api.errors import StartupError
from impex_api.startup import StartupSequencer

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="ImpexInfo API server")
    parser.add_argument("--host", type=str, default=None, help="Interface to bind")
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="First port to try; the next free port is used on conflict",
    )
    parser.add_argument("--log-level", type=str, default=None, help="Logging level")
    args = parser.parse_args(argv)

    settings = get_settings()
    overrides = {
        key: value
        for key, value in (
            ("host", args.host),
            ("port", args.port),
            ("log_level", args.log_level),
        )
        if value is not None
    }
    if overrides:
        settings = settings.model_copy(update=overrides)

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    logger.info("Starting %s API Server...", settings.brand_name)
    sequencer = StartupSequencer(
        settings,
        store=get_blog_store(),
        relay=get_mail_relay(),
        status=get_service_status(),
    )
    try:
        asyncio.run(sequencer.serve(create_app(settings)))
    except StartupError as exc:
        logger.error("%s", exc)
        return 1
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
