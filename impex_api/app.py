"""
FastAPI application entry point for the API server.
"""

from __future__ import annotations

from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from impex_api.config import Settings, get_settings
from impex_api.errors import register_error_handlers
from impex_api.routes import router


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title=f"{settings.brand_name} API Server", version="1.0.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins if settings.is_production else ["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    register_error_handlers(app, settings)
    app.include_router(router)
    app.dependency_overrides[get_settings] = lambda: settings
    return app
