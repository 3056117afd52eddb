"""Shared FastAPI dependencies.

Separated to avoid circular imports between route modules.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Request

if TYPE_CHECKING:  # pragma: no cover
    from calls.orchestrator import CallOrchestrator


def get_orchestrator(request: Request) -> CallOrchestrator:
    return request.app.state.orchestrator


def get_base_url(request: Request) -> str:
    """Public base URL used to build Twilio callback URLs."""

    from config.settings import get_settings

    settings = get_settings()
    if settings.public_base_url:
        return settings.public_base_url.rstrip("/")
    return str(request.base_url).rstrip("/")
