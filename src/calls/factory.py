"""Factory wiring a CallOrchestrator from application settings."""

from __future__ import annotations

from calls.client_resolver import StaticClientResolver
from calls.orchestrator import CallOrchestrator
from calls.rate_limiter import RateLimiter
from calls.registry import CallRegistry
from config.settings import Settings, get_settings
from integrations.carrier import BaseCarrierClient


def build_orchestrator(
    settings: Settings | None = None,
    *,
    carrier: BaseCarrierClient | None = None,
    token_factory=None,
) -> CallOrchestrator:
    """Instantiate the orchestrator with Twilio-backed collaborators unless overridden."""

    settings = settings if settings is not None else get_settings()
    if carrier is None or token_factory is None:
        from integrations.twilio_client import (
            TwilioAccessTokenFactory,
            TwilioCarrierClient,
            get_twilio_config,
        )

        cfg = get_twilio_config()
        if carrier is None:
            carrier = TwilioCarrierClient(cfg=cfg)
        if token_factory is None:
            token_factory = TwilioAccessTokenFactory(cfg, ttl_seconds=settings.access_token_ttl_seconds)

    return CallOrchestrator(
        carrier,
        caller_id=settings.twilio_from_number or "",
        account_sid=settings.twilio_account_sid,
        registry=CallRegistry(),
        rate_limiter=RateLimiter(
            settings.rate_limit_max_attempts,
            settings.rate_limit_window_seconds,
            stale_seconds=settings.rate_limit_stale_seconds,
        ),
        client_resolver=StaticClientResolver(settings.default_client_identity),
        token_factory=token_factory,
        call_ttl_seconds=settings.call_ttl_seconds,
        rate_limit_sweep_interval=settings.rate_limit_sweep_interval_seconds,
        call_sweep_interval=settings.call_sweep_interval_seconds,
    )
