from __future__ import annotations

import asyncio

import pytest

from calls.errors import RateLimitedError
from calls.factory import build_orchestrator
from calls.orchestrator import CallOrchestrator
from calls.rate_limiter import RateLimiter
from calls.registry import CallRegistry
from config.settings import Settings

from conftest import CALLER_ID, FakeCarrier, FakeTokenFactory


def test_orchestrator_keeps_injected_empty_collaborators():
    registry = CallRegistry()
    limiter = RateLimiter(max_attempts=1)

    orchestrator = CallOrchestrator(FakeCarrier(), caller_id=CALLER_ID, registry=registry, rate_limiter=limiter)

    assert orchestrator.registry is registry
    assert orchestrator.rate_limiter is limiter


def test_factory_applies_rate_limit_settings():
    settings = Settings(
        _env_file=None,
        twilio_from_number=CALLER_ID,
        rate_limit_max_attempts=1,
        rate_limit_window_seconds=5,
        default_client_identity="desk",
    )
    carrier = FakeCarrier()

    orchestrator = build_orchestrator(settings, carrier=carrier, token_factory=FakeTokenFactory())

    assert orchestrator.rate_limiter.max_attempts == 1
    assert orchestrator.rate_limiter.window_seconds == 5
    assert orchestrator.client_resolver.resolve_client("+15557778888") == "desk"
    assert orchestrator.generate_access_token(None) == ("token-for-user", "user")

    asyncio.run(orchestrator.place_call("+15559876543", "+15551234567", "https://example.test"))
    with pytest.raises(RateLimitedError):
        asyncio.run(orchestrator.place_call("+15559876543", "+15551234567", "https://example.test"))
    assert len(carrier.created) == 1
