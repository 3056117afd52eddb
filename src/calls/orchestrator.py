"""Call lifecycle orchestration.

Places outbound calls behind admission control, tracks every call this process
knows about, and turns Twilio webhooks into registry transitions and TwiML.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Mapping
from typing import Any, Protocol

from calls.client_resolver import ClientResolver, StaticClientResolver
from calls.errors import CarrierUnavailableError, InvalidRequestError, MalformedWebhookError, RateLimitedError
from calls.models import (
    CallDirection,
    CallSession,
    CallStatistics,
    CallStatus,
    HealthStatus,
    utcnow,
)
from calls.phone import is_valid_e164, sanitize_endpoint
from calls.rate_limiter import RateLimiter
from calls.registry import CallRegistry
from integrations.carrier import BaseCarrierClient, CarrierCall
from twiml.generator import (
    build_dial_status_twiml,
    build_error_twiml,
    build_incoming_call_twiml,
    build_outbound_call_twiml,
)

LOGGER = logging.getLogger(__name__)

API_PREFIX = "/api/v1/phone"
STATUS_CALLBACK_EVENTS = ("initiated", "ringing", "answered", "completed")
MISSING_CALL_INFO_MESSAGE = "Unable to process call. Missing required information."


class AccessTokenFactory(Protocol):
    def create_token(self, identity: str) -> str:  # pragma: no cover - protocol stub
        ...


def _field(payload: Mapping[str, Any], *names: str) -> str:
    for name in names:
        value = payload.get(name)
        if value is not None and str(value).strip():
            return str(value).strip()
    return ""


def parse_duration(raw: str | int | None) -> int | None:
    if raw is None or raw == "":
        return None
    try:
        duration = int(str(raw).strip())
    except ValueError as exc:
        raise MalformedWebhookError(f"Invalid call duration: {raw!r}") from exc
    if duration < 0:
        raise MalformedWebhookError(f"Negative call duration: {raw!r}")
    return duration


class CallOrchestrator:
    """Owns the live call registry and rate limiter for one process."""

    def __init__(
        self,
        carrier: BaseCarrierClient,
        *,
        caller_id: str,
        account_sid: str | None = None,
        registry: CallRegistry | None = None,
        rate_limiter: RateLimiter | None = None,
        client_resolver: ClientResolver | None = None,
        token_factory: AccessTokenFactory | None = None,
        call_ttl_seconds: float = 4 * 3600.0,
        rate_limit_sweep_interval: float = 300.0,
        call_sweep_interval: float = 60.0,
    ) -> None:
        self.carrier = carrier
        self.caller_id = caller_id
        self.account_sid = account_sid
        self.registry = registry if registry is not None else CallRegistry()
        self.rate_limiter = rate_limiter if rate_limiter is not None else RateLimiter()
        self.client_resolver = client_resolver if client_resolver is not None else StaticClientResolver()
        self.token_factory = token_factory
        self.call_ttl_seconds = call_ttl_seconds
        self.rate_limit_sweep_interval = rate_limit_sweep_interval
        self.call_sweep_interval = call_sweep_interval
        self._tasks: list[asyncio.Task] = []

    async def start(self) -> None:
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(
                self._sweep_forever(self.rate_limit_sweep_interval, self.sweep_rate_limits),
                name="rate-limit-sweep",
            ),
            asyncio.create_task(
                self._sweep_forever(self.call_sweep_interval, self.sweep_stale_calls),
                name="call-ttl-sweep",
            ),
        ]
        LOGGER.info("Call orchestrator started")

    async def shutdown(self) -> None:
        LOGGER.info("Shutting down call orchestrator")
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self.registry.clear()
        self.rate_limiter.clear()
        LOGGER.info("Call orchestrator shut down")

    async def _sweep_forever(self, interval: float, sweep) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                sweep()
            except Exception:
                LOGGER.exception("Background sweep %s failed", getattr(sweep, "__name__", sweep))

    def sweep_rate_limits(self) -> int:
        return self.rate_limiter.cleanup()

    def sweep_stale_calls(self) -> list[CallSession]:
        expired = self.registry.expire(self.call_ttl_seconds)
        for session in expired:
            LOGGER.warning(
                "Dropping call %s: no status update since %s",
                session.call_sid,
                session.last_updated.isoformat() if session.last_updated else "unknown",
            )
        return expired

    async def place_call(self, to: str | None, from_: str | None, callback_base_url: str) -> CallSession:
        if not to or not from_ or not to.strip() or not from_.strip():
            raise InvalidRequestError("Both to and from parameters are required")

        sanitized_to = sanitize_endpoint(to)
        sanitized_from = sanitize_endpoint(from_)

        if not is_valid_e164(sanitized_to):
            raise InvalidRequestError("Invalid destination phone number format")

        if not self.rate_limiter.check(sanitized_from):
            raise RateLimitedError()

        base_url = callback_base_url.rstrip("/")
        try:
            call = await self.carrier.create_call(
                to=sanitized_to,
                from_=self.caller_id,
                url=f"{base_url}{API_PREFIX}/voice",
                status_callback=f"{base_url}{API_PREFIX}/call-status",
                status_callback_events=STATUS_CALLBACK_EVENTS,
            )
        except CarrierUnavailableError:
            LOGGER.error("Call failed from %s to %s", sanitized_from, sanitized_to)
            raise
        except Exception as exc:
            LOGGER.exception("Call failed from %s to %s", sanitized_from, sanitized_to)
            raise CarrierUnavailableError(f"Failed to make call: {exc}") from exc

        session = CallSession(
            call_sid=call.sid,
            to_number=sanitized_to,
            from_number=sanitized_from,
            direction=CallDirection.BROWSER_TO_PHONE,
            status=CallStatus.INITIATED,
        )
        self.registry.track(session)
        LOGGER.info("Call initiated: %s from %s to %s", call.sid, sanitized_from, sanitized_to)
        return session

    def on_status_update(self, payload: Mapping[str, Any]) -> CallSession | None:
        """Apply a status callback; malformed or unknown events are logged and dropped."""

        try:
            call_sid = _field(payload, "CallSid")
            if not call_sid:
                raise MalformedWebhookError("Status callback without CallSid")
            duration = parse_duration(_field(payload, "Duration", "CallDuration") or None)
        except MalformedWebhookError as exc:
            LOGGER.warning("Dropping status callback: %s", exc.detail)
            return None

        raw_status = _field(payload, "CallStatus")
        status = CallStatus.parse(raw_status)
        if status is None:
            LOGGER.warning("Ignoring unsupported status %r for call %s", raw_status, call_sid)
            return None

        current = self.registry.get(call_sid)
        if current is not None and status.stage < current.status.stage:
            LOGGER.info(
                "Ignoring late %s callback for call %s, already %s",
                status.value,
                call_sid,
                current.status.value,
            )
            return None

        changes: dict[str, Any] = {"status": status, "last_updated": utcnow()}
        if duration is not None:
            changes["duration"] = duration
        session = self.registry.update(call_sid, **changes)

        LOGGER.info(
            "Call %s: %s - Direction: %s, From: %s, To: %s%s",
            call_sid,
            status.value,
            _field(payload, "Direction") or "unknown",
            _field(payload, "From") or "unknown",
            _field(payload, "To") or "unknown",
            f", Duration: {duration}s" if duration is not None else "",
        )

        if status.is_terminal and self.registry.remove(call_sid) is not None:
            LOGGER.info("Call %s removed from active calls", call_sid)
        return session

    def on_dial_status(self, payload: Mapping[str, Any]) -> str:
        dial_status = _field(payload, "DialCallStatus")
        LOGGER.info("Dial status for call %s: %s", _field(payload, "CallSid") or "unknown", dial_status)
        return build_dial_status_twiml(dial_status)

    def on_incoming_call(self, payload: Mapping[str, Any], dial_status_url: str | None = None) -> str:
        from_ = _field(payload, "From")
        to = _field(payload, "To")
        if not from_ or not to:
            LOGGER.error("Missing From or To parameters for incoming call")
            return build_error_twiml(MISSING_CALL_INFO_MESSAGE)

        try:
            sanitized_from = sanitize_endpoint(from_)
            identity = self.client_resolver.resolve_client(sanitized_from)
        except Exception:
            LOGGER.exception("Failed to resolve a client for incoming call from %s", from_)
            return build_error_twiml()

        LOGGER.info("Incoming call from %s to %s routed to %s", sanitized_from, to, identity or "nobody")

        call_sid = _field(payload, "CallSid")
        if call_sid and identity:
            self.registry.track(
                CallSession(
                    call_sid=call_sid,
                    to_number=f"client:{identity}",
                    from_number=sanitized_from,
                    direction=CallDirection.PHONE_TO_BROWSER,
                    status=CallStatus.RINGING,
                )
            )
        return build_incoming_call_twiml(identity, dial_status_url or f"{API_PREFIX}/dial-status")

    def outbound_voice_twiml(self, payload: Mapping[str, Any]) -> str:
        to = _field(payload, "To")
        if not to:
            LOGGER.warning("Voice webhook without a destination")
            return build_error_twiml()
        return build_outbound_call_twiml(to, self.caller_id)

    async def end_call(self, call_sid: str) -> bool:
        if not call_sid:
            LOGGER.error("Invalid call sid provided for end_call")
            return False
        try:
            await self.carrier.update_call_status(call_sid, CallStatus.COMPLETED.value)
        except Exception:
            LOGGER.exception("Error ending call %s", call_sid)
            return False
        self.registry.remove(call_sid)
        LOGGER.info("Call %s ended successfully", call_sid)
        return True

    async def get_call_details(self, call_sid: str) -> CallSession | None:
        if not call_sid:
            return None
        session = self.registry.get(call_sid)
        if session is not None:
            return session
        try:
            call = await self.carrier.fetch_call(call_sid)
            return self._session_from_carrier(call)
        except Exception:
            LOGGER.exception("Error fetching call details for %s", call_sid)
            return None

    @staticmethod
    def _session_from_carrier(call: CarrierCall) -> CallSession:
        duration = None
        if call.duration not in (None, ""):
            duration = int(str(call.duration))
        return CallSession(
            call_sid=call.sid,
            to_number=call.to,
            from_number=call.from_,
            direction=CallDirection.from_carrier(call.direction),
            # Statuses we do not model (e.g. "queued") precede "initiated".
            status=CallStatus.parse(call.status) or CallStatus.INITIATED,
            created_at=call.created_at or utcnow(),
            duration=duration,
        )

    def active_calls(self) -> list[CallSession]:
        return self.registry.list()

    def calls_by_status(self, status: CallStatus) -> list[CallSession]:
        return self.registry.list_by_status(status)

    def oldest_call(self) -> CallSession | None:
        return self.registry.oldest()

    def statistics(self) -> CallStatistics:
        return self.registry.statistics()

    async def health_check(self) -> HealthStatus:
        try:
            if not self.account_sid:
                raise ValueError("Twilio account sid is not configured")
            account = await self.carrier.fetch_account(self.account_sid)
        except Exception as exc:
            LOGGER.error("Health check failed: %s", exc)
            return HealthStatus(
                status="unhealthy",
                details={
                    "error": str(exc),
                    "account_sid": self.account_sid,
                    "active_calls": len(self.registry),
                },
            )
        return HealthStatus(
            status="healthy",
            details={
                "account_sid": self.account_sid,
                "account_name": account.friendly_name,
                "active_calls": len(self.registry),
                "twilio_status": account.status,
                "phone_number": self.caller_id,
            },
        )

    def generate_access_token(self, identity: str | None = None) -> tuple[str, str]:
        identity = (identity or "").strip() or "user"
        if self.token_factory is None:
            raise CarrierUnavailableError("Access tokens are not configured")
        try:
            token = self.token_factory.create_token(identity)
        except Exception as exc:
            LOGGER.exception("Error generating access token")
            raise CarrierUnavailableError("Failed to generate access token") from exc
        LOGGER.info("Access token generated for identity: %s", identity)
        return token, identity
