from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from calls.errors import CarrierUnavailableError
from config.settings import get_settings
from integrations.carrier import BaseCarrierClient, CarrierAccount, CarrierCall

LOGGER = logging.getLogger(__name__)

SID_LENGTH = 34


@dataclass(frozen=True)
class TwilioConfig:
    account_sid: str
    auth_token: str | None
    api_key: str
    api_secret: str
    twiml_app_sid: str
    from_number: str
    public_base_url: str | None


def _valid_sid(value: str, prefix: str) -> bool:
    return value.startswith(prefix) and len(value) == SID_LENGTH


def get_twilio_config() -> TwilioConfig:
    settings = get_settings()
    required = {
        "twilio_account_sid": settings.twilio_account_sid,
        "twilio_api_key": settings.twilio_api_key,
        "twilio_api_secret": settings.twilio_api_secret,
        "twilio_twiml_app_sid": settings.twilio_twiml_app_sid,
        "twilio_from_number": settings.twilio_from_number,
    }
    missing = [name for name, value in required.items() if not value]
    if missing:
        raise ValueError(f"Twilio configuration is incomplete: {', '.join(missing)}")

    checks = {
        "twilio_account_sid": _valid_sid(settings.twilio_account_sid, "AC"),
        "twilio_api_key": _valid_sid(settings.twilio_api_key, "SK"),
        "twilio_api_secret": len(settings.twilio_api_secret) > 10,
        "twilio_twiml_app_sid": _valid_sid(settings.twilio_twiml_app_sid, "AP"),
        "twilio_from_number": settings.twilio_from_number.startswith("+"),
    }
    invalid = [name for name, ok in checks.items() if not ok]
    if invalid:
        raise ValueError(f"Twilio configuration is invalid: {', '.join(invalid)}")

    return TwilioConfig(
        account_sid=settings.twilio_account_sid,
        auth_token=settings.twilio_auth_token,
        api_key=settings.twilio_api_key,
        api_secret=settings.twilio_api_secret,
        twiml_app_sid=settings.twilio_twiml_app_sid,
        from_number=settings.twilio_from_number,
        public_base_url=settings.public_base_url.rstrip("/") if settings.public_base_url else None,
    )


def build_twilio_client(cfg: TwilioConfig | None = None):
    from twilio.rest import Client

    cfg = cfg or get_twilio_config()
    return Client(cfg.api_key, cfg.api_secret, cfg.account_sid)


class TwilioCarrierClient(BaseCarrierClient):
    """Carrier client backed by the Twilio REST SDK.

    The SDK is blocking, so every request runs in a worker thread.
    """

    def __init__(self, client=None, cfg: TwilioConfig | None = None) -> None:
        self._client = client if client is not None else build_twilio_client(cfg)

    async def _run(self, operation: str, func, *args, **kwargs):
        from twilio.base.exceptions import TwilioException

        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except (TwilioException, OSError) as exc:
            LOGGER.error("Twilio %s failed: %s", operation, exc)
            raise CarrierUnavailableError(f"Twilio {operation} failed: {exc}") from exc

    async def create_call(
        self,
        *,
        to: str,
        from_: str,
        url: str,
        status_callback: str,
        status_callback_events: Sequence[str],
    ) -> CarrierCall:
        call = await self._run(
            "create_call",
            self._client.calls.create,
            to=to,
            from_=from_,
            url=url,
            method="POST",
            status_callback=status_callback,
            status_callback_event=list(status_callback_events),
            status_callback_method="POST",
        )
        return _to_carrier_call(call)

    async def update_call_status(self, call_sid: str, status: str) -> None:
        await self._run("update_call", self._client.calls(call_sid).update, status=status)

    async def fetch_call(self, call_sid: str) -> CarrierCall:
        call = await self._run("fetch_call", self._client.calls(call_sid).fetch)
        return _to_carrier_call(call)

    async def fetch_account(self, account_sid: str) -> CarrierAccount:
        account = await self._run("fetch_account", self._client.api.accounts(account_sid).fetch)
        return CarrierAccount(
            friendly_name=str(account.friendly_name or ""),
            status=str(account.status or ""),
        )


def _to_carrier_call(call) -> CarrierCall:
    return CarrierCall(
        sid=str(call.sid),
        to=str(getattr(call, "to", "") or ""),
        from_=str(getattr(call, "from_", "") or ""),
        status=str(getattr(call, "status", "") or ""),
        duration=getattr(call, "duration", None),
        direction=str(getattr(call, "direction", "") or ""),
        created_at=getattr(call, "date_created", None),
    )


class TwilioAccessTokenFactory:
    """Issues Voice SDK access tokens for browser clients."""

    def __init__(self, cfg: TwilioConfig | None = None, *, ttl_seconds: int | None = None) -> None:
        self._cfg = cfg or get_twilio_config()
        self._ttl = ttl_seconds or get_settings().access_token_ttl_seconds

    def create_token(self, identity: str) -> str:
        from twilio.jwt.access_token import AccessToken
        from twilio.jwt.access_token.grants import VoiceGrant

        token = AccessToken(
            self._cfg.account_sid,
            self._cfg.api_key,
            self._cfg.api_secret,
            identity=identity,
            ttl=self._ttl,
        )
        token.add_grant(
            VoiceGrant(
                outgoing_application_sid=self._cfg.twiml_app_sid,
                incoming_allow=True,
            )
        )
        jwt = token.to_jwt()
        return jwt.decode("utf-8") if isinstance(jwt, bytes) else jwt
