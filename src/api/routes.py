"""FastAPI routes for the browser phone and Twilio voice webhooks.

Webhook endpoints (voice, incoming, dial-status, call-status) are called by
Twilio with form-encoded payloads; the remaining endpoints serve the browser.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response

from api.dependencies import get_base_url, get_orchestrator
from api.schemas import (
    ActiveCallsResponse,
    CallSessionResponse,
    ConfigResponse,
    EndCallResponse,
    HealthResponse,
    MakeCallRequest,
    MakeCallResponse,
    StatisticsResponse,
    TokenResponse,
    WebhookAck,
)
from calls.models import CallStatus
from calls.orchestrator import CallOrchestrator

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/phone", tags=["phone"])


def _twiml_response(xml: str) -> Response:
    return Response(content=xml, media_type="text/xml")


async def _form_payload(request: Request) -> dict[str, str]:
    form = await request.form()
    return {key: str(value) for key, value in form.items()}


@router.get("/token", response_model=TokenResponse)
async def generate_token(
    identity: str | None = None,
    orchestrator: CallOrchestrator = Depends(get_orchestrator),
) -> TokenResponse:
    token, resolved_identity = orchestrator.generate_access_token(identity)
    return TokenResponse(token=token, identity=resolved_identity)


@router.post("/voice")
async def voice_webhook(
    request: Request,
    orchestrator: CallOrchestrator = Depends(get_orchestrator),
) -> Response:
    payload = await _form_payload(request)
    return _twiml_response(orchestrator.outbound_voice_twiml(payload))


@router.post("/call", response_model=MakeCallResponse)
async def make_call(
    payload: MakeCallRequest,
    request: Request,
    base_url: str | None = Query(default=None, alias="baseUrl"),
    orchestrator: CallOrchestrator = Depends(get_orchestrator),
) -> MakeCallResponse:
    callback_base = base_url or get_base_url(request)
    session = await orchestrator.place_call(payload.to, payload.from_number, callback_base)
    return MakeCallResponse(success=True, call=CallSessionResponse.from_session(session))


@router.post("/call-status", response_model=WebhookAck)
async def call_status_webhook(
    request: Request,
    orchestrator: CallOrchestrator = Depends(get_orchestrator),
) -> WebhookAck:
    payload = await _form_payload(request)
    orchestrator.on_status_update(payload)
    return WebhookAck()


@router.post("/dial-status")
async def dial_status_webhook(
    request: Request,
    orchestrator: CallOrchestrator = Depends(get_orchestrator),
) -> Response:
    payload = await _form_payload(request)
    return _twiml_response(orchestrator.on_dial_status(payload))


@router.post("/incoming")
async def incoming_call_webhook(
    request: Request,
    orchestrator: CallOrchestrator = Depends(get_orchestrator),
) -> Response:
    payload = await _form_payload(request)
    dial_status_url = f"{get_base_url(request)}/api/v1/phone/dial-status"
    return _twiml_response(orchestrator.on_incoming_call(payload, dial_status_url))


@router.get("/calls", response_model=ActiveCallsResponse)
async def list_active_calls(
    orchestrator: CallOrchestrator = Depends(get_orchestrator),
) -> ActiveCallsResponse:
    return ActiveCallsResponse(
        calls=[CallSessionResponse.from_session(s) for s in orchestrator.active_calls()],
        statistics=StatisticsResponse.from_statistics(orchestrator.statistics()),
    )


@router.get("/calls/status/{status}", response_model=list[CallSessionResponse])
async def list_calls_by_status(
    status: str,
    orchestrator: CallOrchestrator = Depends(get_orchestrator),
) -> list[CallSessionResponse]:
    parsed = CallStatus.parse(status)
    if parsed is None:
        raise HTTPException(status_code=400, detail=f"Unknown call status: {status}")
    return [CallSessionResponse.from_session(s) for s in orchestrator.calls_by_status(parsed)]


@router.get("/calls/{call_sid}", response_model=CallSessionResponse)
async def get_call_details(
    call_sid: str,
    orchestrator: CallOrchestrator = Depends(get_orchestrator),
) -> CallSessionResponse:
    session = await orchestrator.get_call_details(call_sid)
    if session is None:
        raise HTTPException(status_code=404, detail="Call not found")
    return CallSessionResponse.from_session(session)


@router.post("/calls/{call_sid}/end", response_model=EndCallResponse)
async def end_call(
    call_sid: str,
    orchestrator: CallOrchestrator = Depends(get_orchestrator),
) -> EndCallResponse:
    success = await orchestrator.end_call(call_sid)
    return EndCallResponse(success=success, call_sid=call_sid)


@router.get("/statistics", response_model=StatisticsResponse)
async def get_statistics(
    orchestrator: CallOrchestrator = Depends(get_orchestrator),
) -> StatisticsResponse:
    return StatisticsResponse.from_statistics(orchestrator.statistics())


@router.get("/health", response_model=HealthResponse)
async def health_check(
    orchestrator: CallOrchestrator = Depends(get_orchestrator),
) -> HealthResponse:
    result = await orchestrator.health_check()
    return HealthResponse(status=result.status, details=result.details)


@router.get("/config", response_model=ConfigResponse)
async def get_config(
    orchestrator: CallOrchestrator = Depends(get_orchestrator),
) -> ConfigResponse:
    return ConfigResponse(phone_number=orchestrator.caller_id)
