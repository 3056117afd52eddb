"""API-facing Pydantic models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from calls.models import CallSession, CallStatistics


class MakeCallRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    to: str = Field(default="", description="Destination phone number, E.164 preferred, e.g. +1555...")
    from_number: str = Field(
        default="client:browser",
        alias="from",
        description="Caller endpoint; used as the rate-limit key.",
    )


class CallSessionResponse(BaseModel):
    call_sid: str
    to_number: str
    from_number: str
    direction: str
    status: str
    created_at: datetime
    duration: int | None = None
    last_updated: datetime | None = None

    @classmethod
    def from_session(cls, session: CallSession) -> CallSessionResponse:
        return cls(
            call_sid=session.call_sid,
            to_number=session.to_number,
            from_number=session.from_number,
            direction=session.direction.value,
            status=session.status.value,
            created_at=session.created_at,
            duration=session.duration,
            last_updated=session.last_updated,
        )


class MakeCallResponse(BaseModel):
    success: bool
    call: CallSessionResponse


class StatisticsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_active_calls: int = Field(alias="totalActiveCalls")
    calls_by_status: dict[str, int] = Field(alias="callsByStatus")
    calls_by_type: dict[str, int] = Field(alias="callsByType")
    average_call_duration: float = Field(alias="averageCallDuration")

    @classmethod
    def from_statistics(cls, stats: CallStatistics) -> StatisticsResponse:
        return cls(
            total_active_calls=stats.total_active_calls,
            calls_by_status=dict(stats.calls_by_status),
            calls_by_type=dict(stats.calls_by_type),
            average_call_duration=stats.average_call_duration,
        )


class ActiveCallsResponse(BaseModel):
    calls: list[CallSessionResponse]
    statistics: StatisticsResponse


class EndCallResponse(BaseModel):
    success: bool
    call_sid: str


class TokenResponse(BaseModel):
    token: str
    identity: str


class WebhookAck(BaseModel):
    received: bool = True


class HealthResponse(BaseModel):
    status: str
    details: dict[str, object] = Field(default_factory=dict)


class ConfigResponse(BaseModel):
    phone_number: str
