"""In-memory call session models shared by the registry and orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CallStatus(str, Enum):
    INITIATED = "initiated"
    RINGING = "ringing"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    BUSY = "busy"
    FAILED = "failed"
    NO_ANSWER = "no-answer"
    CANCELED = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def stage(self) -> int:
        """Position in the call lifecycle; every terminal status shares the last stage."""

        if self in LIVE_STATUS_ORDER:
            return LIVE_STATUS_ORDER.index(self)
        return len(LIVE_STATUS_ORDER)

    @classmethod
    def parse(cls, value: str | None) -> CallStatus | None:
        """Map a raw carrier status to a member, or None when it is not one we track."""

        normalized = (value or "").strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        return None


TERMINAL_STATUSES = frozenset(
    {
        CallStatus.COMPLETED,
        CallStatus.BUSY,
        CallStatus.FAILED,
        CallStatus.NO_ANSWER,
        CallStatus.CANCELED,
    }
)

LIVE_STATUS_ORDER = (CallStatus.INITIATED, CallStatus.RINGING, CallStatus.IN_PROGRESS)


class CallDirection(str, Enum):
    BROWSER_TO_PHONE = "browser-to-phone"
    PHONE_TO_BROWSER = "phone-to-browser"

    @classmethod
    def from_carrier(cls, value: str | None) -> CallDirection:
        # Twilio reports API-created calls as "outbound-api"; every other leg
        # (inbound, outbound-dial) reaches the browser from the phone network.
        if (value or "").strip().lower() == "outbound-api":
            return cls.BROWSER_TO_PHONE
        return cls.PHONE_TO_BROWSER


@dataclass
class CallSession:
    """One call known to this process."""

    call_sid: str
    to_number: str
    from_number: str
    direction: CallDirection
    status: CallStatus
    created_at: datetime = field(default_factory=utcnow)
    duration: int | None = None
    last_updated: datetime | None = None

    def __post_init__(self) -> None:
        if self.last_updated is None:
            self.last_updated = self.created_at


@dataclass
class CallStatistics:
    total_active_calls: int = 0
    calls_by_status: dict[str, int] = field(default_factory=dict)
    calls_by_type: dict[str, int] = field(default_factory=dict)
    average_call_duration: float = 0.0


@dataclass
class HealthStatus:
    status: str
    details: dict[str, object] = field(default_factory=dict)

    @property
    def healthy(self) -> bool:
        return self.status == "healthy"
