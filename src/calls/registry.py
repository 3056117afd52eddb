"""In-memory registry of live call sessions.

Note: This is a single-process store. Webhooks for the same call may arrive
duplicated or out of order, so every mutation tolerates unknown call ids.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timedelta

from calls.models import CallSession, CallStatistics, CallStatus, utcnow

LOGGER = logging.getLogger(__name__)


class CallRegistry:
    def __init__(self) -> None:
        self._sessions: dict[str, CallSession] = {}

    def track(self, session: CallSession) -> None:
        self._sessions[session.call_sid] = session

    def update(self, call_sid: str, **changes) -> CallSession | None:
        """Merge ``changes`` into a tracked session; unknown ids are ignored."""

        existing = self._sessions.get(call_sid)
        if existing is None:
            LOGGER.debug("Ignoring update for untracked call %s", call_sid)
            return None
        updated = replace(existing, **changes)
        self._sessions[call_sid] = updated
        return updated

    def remove(self, call_sid: str) -> CallSession | None:
        return self._sessions.pop(call_sid, None)

    def get(self, call_sid: str) -> CallSession | None:
        return self._sessions.get(call_sid)

    def list(self) -> list[CallSession]:
        return list(self._sessions.values())

    def list_by_status(self, status: CallStatus) -> list[CallSession]:
        return [session for session in self._sessions.values() if session.status == status]

    def oldest(self) -> CallSession | None:
        oldest: CallSession | None = None
        for session in self._sessions.values():
            # Strict comparison keeps the first-seen session on ties.
            if oldest is None or session.created_at < oldest.created_at:
                oldest = session
        return oldest

    def statistics(self) -> CallStatistics:
        stats = CallStatistics(total_active_calls=len(self._sessions))
        total_duration = 0
        completed_calls = 0

        for session in self._sessions.values():
            status_key = session.status.value
            type_key = session.direction.value
            stats.calls_by_status[status_key] = stats.calls_by_status.get(status_key, 0) + 1
            stats.calls_by_type[type_key] = stats.calls_by_type.get(type_key, 0) + 1

            if session.status is CallStatus.COMPLETED and session.duration is not None:
                total_duration += session.duration
                completed_calls += 1

        if completed_calls:
            stats.average_call_duration = total_duration / completed_calls
        return stats

    def expire(self, max_age_seconds: float, *, now: datetime | None = None) -> list[CallSession]:
        """Drop sessions that have not been updated within ``max_age_seconds``."""

        cutoff = (now or utcnow()) - timedelta(seconds=max_age_seconds)
        expired = [
            session
            for session in self._sessions.values()
            if session.last_updated is not None and session.last_updated < cutoff
        ]
        for session in expired:
            del self._sessions[session.call_sid]
        return expired

    def clear(self) -> None:
        self._sessions.clear()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, call_sid: object) -> bool:
        return call_sid in self._sessions
