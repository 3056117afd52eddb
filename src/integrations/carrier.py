"""Shared abstractions for voice carrier clients."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class CarrierCall:
    sid: str
    to: str = ""
    from_: str = ""
    status: str = ""
    duration: str | int | None = None
    direction: str = ""
    created_at: datetime | None = None


@dataclass(frozen=True)
class CarrierAccount:
    friendly_name: str
    status: str


class BaseCarrierClient(ABC):
    """Abstract base class for carrier providers.

    Implementations raise ``CarrierUnavailableError`` when the carrier cannot be
    reached or rejects the request.
    """

    @abstractmethod
    async def create_call(
        self,
        *,
        to: str,
        from_: str,
        url: str,
        status_callback: str,
        status_callback_events: Sequence[str],
    ) -> CarrierCall:
        """Place a call whose TwiML is fetched from ``url``."""

    @abstractmethod
    async def update_call_status(self, call_sid: str, status: str) -> None:
        """Move a live call to ``status`` (e.g. ``completed`` to hang up)."""

    @abstractmethod
    async def fetch_call(self, call_sid: str) -> CarrierCall:
        """Return the carrier's view of a call."""

    @abstractmethod
    async def fetch_account(self, account_sid: str) -> CarrierAccount:
        """Return account metadata, used for health checks."""
