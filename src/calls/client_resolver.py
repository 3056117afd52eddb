"""Resolution of the browser client that should receive an inbound call."""

from __future__ import annotations

from typing import Protocol


class ClientResolver(Protocol):
    """Chooses which browser client identity an inbound caller is connected to."""

    def resolve_client(self, caller_id: str | None) -> str | None:  # pragma: no cover - protocol stub
        ...


class StaticClientResolver:
    """Routes every caller to one fixed identity until agent routing exists."""

    def __init__(self, identity: str | None = "user") -> None:
        self.identity = identity or None

    def resolve_client(self, caller_id: str | None) -> str | None:
        return self.identity
