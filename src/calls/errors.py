"""Domain-specific exceptions for call placement and webhook handling.

These exceptions are safe to import from API layers without pulling in the Twilio SDK.
"""

from __future__ import annotations


class CallError(Exception):
    status_code: int = 500
    default_detail: str = "Call handling error"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.default_detail)
        self.detail = detail or self.default_detail


class InvalidRequestError(CallError):
    status_code = 400
    default_detail = "Invalid call request."


class RateLimitedError(CallError):
    status_code = 429
    default_detail = "Too many call attempts. Please try again later."


class CarrierUnavailableError(CallError):
    status_code = 503
    default_detail = "Voice carrier request failed."


class MalformedWebhookError(CallError):
    status_code = 400
    default_detail = "Malformed webhook payload."
