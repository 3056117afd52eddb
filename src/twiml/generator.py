"""TwiML documents returned to Twilio at each voice webhook.

Every builder is pure and total: when inputs are missing or building fails the
caller receives the error document instead of an exception.
"""

from __future__ import annotations

import logging
from xml.sax.saxutils import escape, quoteattr

from calls.phone import client_name, is_client_address

LOGGER = logging.getLogger(__name__)

DIAL_TIMEOUT_SECONDS = 30
SAY_VOICE = "alice"
SAY_LANGUAGE = "en-US"

HOLD_MESSAGE = "Please hold while we connect your call."
UNAVAILABLE_MESSAGE = "Sorry, no one is available to take your call right now. Please try again later."
DIAL_FAILED_MESSAGE = "The call could not be completed. Please try again later."
DIAL_COMPLETED_MESSAGE = "Thank you for calling. Goodbye."
CALL_ENDED_MESSAGE = "Call ended."
DEFAULT_ERROR_MESSAGE = "We are experiencing technical difficulties. Please try again later."

_XML_HEADER = "<?xml version=\"1.0\" encoding=\"UTF-8\"?>"


def _response(*verbs: str) -> str:
    return f"{_XML_HEADER}<Response>{''.join(verbs)}</Response>"


def _say(text: str, *, voice: str | None = SAY_VOICE, language: str | None = SAY_LANGUAGE) -> str:
    attrs = ""
    if voice:
        attrs += f" voice={quoteattr(voice)}"
    if language:
        attrs += f" language={quoteattr(language)}"
    return f"<Say{attrs}>{escape(text)}</Say>"


def _dial(noun: str, *, caller_id: str | None = None, action: str | None = None) -> str:
    attrs = ""
    if caller_id:
        attrs += f" callerId={quoteattr(caller_id)}"
    attrs += f" timeout=\"{DIAL_TIMEOUT_SECONDS}\" answerOnBridge=\"true\""
    if action:
        attrs += f" action={quoteattr(action)} method=\"POST\""
    return f"<Dial{attrs}>{noun}</Dial>"


def build_error_twiml(message: str | None = None) -> str:
    return _response(_say(message or DEFAULT_ERROR_MESSAGE))


def build_outbound_call_twiml(to: str | None, caller_id: str | None) -> str:
    """Dial ``to`` from the browser, as a client leg or a PSTN number."""

    try:
        target = (to or "").strip()
        caller = (caller_id or "").strip()
        if is_client_address(target):
            name = client_name(target).strip()
            noun = f"<Client>{escape(name)}</Client>"
        else:
            name = target
            noun = f"<Number>{escape(target)}</Number>"
        if not name or not caller:
            LOGGER.warning("Outbound TwiML requested without destination or caller id")
            return build_error_twiml()
        return _response(_dial(noun, caller_id=caller))
    except Exception:
        LOGGER.exception("Failed to build outbound TwiML")
        return build_error_twiml()


def build_incoming_call_twiml(client_identity: str | None, dial_status_url: str | None = None) -> str:
    """Connect an inbound caller to a browser client, or apologise when none is free."""

    try:
        if not client_identity:
            return _response(_say(UNAVAILABLE_MESSAGE))
        noun = f"<Client>{escape(client_identity)}</Client>"
        return _response(
            _say(HOLD_MESSAGE),
            _dial(noun, action=dial_status_url),
        )
    except Exception:
        LOGGER.exception("Failed to build incoming call TwiML")
        return build_error_twiml()


def build_dial_status_twiml(dial_status: str | None) -> str:
    status = str(dial_status or "").strip().lower()
    if status in {"no-answer", "busy", "failed"}:
        message = DIAL_FAILED_MESSAGE
    elif status == "completed":
        message = DIAL_COMPLETED_MESSAGE
    else:
        message = CALL_ENDED_MESSAGE
    return _response(_say(message, voice=None, language=None))
