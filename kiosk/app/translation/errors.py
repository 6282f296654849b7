from __future__ import annotations

from enum import Enum

import httpx


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NETWORK = "network"
    SERVICE = "service"
    FORMAT = "format"
    QUOTA_EXCEEDED = "quota_exceeded"


TIMEOUT_MESSAGE = "Translation service is taking too long - please try again"
NETWORK_MESSAGE = "Network connection problem - please check internet"
FORMAT_MESSAGE = "Translation service returned invalid data"
QUOTA_MESSAGE = "Translation service daily limit reached"

_STATUS_MESSAGES: dict[int, str] = {
    400: "Invalid translation request - please check the text",
    401: "Translation service authentication failed",
    403: "Translation service access denied",
    404: "Translation service endpoint not found",
    429: "Translation service rate limit exceeded - please try again later",
    500: "Translation service internal error",
    502: "Translation service gateway error",
    503: "Translation service temporarily unavailable",
    504: "Translation service timeout",
}


def describe_status(status_code: int) -> str:
    message = _STATUS_MESSAGES.get(status_code)
    if message is not None:
        return message
    reason = httpx.codes.get_reason_phrase(status_code) or "Unknown"
    return f"Translation service error: {reason} ({status_code})"


def describe_failure(kind: ErrorKind, detail: str | None = None) -> str:
    """Kiosk-facing message for a failed call.

    ``detail`` carries the low-level reason (a status code for service errors,
    ``"timeout"`` for network errors, the validation text for validation
    errors). Passengers never see raw exception strings.
    """
    if kind is ErrorKind.VALIDATION:
        return detail or "Invalid translation request"
    if kind is ErrorKind.NETWORK:
        return TIMEOUT_MESSAGE if detail == "timeout" else NETWORK_MESSAGE
    if kind is ErrorKind.SERVICE:
        if detail and detail.isdigit():
            return describe_status(int(detail))
        return f"Translation service error: {detail}" if detail else describe_status(500)
    if kind is ErrorKind.QUOTA_EXCEEDED:
        return QUOTA_MESSAGE
    return FORMAT_MESSAGE
