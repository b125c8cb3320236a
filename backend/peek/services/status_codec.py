"""Status codec - one signed integer per probe outcome.

The store, the result log and notifications all carry the outcome of a probe
as a single signed integer:

- magnitude: the HTTP status code, or 410 (Gone) when no response arrived
- sign: negative when a search string was required and not found in the body

Inside the service the outcome travels as a ``ProbeOutcome`` and is only
encoded at those boundaries.
"""
from dataclasses import dataclass
from http import HTTPStatus
from typing import Optional

# Magnitude used when the request never produced a response
NO_RESPONSE_STATUS = 410

# Magnitudes below this are healthy; negative codes only matter for them
HEALTHY_LIMIT = 300


@dataclass(frozen=True)
class ProbeOutcome:
    """Tagged result of a single probe."""
    http_status: Optional[int] = None
    content_matched: bool = True
    transport_failed: bool = False

    @classmethod
    def no_response(cls) -> "ProbeOutcome":
        return cls(http_status=None, content_matched=True, transport_failed=True)


def encode(outcome: ProbeOutcome) -> int:
    """Encode a probe outcome into its signed status value."""
    if outcome.transport_failed or outcome.http_status is None:
        return NO_RESPONSE_STATUS

    status = outcome.http_status
    if status <= 0:
        raise ValueError(f"Invalid HTTP status: {status}")

    if not outcome.content_matched:
        return -status
    return status


def decode(value: int) -> ProbeOutcome:
    """Decode a signed status value.

    A stored 410 cannot be told apart from a genuine "410 Gone" response, so
    decoding never reports a transport failure.
    """
    if value == 0:
        raise ValueError("Status value 0 is not a valid encoding")
    return ProbeOutcome(http_status=abs(value), content_matched=value > 0)


def reason_phrase(status: int) -> str:
    """Return the standard reason phrase for an HTTP status code."""
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return "Unknown"


def status_label(value: int) -> str:
    """Human readable label for a signed status value.

    Missing content is only called out on healthy magnitudes; for error
    responses the status itself already says enough.
    """
    label = reason_phrase(abs(value))
    if value < 0 and abs(value) < HEALTHY_LIMIT:
        label = f"{label} - Incorrect content"
    return label


def is_healthy(value: int) -> bool:
    """Healthy-class magnitude (below 300), regardless of content."""
    return abs(value) < HEALTHY_LIMIT
