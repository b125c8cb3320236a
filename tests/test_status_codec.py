from __future__ import annotations

import pytest

from peek.services.status_codec import (
    NO_RESPONSE_STATUS,
    ProbeOutcome,
    decode,
    encode,
    is_healthy,
    status_label,
)


def test_encode_positive_when_content_found_or_not_required() -> None:
    assert encode(ProbeOutcome(http_status=200, content_matched=True)) == 200
    assert encode(ProbeOutcome(http_status=503)) == 503


def test_encode_negative_when_required_content_missing() -> None:
    assert encode(ProbeOutcome(http_status=200, content_matched=False)) == -200
    assert encode(ProbeOutcome(http_status=500, content_matched=False)) == -500


def test_encode_no_response_uses_gone_sentinel() -> None:
    value = encode(ProbeOutcome.no_response())
    assert value == NO_RESPONSE_STATUS == 410
    # Content flag is irrelevant without a response
    assert encode(ProbeOutcome(http_status=None, content_matched=False, transport_failed=True)) == 410


def test_encode_rejects_non_positive_status() -> None:
    with pytest.raises(ValueError):
        encode(ProbeOutcome(http_status=0))


@pytest.mark.parametrize("magnitude", [1, 200, 302, 404, 999])
def test_decode_recovers_magnitude_and_content_flag(magnitude: int) -> None:
    found = decode(encode(ProbeOutcome(http_status=magnitude, content_matched=True)))
    assert found.http_status == magnitude
    assert found.content_matched is True

    missing = encode(ProbeOutcome(http_status=magnitude, content_matched=False))
    assert missing == -magnitude
    assert decode(missing).content_matched is False


def test_decode_zero_is_invalid() -> None:
    with pytest.raises(ValueError):
        decode(0)


def test_status_labels() -> None:
    assert status_label(200) == "OK"
    assert status_label(-200) == "OK - Incorrect content"
    assert status_label(410) == "Gone"
    # Error magnitudes are not qualified, the status already dominates
    assert status_label(-404) == "Not Found"
    assert status_label(-503) == "Service Unavailable"
    assert status_label(599) == "Unknown"


def test_is_healthy_uses_magnitude() -> None:
    assert is_healthy(204)
    assert is_healthy(-200)
    assert not is_healthy(301)
    assert not is_healthy(-410)
