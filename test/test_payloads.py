"""
Tests for Twilio payload parsing and request signing.
"""

from datetime import datetime, timezone

import pytest

from phonetree_scout.telephony.interface import CallStatus, WebhookParseError
from phonetree_scout.telephony.payloads import (
    compute_signature,
    parse_input_payload,
    parse_status_payload,
    signature_matches,
)


class TestParseStatusPayload:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("initiated", CallStatus.INITIATED),
            ("ringing", CallStatus.RINGING),
            ("in-progress", CallStatus.IN_PROGRESS),
            ("completed", CallStatus.COMPLETED),
            ("no-answer", CallStatus.NO_ANSWER),
        ],
    )
    def test_status_mapping_keeps_raw_token(self, raw: str, expected: CallStatus) -> None:
        event = parse_status_payload({"CallSid": "CA1", "CallStatus": raw})

        assert event.status == expected
        assert event.raw_status == raw

    def test_unknown_status_passes_through(self) -> None:
        event = parse_status_payload({"CallSid": "CA1", "CallStatus": "Something-New"})

        assert event.raw_status == "something-new"
        assert event.is_terminal is False

    def test_missing_status(self) -> None:
        with pytest.raises(WebhookParseError) as exc_info:
            parse_status_payload({"CallSid": "CA1"})

        assert exc_info.value.error_code == "MISSING_CALL_STATUS"

    def test_rfc2822_timestamp(self) -> None:
        event = parse_status_payload(
            {"CallSid": "CA1", "CallStatus": "ringing", "Timestamp": "Mon, 15 Jan 2024 10:30:00 +0000"}
        )

        assert event.timestamp == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)

    def test_invalid_duration_ignored(self) -> None:
        event = parse_status_payload({"CallSid": "CA1", "CallStatus": "completed", "CallDuration": "abc"})

        assert event.duration_seconds is None

    def test_failed_carries_error(self) -> None:
        event = parse_status_payload(
            {"CallSid": "CA1", "CallStatus": "failed", "ErrorCode": "13224", "ErrorMessage": "Invalid number"}
        )

        assert event.error_code == "13224"
        assert event.error_message == "Invalid number"


class TestParseInputPayload:
    def test_speech_is_trimmed(self) -> None:
        event = parse_input_payload({"CallSid": "CA1", "SpeechResult": "  press one  ", "Confidence": "0.8"})

        assert event.speech == "press one"
        assert event.confidence == pytest.approx(0.8)
        assert event.transcript_lines() == ["press one"]

    def test_digits_line(self) -> None:
        event = parse_input_payload({"CallSid": "CA1", "Digits": "9"})

        assert event.transcript_lines() == ["[DTMF] Pressed: 9"]

    def test_empty_input(self) -> None:
        assert parse_input_payload({"CallSid": "CA1", "SpeechResult": "  "}).transcript_lines() == []

    def test_missing_call_sid(self) -> None:
        with pytest.raises(WebhookParseError):
            parse_input_payload({"Digits": "1"})


class TestSignature:
    def test_signature_binds_url_and_params(self) -> None:
        url = "https://scout.example.com/twilio/status"
        params = {"CallSid": "CA1", "CallStatus": "ringing"}
        signature = compute_signature("token", url, params)

        assert signature_matches("token", url, params, signature) is True
        assert signature_matches("token", url + "?x=1", params, signature) is False
        assert signature_matches("token", url, {**params, "CallStatus": "completed"}, signature) is False
        assert signature_matches("other", url, params, signature) is False

    def test_param_order_irrelevant(self) -> None:
        url = "https://scout.example.com/twilio/gather"
        a = compute_signature("token", url, {"Digits": "1", "CallSid": "CA1"})
        b = compute_signature("token", url, {"CallSid": "CA1", "Digits": "1"})

        assert a == b

    def test_empty_signature_never_matches(self) -> None:
        assert signature_matches("token", "https://example.com", {}, "") is False
