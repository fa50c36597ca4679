"""
Tests for the Twilio webhook routes.
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from conftest import BASE_URL, FakeHubSpotClient
from phonetree_scout.telephony.adapters.mock import MockTelephonyProvider
from phonetree_scout.telephony.config import TelephonyConfig
from phonetree_scout.telephony.payloads import compute_signature


def _start_call(client: TestClient, **overrides: str) -> str:
    body = {"toNumber": "+14155551234", "companyId": "42", "companyName": "Acme"}
    body.update(overrides)
    resp = client.post("/twilio/call", json=body)
    assert resp.status_code == 200
    return resp.json()["callSid"]


class TestCreateCall:
    def test_starts_call_and_tracks_it(self, client: TestClient, mock_provider: MockTelephonyProvider) -> None:
        resp = client.post(
            "/twilio/call",
            json={"toNumber": "+14155551234", "companyId": "42", "companyName": "Acme Corp"},
        )

        assert resp.status_code == 200
        data = resp.json()
        call_sid = data["callSid"]
        assert data["dashboardUrl"] == f"{BASE_URL}/dashboard?callSid={call_sid}&companyId=42"

        request = mock_provider.initiated[0]
        assert request.to == "+14155551234"
        assert request.from_number == "+14155550000"
        assert request.twiml_url.startswith(f"{BASE_URL}/twilio/twiml?companyId=42")
        assert request.status_callback_url == f"{BASE_URL}/twilio/status"
        assert request.recording_callback_url == f"{BASE_URL}/twilio/recording"

        call = client.get(f"/calls/{call_sid}").json()
        assert call["status"] == "initiated"
        assert call["meta"] == {"companyId": "42", "companyName": "Acme Corp", "toNumber": "+14155551234"}

    def test_missing_fields_is_400(self, client: TestClient, mock_provider: MockTelephonyProvider) -> None:
        resp = client.post("/twilio/call", json={"companyId": "42"})

        assert resp.status_code == 400
        assert resp.json()["error"] == "toNumber and companyId are required"
        assert mock_provider.initiated == []

    def test_provider_failure_is_500(self, client: TestClient, mock_provider: MockTelephonyProvider) -> None:
        from phonetree_scout.telephony.interface import CallInitiationError

        def _boom(request):  # noqa: ANN001
            raise CallInitiationError("Invalid 'To' Phone Number", error_code="21211")

        mock_provider.initiate_call_sync = _boom  # type: ignore[method-assign]

        resp = client.post("/twilio/call", json={"toNumber": "bad", "companyId": "42"})

        assert resp.status_code == 500
        assert resp.json() == {"error": "Invalid 'To' Phone Number"}


class TestTwiml:
    def test_twiml_listens_and_loops(self, client: TestClient) -> None:
        resp = client.post("/twilio/twiml?companyId=42&companyName=Acme")

        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/xml")
        body = resp.text
        assert '<Gather input="speech dtmf"' in body
        assert f'action="{BASE_URL}/twilio/gather"' in body
        assert '<Say voice="alice">' in body
        assert f"<Redirect method=\"POST\">{BASE_URL}/twilio/twiml?companyId=42&amp;companyName=Acme</Redirect>" in body

    def test_twiml_get_allowed(self, client: TestClient) -> None:
        assert client.get("/twilio/twiml").status_code == 200


class TestGather:
    def test_speech_and_digits_become_lines(self, client: TestClient) -> None:
        call_sid = _start_call(client)

        resp = client.post(
            "/twilio/gather",
            data={"CallSid": call_sid, "SpeechResult": "  For billing say billing ", "Digits": "2", "Confidence": "0.91"},
        )

        assert resp.status_code == 200
        assert "<Pause length=\"1\"/>" in resp.text
        lines = client.get(f"/calls/{call_sid}").json()["transcript"]
        assert [line["text"] for line in lines] == ["For billing say billing", "[DTMF] Pressed: 2"]

    def test_unknown_call_is_ignored(self, client: TestClient) -> None:
        resp = client.post("/twilio/gather", data={"CallSid": "CA_unknown", "SpeechResult": "hello"})

        assert resp.status_code == 200
        assert client.get("/calls/CA_unknown").status_code == 404

    def test_missing_call_sid_still_returns_twiml(self, client: TestClient) -> None:
        resp = client.post("/twilio/gather", data={"SpeechResult": "hello"})

        assert resp.status_code == 200
        assert "<Gather" in resp.text


class TestStatus:
    def test_status_updates_call(self, client: TestClient) -> None:
        call_sid = _start_call(client)

        resp = client.post("/twilio/status", data={"CallSid": call_sid, "CallStatus": "in-progress"})

        assert resp.status_code == 204
        assert client.get(f"/calls/{call_sid}").json()["status"] == "in-progress"

    def test_completed_archives_once(self, client: TestClient, hubspot: FakeHubSpotClient) -> None:
        call_sid = _start_call(client)
        client.post("/twilio/gather", data={"CallSid": call_sid, "SpeechResult": "Press 1 for sales"})

        payload = {"CallSid": call_sid, "CallStatus": "completed", "CallDuration": "37"}
        assert client.post("/twilio/status", data=payload).status_code == 204
        assert client.post("/twilio/status", data=payload).status_code == 204

        assert len(hubspot.notes) == 1
        note = hubspot.notes[0]
        assert note.company_id == "42"
        assert note.company_name == "Acme"
        assert note.to_number == "+14155551234"
        assert note.call_sid == call_sid
        assert note.duration_seconds == 37
        assert note.transcript_text.endswith("] Press 1 for sales")

    def test_crm_failure_still_acknowledged(self, client: TestClient, hubspot: FakeHubSpotClient) -> None:
        call_sid = _start_call(client)
        hubspot.fail_notes = True

        resp = client.post("/twilio/status", data={"CallSid": call_sid, "CallStatus": "completed"})

        assert resp.status_code == 204
        assert client.get(f"/calls/{call_sid}").json()["status"] == "completed"

    def test_completed_for_untracked_call(self, client: TestClient, hubspot: FakeHubSpotClient) -> None:
        resp = client.post("/twilio/status", data={"CallSid": "CA_unknown", "CallStatus": "completed"})

        assert resp.status_code == 204
        assert hubspot.notes == []

    def test_malformed_callback_acknowledged(self, client: TestClient) -> None:
        assert client.post("/twilio/status", data={"CallStatus": "ringing"}).status_code == 204


class TestRecording:
    def test_recording_url_appended(self, client: TestClient) -> None:
        call_sid = _start_call(client)

        resp = client.post(
            "/twilio/recording",
            data={
                "CallSid": call_sid,
                "RecordingUrl": "https://api.twilio.com/recordings/RE1",
                "RecordingStatus": "completed",
            },
        )

        assert resp.status_code == 204
        lines = client.get(f"/calls/{call_sid}").json()["transcript"]
        assert lines[-1]["text"] == "[Recording available: https://api.twilio.com/recordings/RE1]"

    def test_without_url_nothing_appended(self, client: TestClient) -> None:
        call_sid = _start_call(client)

        client.post("/twilio/recording", data={"CallSid": call_sid, "RecordingStatus": "in-progress"})

        assert client.get(f"/calls/{call_sid}").json()["transcript"] == []


class TestHangup:
    def test_hangup_marks_completed(self, client: TestClient, mock_provider: MockTelephonyProvider) -> None:
        call_sid = _start_call(client)

        resp = client.post("/twilio/hangup", json={"callSid": call_sid})

        assert resp.status_code == 200
        assert resp.json() == {"success": True}
        assert mock_provider.hung_up == [call_sid]
        assert client.get(f"/calls/{call_sid}").json()["status"] == "completed"

    def test_hangup_requires_call_sid(self, client: TestClient) -> None:
        resp = client.post("/twilio/hangup", json={})

        assert resp.status_code == 400
        assert resp.json()["error"] == "callSid required"

    def test_hangup_provider_failure(self, client: TestClient, mock_provider: MockTelephonyProvider) -> None:
        call_sid = _start_call(client)
        mock_provider.fail_next = True

        resp = client.post("/twilio/hangup", json={"callSid": call_sid})

        assert resp.status_code == 500
        assert client.get(f"/calls/{call_sid}").json()["status"] == "initiated"


class TestSignatureValidation:
    def test_bad_signature_rejected(self, client: TestClient, telephony_config: TelephonyConfig) -> None:
        telephony_config.validate_signatures = True

        resp = client.post(
            "/twilio/status",
            data={"CallSid": "CA1", "CallStatus": "ringing"},
            headers={"X-Twilio-Signature": "nope"},
        )

        assert resp.status_code == 403

    def test_good_signature_accepted(self, client: TestClient, telephony_config: TelephonyConfig) -> None:
        telephony_config.validate_signatures = True
        params = {"CallSid": "CA1", "CallStatus": "ringing"}
        signature = compute_signature(
            telephony_config.twilio_auth_token, f"{BASE_URL}/twilio/status", params
        )

        resp = client.post("/twilio/status", data=params, headers={"X-Twilio-Signature": signature})

        assert resp.status_code == 204


class TestHealth:
    def test_health(self, client: TestClient) -> None:
        resp = client.get("/health")

        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}
        assert "X-Correlation-ID" in resp.headers
