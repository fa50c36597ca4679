"""
TwiML documents returned to Twilio voice webhooks.
"""

from __future__ import annotations


def _twiml(s: str) -> str:
    return '<?xml version="1.0" encoding="UTF-8"?>\n<Response>\n' + s + "\n</Response>"


def _xml_escape(text: str) -> str:
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&apos;")
    )


def _gather_open(action_url: str, timeout_seconds: int) -> str:
    return (
        '<Gather input="speech dtmf"'
        f' timeout="{timeout_seconds}"'
        ' speechTimeout="auto"'
        f' action="{_xml_escape(action_url)}"'
        ' method="POST"'
        ' profanityFilter="false">'
    )


def listen_response(
    *,
    action_url: str,
    redirect_url: str,
    prompt: str,
    voice: str = "alice",
    timeout_seconds: int = 60,
) -> str:
    """First document of a call: announce, listen, and loop if nothing is heard."""
    body = (
        _gather_open(action_url, timeout_seconds)
        + f'<Say voice="{_xml_escape(voice)}">{_xml_escape(prompt)}</Say>'
        + "</Gather>\n"
        + f'<Redirect method="POST">{_xml_escape(redirect_url)}</Redirect>'
    )
    return _twiml(body)


def continue_listening_response(*, action_url: str, timeout_seconds: int = 60) -> str:
    """Returned after each gathered input so the phone tree keeps being captured."""
    body = _gather_open(action_url, timeout_seconds) + '<Pause length="1"/>' + "</Gather>"
    return _twiml(body)
