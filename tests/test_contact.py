from unittest.mock import MagicMock, patch

import pytest
import requests

from koovlo import create_app
from koovlo.config import TestingConfig
from koovlo.tools.contact import mailer

VALID = {"name": "Ada", "email": "ada@example.com", "subject": "Hi", "message": "Line 1\n<b>Line 2</b>"}


def _response(ok=True, status=200, payload=None):
    resp = MagicMock()
    resp.ok = ok
    resp.status_code = status
    resp.text = "error body"
    resp.json.return_value = payload or {"id": "msg_123"}
    return resp


def test_validate_requires_all_fields():
    with pytest.raises(ValueError, match="All fields are required"):
        mailer.validate({**VALID, "subject": "  "})


def test_validate_email_format():
    with pytest.raises(ValueError, match="Invalid email address"):
        mailer.validate({**VALID, "email": "ada@example"})


def test_render_html_escapes_and_breaks_lines():
    body = mailer.render_html(mailer.validate(VALID))
    assert "Line 1<br>&lt;b&gt;Line 2&lt;/b&gt;" in body


def test_send_contact_email_payload():
    with patch("koovlo.tools.contact.mailer.requests.post", return_value=_response()) as post:
        message_id = mailer.send_contact_email(
            mailer.validate(VALID), api_key="k", api_url="https://mail.test/emails",
            sender="Koovlo <a@b.c>", recipient="support@koovlo.com",
        )
    assert message_id == "msg_123"
    args, kwargs = post.call_args
    assert args == ("https://mail.test/emails",)
    assert kwargs["headers"] == {"Authorization": "Bearer k"}
    assert kwargs["json"]["to"] == ["support@koovlo.com"]
    assert kwargs["json"]["reply_to"] == "ada@example.com"
    assert kwargs["json"]["subject"] == "Contact Form: Hi"


def test_send_contact_email_rejected():
    with patch("koovlo.tools.contact.mailer.requests.post", return_value=_response(ok=False, status=422)):
        with pytest.raises(mailer.MailError):
            mailer.send_contact_email(VALID, api_key="k", api_url="u", sender="s", recipient="r")


def test_contact_route_success(client):
    with patch("koovlo.tools.contact.mailer.requests.post", return_value=_response()):
        resp = client.post("/api/contact", json=VALID)
    assert resp.status_code == 200
    assert resp.get_json() == {"success": True, "message": "Message sent successfully!"}


def test_contact_route_missing_fields(client):
    resp = client.post("/api/contact", json={"name": "Ada"})
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "All fields are required"}


def test_contact_route_non_json(client):
    resp = client.post("/api/contact", data="name=Ada")
    assert resp.status_code == 400


def test_contact_route_provider_failure(client):
    with patch("koovlo.tools.contact.mailer.requests.post", return_value=_response(ok=False, status=500)):
        resp = client.post("/api/contact", json=VALID)
    assert resp.status_code == 500
    assert resp.get_json() == {"error": "Failed to send email"}


def test_contact_route_network_failure(client):
    with patch("koovlo.tools.contact.mailer.requests.post", side_effect=requests.ConnectionError("down")):
        resp = client.post("/api/contact", json=VALID)
    assert resp.status_code == 500
    assert resp.get_json() == {"error": "Internal server error"}


def test_contact_route_without_api_key():
    client = create_app(TestingConfig, RESEND_API_KEY="").test_client()
    with patch("koovlo.tools.contact.mailer.requests.post") as post:
        resp = client.post("/api/contact", json=VALID)
    assert resp.status_code == 500
    assert resp.get_json() == {"error": "Email service not configured"}
    post.assert_not_called()
