"""Contact-form delivery through the Resend HTTP API."""
import html
import logging
import re
from typing import Dict

import requests

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
FIELDS = ("name", "email", "subject", "message")


class MailError(Exception):
    """The provider refused the message or could not be reached."""


def validate(form: Dict) -> Dict[str, str]:
    values = {k: str(form.get(k) or "").strip() for k in FIELDS}
    if not all(values.values()):
        raise ValueError("All fields are required")
    if not EMAIL_PATTERN.match(values["email"]):
        raise ValueError("Invalid email address")
    return values


def render_html(values: Dict[str, str]) -> str:
    esc = {k: html.escape(v) for k, v in values.items()}
    message = esc["message"].replace("\n", "<br>")
    return (
        "<h2>New Contact Form Submission</h2>"
        f"<p><strong>Name:</strong> {esc['name']}</p>"
        f"<p><strong>Email:</strong> {esc['email']}</p>"
        f"<p><strong>Subject:</strong> {esc['subject']}</p>"
        f"<p><strong>Message:</strong></p><p>{message}</p>"
    )


def send_contact_email(values: Dict[str, str], *, api_key: str, api_url: str,
                       sender: str, recipient: str, timeout: float = 10) -> str:
    """Send the message; returns the provider's message id."""
    payload = {
        "from": sender,
        "to": [recipient],
        "reply_to": values["email"],
        "subject": f"Contact Form: {values['subject']}",
        "html": render_html(values),
    }
    response = requests.post(
        api_url,
        json=payload,
        headers={"Authorization": f"Bearer {api_key}"},
        timeout=timeout,
    )
    if not response.ok:
        logger.error("Resend rejected contact email: %s %s", response.status_code, response.text[:500])
        raise MailError(f"provider returned {response.status_code}")
    try:
        return str(response.json().get("id", ""))
    except ValueError:
        return ""
