import logging

import requests
from flask import Blueprint, abort, current_app, jsonify, request

from . import mailer

logger = logging.getLogger(__name__)

bp = Blueprint("contact", __name__)


@bp.post("/api/contact")
def contact_post():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        abort(400, "All fields are required")
    try:
        values = mailer.validate(data)
    except ValueError as ve:
        abort(400, str(ve))

    cfg = current_app.config
    if not cfg.get("RESEND_API_KEY"):
        logger.error("RESEND_API_KEY is not set; contact form disabled")
        abort(500, "Email service not configured")

    try:
        message_id = mailer.send_contact_email(
            values,
            api_key=cfg["RESEND_API_KEY"],
            api_url=cfg["RESEND_API_URL"],
            sender=cfg["CONTACT_FROM"],
            recipient=cfg["CONTACT_EMAIL"],
            timeout=cfg["MAIL_TIMEOUT"],
        )
    except mailer.MailError:
        abort(500, "Failed to send email")
    except requests.RequestException:
        logger.exception("Contact email transport failure")
        abort(500, "Internal server error")

    logger.info("contact message sent id=%s from=%s", message_id, values["email"])
    return jsonify(success=True, message="Message sent successfully!")
