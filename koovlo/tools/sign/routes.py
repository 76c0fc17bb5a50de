import io
import json
import logging

from flask import Blueprint, abort, current_app, request, send_file

from ...errors import tool_errors
from ...uploads import form_float, require_pdf, send_pdf, stem_of
from .signature import make_signature_png, paste_signature_on_pdf

logger = logging.getLogger(__name__)

bp = Blueprint("sign", __name__, url_prefix="/tools/pdf/sign")


@bp.route("", methods=["POST"])
@bp.route("/", methods=["POST"])
@tool_errors("An error occurred while signing. Please try again.")
def sign_post():
    """
    Expects multipart/form-data:
      - file: the PDF
      - full_name: user's full name (string), or
      - signature: a drawn/uploaded signature image
      - placements_json: JSON list of {page_index, x_norm, y_norm}
      - sig_width_pt: optional signature width in points (default 200)
    Returns a signed PDF download.
    """
    name, data = require_pdf()
    full_name = (request.form.get("full_name") or "").strip()
    sig_width_pt = form_float("sig_width_pt", 200.0)

    signature = request.files.get("signature")
    signature_image = signature.read() if signature and signature.filename else None

    try:
        placements = json.loads(request.form.get("placements_json") or "[]")
    except json.JSONDecodeError:
        abort(400, "Signature placements must be a JSON list.")
    if not isinstance(placements, list) or not placements:
        abort(400, "Please add at least one signature placement.")
    if not full_name and not signature_image:
        abort(400, "Please enter your full name.")

    signed_bytes = paste_signature_on_pdf(
        data,
        placements,
        full_name,
        sig_width_pt,
        current_app.config["SIGNATURE_FONT_PATH"],
        signature_image=signature_image,
    )
    return send_pdf(signed_bytes, f"{stem_of(name)}_signed.pdf")


@bp.post("/preview")
@tool_errors("An error occurred while drawing the signature. Please try again.")
def preview_post():
    """Transparent PNG of the typed name, trimmed to the ink."""
    payload = request.get_json(silent=True) or request.form
    full_name = (payload.get("full_name") or "").strip()
    if not full_name:
        abort(400, "Please enter your full name.")
    img = make_signature_png(full_name, current_app.config["SIGNATURE_FONT_PATH"])
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    buf.seek(0)
    return send_file(buf, mimetype="image/png", download_name="signature.png")
