import logging

from flask import Blueprint, abort
from werkzeug.utils import secure_filename

from ...errors import tool_errors
from ...uploads import clean_name, form_str, json_body, send_pdf, send_zip, uploaded_files
from . import ops

logger = logging.getLogger(__name__)

bp = Blueprint("file", __name__, url_prefix="/tools/file")


@bp.post("/text-to-pdf")
@tool_errors("An error occurred while creating the PDF. Please try again.")
def text_to_pdf_post():
    data = json_body()
    try:
        font_size = float(data.get("font_size", 12))
    except (TypeError, ValueError):
        abort(400, "Font size must be a number.")
    pdf = ops.text_to_pdf(
        data.get("text") or "",
        font_size=font_size,
        font_family=data.get("font_family") or "Arial",
        page_size=data.get("page_size") or "A4",
        orientation=data.get("orientation") or "portrait",
    )
    logger.info("text-to-pdf chars=%d bytes=%d", len(data.get("text") or ""), len(pdf))
    return send_pdf(pdf, "document.pdf")


@bp.post("/zip-creator")
@tool_errors("An error occurred while creating the ZIP. Please try again.")
def zip_creator_post():
    files = uploaded_files("files")
    if not files:
        abort(400, "Please select at least one file.")
    zip_name = secure_filename(form_str("zip_name", "archive")) or "archive"
    if zip_name.lower().endswith(".zip"):
        zip_name = zip_name[:-4] or "archive"
    entries = [(clean_name(f, f"file-{i + 1}"), f.read()) for i, f in enumerate(files)]
    logger.info("zip-creator files=%d name=%s", len(entries), zip_name)
    return send_zip(entries, f"{zip_name}.zip")
