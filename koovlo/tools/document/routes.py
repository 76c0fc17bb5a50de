import logging

from flask import Blueprint, jsonify
from werkzeug.utils import secure_filename

from ...errors import tool_errors
from ...uploads import json_body, send_pdf
from . import ops

logger = logging.getLogger(__name__)

bp = Blueprint("document", __name__, url_prefix="/tools/document")


@bp.post("/invoice")
@tool_errors("An error occurred while generating the invoice. Please try again.")
def invoice_post():
    data = json_body()
    invoice_number = str(data.get("invoice_number") or "").strip()
    pdf = ops.invoice_pdf(
        str(data.get("company_name") or ""),
        str(data.get("customer_name") or ""),
        data.get("items"),
        tax_rate=data.get("tax_rate", 0),
        date=str(data.get("date") or "").strip(),
        invoice_number=invoice_number,
    )
    logger.info("invoice items=%d bytes=%d", len(data.get("items") or []), len(pdf))
    name = secure_filename(f"invoice-{invoice_number}") if invoice_number else "invoice"
    return send_pdf(pdf, f"{name or 'invoice'}.pdf")


@bp.post("/invoice/totals")
@tool_errors("An error occurred while calculating the invoice. Please try again.")
def invoice_totals_post():
    data = json_body()
    return jsonify(ops.invoice_totals(data.get("items"), data.get("tax_rate", 0)))


@bp.post("/form-builder")
@tool_errors("An error occurred while building the form. Please try again.")
def form_builder_post():
    data = json_body()
    pdf = ops.form_pdf(str(data.get("title") or ""), data.get("fields"))
    logger.info("form-builder fields=%d bytes=%d", len(data.get("fields") or []), len(pdf))
    return send_pdf(pdf, "form.pdf")
