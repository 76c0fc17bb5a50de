"""
Generated documents: invoices laid out with reportlab platypus, and
fillable forms drawn with the reportlab canvas and its AcroForm support.
"""
import io
import math
import re
from typing import Any, Dict, List, Sequence
from xml.sax.saxutils import escape as xml_escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

FIELD_TYPES = ("text", "textarea", "number", "checkbox", "radio", "select", "date", "signature")

FIELD_ID = re.compile(r"^[A-Za-z0-9_-]+$")
HEX_COLOR = re.compile(r"^#?[0-9a-fA-F]{6}$")

DEFAULT_TEXT_COLOR = colors.Color(0.2, 0.2, 0.2)
DEFAULT_LINE_COLOR = colors.Color(0.7, 0.7, 0.7)
DEFAULT_BG_COLOR = colors.white

RADIO_SPACING = 25
CHECKBOX_SIZE = 18
# room for the title block above field coordinates
TOP_OFFSET = 60


def _number(value, label: str) -> float:
    if isinstance(value, bool) or value is None or value == "":
        raise ValueError(f"{label} must be a number.")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{label} must be a number.")
    if not math.isfinite(number):
        raise ValueError(f"{label} must be a number.")
    return number


def _money(value: float) -> str:
    return f"{value:,.2f}"


# ------------------ Invoice ------------------

def invoice_items(items: Any) -> List[Dict[str, Any]]:
    if not isinstance(items, list) or not items:
        raise ValueError("Please add at least one item.")
    cleaned = []
    for n, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            raise ValueError(f"Item {n} must be an object.")
        quantity = _number(item.get("quantity", 1), f"Item {n} quantity")
        price = _number(item.get("price", 0), f"Item {n} price")
        if quantity < 0:
            raise ValueError(f"Item {n} quantity cannot be negative.")
        cleaned.append({
            "description": str(item.get("description") or "").strip() or f"Item {n}",
            "quantity": quantity,
            "price": price,
            "amount": round(quantity * price, 2),
        })
    return cleaned


def invoice_totals(items: Any, tax_rate=0) -> Dict[str, Any]:
    """Subtotal of the line amounts, tax at `tax_rate` percent, and the total."""
    lines = invoice_items(items)
    rate = _number(tax_rate if tax_rate not in (None, "") else 0, "Tax rate")
    if not 0 <= rate <= 100:
        raise ValueError("Tax rate must be between 0 and 100.")
    subtotal = round(sum(line["amount"] for line in lines), 2)
    tax = round(subtotal * rate / 100, 2)
    return {
        "items": lines,
        "tax_rate": rate,
        "subtotal": subtotal,
        "tax": tax,
        "total": round(subtotal + tax, 2),
    }


def _quantity(value: float) -> str:
    return str(int(value)) if value.is_integer() else f"{value:g}"


def invoice_pdf(company_name: str, customer_name: str, items: Any, tax_rate=0,
                date: str = "", invoice_number: str = "") -> bytes:
    if not (company_name or "").strip():
        raise ValueError("Please enter your company name.")
    if not (customer_name or "").strip():
        raise ValueError("Please enter the customer name.")
    totals = invoice_totals(items, tax_rate)

    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf, pagesize=A4,
        leftMargin=20*mm, rightMargin=20*mm, topMargin=20*mm, bottomMargin=20*mm,
        title=f"Invoice {invoice_number}".strip(),
    )
    styles = getSampleStyleSheet()
    story = [Paragraph("INVOICE", styles["Title"])]
    header = [f"From: {company_name.strip()}", f"To: {customer_name.strip()}"]
    if invoice_number:
        header.append(f"Invoice #: {invoice_number}")
    if date:
        header.append(f"Date: {date}")
    for line in header:
        story.append(Paragraph(xml_escape(line), styles["Normal"]))
    story.append(Spacer(1, 8*mm))

    rows = [["Description", "Qty", "Price", "Amount"]]
    for line in totals["items"]:
        rows.append([
            Paragraph(xml_escape(line["description"]), styles["Normal"]),
            _quantity(line["quantity"]),
            _money(line["price"]),
            _money(line["amount"]),
        ])
    first_total = len(rows)
    rows.append(["", "", "Subtotal", _money(totals["subtotal"])])
    rows.append(["", "", f"Tax ({totals['tax_rate']:g}%)", _money(totals["tax"])])
    rows.append(["", "", "Total", _money(totals["total"])])

    table = Table(rows, colWidths=[85*mm, 20*mm, 32*mm, 33*mm], repeatRows=1)
    table.setStyle(TableStyle([
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("BACKGROUND", (0, 0), (-1, 0), colors.Color(0.93, 0.93, 0.93)),
        ("LINEBELOW", (0, 0), (-1, 0), 0.75, colors.black),
        ("LINEBELOW", (0, first_total - 1), (-1, first_total - 1), 0.5, DEFAULT_LINE_COLOR),
        ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("FONTNAME", (2, -1), (-1, -1), "Helvetica-Bold"),
    ]))
    story.append(table)
    doc.build(story)
    return buf.getvalue()


# ------------------ Form builder ------------------

def _color(value, default):
    if not value:
        return default
    if not isinstance(value, str) or not HEX_COLOR.match(value.strip()):
        raise ValueError(f"Invalid color: {value}")
    return colors.HexColor("#" + value.strip().lstrip("#"))


def form_fields(fields: Any) -> List[Dict[str, Any]]:
    """Check field definitions and fill in defaults."""
    if not isinstance(fields, list) or not fields:
        raise ValueError("Please add at least one field.")
    cleaned = []
    seen = set()
    for n, field in enumerate(fields, start=1):
        if not isinstance(field, dict):
            raise ValueError(f"Field {n} must be an object.")
        field_id = str(field.get("id") or f"field_{n}")
        if not FIELD_ID.match(field_id):
            raise ValueError(f"Invalid field id: {field_id}")
        if field_id in seen:
            raise ValueError(f"Duplicate field id: {field_id}")
        seen.add(field_id)
        kind = str(field.get("type") or "text").lower()
        if kind not in FIELD_TYPES:
            raise ValueError(f"Unsupported field type: {kind}")
        x = _number(field.get("x", 50), f"Field {field_id} x")
        y = _number(field.get("y", 0), f"Field {field_id} y")
        width = _number(field.get("width", 200), f"Field {field_id} width")
        height = _number(field.get("height", 30 if kind != "textarea" else 80), f"Field {field_id} height")
        if x < 0 or y < 0 or width <= 0 or height <= 0:
            raise ValueError(f"Field {field_id} needs a positive size and position.")
        options = field.get("options") or []
        if not isinstance(options, list):
            raise ValueError(f"Field {field_id} options must be a list.")
        options = [str(option) for option in options if str(option).strip()]
        if kind in ("radio", "select") and not options:
            raise ValueError(f"Field {field_id} needs at least one option.")
        cleaned.append({
            "id": field_id,
            "type": kind,
            "label": str(field.get("label") or field_id),
            "required": bool(field.get("required")),
            "x": x, "y": y, "width": width, "height": height,
            "options": options,
            "bg_color": _color(field.get("bg_color"), DEFAULT_BG_COLOR),
            "line_color": _color(field.get("line_color"), DEFAULT_LINE_COLOR),
            "text_color": _color(field.get("text_color"), DEFAULT_TEXT_COLOR),
        })
    return cleaned


def _draw_field(c: canvas.Canvas, field: Dict[str, Any], page_height: float) -> None:
    form = c.acroForm
    x, width, height = field["x"], field["width"], field["height"]
    # field y is measured down from the top, below the title block
    y = page_height - field["y"] - height - TOP_OFFSET
    kind = field["type"]
    style = dict(
        borderColor=field["line_color"],
        fillColor=field["bg_color"],
        textColor=field["text_color"],
    )
    required = " required" if field["required"] else ""

    c.setFont("Helvetica-Bold", 10)
    c.setFillColor(field["text_color"])
    c.drawString(x, y + height + 5, field["label"] + (" *" if field["required"] else ""))

    if kind in ("text", "number", "date"):
        form.textfield(name=field["id"], tooltip=field["label"], value="", x=x, y=y,
                       width=width, height=height, fontSize=10, forceBorder=True,
                       fieldFlags=required.strip(), **style)
    elif kind == "textarea":
        form.textfield(name=field["id"], tooltip=field["label"], value="", x=x, y=y,
                       width=width, height=height, fontSize=10, forceBorder=True,
                       fieldFlags="multiline" + required, **style)
    elif kind == "checkbox":
        form.checkbox(name=field["id"], tooltip=field["label"], x=x, y=y,
                      size=CHECKBOX_SIZE, checked=False, buttonStyle="check",
                      forceBorder=True, fieldFlags=required.strip(), **style)
    elif kind == "radio":
        for i, option in enumerate(field["options"]):
            oy = y - i * RADIO_SPACING
            form.radio(name=field["id"], tooltip=field["label"], value=f"option_{i + 1}",
                       selected=i == 0, x=x, y=oy, size=14, buttonStyle="circle",
                       forceBorder=True, fieldFlags="noToggleToOff radio" + required, **style)
            c.setFont("Helvetica", 10)
            c.setFillColor(field["text_color"])
            c.drawString(x + 20, oy + 3, option)
    elif kind == "select":
        form.choice(name=field["id"], tooltip=field["label"], value=field["options"][0],
                    options=field["options"], x=x, y=y, width=width, height=height,
                    fontSize=10, forceBorder=True, fieldFlags="combo" + required, **style)
    elif kind == "signature":
        c.setStrokeColor(field["line_color"])
        c.rect(x, y, width, height, stroke=1, fill=0)
        form.textfield(name=field["id"], tooltip=field["label"], value="", x=x + 2, y=y + 2,
                       width=width - 4, height=height - 4, fontSize=12, borderWidth=0,
                       fieldFlags=required.strip(), **style)
        c.setFont("Helvetica-Oblique", 8)
        c.setFillColor(DEFAULT_LINE_COLOR)
        c.drawString(x + 5, y - 10, "Sign here")


def form_pdf(title: str, fields: Sequence[Dict[str, Any]]) -> bytes:
    """One A4 page with a fillable AcroForm field per definition."""
    title = (title or "").strip() or "Untitled Form"
    cleaned = form_fields(fields)
    width, height = A4

    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    c.setTitle(title)
    c.setFont("Helvetica-Bold", 20)
    c.setFillColor(DEFAULT_TEXT_COLOR)
    c.drawString(50, height - 40, title)
    c.setStrokeColor(DEFAULT_LINE_COLOR)
    c.setLineWidth(1)
    c.line(50, height - 50, width - 50, height - 50)

    for field in cleaned:
        _draw_field(c, field, height)

    c.setFont("Helvetica", 8)
    c.setFillColor(DEFAULT_LINE_COLOR)
    c.drawString(50, 30, "Form created with Koovlo")
    c.showPage()
    c.save()
    return buf.getvalue()
