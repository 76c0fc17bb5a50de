import io
from xml.sax.saxutils import escape as xml_escape

from reportlab.lib.enums import TA_LEFT
from reportlab.lib.pagesizes import A3, A4, LEGAL, LETTER, landscape, portrait
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer

PAGE_SIZES = {"A4": A4, "LETTER": LETTER, "LEGAL": LEGAL, "A3": A3}

# browser font names -> PDF base-14 families
FONT_FAMILIES = {
    "arial": "Helvetica",
    "helvetica": "Helvetica",
    "verdana": "Helvetica",
    "sans-serif": "Helvetica",
    "times new roman": "Times-Roman",
    "times": "Times-Roman",
    "georgia": "Times-Roman",
    "serif": "Times-Roman",
    "courier new": "Courier",
    "courier": "Courier",
    "monospace": "Courier",
}


def resolve_font(family: str) -> str:
    font = FONT_FAMILIES.get((family or "Arial").strip().lower())
    if font is None:
        raise ValueError(f"Unsupported font: {family}")
    return font


def text_to_pdf(text: str, font_size: float = 12, font_family: str = "Arial",
                page_size: str = "A4", orientation: str = "portrait") -> bytes:
    """
    Lay plain text out on pages. Each line becomes a paragraph so line
    breaks survive; blank lines become vertical space.
    """
    if not (text or "").strip():
        raise ValueError("Please enter some text to convert.")
    if not 6 <= font_size <= 72:
        raise ValueError("Font size must be between 6 and 72.")
    size = PAGE_SIZES.get((page_size or "A4").upper())
    if size is None:
        raise ValueError(f"Unsupported page size: {page_size}")
    if orientation not in ("portrait", "landscape"):
        raise ValueError("Orientation must be portrait or landscape.")
    size = landscape(size) if orientation == "landscape" else portrait(size)

    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf, pagesize=size,
        leftMargin=20*mm, rightMargin=20*mm, topMargin=20*mm, bottomMargin=20*mm,
        title="Koovlo document",
    )
    body = ParagraphStyle(
        "Plain",
        parent=getSampleStyleSheet()["BodyText"],
        fontName=resolve_font(font_family),
        fontSize=font_size,
        leading=font_size * 1.4,
        alignment=TA_LEFT,
    )

    story = []
    for line in text.splitlines():
        if not line.strip():
            story.append(Spacer(1, font_size * 0.8))
            continue
        # keep indentation
        indent = len(line) - len(line.lstrip(" "))
        story.append(Paragraph("&nbsp;" * indent + xml_escape(line.strip()), body))
    doc.build(story)
    return buf.getvalue()
