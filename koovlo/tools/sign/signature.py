import io
import logging
import os
from typing import Any, Dict, List, Optional, Tuple

from PIL import Image, ImageDraw, ImageFont, UnidentifiedImageError
from pypdf import PdfWriter
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont

from ..pdf.ops import open_pdf, stamp_page, write_pdf

logger = logging.getLogger(__name__)

FALLBACK_FONT_NAME = "Helvetica-Oblique"

# font path -> registered ReportLab name
_registered_fonts: Dict[str, str] = {}


def ensure_signature_font_registered(font_path: str) -> str:
    """Register each TTF with ReportLab once; returns the font name to draw with."""
    if font_path in _registered_fonts:
        return _registered_fonts[font_path]
    if not font_path or not os.path.exists(font_path):
        logger.warning("Signature font not found at %s. Falling back to %s.", font_path, FALLBACK_FONT_NAME)
        return FALLBACK_FONT_NAME
    name = f"SignatureFont__{len(_registered_fonts) + 1}"
    try:
        pdfmetrics.registerFont(TTFont(name, font_path))
    except Exception as e:
        logger.warning("Could not register font (%s): %s. Falling back to %s.", font_path, e, FALLBACK_FONT_NAME)
        return FALLBACK_FONT_NAME
    _registered_fonts[font_path] = name
    return name


def _load_font(font_path: str, size: int):
    try:
        return ImageFont.truetype(font_path, size)
    except (OSError, ValueError):
        return ImageFont.load_default(size=size)


def make_signature_png(full_name: str, font_path: str, px_width: int = 800,
                       px_height: int = 220, text_pad: int = 20) -> Image.Image:
    """
    Render a stylized signature PNG with transparent background.
    px_width is the *maximum* canvas width; we scale font to fit width nicely.
    """
    if not full_name.strip():
        full_name = "Signature"
    img = Image.new("RGBA", (px_width, px_height), (0, 0, 0, 0))
    draw = ImageDraw.Draw(img)

    font_size = 180
    font = _load_font(font_path, font_size)

    # shrink until it fits
    max_w = px_width - 2 * text_pad
    while font.getlength(full_name) > max_w and font_size > 20:
        font_size -= 4
        font = _load_font(font_path, font_size)

    tw = font.getlength(full_name)
    x = (px_width - tw) / 2
    y = (px_height - font_size) / 2
    draw.text((x, y), full_name, fill=(20, 20, 20, 255), font=font)

    # Trim transparent padding
    bbox = img.getbbox()
    if bbox:
        img = img.crop(bbox)
    return img


def fit_font_size(text: str, font_name: str, sig_width_pt: float) -> float:
    """Font size (>= 10) at which `text` is sig_width_pt wide; width is linear in size."""
    width_at_one = pdfmetrics.stringWidth(text, font_name, 1.0)
    if width_at_one <= 0:
        return 10.0
    return max(10.0, sig_width_pt / width_at_one)


def group_placements(placements: List[Dict[str, Any]], page_count: int) -> Dict[int, List[Tuple[float, float]]]:
    """{page_index: [(x_norm, y_norm), ...]}; malformed or out-of-range entries are dropped."""
    by_page: Dict[int, List[Tuple[float, float]]] = {}
    for p in placements:
        if not isinstance(p, dict):
            continue
        try:
            idx = int(p["page_index"])
            x_norm = float(p["x_norm"])
            y_norm = float(p["y_norm"])
        except (KeyError, TypeError, ValueError):
            continue
        if not 0 <= idx < page_count:
            continue
        if not (0 <= x_norm <= 1 and 0 <= y_norm <= 1):
            continue
        by_page.setdefault(idx, []).append((x_norm, y_norm))
    return by_page


def paste_signature_on_pdf(
    data: bytes,
    placements: List[Dict[str, Any]],
    full_name: str,
    sig_width_pt: float,
    font_path: str,
    signature_image: Optional[bytes] = None,
) -> bytes:
    """
    Draw the signature on each placement.
    placements: list of {page_index, x_norm, y_norm} with top-left normalized coords (0..1).
    sig_width_pt: target signature width in PDF points.

    A typed name is drawn as vector text in the signature font; an uploaded
    image is scaled to sig_width_pt keeping its aspect ratio.
    """
    if sig_width_pt <= 0:
        raise ValueError("Signature width must be greater than zero.")
    reader = open_pdf(data)
    by_page = group_placements(placements, len(reader.pages))
    if not by_page:
        raise ValueError("Please add at least one valid signature placement.")

    sig_reader = None
    sig_height_pt = 0.0
    if signature_image:
        try:
            picture = Image.open(io.BytesIO(signature_image))
            picture.load()
        except (UnidentifiedImageError, OSError):
            raise ValueError("The signature image could not be read.")
        sig_height_pt = sig_width_pt * picture.height / picture.width
        sig_reader = ImageReader(picture)
        font_name, txt, size = None, "", 0.0
    else:
        font_name = ensure_signature_font_registered(font_path)
        txt = full_name.strip() or "Signature"
        size = fit_font_size(txt, font_name, sig_width_pt)

    writer = PdfWriter()
    for page_index, page in enumerate(reader.pages):
        spots = by_page.get(page_index)
        if spots:
            def draw(c, page_w, page_h, spots=spots):
                if sig_reader is not None:
                    for (x_norm, y_norm) in spots:
                        # top-left normalized -> PDF bottom-left origin
                        y_bottom = page_h - y_norm * page_h - sig_height_pt
                        c.drawImage(sig_reader, x_norm * page_w, y_bottom,
                                    width=sig_width_pt, height=sig_height_pt, mask="auto")
                    return
                c.setFont(font_name, size)
                # darker gray looks more ink-like
                c.setFillGray(0.1)
                ascent_approx = size * 0.80
                for (x_norm, y_norm) in spots:
                    y_baseline = page_h - y_norm * page_h - ascent_approx
                    c.drawString(x_norm * page_w, y_baseline, txt)

            stamp_page(page, draw)
        writer.add_page(page)

    logger.info("signed pages=%s placements=%d", sorted(by_page), sum(len(v) for v in by_page.values()))
    return write_pdf(writer)
