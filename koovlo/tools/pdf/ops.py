"""
PDF transformations behind the /tools/pdf routes.

Every function takes the uploaded bytes (or an opened reader) and returns
new PDF bytes or plain data, so the routes stay thin.
"""
import io
import logging
import os
import shutil
import tempfile
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from pypdf import PdfReader, PdfWriter, PageObject
from pypdf.errors import PdfReadError
from pypdf.generic import NameObject, RectangleObject
from reportlab.pdfgen import canvas
from reportlab.lib.utils import ImageReader
from PIL import Image, UnidentifiedImageError

from ...pages import (
    check_pages_exist,
    parse_page_list,
    parse_range_groups,
    parse_split_selection,
)

logger = logging.getLogger(__name__)

# Points. Portrait width x height.
PAGE_SIZES: Dict[str, Tuple[float, float]] = {
    "A4": (595, 842),
    "A3": (842, 1191),
    "A5": (420, 595),
    "Letter": (612, 792),
    "Legal": (612, 1008),
    "Tabloid": (792, 1224),
}

UNIT_TO_POINTS = {"points": 1.0, "mm": 2.83465, "inches": 72.0}

PAGE_NUMBER_POSITIONS = ("top-left", "top-right", "bottom-left", "bottom-right", "center-bottom")
WATERMARK_POSITIONS = ("center", "top-left", "top-right", "bottom-left", "bottom-right")


def open_pdf(data: bytes) -> PdfReader:
    """
    Open PDF bytes leniently. Encrypted files are tried with an empty
    password; anything else needs the unlock tool first.
    """
    try:
        reader = PdfReader(io.BytesIO(data), strict=False)
    except (PdfReadError, OSError) as ex:
        raise ValueError("The uploaded file is not a readable PDF.") from ex
    if reader.is_encrypted:
        try:
            ok = reader.decrypt("")
        except (PdfReadError, NotImplementedError):
            ok = 0
        if not ok:
            raise ValueError("This PDF is encrypted. Please unlock it first.")
    if len(reader.pages) < 1:
        raise ValueError("The uploaded PDF appears to be empty.")
    return reader


def write_pdf(writer: PdfWriter) -> bytes:
    out = io.BytesIO()
    writer.write(out)
    return out.getvalue()


def _reopen(reader: PdfReader) -> PdfReader:
    copy = PdfReader(reader.stream, strict=False)
    if copy.is_encrypted:
        copy.decrypt("")
    return copy


def pages_to_pdf(reader: PdfReader, indices: Sequence[int]) -> bytes:
    """New document from 0-based page indices, in the given order. Repeats are allowed."""
    writer = PdfWriter()
    readers = [reader]
    uses: Dict[int, int] = {}
    for i in indices:
        n = uses.get(i, 0)
        uses[i] = n + 1
        # a page object can only go into a writer once; repeats come from fresh readers
        while len(readers) <= n:
            readers.append(_reopen(reader))
        writer.add_page(readers[n].pages[i])
    return write_pdf(writer)


def hex_to_rgb(color: str) -> Tuple[float, float, float]:
    """'#ff8800' or 'f80' -> (1.0, 0.53, 0.0)"""
    value = (color or "").strip().lstrip("#")
    if len(value) == 3:
        value = "".join(ch * 2 for ch in value)
    if len(value) != 6:
        raise ValueError(f"Invalid color: {color}")
    try:
        r, g, b = (int(value[i:i + 2], 16) for i in (0, 2, 4))
    except ValueError:
        raise ValueError(f"Invalid color: {color}")
    return r / 255.0, g / 255.0, b / 255.0


def page_size(page: PageObject) -> Tuple[float, float]:
    media = page.mediabox
    return float(media.width), float(media.height)


def stamp_page(page: PageObject, draw: Callable[[canvas.Canvas, float, float], None]) -> None:
    """
    Draw on a one-page ReportLab overlay sized like `page` and merge it on top.
    `draw(c, width, height)` works in the page's own coordinates.
    """
    page_w, page_h = page_size(page)
    left, bottom = float(page.mediabox.left), float(page.mediabox.bottom)

    overlay_bytes = io.BytesIO()
    c = canvas.Canvas(overlay_bytes, pagesize=(page_w, page_h))
    c.translate(left, bottom)
    draw(c, page_w, page_h)
    c.save()
    overlay_bytes.seek(0)

    overlay_pdf = PdfReader(overlay_bytes)
    page.merge_page(overlay_pdf.pages[0])


# ------------------ Page assembly ------------------

def merge_pdfs(documents: Sequence[bytes]) -> bytes:
    if len(documents) < 2:
        raise ValueError("Please select at least 2 PDF files to merge.")
    writer = PdfWriter()
    for data in documents:
        reader = open_pdf(data)
        for page in reader.pages:
            writer.add_page(page)
    logger.info("merged documents=%d pages=%d", len(documents), len(writer.pages))
    return write_pdf(writer)


def split_pdf(data: bytes, selection: str) -> bytes:
    if not (selection or "").strip():
        raise ValueError("Enter page numbers to extract (e.g. 1-3,5)")
    reader = open_pdf(data)
    indices = parse_split_selection(selection, len(reader.pages))
    if not indices:
        raise ValueError("Invalid page range. Please check your input.")
    return pages_to_pdf(reader, indices)


def page_range_split(data: bytes, ranges: str) -> List[Tuple[str, bytes]]:
    """One PDF per comma-separated group; pages past the end are skipped."""
    reader = open_pdf(data)
    total = len(reader.pages)
    groups = parse_range_groups(ranges, total)
    if not groups:
        raise ValueError("No valid ranges found.")

    parts: List[Tuple[str, bytes]] = []
    for group in groups:
        parts.append((f"split-{len(parts) + 1}.pdf", pages_to_pdf(reader, [p - 1 for p in group])))
    return parts


def rotate_pdf(data: bytes, angle: int) -> bytes:
    if angle % 90 != 0:
        raise ValueError("Rotation angle must be a multiple of 90 degrees.")
    reader = open_pdf(data)
    writer = PdfWriter()
    for page in reader.pages:
        # add to whatever rotation the page already carries
        page.rotate(angle)
        writer.add_page(page)
    return write_pdf(writer)


def delete_pages(data: bytes, pages: str) -> bytes:
    reader = open_pdf(data)
    total = len(reader.pages)
    to_delete = parse_page_list(pages, total)
    if not to_delete:
        raise ValueError("Please enter the pages to delete.")
    check_pages_exist(to_delete, total)
    remove = set(p - 1 for p in to_delete)
    keep = [i for i in range(total) if i not in remove]
    if not keep:
        raise ValueError("Cannot delete every page of the document.")
    return pages_to_pdf(reader, keep)


def extract_pages(data: bytes, pages: str) -> bytes:
    reader = open_pdf(data)
    wanted = parse_page_list(pages, len(reader.pages))
    if not wanted:
        raise ValueError("Please enter the pages to extract.")
    check_pages_exist(wanted, len(reader.pages))
    return pages_to_pdf(reader, [p - 1 for p in wanted])


def duplicate_pages(data: bytes, pages: str, count: int = 1) -> bytes:
    """Every selected page is followed by `count` copies of itself."""
    if count < 1 or count > 10:
        raise ValueError("Number of copies must be between 1 and 10.")
    reader = open_pdf(data)
    total = len(reader.pages)
    wanted = parse_page_list(pages, total)
    if not wanted:
        raise ValueError("Please enter the pages to duplicate.")
    check_pages_exist(wanted, total)

    selected = set(p - 1 for p in wanted)
    indices: List[int] = []
    for i in range(total):
        indices.append(i)
        if i in selected:
            indices.extend([i] * count)
    return pages_to_pdf(reader, indices)


def reorder_pages(data: bytes, order: str) -> bytes:
    """`order` lists 1-based pages in their new order; omitted pages are dropped."""
    reader = open_pdf(data)
    total = len(reader.pages)
    new_order: List[int] = []
    for raw in (order or "").split(","):
        part = raw.strip()
        if not part:
            continue
        try:
            new_order.append(int(part))
        except ValueError:
            raise ValueError(f"Invalid page number: {part}")
    if not new_order:
        raise ValueError("Please provide the new page order.")
    check_pages_exist(new_order, total)
    return pages_to_pdf(reader, [p - 1 for p in new_order])


# ------------------ Stamping ------------------

def page_number_origin(position: str, width: float, height: float) -> Tuple[float, float]:
    if position == "top-left":
        return 50, height - 40
    if position == "top-right":
        return width - 80, height - 40
    if position == "bottom-left":
        return 50, 40
    if position == "center-bottom":
        return width / 2 - 15, 40
    if position == "bottom-right":
        return width - 80, 40
    raise ValueError(f"Unknown position: {position}")


def add_page_numbers(
    data: bytes,
    position: str = "bottom-right",
    font_size: float = 12,
    color: str = "#000000",
    start_page: int = 1,
) -> bytes:
    if position not in PAGE_NUMBER_POSITIONS:
        raise ValueError(f"Unknown position: {position}")
    if font_size <= 0:
        raise ValueError("Font size must be greater than zero.")
    rgb = hex_to_rgb(color)
    reader = open_pdf(data)
    writer = PdfWriter()

    for index, page in enumerate(reader.pages):
        label = str(index + start_page)

        def draw(c, w, h, label=label):
            x, y = page_number_origin(position, w, h)
            c.setFont("Helvetica", font_size)
            c.setFillColorRGB(*rgb)
            c.drawString(x, y, label)

        stamp_page(page, draw)
        writer.add_page(page)
    return write_pdf(writer)


def watermark_origin(position: str, width: float, height: float) -> Tuple[float, float]:
    if position == "center":
        return width / 2, height / 2
    if position == "top-left":
        return 50, height - 80
    if position == "top-right":
        return width - 200, height - 80
    if position == "bottom-left":
        return 50, 80
    if position == "bottom-right":
        return width - 200, 80
    raise ValueError(f"Unknown position: {position}")


def watermark_pdf(
    data: bytes,
    text: str = "Koovlo Confidential",
    image: Optional[bytes] = None,
    position: str = "center",
    opacity: float = 0.3,
    size: float = 40,
    rotation: float = -30,
) -> bytes:
    """
    Text is drawn in 60% gray Helvetica at `size` points. An image watermark
    is drawn `size*8` x `size*3` points. Centered watermarks are centered on
    the page; corner ones start at their anchor.
    """
    if not 0 <= opacity <= 1:
        raise ValueError("Opacity must be between 0 and 1.")
    if size <= 0:
        raise ValueError("Size must be greater than zero.")
    if position not in WATERMARK_POSITIONS:
        raise ValueError(f"Unknown position: {position}")

    logo = None
    if image:
        try:
            logo = ImageReader(Image.open(io.BytesIO(image)))
        except (UnidentifiedImageError, OSError):
            raise ValueError("The watermark image could not be read.")
    elif not (text or "").strip():
        raise ValueError("Please enter watermark text or upload an image.")

    reader = open_pdf(data)
    writer = PdfWriter()

    def draw(c, w, h):
        x, y = watermark_origin(position, w, h)
        c.saveState()
        c.setFillAlpha(opacity)
        c.translate(x, y)
        c.rotate(rotation)
        if logo is not None:
            img_w, img_h = size * 8, size * 3
            ox, oy = (-img_w / 2, -img_h / 2) if position == "center" else (0, 0)
            c.drawImage(logo, ox, oy, width=img_w, height=img_h, mask="auto")
        else:
            c.setFont("Helvetica", size)
            c.setFillGray(0.6)
            if position == "center":
                c.drawCentredString(0, -size / 3, text)
            else:
                c.drawString(0, 0, text)
        c.restoreState()

    for page in reader.pages:
        stamp_page(page, draw)
        writer.add_page(page)
    return write_pdf(writer)


def _page_index(reader: PdfReader, page: int) -> int:
    if page < 1 or page > len(reader.pages):
        raise ValueError(f"Page {page} does not exist (the document has {len(reader.pages)} pages).")
    return page - 1


def add_text(
    data: bytes,
    text: str,
    page: int = 1,
    x: float = 100,
    y: float = 100,
    font_size: float = 12,
    color: str = "#000000",
) -> bytes:
    if not (text or "").strip():
        raise ValueError("Please enter the text to add.")
    if font_size <= 0:
        raise ValueError("Font size must be greater than zero.")
    rgb = hex_to_rgb(color)
    reader = open_pdf(data)
    target = _page_index(reader, page)

    def draw(c, w, h):
        c.setFont("Helvetica", font_size)
        c.setFillColorRGB(*rgb)
        for n, line in enumerate(text.splitlines()):
            c.drawString(x, y - n * font_size * 1.2, line)

    writer = PdfWriter()
    for index, pdf_page in enumerate(reader.pages):
        if index == target:
            stamp_page(pdf_page, draw)
        writer.add_page(pdf_page)
    return write_pdf(writer)


def add_image(
    data: bytes,
    image: bytes,
    page: int = 1,
    x: float = 50,
    y: float = 50,
    width: Optional[float] = None,
    height: Optional[float] = None,
) -> bytes:
    try:
        picture = Image.open(io.BytesIO(image))
        picture.load()
    except (UnidentifiedImageError, OSError):
        raise ValueError("Please upload a valid image file.")

    px_w, px_h = picture.size
    if width is None and height is None:
        width, height = float(px_w), float(px_h)
    elif width is None:
        width = height * px_w / px_h
    elif height is None:
        height = width * px_h / px_w
    if width <= 0 or height <= 0:
        raise ValueError("Image width and height must be greater than zero.")

    reader = open_pdf(data)
    target = _page_index(reader, page)
    source = ImageReader(picture)

    def draw(c, w, h):
        c.drawImage(source, x, y, width=width, height=height, mask="auto")

    writer = PdfWriter()
    for index, pdf_page in enumerate(reader.pages):
        if index == target:
            stamp_page(pdf_page, draw)
        writer.add_page(pdf_page)
    return write_pdf(writer)


# ------------------ Document properties ------------------

def _info_value(info, key: str) -> str:
    if not info:
        return ""
    value = info.get(key)
    return str(value) if value is not None else ""


def _date_value(info, attr: str) -> Optional[str]:
    if not info:
        return None
    try:
        value = getattr(info, attr)
    except (ValueError, TypeError):
        # unparseable date string
        return None
    return value.isoformat() if value else None


def read_metadata(data: bytes) -> Dict[str, object]:
    reader = open_pdf(data)
    info = reader.metadata
    return {
        "title": _info_value(info, "/Title"),
        "author": _info_value(info, "/Author"),
        "subject": _info_value(info, "/Subject"),
        "keywords": _info_value(info, "/Keywords"),
        "creator": _info_value(info, "/Creator"),
        "producer": _info_value(info, "/Producer"),
        "creation_date": _date_value(info, "creation_date"),
        "modification_date": _date_value(info, "modification_date"),
        "page_count": len(reader.pages),
        "encrypted": reader.is_encrypted,
        "pdf_version": reader.pdf_header.replace("%PDF-", ""),
    }


def write_metadata(data: bytes, title: str = "", author: str = "", subject: str = "", keywords: str = "") -> bytes:
    reader = open_pdf(data)
    writer = PdfWriter(clone_from=reader)
    writer.add_metadata({
        "/Title": title,
        "/Author": author,
        "/Subject": subject,
        "/Keywords": keywords,
        "/Producer": "Koovlo",
    })
    return write_pdf(writer)


def human_size(num_bytes: int) -> str:
    size = float(num_bytes)
    for unit in ("Bytes", "KB", "MB", "GB"):
        if size < 1024 or unit == "GB":
            return f"{int(size)} {unit}" if unit == "Bytes" else f"{size:.2f} {unit}"
        size /= 1024
    return f"{size:.2f} GB"


def pdf_info(data: bytes) -> Dict[str, object]:
    info = read_metadata(data)
    reader = open_pdf(data)
    sizes = []
    for i, page in enumerate(reader.pages):
        w, h = page_size(page)
        sizes.append({"page": i + 1, "width": round(w, 2), "height": round(h, 2), "rotation": page.rotation})
    info.update({
        "file_size": len(data),
        "file_size_text": human_size(len(data)),
        "pages": sizes,
    })
    return info


def count_pages(documents: Sequence[Tuple[str, bytes]]) -> Dict[str, object]:
    results = []
    for name, data in documents:
        results.append({"filename": name, "pages": len(open_pdf(data).pages)})
    return {"files": results, "total_pages": sum(r["pages"] for r in results)}


def compress_pdf(data: bytes) -> bytes:
    """Lossless: deflate content streams and drop duplicate objects."""
    reader = open_pdf(data)
    writer = PdfWriter(clone_from=reader)
    for page in writer.pages:
        page.compress_content_streams(level=9)
    writer.compress_identical_objects(remove_identicals=True, remove_orphans=True)
    out = write_pdf(writer)
    logger.info("compress before=%d after=%d", len(data), len(out))
    return out


def unlock_pdf(data: bytes, password: str) -> bytes:
    try:
        reader = PdfReader(io.BytesIO(data), strict=False)
    except (PdfReadError, OSError) as ex:
        raise ValueError("The uploaded file is not a readable PDF.") from ex
    if not reader.is_encrypted:
        raise ValueError("This PDF is not password protected.")
    try:
        result = reader.decrypt(password or "")
    except NotImplementedError:
        raise ValueError("This PDF uses an unsupported encryption method.")
    if not result:
        raise ValueError("Incorrect password.")
    writer = PdfWriter(clone_from=reader)
    return write_pdf(writer)


# ------------------ Page geometry ------------------

def crop_pdf(
    data: bytes,
    mode: str = "margins",
    margins: Optional[Dict[str, float]] = None,
    box: Optional[Dict[str, float]] = None,
    pages: str = "all",
) -> bytes:
    """
    margins: {top, bottom, left, right} trimmed from each side.
    box: {x, y, width, height} with the origin at the bottom-left.
    """
    reader = open_pdf(data)
    total = len(reader.pages)
    if not pages or pages.strip().lower() == "all":
        selected = set(range(total))
    else:
        wanted = parse_page_list(pages, total)
        check_pages_exist(wanted, total)
        selected = set(p - 1 for p in wanted)

    writer = PdfWriter()
    for index, page in enumerate(reader.pages):
        if index in selected:
            media = page.mediabox
            left, bottom = float(media.left), float(media.bottom)
            right, top = float(media.right), float(media.top)
            if mode == "coordinates":
                box = box or {}
                x0 = left + box.get("x", 0)
                y0 = bottom + box.get("y", 0)
                x1 = x0 + box.get("width", right - left)
                y1 = y0 + box.get("height", top - bottom)
            elif mode == "margins":
                margins = margins or {}
                x0 = left + margins.get("left", 0)
                y0 = bottom + margins.get("bottom", 0)
                x1 = right - margins.get("right", 0)
                y1 = top - margins.get("top", 0)
            else:
                raise ValueError(f"Unknown crop mode: {mode}")
            if x1 <= x0 or y1 <= y0:
                raise ValueError(f"The crop leaves nothing of page {index + 1}.")
            page.cropbox = RectangleObject([x0, y0, x1, y1])
        writer.add_page(page)
    return write_pdf(writer)


def resolve_page_size(name: str, width: Optional[float] = None, height: Optional[float] = None,
                      unit: str = "points") -> Tuple[float, float]:
    if name in PAGE_SIZES:
        return PAGE_SIZES[name]
    if name != "custom":
        raise ValueError(f"Unknown page size: {name}")
    if unit not in UNIT_TO_POINTS:
        raise ValueError(f"Unknown unit: {unit}")
    if not width or not height or width <= 0 or height <= 0:
        raise ValueError("Please enter a custom width and height greater than zero.")
    factor = UNIT_TO_POINTS[unit]
    return width * factor, height * factor


def change_page_size(data: bytes, name: str, width: Optional[float] = None,
                     height: Optional[float] = None, unit: str = "points") -> bytes:
    target_w, target_h = resolve_page_size(name, width, height, unit)
    reader = open_pdf(data)
    writer = PdfWriter()
    for page in reader.pages:
        page.mediabox = RectangleObject([0, 0, target_w, target_h])
        page.cropbox = RectangleObject([0, 0, target_w, target_h])
        writer.add_page(page)
    return write_pdf(writer)


# ------------------ Conversions ------------------

def images_to_pdf(images: Sequence[Tuple[str, bytes]]) -> Tuple[bytes, List[str]]:
    """
    One page per JPEG/PNG, each page sized to the image in points.
    Returns the PDF and the names of skipped files.
    """
    buf = io.BytesIO()
    c = canvas.Canvas(buf)
    skipped: List[str] = []
    added = 0
    for name, data in images:
        try:
            picture = Image.open(io.BytesIO(data))
            picture.load()
        except (UnidentifiedImageError, OSError):
            skipped.append(name)
            continue
        if picture.format not in ("JPEG", "PNG"):
            skipped.append(name)
            continue
        w, h = picture.size
        c.setPageSize((w, h))
        c.drawImage(ImageReader(picture), 0, 0, width=w, height=h, mask="auto")
        c.showPage()
        added += 1
    if not added:
        raise ValueError("Please upload at least one JPEG or PNG image.")
    c.save()
    if skipped:
        logger.info("images_to_pdf skipped=%s", skipped)
    return buf.getvalue(), skipped


def pdf_to_docx(data: bytes, name: str) -> bytes:
    # Lazy import only when needed to save memory
    from pdf2docx import Converter

    open_pdf(data)
    workdir = tempfile.mkdtemp(prefix="convert_")
    try:
        pdf_path = os.path.join(workdir, name)
        with open(pdf_path, "wb") as fh:
            fh.write(data)
        docx_path = os.path.splitext(pdf_path)[0] + ".docx"

        cv = Converter(pdf_path)
        try:
            cv.convert(docx_path, start=0, end=None)
        finally:
            cv.close()

        with open(docx_path, "rb") as fh:
            return fh.read()
    finally:
        shutil.rmtree(workdir, ignore_errors=True)


# ------------------ Forms ------------------

FIELD_TYPES = {"/Tx": "text", "/Btn": "button", "/Ch": "choice", "/Sig": "signature"}


def list_form_fields(data: bytes) -> List[Dict[str, object]]:
    reader = open_pdf(data)
    fields = reader.get_fields() or {}
    result = []
    for name, field in fields.items():
        value = field.get("/V")
        result.append({
            "name": name,
            "type": FIELD_TYPES.get(field.get("/FT"), "unknown"),
            "value": str(value) if value is not None else "",
        })
    return result


def fill_form(data: bytes, values: Dict[str, object]) -> bytes:
    reader = open_pdf(data)
    fields = reader.get_fields() or {}
    if not fields:
        raise ValueError("This PDF has no form fields.")
    unknown = [name for name in values if name not in fields]
    if unknown:
        raise ValueError(f"Unknown form field: {unknown[0]}")

    writer = PdfWriter(clone_from=reader)
    str_values = {k: str(v) for k, v in values.items()}
    for page in writer.pages:
        if "/Annots" in page:
            writer.update_page_form_field_values(page, str_values, auto_regenerate=False)
    writer.set_need_appearances_writer(True)
    return write_pdf(writer)


def flatten_form(data: bytes) -> bytes:
    """Burn current field values into the pages and drop the interactive form."""
    reader = open_pdf(data)
    fields = reader.get_fields() or {}
    if not fields:
        raise ValueError("This PDF has no form fields.")

    values = {}
    for name, field in fields.items():
        value = field.get("/V")
        if field.get("/FT") in ("/Tx", "/Ch"):
            values[name] = str(value) if value is not None else ""
        elif field.get("/FT") == "/Btn" and value is not None:
            values[name] = str(value)
    writer = PdfWriter(clone_from=reader)
    for page in writer.pages:
        if "/Annots" in page:
            writer.update_page_form_field_values(page, values, auto_regenerate=False, flatten=True)
    writer.remove_annotations(subtypes="/Widget")
    root = writer.root_object
    if NameObject("/AcroForm") in root:
        del root[NameObject("/AcroForm")]
    return write_pdf(writer)
