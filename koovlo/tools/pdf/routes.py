import json
import logging

from flask import Blueprint, abort, jsonify, request
from werkzeug.utils import secure_filename

from ...errors import tool_errors
from ...uploads import (
    DOCX_MIME,
    clean_name,
    form_float,
    form_int,
    form_str,
    is_pdf,
    require_file,
    require_pdf,
    send_bytes,
    send_pdf,
    send_zip,
    stem_of,
    uploaded_files,
)
from . import ops

logger = logging.getLogger(__name__)

bp = Blueprint("pdf", __name__, url_prefix="/tools/pdf")


def _optional_image(field: str):
    f = request.files.get(field)
    if not f or not f.filename:
        return None
    return f.read()


@bp.post("/merge")
@tool_errors("An error occurred while merging. Please try again.")
def merge_post():
    documents = []
    for f in uploaded_files("files"):
        name = clean_name(f)
        if not is_pdf(name):
            logger.info("merge skipping non-PDF upload %s", name)
            continue
        documents.append(f.read())
    if len(documents) < 2:
        abort(400, "Please select at least 2 PDF files to merge.")
    return send_pdf(ops.merge_pdfs(documents), "koovlo-merged.pdf")


@bp.post("/split")
@tool_errors("An error occurred while splitting. Please try again.")
def split_post():
    _name, data = require_pdf()
    selection = form_str("pages")
    logger.info("split pages=%r", selection)
    return send_pdf(ops.split_pdf(data, selection), "koovlo-split.pdf")


@bp.post("/page-range-split")
@tool_errors("An error occurred while splitting. Please try again.")
def page_range_split_post():
    _name, data = require_pdf()
    ranges = form_str("ranges")
    parts = ops.page_range_split(data, ranges)
    logger.info("page-range-split ranges=%r parts=%d", ranges, len(parts))
    return send_zip(parts, "page-range-split-pdfs.zip")


@bp.post("/rotate")
@tool_errors("An error occurred while rotating. Please try again.")
def rotate_post():
    _name, data = require_pdf()
    angle = form_int("angle", 90)
    return send_pdf(ops.rotate_pdf(data, angle), "koovlo-rotated.pdf")


@bp.post("/delete-pages")
@tool_errors("An error occurred while deleting pages. Please try again.")
def delete_pages_post():
    name, data = require_pdf()
    out = ops.delete_pages(data, form_str("pages"))
    return send_pdf(out, f"{stem_of(name)}-pages-deleted.pdf")


@bp.post("/extract-pages")
@tool_errors("An error occurred while extracting pages. Please try again.")
def extract_pages_post():
    name, data = require_pdf()
    out = ops.extract_pages(data, form_str("pages"))
    return send_pdf(out, f"{stem_of(name)}-extracted.pdf")


@bp.post("/duplicate-pages")
@tool_errors("An error occurred while duplicating pages. Please try again.")
def duplicate_pages_post():
    name, data = require_pdf()
    out = ops.duplicate_pages(data, form_str("pages"), form_int("count", 1))
    return send_pdf(out, f"{stem_of(name)}-duplicated.pdf")


@bp.post("/reorder")
@tool_errors("An error occurred while reordering pages. Please try again.")
def reorder_post():
    name, data = require_pdf()
    out = ops.reorder_pages(data, form_str("order"))
    return send_pdf(out, f"{stem_of(name)}-reordered.pdf")


@bp.post("/page-number")
@tool_errors("An error occurred while adding page numbers. Please try again.")
def page_number_post():
    _name, data = require_pdf()
    out = ops.add_page_numbers(
        data,
        position=form_str("position", "bottom-right") or "bottom-right",
        font_size=form_float("font_size", 12),
        color=form_str("color", "#000000") or "#000000",
        start_page=form_int("start_page", 1),
    )
    return send_pdf(out, "koovlo-pagenumbered.pdf")


@bp.post("/watermark")
@tool_errors("An error occurred while adding the watermark. Please try again.")
def watermark_post():
    name, data = require_pdf()
    out = ops.watermark_pdf(
        data,
        text=form_str("text", "Koovlo Confidential"),
        image=_optional_image("image"),
        position=form_str("position", "center") or "center",
        opacity=form_float("opacity", 0.3),
        size=form_float("size", 40),
        rotation=form_float("rotation", -30),
    )
    return send_pdf(out, f"{stem_of(name)}-watermarked.pdf")


@bp.post("/metadata/read")
@tool_errors("An error occurred while reading metadata. Please try again.")
def metadata_read_post():
    _name, data = require_pdf()
    return jsonify(ops.read_metadata(data))


@bp.post("/metadata")
@tool_errors("An error occurred while saving metadata. Please try again.")
def metadata_post():
    name, data = require_pdf()
    out = ops.write_metadata(
        data,
        title=form_str("title"),
        author=form_str("author"),
        subject=form_str("subject"),
        keywords=form_str("keywords"),
    )
    return send_pdf(out, f"{stem_of(name)}-meta.pdf")


@bp.post("/info")
@tool_errors("An error occurred while reading the PDF. Please try again.")
def info_post():
    name, data = require_pdf()
    info = ops.pdf_info(data)
    info["filename"] = name
    return jsonify(info)


@bp.post("/count-pages")
@tool_errors("An error occurred while counting pages. Please try again.")
def count_pages_post():
    documents = []
    for f in uploaded_files("files"):
        name = clean_name(f)
        if is_pdf(name):
            documents.append((name, f.read()))
    if not documents:
        abort(400, "Please upload at least one PDF file.")
    return jsonify(ops.count_pages(documents))


@bp.post("/compress")
@tool_errors("An error occurred while compressing. Please try again.")
def compress_post():
    _name, data = require_pdf()
    out = ops.compress_pdf(data)
    response = send_pdf(out, "koovlo-compressed.pdf")
    response.headers["X-Original-Size"] = str(len(data))
    response.headers["X-Compressed-Size"] = str(len(out))
    return response


@bp.post("/unlock")
@tool_errors("An error occurred while unlocking. Please try again.")
def unlock_post():
    name, data = require_pdf()
    out = ops.unlock_pdf(data, request.form.get("password") or "")
    return send_pdf(out, f"{stem_of(name)}-unlocked.pdf")


@bp.post("/add-text")
@tool_errors("An error occurred while adding text. Please try again.")
def add_text_post():
    name, data = require_pdf()
    out = ops.add_text(
        data,
        text=request.form.get("text") or "",
        page=form_int("page", 1),
        x=form_float("x", 100),
        y=form_float("y", 100),
        font_size=form_float("font_size", 12),
        color=form_str("color", "#000000") or "#000000",
    )
    return send_pdf(out, f"{stem_of(name)}-text.pdf")


@bp.post("/add-image")
@tool_errors("An error occurred while adding the image. Please try again.")
def add_image_post():
    name, data = require_pdf()
    image = require_file("image", "Please upload an image to place on the page.").read()
    out = ops.add_image(
        data,
        image,
        page=form_int("page", 1),
        x=form_float("x", 50),
        y=form_float("y", 50),
        width=form_float("width"),
        height=form_float("height"),
    )
    return send_pdf(out, f"{stem_of(name)}-image.pdf")


@bp.post("/crop")
@tool_errors("An error occurred while cropping. Please try again.")
def crop_post():
    name, data = require_pdf()
    mode = form_str("mode", "margins") or "margins"
    margins = {side: form_float(side, 0) for side in ("top", "bottom", "left", "right")}
    box = {}
    for key in ("x", "y", "width", "height"):
        value = form_float(key)
        if value is not None:
            box[key] = value
    out = ops.crop_pdf(data, mode=mode, margins=margins, box=box, pages=form_str("pages", "all"))
    return send_pdf(out, f"{stem_of(name)}-cropped.pdf")


@bp.post("/change-page-size")
@tool_errors("An error occurred while changing the page size. Please try again.")
def change_page_size_post():
    name, data = require_pdf()
    size_name = form_str("page_size", "A4") or "A4"
    out = ops.change_page_size(
        data,
        size_name,
        width=form_float("width"),
        height=form_float("height"),
        unit=form_str("unit", "points") or "points",
    )
    label = secure_filename(size_name.lower()) or "custom"
    return send_pdf(out, f"{stem_of(name)}-resized-{label}.pdf")


@bp.post("/images-to-pdf")
@tool_errors("An error occurred while creating the PDF. Please try again.")
def images_to_pdf_post():
    files = uploaded_files("files")
    if not files:
        abort(400, "Please upload at least one image.")
    images = [(clean_name(f), f.read()) for f in files]
    out, skipped = ops.images_to_pdf(images)
    response = send_pdf(out, "koovlo-images.pdf")
    if skipped:
        response.headers["X-Skipped-Files"] = ",".join(skipped)
    return response


@bp.post("/to-word")
@tool_errors("An error occurred while converting to Word. Please try again.")
def to_word_post():
    name, data = require_pdf()
    docx = ops.pdf_to_docx(data, name)
    return send_bytes(docx, f"{stem_of(name)}.docx", DOCX_MIME)


@bp.post("/form-fields")
@tool_errors("An error occurred while reading the form. Please try again.")
def form_fields_post():
    _name, data = require_pdf()
    return jsonify(fields=ops.list_form_fields(data))


@bp.post("/fill-form")
@tool_errors("An error occurred while filling the form. Please try again.")
def fill_form_post():
    name, data = require_pdf()
    try:
        values = json.loads(request.form.get("values") or "{}")
    except json.JSONDecodeError:
        abort(400, "Form values must be a JSON object.")
    if not isinstance(values, dict):
        abort(400, "Form values must be a JSON object.")
    out = ops.fill_form(data, values)
    return send_pdf(out, f"{stem_of(name)}-filled.pdf")


@bp.post("/flatten-form")
@tool_errors("An error occurred while flattening the form. Please try again.")
def flatten_form_post():
    name, data = require_pdf()
    return send_pdf(ops.flatten_form(data), f"{stem_of(name)}-flattened.pdf")
