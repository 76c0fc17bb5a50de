import json
import logging
from typing import Callable, List, Tuple

from flask import Blueprint, abort, jsonify, request
from werkzeug.utils import secure_filename

from ...errors import tool_errors
from ...uploads import (
    clean_name,
    form_bool,
    form_float,
    form_int,
    form_str,
    json_body,
    require_file,
    send_bytes,
    send_zip,
    uploaded_files,
)
from . import ops

logger = logging.getLogger(__name__)

bp = Blueprint("image", __name__, url_prefix="/tools/image")

# (bytes, download name, mimetype)
Result = Tuple[bytes, str, str]


def _single_image():
    f = require_file("file", "Please upload an image.")
    name = clean_name(f, "image.png")
    data = f.read()
    return name, data, ops.load_image(data)


def _batch_images():
    files = uploaded_files("files")
    if not files:
        abort(400, "Please upload at least one image.")
    batch = []
    for f in files:
        data = f.read()
        batch.append((clean_name(f, "image.png"), data, ops.load_image(data)))
    return batch


def _send_results(results: List[Result], zip_name: str):
    if len(results) == 1:
        data, name, mimetype = results[0]
        return send_bytes(data, name, mimetype)
    return send_zip([(name, data) for data, name, _ in results], zip_name)


def _run_batch(transform: Callable, zip_name: str):
    """Apply `transform(name, data, img) -> Result` to every upload."""
    results = [transform(name, data, img) for name, data, img in _batch_images()]
    logger.info("%s files=%d", request.path, len(results))
    return _send_results(results, zip_name)


def _keep_format(img, out, name: str, prefix: str) -> Result:
    fmt = ops.same_format(img)
    return (ops.encode(out, fmt, quality=95),
            ops.renamed(name, prefix=prefix, ext=ops.extension_for(fmt)),
            ops.mimetype_for(fmt))


# ------------------ Single image ------------------

@bp.post("/resize")
@tool_errors("An error occurred while resizing. Please try again.")
def resize_post():
    _name, _data, img = _single_image()
    out = ops.resize(img, form_int("width", 300), form_int("height", 300), form_bool("keep_aspect"))
    return send_bytes(ops.encode(out, "JPEG", quality=90), "koovlo-resized.jpg", "image/jpeg")


@bp.post("/compress")
@tool_errors("An error occurred while compressing. Please try again.")
def compress_post():
    _name, data, img = _single_image()
    out = ops.encode(img, "JPEG", quality=form_int("quality", 70))
    logger.info("compress before=%d after=%d", len(data), len(out))
    return send_bytes(out, "koovlo-compressed.jpg", "image/jpeg")


@bp.post("/convert")
@tool_errors("An error occurred while converting. Please try again.")
def convert_post():
    _name, _data, img = _single_image()
    fmt = ops.output_format(form_str("format", "jpeg") or "jpeg")
    out = ops.encode(img, fmt, quality=form_int("quality", 90))
    return send_bytes(out, f"koovlo-converted{ops.extension_for(fmt)}", ops.mimetype_for(fmt))


@bp.post("/crop")
@tool_errors("An error occurred while cropping. Please try again.")
def crop_post():
    _name, _data, img = _single_image()
    out = ops.crop(img, form_int("x", 0), form_int("y", 0),
                   form_int("width", img.width), form_int("height", img.height))
    return send_bytes(ops.encode(out, "JPEG", quality=90), "koovlo-cropped.jpg", "image/jpeg")


@bp.post("/rotate")
@tool_errors("An error occurred while rotating. Please try again.")
def rotate_post():
    _name, _data, img = _single_image()
    out = ops.rotate(img, form_float("angle", 90))
    return send_bytes(ops.encode(out, "PNG"), "koovlo-rotated.png", "image/png")


@bp.post("/flip")
@tool_errors("An error occurred while flipping. Please try again.")
def flip_post():
    _name, _data, img = _single_image()
    horizontal, vertical = form_bool("horizontal"), form_bool("vertical")
    if not horizontal and not vertical:
        abort(400, "Choose horizontal and/or vertical flip.")
    out = ops.flip(img, horizontal, vertical)
    return send_bytes(ops.encode(out, "PNG"), "koovlo-flipped.png", "image/png")


@bp.post("/border")
@tool_errors("An error occurred while adding the border. Please try again.")
def border_post():
    name, _data, img = _single_image()
    out = ops.add_border(
        img,
        width=form_int("width", 10),
        color=form_str("color", "#000000") or "#000000",
        style=form_str("style", "solid") or "solid",
        radius=form_int("radius", 0),
    )
    return send_bytes(ops.encode(out, "PNG"), ops.renamed(name, prefix="bordered-", ext=".png"), "image/png")


@bp.post("/add-text")
@tool_errors("An error occurred while adding text. Please try again.")
def add_text_post():
    name, _data, img = _single_image()
    try:
        elements = json.loads(request.form.get("elements") or "[]")
    except json.JSONDecodeError:
        abort(400, "Text elements must be a JSON list.")
    if not isinstance(elements, list):
        abort(400, "Text elements must be a JSON list.")
    out = ops.add_text(img, elements)
    data, out_name, mimetype = _keep_format(img, out, name, "text-")
    return send_bytes(data, out_name, mimetype)


@bp.post("/from-base64")
@tool_errors("An error occurred while decoding the image. Please try again.")
def from_base64_post():
    payload = json_body()
    data, img = ops.from_base64(str(payload.get("data") or ""))
    fmt = ops.same_format(img)
    stem = ops.renamed(secure_filename(str(payload.get("filename") or "")) or "image", ext="")
    return send_bytes(data, f"{stem}{ops.extension_for(fmt)}", ops.mimetype_for(fmt))


@bp.post("/dimensions")
@tool_errors("An error occurred while reading the image. Please try again.")
def dimensions_post():
    name, data, img = _single_image()
    info = ops.dimensions(img, len(data))
    info["filename"] = name
    return jsonify(info)


@bp.post("/dpi")
@tool_errors("An error occurred while checking DPI. Please try again.")
def dpi_post():
    name, _data, img = _single_image()
    report = ops.dpi_report(img)
    report["filename"] = name
    return jsonify(report)


# ------------------ Batch ------------------

@bp.post("/grayscale")
@tool_errors("An error occurred while converting to grayscale. Please try again.")
def grayscale_post():
    return _run_batch(lambda name, data, img: _keep_format(img, ops.grayscale(img), name, "grayscale-"),
                      "grayscale-images.zip")


@bp.post("/sepia")
@tool_errors("An error occurred while applying sepia. Please try again.")
def sepia_post():
    intensity = form_float("intensity", 100)
    return _run_batch(lambda name, data, img: _keep_format(img, ops.sepia(img, intensity), name, "sepia-"),
                      "sepia-images.zip")


@bp.post("/invert")
@tool_errors("An error occurred while inverting colors. Please try again.")
def invert_post():
    intensity = form_float("intensity", 100)
    return _run_batch(lambda name, data, img: _keep_format(img, ops.invert(img, intensity), name, "inverted-"),
                      "inverted-images.zip")


@bp.post("/blur")
@tool_errors("An error occurred while blurring. Please try again.")
def blur_post():
    radius = form_float("radius", 5)
    return _run_batch(lambda name, data, img: _keep_format(img, ops.blur(img, radius), name, "blurred-"),
                      "blurred-images.zip")


@bp.post("/adjust")
@tool_errors("An error occurred while adjusting the image. Please try again.")
def adjust_post():
    brightness = form_float("brightness", 100)
    contrast = form_float("contrast", 100)
    saturation = form_float("saturation", 100)

    def transform(name, data, img):
        return _keep_format(img, ops.adjust(img, brightness, contrast, saturation), name, "adjusted-")

    return _run_batch(transform, "adjusted-images.zip")


@bp.post("/watermark")
@tool_errors("An error occurred while adding the watermark. Please try again.")
def watermark_post():
    logo_file = request.files.get("logo")
    logo = ops.load_image(logo_file.read()) if logo_file and logo_file.filename else None
    options = dict(
        text=form_str("text", "© My Brand"),
        logo=logo,
        position=form_str("position", "bottom-right") or "bottom-right",
        opacity=form_float("opacity", 70),
        font_size=form_float("font_size", 32),
        color=form_str("color", "#000000") or "#000000",
        scale=form_float("scale", 30),
    )

    def transform(name, data, img):
        out = ops.watermark(img, **options)
        return (ops.encode(out, "JPEG", quality=95),
                ops.renamed(name, prefix="watermarked-", ext=".jpg"), "image/jpeg")

    return _run_batch(transform, "watermarked-images.zip")


@bp.post("/strip-metadata")
@tool_errors("An error occurred while removing metadata. Please try again.")
def strip_metadata_post():
    def transform(name, data, img):
        fmt = ops.same_format(img)
        out = ops.encode(ops.strip_metadata(img), fmt, quality=95)
        return out, ops.renamed(name, suffix="-clean", ext=ops.extension_for(fmt)), ops.mimetype_for(fmt)

    return _run_batch(transform, "clean-images.zip")


@bp.post("/progressive-jpeg")
@tool_errors("An error occurred while creating the progressive JPEG. Please try again.")
def progressive_jpeg_post():
    quality = form_int("quality", 85)
    return _run_batch(
        lambda name, data, img: (ops.progressive_jpeg(img, quality),
                                 ops.renamed(name, suffix="_progressive", ext=".jpg"), "image/jpeg"),
        "progressive-images.zip",
    )


@bp.post("/reduce-size")
@tool_errors("An error occurred while reducing the image size. Please try again.")
def reduce_size_post():
    target_kb = form_float("target_kb", 500)
    max_width = form_int("max_width", 1920)
    max_height = form_int("max_height", 1080)
    return _run_batch(
        lambda name, data, img: (ops.reduce_size(img, target_kb, max_width, max_height),
                                 ops.renamed(name, suffix="_reduced", ext=".jpg"), "image/jpeg"),
        "reduced-images.zip",
    )


@bp.post("/bulk-resize")
@tool_errors("An error occurred while resizing. Please try again.")
def bulk_resize_post():
    mode = form_str("mode", "dimensions") or "dimensions"
    width, height = form_int("width"), form_int("height")
    percentage = form_float("percentage", 50)
    fmt_name = form_str("format")
    target = ops.output_format(fmt_name) if fmt_name else None

    def transform(name, data, img):
        out = ops.resize_by_mode(img, mode, width, height, percentage)
        fmt = target or ops.same_format(img)
        return (ops.encode(out, fmt, quality=95),
                ops.renamed(name, suffix="_resized", ext=ops.extension_for(fmt)), ops.mimetype_for(fmt))

    results = [transform(name, data, img) for name, data, img in _batch_images()]
    return send_zip([(n, d) for d, n, _ in results], "resized-images.zip")


@bp.post("/bulk-compress")
@tool_errors("An error occurred while compressing. Please try again.")
def bulk_compress_post():
    quality = form_int("quality", 70)
    fmt = ops.output_format(form_str("format", "jpeg") or "jpeg")
    results = [
        (ops.encode(img, fmt, quality=quality),
         ops.renamed(name, suffix="_compressed", ext=ops.extension_for(fmt)), ops.mimetype_for(fmt))
        for name, data, img in _batch_images()
    ]
    return send_zip([(n, d) for d, n, _ in results], "compressed-images.zip")


@bp.post("/bulk-convert")
@tool_errors("An error occurred while converting. Please try again.")
def bulk_convert_post():
    quality = form_int("quality", 90)
    fmt = ops.output_format(form_str("format", "png") or "png")
    results = [
        (ops.encode(img, fmt, quality=quality), ops.renamed(name, ext=ops.extension_for(fmt)), ops.mimetype_for(fmt))
        for name, data, img in _batch_images()
    ]
    return send_zip([(n, d) for d, n, _ in results], "converted-images.zip")


@bp.post("/to-base64")
@tool_errors("An error occurred while encoding. Please try again.")
def to_base64_post():
    fmt = (form_str("format", "auto") or "auto").lower()
    quality = form_int("quality", 90)
    include_data_url = form_bool("include_data_url", True)
    results = []
    for name, data, img in _batch_images():
        entry = ops.to_base64(img, fmt, quality, include_data_url)
        entry["filename"] = name
        results.append(entry)
    return jsonify(results=results)


@bp.post("/size-calculator")
@tool_errors("An error occurred while analyzing the images. Please try again.")
def size_calculator_post():
    rows = [ops.size_analysis(name, data, img) for name, data, img in _batch_images()]
    if (form_str("format", "json") or "json").lower() == "csv":
        return send_bytes(ops.size_analysis_csv(rows).encode("utf-8"), "image-size-analysis.csv", "text/csv")
    total_kb = sum(r["file_size"]["kb"] for r in rows)
    return jsonify(
        images=rows,
        totals={
            "files": len(rows),
            "size_kb": round(total_kb, 1),
            "pixels": sum(r["pixel_count"] for r in rows),
            "average_megapixels": round(sum(r["megapixels"] for r in rows) / len(rows), 2),
        },
    )
