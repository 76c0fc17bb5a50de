"""
Image transformations behind the /tools/image routes (Pillow).

Functions work on PIL images or raw bytes and return new images/bytes;
nothing here knows about Flask.
"""
import base64
import binascii
import csv
import io
import logging
import math
import re
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from PIL import Image, ImageChops, ImageDraw, ImageEnhance, ImageFilter, ImageFont, ImageOps, UnidentifiedImageError

logger = logging.getLogger(__name__)

# Pillow format name -> (extension, mimetype)
FORMATS = {
    "JPEG": (".jpg", "image/jpeg"),
    "PNG": (".png", "image/png"),
    "WEBP": (".webp", "image/webp"),
    "GIF": (".gif", "image/gif"),
    "BMP": (".bmp", "image/bmp"),
    "TIFF": (".tiff", "image/tiff"),
}

OUTPUT_FORMATS = {"jpeg": "JPEG", "jpg": "JPEG", "png": "PNG", "webp": "WEBP"}

WATERMARK_POSITIONS = ("top-left", "top-right", "bottom-left", "bottom-right", "center")

COMMON_DPIS = (72, 96, 150, 200, 300, 600)

# inches
PRINT_SIZES = (
    ("Business Card", 3.5, 2),
    ("Postcard", 4, 6),
    ("Letter", 8.5, 11),
    ("A4", 8.27, 11.69),
    ("Legal", 8.5, 14),
    ("Tabloid", 11, 17),
    ("Poster (24x36)", 24, 36),
)

# pixels at the listed DPI
STANDARD_TARGETS = (
    ("Web Banner (728x90)", 728, 90, 72),
    ("Facebook Post (1200x630)", 1200, 630, 72),
    ("Instagram Post (1080x1080)", 1080, 1080, 72),
    ('Print A4 (8.3x11.7")', 2480, 3508, 300),
    ('Print Letter (8.5x11")', 2550, 3300, 300),
)


def load_image(data: bytes) -> Image.Image:
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError, Image.DecompressionBombError):
        raise ValueError("Please upload a valid image file.")
    return img


def output_format(fmt: str) -> str:
    key = (fmt or "").strip().lower()
    if key not in OUTPUT_FORMATS:
        raise ValueError(f"Unsupported output format: {fmt}")
    return OUTPUT_FORMATS[key]


def extension_for(fmt: str) -> str:
    return FORMATS.get(fmt, (".png", ""))[0]


def mimetype_for(fmt: str) -> str:
    return FORMATS.get(fmt, ("", "image/png"))[1]


def encode(img: Image.Image, fmt: str, quality: int = 90, **params) -> bytes:
    """Save to bytes; JPEG has no alpha so transparent pixels go on white."""
    fmt = fmt.upper()
    if fmt == "JPEG":
        img = flatten_alpha(img)
        params.setdefault("optimize", True)
    elif img.mode not in ("RGB", "RGBA", "L", "LA", "P") or (img.mode == "LA" and fmt != "PNG"):
        img = img.convert("RGBA")
    if fmt in ("JPEG", "WEBP"):
        params["quality"] = max(1, min(100, int(quality)))
    buf = io.BytesIO()
    img.save(buf, format=fmt, **params)
    return buf.getvalue()


def flatten_alpha(img: Image.Image, background=(255, 255, 255)) -> Image.Image:
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        canvas = Image.new("RGB", rgba.size, background)
        canvas.paste(rgba, mask=rgba.split()[-1])
        return canvas
    return img.convert("RGB")


def same_format(img: Image.Image) -> str:
    """Keep the upload's format when Pillow can write it, else PNG."""
    fmt = (img.format or "PNG").upper()
    return fmt if fmt in ("JPEG", "PNG", "WEBP", "GIF", "BMP", "TIFF") else "PNG"


def parse_color(color: str) -> Tuple[int, int, int]:
    value = (color or "").strip().lstrip("#")
    if len(value) == 3:
        value = "".join(ch * 2 for ch in value)
    if len(value) != 6:
        raise ValueError(f"Invalid color: {color}")
    try:
        return tuple(int(value[i:i + 2], 16) for i in (0, 2, 4))
    except ValueError:
        raise ValueError(f"Invalid color: {color}")


def font(size: float) -> ImageFont.FreeTypeFont:
    return ImageFont.load_default(size=max(1, int(size)))


def _check_percent(name: str, value: float, upper: float = 100) -> None:
    if value < 0 or value > upper:
        raise ValueError(f"{name} must be between 0 and {int(upper)}.")


# ------------------ Geometry ------------------

def resize(img: Image.Image, width: int, height: int, keep_aspect: bool = False) -> Image.Image:
    if width <= 0 or height <= 0:
        raise ValueError("Width and height must be greater than zero.")
    if keep_aspect:
        ratio = min(width / img.width, height / img.height)
        width = max(1, round(img.width * ratio))
        height = max(1, round(img.height * ratio))
    return img.resize((int(width), int(height)), Image.LANCZOS)


def resize_by_mode(img: Image.Image, mode: str, width: Optional[int] = None,
                   height: Optional[int] = None, percentage: Optional[float] = None) -> Image.Image:
    """dimensions | percentage | fit | fill, as in the bulk resizer."""
    if mode == "percentage":
        if not percentage or percentage <= 0:
            raise ValueError("Percentage must be greater than zero.")
        return img.resize((max(1, round(img.width * percentage / 100)),
                           max(1, round(img.height * percentage / 100))), Image.LANCZOS)
    if not width or not height or width <= 0 or height <= 0:
        raise ValueError("Width and height must be greater than zero.")
    if mode == "dimensions":
        return img.resize((int(width), int(height)), Image.LANCZOS)
    if mode == "fit":
        return resize(img, width, height, keep_aspect=True)
    if mode == "fill":
        return ImageOps.fit(img, (int(width), int(height)), Image.LANCZOS)
    raise ValueError(f"Unknown resize mode: {mode}")


def crop(img: Image.Image, x: int, y: int, width: int, height: int) -> Image.Image:
    if width <= 0 or height <= 0:
        raise ValueError("Crop width and height must be greater than zero.")
    if x < 0 or y < 0 or x + width > img.width or y + height > img.height:
        raise ValueError(f"The crop area falls outside the image ({img.width}x{img.height}).")
    return img.crop((x, y, x + width, y + height))


def rotate(img: Image.Image, angle: float) -> Image.Image:
    """Clockwise by `angle` degrees; the canvas grows to fit."""
    if img.mode not in ("RGBA", "LA"):
        img = img.convert("RGBA")
    return img.rotate(-angle, resample=Image.BICUBIC, expand=True)


def flip(img: Image.Image, horizontal: bool = False, vertical: bool = False) -> Image.Image:
    if horizontal:
        img = ImageOps.mirror(img)
    if vertical:
        img = ImageOps.flip(img)
    return img


# ------------------ Filters ------------------

def grayscale(img: Image.Image) -> Image.Image:
    # "L" conversion uses L = R*299/1000 + G*587/1000 + B*114/1000
    if img.mode in ("RGBA", "LA") or "transparency" in img.info:
        return img.convert("RGBA").convert("LA")
    return img.convert("RGB").convert("L")


def _blend(original: Image.Image, filtered: Image.Image, intensity: float) -> Image.Image:
    _check_percent("Intensity", intensity)
    if intensity >= 100:
        return filtered
    return Image.blend(original, filtered, intensity / 100.0)


def _split_alpha(img: Image.Image):
    rgba = img.convert("RGBA")
    return rgba.convert("RGB"), rgba.getchannel("A")


def sepia(img: Image.Image, intensity: float = 100) -> Image.Image:
    rgb, alpha = _split_alpha(img)
    matrix = (
        0.393, 0.769, 0.189, 0,
        0.349, 0.686, 0.168, 0,
        0.272, 0.534, 0.131, 0,
    )
    toned = rgb.convert("RGB", matrix)
    out = _blend(rgb, toned, intensity)
    out.putalpha(alpha)
    return out


def invert(img: Image.Image, intensity: float = 100) -> Image.Image:
    rgb, alpha = _split_alpha(img)
    out = _blend(rgb, ImageOps.invert(rgb), intensity)
    out.putalpha(alpha)
    return out


def blur(img: Image.Image, radius: float = 5) -> Image.Image:
    if radius < 0:
        raise ValueError("Blur radius cannot be negative.")
    # GaussianBlur needs a continuous-tone mode
    if img.mode in ("RGBA", "LA", "PA") or "transparency" in img.info:
        img = img.convert("RGBA")
    elif img.mode not in ("RGB", "L"):
        img = img.convert("RGB")
    return img.filter(ImageFilter.GaussianBlur(radius))


def adjust(img: Image.Image, brightness: float = 100, contrast: float = 100,
           saturation: float = 100) -> Image.Image:
    """Percentages: 100 leaves the channel unchanged."""
    for name, value in (("Brightness", brightness), ("Contrast", contrast), ("Saturation", saturation)):
        _check_percent(name, value, 300)
    rgb, alpha = _split_alpha(img)
    rgb = ImageEnhance.Brightness(rgb).enhance(brightness / 100.0)
    rgb = ImageEnhance.Contrast(rgb).enhance(contrast / 100.0)
    rgb = ImageEnhance.Color(rgb).enhance(saturation / 100.0)
    rgb.putalpha(alpha)
    return rgb


def add_border(img: Image.Image, width: int = 10, color: str = "#000000",
               style: str = "solid", radius: int = 0) -> Image.Image:
    if width < 0:
        raise ValueError("Border width cannot be negative.")
    if style not in ("solid", "dashed", "dotted"):
        raise ValueError(f"Unknown border style: {style}")
    rgb = parse_color(color)
    src = img.convert("RGBA")
    out_w, out_h = src.width + 2 * width, src.height + 2 * width
    canvas = Image.new("RGBA", (out_w, out_h), (0, 0, 0, 0))

    if radius > 0:
        mask = Image.new("L", src.size, 0)
        ImageDraw.Draw(mask).rounded_rectangle((0, 0, src.width - 1, src.height - 1), radius=radius, fill=255)
        src.putalpha(ImageChops.multiply(src.getchannel("A"), mask))
    canvas.paste(src, (width, width), src)

    if width == 0:
        return canvas
    draw = ImageDraw.Draw(canvas)
    fill = rgb + (255,)
    if style == "solid":
        draw.rounded_rectangle((width / 2, width / 2, out_w - 1 - width / 2, out_h - 1 - width / 2),
                               radius=radius, outline=fill, width=width)
        return canvas

    # dashes are (on, off) runs along each edge
    on, off = (width * 2, width) if style == "dashed" else (width, width)
    half = width / 2
    edges = (
        ((half, half), (out_w - half, half)),
        ((out_w - half, half), (out_w - half, out_h - half)),
        ((out_w - half, out_h - half), (half, out_h - half)),
        ((half, out_h - half), (half, half)),
    )
    for (x0, y0), (x1, y1) in edges:
        length = math.hypot(x1 - x0, y1 - y0)
        dx, dy = (x1 - x0) / length, (y1 - y0) / length
        pos = 0.0
        while pos < length:
            end = min(pos + on, length)
            draw.line((x0 + dx * pos, y0 + dy * pos, x0 + dx * end, y0 + dy * end), fill=fill, width=width)
            pos = end + off
    return canvas


def add_text(img: Image.Image, elements: Sequence[Dict]) -> Image.Image:
    """elements: [{text, x, y, font_size=24, color=#000000}]; x/y is the top-left of the text."""
    if not elements:
        raise ValueError("Please add at least one text element.")
    out = img.convert("RGBA")
    draw = ImageDraw.Draw(out)
    for element in elements:
        if not isinstance(element, dict):
            raise ValueError("Each text element must be an object.")
        text = str(element.get("text") or "")
        if not text.strip():
            continue
        try:
            x = float(element.get("x", 0))
            y = float(element.get("y", 0))
            size = float(element.get("font_size", 24))
        except (TypeError, ValueError):
            raise ValueError("Text position and size must be numbers.")
        draw.text((x, y), text, fill=parse_color(element.get("color", "#000000")) + (255,), font=font(size))
    return out


def watermark_origin(position: str, canvas: Tuple[int, int], mark: Tuple[float, float],
                     padding: int = 30) -> Tuple[float, float]:
    """Top-left corner of a `mark`-sized box placed at `position`."""
    cw, ch = canvas
    mw, mh = mark
    if position == "top-left":
        return padding, padding
    if position == "top-right":
        return cw - mw - padding, padding
    if position == "bottom-left":
        return padding, ch - mh - padding
    if position == "bottom-right":
        return cw - mw - padding, ch - mh - padding
    if position == "center":
        return (cw - mw) / 2, (ch - mh) / 2
    raise ValueError(f"Unknown position: {position}")


def watermark(img: Image.Image, text: str = "© My Brand", logo: Optional[Image.Image] = None,
              position: str = "bottom-right", opacity: float = 70, font_size: float = 32,
              color: str = "#000000", scale: float = 30) -> Image.Image:
    """
    Text in `color` at `font_size`, or a logo `scale`% of the image width,
    drawn at `opacity`% with a 30px margin from the chosen edge.
    """
    _check_percent("Opacity", opacity)
    if position not in WATERMARK_POSITIONS:
        raise ValueError(f"Unknown position: {position}")
    base = img.convert("RGBA")
    layer = Image.new("RGBA", base.size, (0, 0, 0, 0))

    if logo is not None:
        _check_percent("Scale", scale)
        mark = logo.convert("RGBA")
        mark_w = max(1, round(base.width * scale / 100))
        mark_h = max(1, round(mark.height * mark_w / mark.width))
        mark = mark.resize((mark_w, mark_h), Image.LANCZOS)
        x, y = watermark_origin(position, base.size, mark.size)
        layer.paste(mark, (int(x), int(y)), mark)
    else:
        if not (text or "").strip():
            raise ValueError("Please enter watermark text or upload a logo.")
        draw = ImageDraw.Draw(layer)
        face = font(font_size)
        left, top, right, bottom = draw.textbbox((0, 0), text, font=face)
        x, y = watermark_origin(position, base.size, (right - left, bottom - top))
        draw.text((x - left, y - top), text, fill=parse_color(color) + (255,), font=face)

    alpha = layer.getchannel("A").point(lambda a: round(a * opacity / 100))
    layer.putalpha(alpha)
    return Image.alpha_composite(base, layer)


# ------------------ Encoding ------------------

def strip_metadata(img: Image.Image) -> Image.Image:
    """Fresh image with the same pixels and no EXIF/ICC/text chunks."""
    clean = Image.frombytes(img.mode, img.size, img.tobytes())
    if img.mode == "P":
        clean.putpalette(img.getpalette())
    if "transparency" in img.info:
        clean.info["transparency"] = img.info["transparency"]
    clean.format = img.format
    return clean


def has_transparency(img: Image.Image) -> bool:
    if img.mode == "P":
        img = img.convert("RGBA")
    if img.mode not in ("RGBA", "LA"):
        return False
    low, _high = img.getchannel("A").getextrema()
    return low < 255


def to_base64(img: Image.Image, fmt: str = "auto", quality: int = 90,
              include_data_url: bool = True) -> Dict[str, object]:
    if fmt == "auto":
        target = "PNG" if has_transparency(img) else "JPEG"
    else:
        target = output_format(fmt)
    data = encode(img, target, quality=quality)
    encoded = base64.b64encode(data).decode("ascii")
    if include_data_url:
        encoded = f"data:{mimetype_for(target)};base64,{encoded}"
    return {
        "width": img.width,
        "height": img.height,
        "format": target,
        "base64": encoded,
        "size": len(data),
    }


_DATA_URL = re.compile(r"^data:(?P<mime>[\w/+.-]+)?(;[\w=-]+)*;base64,", re.IGNORECASE)


def from_base64(text: str) -> Tuple[bytes, Image.Image]:
    raw = re.sub(r"\s+", "", text or "")
    if not raw:
        raise ValueError("Please paste a base64 string.")
    raw = _DATA_URL.sub("", raw)
    try:
        data = base64.b64decode(raw, validate=True)
    except (binascii.Error, ValueError):
        raise ValueError("Invalid base64 string")
    try:
        img = load_image(data)
    except ValueError:
        raise ValueError("The base64 data is not a valid image.")
    return data, img


def progressive_jpeg(img: Image.Image, quality: int = 85) -> bytes:
    return encode(img, "JPEG", quality=quality, progressive=True)


def reduce_size(img: Image.Image, target_kb: float = 500, max_width: int = 1920,
                max_height: int = 1080, iterations: int = 8) -> bytes:
    """
    Fit within max_width x max_height, then binary-search JPEG quality in
    [0.1, 1.0] for the best result at or under target_kb.
    """
    if target_kb <= 0:
        raise ValueError("Target size must be greater than zero.")
    if max_width <= 0 or max_height <= 0:
        raise ValueError("Maximum dimensions must be greater than zero.")
    work = flatten_alpha(img)
    if work.width > max_width or work.height > max_height:
        work = resize(work, max_width, max_height, keep_aspect=True)

    target = target_kb * 1024
    low, high = 0.1, 1.0
    best: Optional[bytes] = None
    smallest: Optional[bytes] = None
    for _ in range(iterations):
        quality = (low + high) / 2
        data = encode(work, "JPEG", quality=round(quality * 100))
        if smallest is None or len(data) < len(smallest):
            smallest = data
        if len(data) <= target:
            best = data
            low = quality
        else:
            high = quality
    return best if best is not None else smallest


# ------------------ Analysis ------------------

def aspect_ratio(width: int, height: int) -> str:
    divisor = math.gcd(width, height) or 1
    return f"{width // divisor}:{height // divisor}"


def size_category(width: int, height: int) -> str:
    longest = max(width, height)
    if longest >= 4000:
        return "Large"
    if longest >= 2000:
        return "Medium"
    if longest >= 1000:
        return "Small"
    return "Thumbnail"


def resolution_category(width: int, height: int) -> str:
    pixels = width * height
    if pixels >= 20_000_000:
        return "8K+"
    if pixels >= 8_000_000:
        return "4K"
    if pixels >= 2_000_000:
        return "1080p"
    if pixels >= 1_000_000:
        return "720p"
    if pixels >= 500_000:
        return "480p"
    return "Low Resolution"


def dimensions(img: Image.Image, file_size: int) -> Dict[str, object]:
    w, h = img.size
    return {
        "width": w,
        "height": h,
        "total_pixels": w * h,
        "megapixels": round(w * h / 1_000_000, 2),
        "aspect_ratio": aspect_ratio(w, h),
        "size_category": size_category(w, h),
        "resolution_category": resolution_category(w, h),
        "format": img.format,
        "mode": img.mode,
        "file_size": file_size,
    }


def dpi_quality(dpi: float) -> str:
    if dpi >= 300:
        return "Print Quality"
    if dpi >= 150:
        return "Good Quality"
    if dpi >= 96:
        return "Web Quality"
    return "Low Quality"


def print_readiness(fits300: bool, fits150: bool) -> str:
    if fits300:
        return "Ready for high-quality printing"
    if fits150:
        return "Suitable for most printing"
    return "May appear pixelated when printed"


def print_size(width: int, height: int, dpi: int) -> Dict[str, object]:
    inches_w, inches_h = width / dpi, height / dpi
    return {
        "dpi": dpi,
        "quality": dpi_quality(dpi),
        "inches": f'{inches_w:.2f}" x {inches_h:.2f}"',
        "cm": f"{inches_w * 2.54:.2f}cm x {inches_h * 2.54:.2f}cm",
    }


def dpi_report(img: Image.Image) -> Dict[str, object]:
    w, h = img.size
    stored = img.info.get("dpi") or (72, 72)
    dpi_x, dpi_y = (round(float(v)) for v in stored[:2])
    fits = []
    for name, inch_w, inch_h in PRINT_SIZES:
        need_w, need_h = inch_w * 300, inch_h * 300
        fits300 = w >= need_w and h >= need_h
        fits150 = w >= need_w / 2 and h >= need_h / 2
        fits.append({
            "name": name,
            "required_300_dpi": [round(need_w), round(need_h)],
            "fits_300": fits300,
            "fits_150": fits150,
            "fits_72": w >= need_w * 72 / 300 and h >= need_h * 72 / 300,
            "readiness": print_readiness(fits300, fits150),
        })
    return {
        "width": w,
        "height": h,
        "dpi": {"x": dpi_x, "y": dpi_y},
        "quality": dpi_quality(min(dpi_x, dpi_y)),
        "print_sizes": [print_size(w, h, dpi) for dpi in COMMON_DPIS],
        "print_fit": fits,
    }


def size_analysis(name: str, data: bytes, img: Image.Image) -> Dict[str, object]:
    w, h = img.size
    ratio = w / h
    ratio_text = f"{ratio:.2f}:1 (Landscape)" if ratio > 1 else f"{1 / ratio:.2f}:1 (Portrait)"
    estimates = []
    for target, tw, th, dpi in STANDARD_TARGETS:
        scale = min(w / tw, h / th)
        estimates.append({"name": target, "estimated_dpi": round(dpi * scale),
                          "fit": "Fits" if scale >= 1 else "Too small"})
    size = len(data)
    return {
        "filename": name,
        "width": w,
        "height": h,
        "file_size": {"bytes": size, "kb": round(size / 1024, 1), "mb": round(size / 1024 / 1024, 2)},
        "pixel_count": w * h,
        "megapixels": round(w * h / 1_000_000, 2),
        "aspect_ratio": ratio_text,
        "dpi_estimates": estimates,
        "compression_ratio": round(w * h * 3 / size, 1) if size else None,
        "format": img.format,
    }


def size_analysis_csv(rows: Sequence[Dict[str, object]]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(["Filename", "Width", "Height", "File Size (KB)", "Pixels", "Megapixels", "Aspect Ratio", "Format"])
    for row in rows:
        writer.writerow([
            row["filename"], row["width"], row["height"], row["file_size"]["kb"],
            row["pixel_count"], row["megapixels"], row["aspect_ratio"], row["format"] or "N/A",
        ])
    return buf.getvalue()


def renamed(name: str, prefix: str = "", suffix: str = "", ext: Optional[str] = None) -> str:
    p = Path(name)
    return f"{prefix}{p.stem}{suffix}{ext if ext is not None else p.suffix}"
