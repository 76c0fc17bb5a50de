import base64
import io

import pytest
from PIL import Image

from conftest import build_image
from koovlo.tools.image import ops


def _img(size=(120, 80), color=(200, 30, 30), mode="RGB", fmt="PNG"):
    return ops.load_image(build_image(fmt, size=size, color=color, mode=mode))


def _decode(data):
    return Image.open(io.BytesIO(data))


def test_load_image_rejects_garbage():
    with pytest.raises(ValueError, match="valid image"):
        ops.load_image(b"not an image")


def test_encode_jpeg_flattens_alpha_on_white():
    rgba = Image.new("RGBA", (4, 4), (0, 0, 0, 0))
    out = _decode(ops.encode(rgba, "JPEG"))
    assert out.mode == "RGB"
    assert out.getpixel((1, 1))[0] > 240


def test_output_format_rejects_unknown():
    assert ops.output_format("jpg") == "JPEG"
    with pytest.raises(ValueError, match="Unsupported output format"):
        ops.output_format("tga")


def test_resize_keep_aspect():
    assert ops.resize(_img((200, 100)), 100, 100, keep_aspect=True).size == (100, 50)


@pytest.mark.parametrize("mode,expected", [
    ("dimensions", (60, 60)),
    ("fit", (60, 40)),
    ("fill", (60, 60)),
])
def test_resize_by_mode(mode, expected):
    assert ops.resize_by_mode(_img((120, 80)), mode, 60, 60).size == expected


def test_resize_by_percentage():
    assert ops.resize_by_mode(_img((120, 80)), "percentage", percentage=25).size == (30, 20)


def test_crop_bounds():
    assert ops.crop(_img(), 10, 10, 50, 20).size == (50, 20)
    with pytest.raises(ValueError, match="outside the image"):
        ops.crop(_img(), 100, 0, 50, 20)


def test_rotate_expands_canvas():
    assert ops.rotate(_img((120, 80)), 90).size == (80, 120)


def test_flip_horizontal():
    img = Image.new("RGB", (2, 1))
    img.putpixel((0, 0), (255, 0, 0))
    assert ops.flip(img, horizontal=True).getpixel((1, 0)) == (255, 0, 0)


def test_grayscale_keeps_alpha():
    assert ops.grayscale(_img(mode="RGBA")).mode == "LA"
    assert ops.grayscale(_img()).mode == "L"


def test_sepia_full_intensity():
    r, g, b, _a = ops.sepia(_img(color=(100, 100, 100))).getpixel((0, 0))
    assert r > g > b


def test_invert_half_intensity_is_mid_gray():
    r, g, b, _a = ops.invert(_img(color=(0, 0, 0)), intensity=50).getpixel((0, 0))
    assert 125 <= r <= 130


def test_adjust_limits():
    with pytest.raises(ValueError, match="Brightness must be between 0 and 300"):
        ops.adjust(_img(), brightness=400)


def test_add_border_grows_image():
    out = ops.add_border(_img((50, 40)), width=5, color="#00ff00")
    assert out.size == (60, 50)
    assert out.getpixel((4, 4))[:3] == (0, 255, 0)


def test_add_border_dashed_and_rounded():
    out = ops.add_border(_img((50, 40)), width=4, style="dashed", radius=8)
    assert out.size == (58, 48)


def test_add_text_requires_elements():
    with pytest.raises(ValueError, match="at least one text element"):
        ops.add_text(_img(), [])


def test_add_text_draws():
    before = _img((200, 100), color=(255, 255, 255))
    after = ops.add_text(before, [{"text": "Hi", "x": 10, "y": 10, "font_size": 40, "color": "#000000"}])
    assert list(after.convert("L").getdata()) != list(before.convert("L").getdata())


def test_watermark_origin_padding():
    assert ops.watermark_origin("bottom-right", (500, 400), (100, 50)) == (370, 320)
    assert ops.watermark_origin("center", (500, 400), (100, 50)) == (200, 175)


def test_watermark_logo_scales_with_width():
    base = _img((400, 200), color=(255, 255, 255))
    logo = _img((100, 50), color=(0, 0, 0))
    out = ops.watermark(base, logo=logo, position="top-left", opacity=100, scale=25)
    # 25% of 400px -> a 100x50 logo with its corner at (30, 30)
    assert out.getpixel((35, 35))[:3] == (0, 0, 0)
    assert out.getpixel((135, 35))[:3] == (255, 255, 255)


def test_watermark_needs_text_or_logo():
    with pytest.raises(ValueError, match="watermark text"):
        ops.watermark(_img(), text="")


def test_strip_metadata_drops_exif():
    img = Image.new("RGB", (10, 10), (1, 2, 3))
    exif = Image.Exif()
    exif[0x010F] = "CameraCo"
    buf = io.BytesIO()
    img.save(buf, format="JPEG", exif=exif)
    loaded = ops.load_image(buf.getvalue())
    assert loaded.getexif()
    clean = _decode(ops.encode(ops.strip_metadata(loaded), "JPEG"))
    assert not clean.getexif()


def test_to_base64_auto_picks_png_for_transparency():
    result = ops.to_base64(_img(mode="RGBA"))
    assert result["format"] == "PNG"
    assert result["base64"].startswith("data:image/png;base64,")


def test_to_base64_without_data_url():
    result = ops.to_base64(_img(), fmt="jpeg", include_data_url=False)
    assert result["format"] == "JPEG"
    assert _decode(base64.b64decode(result["base64"])).format == "JPEG"


def test_from_base64_accepts_data_url(png_bytes):
    text = "data:image/png;base64," + base64.b64encode(png_bytes).decode()
    data, img = ops.from_base64(text)
    assert data == png_bytes
    assert img.size == (120, 80)


def test_from_base64_rejects_bad_input():
    with pytest.raises(ValueError, match="Invalid base64 string"):
        ops.from_base64("%%%")


def test_progressive_jpeg_flag():
    out = _decode(ops.progressive_jpeg(_img()))
    assert out.info.get("progressive") or out.info.get("progression")


def test_reduce_size_respects_box():
    out = _decode(ops.reduce_size(_img((400, 300)), target_kb=50, max_width=200, max_height=200))
    assert out.size == (200, 150)


def test_dimensions_categories():
    info = ops.dimensions(_img((1920, 1080)), 1234)
    assert info["aspect_ratio"] == "16:9"
    assert info["size_category"] == "Small"
    assert info["resolution_category"] == "1080p"


def test_dpi_report_defaults_to_72():
    report = ops.dpi_report(_img((2550, 3300)))
    assert report["dpi"] == {"x": 72, "y": 72}
    letter = next(f for f in report["print_fit"] if f["name"] == "Letter")
    assert letter["fits_300"] is True


def test_size_analysis_csv(png_bytes):
    row = ops.size_analysis("a.png", png_bytes, ops.load_image(png_bytes))
    assert row["aspect_ratio"] == "1.50:1 (Landscape)"
    csv_text = ops.size_analysis_csv([row])
    assert csv_text.splitlines()[0].startswith("Filename,Width,Height")
    assert csv_text.splitlines()[1].startswith("a.png,120,80")


def test_renamed():
    assert ops.renamed("photo.png", prefix="x-", suffix="_y", ext=".jpg") == "x-photo_y.jpg"


def _palette_png(transparency=None):
    img = Image.new("RGB", (40, 30), (10, 200, 40)).convert("P")
    buf = io.BytesIO()
    if transparency is None:
        img.save(buf, format="PNG")
    else:
        img.save(buf, format="PNG", transparency=transparency)
    return buf.getvalue()


def test_blur_palette_image():
    out = ops.blur(ops.load_image(_palette_png()), 2)
    assert out.mode == "RGB"
    assert out.size == (40, 30)


def test_blur_palette_with_transparency_keeps_alpha():
    out = ops.blur(ops.load_image(_palette_png(transparency=0)), 2)
    assert out.mode == "RGBA"


def test_blur_gif():
    img = ops.load_image(build_image("GIF"))
    out = ops.blur(img, 3)
    assert out.mode in ("RGB", "RGBA")
    assert _decode(ops.encode(out, ops.same_format(img))).format == "GIF"


def test_blur_negative_radius():
    with pytest.raises(ValueError, match="Blur radius cannot be negative."):
        ops.blur(_img(), -1)


def test_strip_metadata_keeps_palette_transparency():
    loaded = ops.load_image(_palette_png(transparency=0))
    clean = _decode(ops.encode(ops.strip_metadata(loaded), "PNG"))
    assert clean.mode == "P"
    assert clean.info.get("transparency") == 0
