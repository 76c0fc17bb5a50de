import base64
import io
import zipfile

from PIL import Image

from conftest import build_image


def _post(client, path, files, **form):
    data = dict(form)
    if isinstance(files, list):
        data["files"] = [(io.BytesIO(content), name) for name, content in files]
    else:
        name, content = files
        data["file"] = (io.BytesIO(content), name)
    return client.post(path, data=data, content_type="multipart/form-data")


def _zip_names(resp):
    with zipfile.ZipFile(io.BytesIO(resp.data)) as zf:
        return sorted(zf.namelist())


def test_resize_route(client, png_bytes):
    resp = _post(client, "/tools/image/resize", ("a.png", png_bytes), width="60", height="40")
    assert resp.status_code == 200
    assert resp.mimetype == "image/jpeg"
    assert Image.open(io.BytesIO(resp.data)).size == (60, 40)


def test_resize_route_rejects_non_image(client):
    resp = _post(client, "/tools/image/resize", ("a.png", b"nope"))
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Please upload a valid image file."


def test_missing_image(client):
    resp = client.post("/tools/image/rotate", data={}, content_type="multipart/form-data")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Please upload an image."


def test_convert_route_to_webp(client, png_bytes):
    resp = _post(client, "/tools/image/convert", ("a.png", png_bytes), format="webp")
    assert resp.mimetype == "image/webp"
    assert "koovlo-converted.webp" in resp.headers["Content-Disposition"]


def test_flip_route_needs_direction(client, png_bytes):
    resp = _post(client, "/tools/image/flip", ("a.png", png_bytes))
    assert resp.status_code == 400


def test_add_text_route_bad_elements(client, png_bytes):
    resp = _post(client, "/tools/image/add-text", ("a.png", png_bytes), elements="{}")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Text elements must be a JSON list."


def test_grayscale_single_file_keeps_format(client, jpeg_bytes):
    resp = _post(client, "/tools/image/grayscale", [("shot.jpg", jpeg_bytes)])
    assert resp.status_code == 200
    assert resp.mimetype == "image/jpeg"
    assert "grayscale-shot.jpg" in resp.headers["Content-Disposition"]


def test_sepia_many_files_zip(client, png_bytes, jpeg_bytes):
    resp = _post(client, "/tools/image/sepia", [("a.png", png_bytes), ("b.jpg", jpeg_bytes)])
    assert resp.mimetype == "application/zip"
    assert _zip_names(resp) == ["sepia-a.png", "sepia-b.jpg"]


def test_watermark_route_outputs_jpeg(client, png_bytes):
    resp = _post(client, "/tools/image/watermark", [("logo-test.png", png_bytes)], text="Koovlo")
    assert resp.mimetype == "image/jpeg"
    assert "watermarked-logo-test.jpg" in resp.headers["Content-Disposition"]


def test_watermark_route_bad_position(client, png_bytes):
    resp = _post(client, "/tools/image/watermark", [("a.png", png_bytes)], position="middle")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Unknown position: middle"


def test_bulk_resize_always_zips(client, png_bytes):
    resp = _post(client, "/tools/image/bulk-resize", [("a.png", png_bytes)], mode="percentage", percentage="50")
    assert resp.mimetype == "application/zip"
    assert _zip_names(resp) == ["a_resized.png"]


def test_bulk_compress_duplicate_names(client, png_bytes):
    resp = _post(client, "/tools/image/bulk-compress", [("a.png", png_bytes), ("a.png", png_bytes)])
    assert _zip_names(resp) == ["a_compressed (1).jpg", "a_compressed.jpg"]


def test_bulk_convert(client, jpeg_bytes):
    resp = _post(client, "/tools/image/bulk-convert", [("a.jpg", jpeg_bytes)], format="png")
    assert _zip_names(resp) == ["a.png"]


def test_to_base64_route(client, png_bytes):
    resp = _post(client, "/tools/image/to-base64", [("a.png", png_bytes)], include_data_url="false")
    result = resp.get_json()["results"][0]
    assert result["filename"] == "a.png"
    assert result["format"] == "JPEG"
    base64.b64decode(result["base64"])


def test_from_base64_route(client, png_bytes):
    resp = client.post("/tools/image/from-base64",
                       json={"data": base64.b64encode(png_bytes).decode(), "filename": "pic"})
    assert resp.status_code == 200
    assert resp.data == png_bytes
    assert "pic.png" in resp.headers["Content-Disposition"]


def test_from_base64_route_invalid(client):
    resp = client.post("/tools/image/from-base64", json={"data": "***"})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Invalid base64 string"


def test_dimensions_route(client, png_bytes):
    body = _post(client, "/tools/image/dimensions", ("a.png", png_bytes)).get_json()
    assert body["width"] == 120
    assert body["aspect_ratio"] == "3:2"
    assert body["filename"] == "a.png"


def test_size_calculator_json_and_csv(client, png_bytes):
    files = [("a.png", png_bytes), ("b.png", build_image(size=(40, 40)))]
    body = _post(client, "/tools/image/size-calculator", files).get_json()
    assert body["totals"]["files"] == 2
    assert body["totals"]["pixels"] == 120 * 80 + 40 * 40

    resp = _post(client, "/tools/image/size-calculator", files, format="csv")
    assert resp.mimetype == "text/csv"
    assert len(resp.data.decode().splitlines()) == 3


def test_blur_route_palette_png(client):
    img = Image.new("RGB", (40, 30), (10, 200, 40)).convert("P")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    resp = _post(client, "/tools/image/blur", [("icon.png", buf.getvalue())], radius="2")
    assert resp.status_code == 200
    assert resp.mimetype == "image/png"
    assert "blurred-icon.png" in resp.headers["Content-Disposition"]


def test_blur_route_gif(client):
    resp = _post(client, "/tools/image/blur", [("anim.gif", build_image("GIF"))])
    assert resp.status_code == 200
    assert resp.mimetype == "image/gif"
    assert "blurred-anim.gif" in resp.headers["Content-Disposition"]
    assert Image.open(io.BytesIO(resp.data)).format == "GIF"


def test_resize_route_rejects_infinite_width(client, png_bytes):
    resp = _post(client, "/tools/image/resize", ("a.png", png_bytes), width="1e309")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Width must be a number."
