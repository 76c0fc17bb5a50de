import io
import zipfile

import pytest
from pypdf import PdfReader

from conftest import page_texts
from koovlo.tools.file import ops


def test_text_to_pdf_keeps_lines():
    data = ops.text_to_pdf("First line\n\n  Second <line> & more")
    texts = page_texts(data)
    assert len(texts) == 1
    assert "First line" in texts[0]
    assert "Second <line> & more" in texts[0]


def test_text_to_pdf_landscape_letter():
    page = PdfReader(io.BytesIO(ops.text_to_pdf("x", page_size="letter", orientation="landscape"))).pages[0]
    assert (float(page.mediabox.width), float(page.mediabox.height)) == (792, 612)


def test_text_to_pdf_long_text_flows_onto_pages():
    data = ops.text_to_pdf("\n".join(f"Line {n}" for n in range(200)), font_size=14)
    assert len(PdfReader(io.BytesIO(data)).pages) > 1


@pytest.mark.parametrize("kwargs,message", [
    ({"text": "  "}, "Please enter some text to convert."),
    ({"text": "x", "font_size": 100}, "Font size must be between 6 and 72."),
    ({"text": "x", "font_family": "Comic Sans"}, "Unsupported font: Comic Sans"),
    ({"text": "x", "page_size": "B5"}, "Unsupported page size: B5"),
])
def test_text_to_pdf_rejects(kwargs, message):
    with pytest.raises(ValueError, match=message):
        ops.text_to_pdf(**kwargs)


def test_resolve_font():
    assert ops.resolve_font("Georgia") == "Times-Roman"
    assert ops.resolve_font("Courier New") == "Courier"


def test_text_to_pdf_route(client):
    resp = client.post("/tools/file/text-to-pdf", json={"text": "Hello Koovlo", "font_family": "Times New Roman"})
    assert resp.status_code == 200
    assert resp.mimetype == "application/pdf"
    assert "document.pdf" in resp.headers["Content-Disposition"]
    assert "Hello Koovlo" in page_texts(resp.data)[0]


def test_text_to_pdf_route_bad_font_size(client):
    resp = client.post("/tools/file/text-to-pdf", json={"text": "x", "font_size": "huge"})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Font size must be a number."


def test_zip_creator_route(client):
    resp = client.post(
        "/tools/file/zip-creator",
        data={
            "zip_name": "my stuff.zip",
            "files": [(io.BytesIO(b"one"), "a.txt"), (io.BytesIO(b"two"), "a.txt"), (io.BytesIO(b"3"), "b.csv")],
        },
        content_type="multipart/form-data",
    )
    assert resp.status_code == 200
    assert resp.mimetype == "application/zip"
    assert "my_stuff.zip" in resp.headers["Content-Disposition"]
    with zipfile.ZipFile(io.BytesIO(resp.data)) as zf:
        assert zf.namelist() == ["a.txt", "a (1).txt", "b.csv"]
        assert zf.read("a (1).txt") == b"two"


def test_zip_creator_default_name(client):
    resp = client.post("/tools/file/zip-creator", data={"files": [(io.BytesIO(b"x"), "x.bin")]},
                       content_type="multipart/form-data")
    assert "archive.zip" in resp.headers["Content-Disposition"]


def test_zip_creator_needs_files(client):
    resp = client.post("/tools/file/zip-creator", data={}, content_type="multipart/form-data")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Please select at least one file."
