import io
import json
import zipfile
from unittest.mock import patch

from pypdf import PdfReader, PdfWriter

from conftest import build_image, build_pdf, page_texts


def _upload(data, name="doc.pdf"):
    return (io.BytesIO(data), name)


def test_merge_route(client, pdf_bytes):
    resp = client.post(
        "/tools/pdf/merge",
        data={"files": [_upload(pdf_bytes, "a.pdf"), _upload(build_pdf(1), "b.pdf"), _upload(b"x", "c.txt")]},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 200
    assert resp.mimetype == "application/pdf"
    assert "koovlo-merged.pdf" in resp.headers["Content-Disposition"]
    assert len(page_texts(resp.data)) == 4


def test_merge_route_needs_two_pdfs(client, pdf_bytes):
    resp = client.post("/tools/pdf/merge", data={"files": [_upload(pdf_bytes)]},
                       content_type="multipart/form-data")
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "Please select at least 2 PDF files to merge."}


def test_missing_file(client):
    resp = client.post("/tools/pdf/rotate", data={}, content_type="multipart/form-data")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Please upload a PDF file."


def test_non_pdf_upload(client):
    resp = client.post("/tools/pdf/rotate", data={"file": _upload(b"hello", "notes.txt")},
                       content_type="multipart/form-data")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Only PDF files are accepted."


def test_split_route(client, pdf_bytes):
    resp = client.post("/tools/pdf/split", data={"file": _upload(pdf_bytes), "pages": "2-3"},
                       content_type="multipart/form-data")
    assert resp.status_code == 200
    assert page_texts(resp.data) == ["Page 2", "Page 3"]


def test_page_range_split_route_zip(client, pdf_bytes):
    resp = client.post("/tools/pdf/page-range-split", data={"file": _upload(pdf_bytes), "ranges": "1,2-3"},
                       content_type="multipart/form-data")
    assert resp.status_code == 200
    assert resp.mimetype == "application/zip"
    with zipfile.ZipFile(io.BytesIO(resp.data)) as zf:
        assert zf.namelist() == ["split-1.pdf", "split-2.pdf"]


def test_delete_pages_route_names_download(client, pdf_bytes):
    resp = client.post("/tools/pdf/delete-pages", data={"file": _upload(pdf_bytes, "report.pdf"), "pages": "1"},
                       content_type="multipart/form-data")
    assert resp.status_code == 200
    assert "report-pages-deleted.pdf" in resp.headers["Content-Disposition"]


def test_delete_pages_route_bad_range(client, pdf_bytes):
    resp = client.post("/tools/pdf/delete-pages", data={"file": _upload(pdf_bytes), "pages": "3-1"},
                       content_type="multipart/form-data")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Invalid range: 3-1"


def test_page_number_bad_font_size(client, pdf_bytes):
    resp = client.post("/tools/pdf/page-number", data={"file": _upload(pdf_bytes), "font_size": "big"},
                       content_type="multipart/form-data")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Font size must be a number."


def test_watermark_route_with_image(client, pdf_bytes):
    resp = client.post(
        "/tools/pdf/watermark",
        data={"file": _upload(pdf_bytes, "plan.pdf"), "image": (io.BytesIO(build_image()), "logo.png")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 200
    assert "plan-watermarked.pdf" in resp.headers["Content-Disposition"]


def test_metadata_read_route(client, pdf_bytes):
    resp = client.post("/tools/pdf/metadata/read", data={"file": _upload(pdf_bytes)},
                       content_type="multipart/form-data")
    assert resp.status_code == 200
    assert resp.get_json()["page_count"] == 3


def test_info_route(client, pdf_bytes):
    resp = client.post("/tools/pdf/info", data={"file": _upload(pdf_bytes, "x.pdf")},
                       content_type="multipart/form-data")
    body = resp.get_json()
    assert body["filename"] == "x.pdf"
    assert len(body["pages"]) == 3


def test_compress_route_reports_sizes(client, pdf_bytes):
    resp = client.post("/tools/pdf/compress", data={"file": _upload(pdf_bytes)},
                       content_type="multipart/form-data")
    assert resp.status_code == 200
    assert resp.headers["X-Original-Size"] == str(len(pdf_bytes))
    assert int(resp.headers["X-Compressed-Size"]) == len(resp.data)


def test_unlock_route_plain_pdf(client, pdf_bytes):
    resp = client.post("/tools/pdf/unlock", data={"file": _upload(pdf_bytes), "password": "x"},
                       content_type="multipart/form-data")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "This PDF is not password protected."


def test_change_page_size_route(client, pdf_bytes):
    resp = client.post("/tools/pdf/change-page-size", data={"file": _upload(pdf_bytes, "a.pdf"), "page_size": "Letter"},
                       content_type="multipart/form-data")
    assert resp.status_code == 200
    assert "a-resized-letter.pdf" in resp.headers["Content-Disposition"]


def test_images_to_pdf_route_reports_skipped(client):
    resp = client.post(
        "/tools/pdf/images-to-pdf",
        data={"files": [(io.BytesIO(build_image()), "a.png"), (io.BytesIO(b"zzz"), "bad.txt")]},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 200
    assert resp.headers["X-Skipped-Files"] == "bad.txt"


def test_to_word_route(client, pdf_bytes):
    with patch("koovlo.tools.pdf.ops.pdf_to_docx", return_value=b"PK-docx") as convert:
        resp = client.post("/tools/pdf/to-word", data={"file": _upload(pdf_bytes, "cv.pdf")},
                           content_type="multipart/form-data")
    assert resp.status_code == 200
    assert resp.data == b"PK-docx"
    assert "cv.docx" in resp.headers["Content-Disposition"]
    convert.assert_called_once()


def test_to_word_route_converter_failure(client, pdf_bytes):
    with patch("koovlo.tools.pdf.ops.pdf_to_docx", side_effect=RuntimeError("boom")):
        resp = client.post("/tools/pdf/to-word", data={"file": _upload(pdf_bytes)},
                           content_type="multipart/form-data")
    assert resp.status_code == 500
    assert resp.get_json()["error"] == "An error occurred while converting to Word. Please try again."


def test_fill_form_route(client, form_pdf_bytes):
    resp = client.post(
        "/tools/pdf/fill-form",
        data={"file": _upload(form_pdf_bytes, "f.pdf"), "values": json.dumps({"city": "Rome"})},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 200
    assert "f-filled.pdf" in resp.headers["Content-Disposition"]


def test_fill_form_route_bad_json(client, form_pdf_bytes):
    resp = client.post("/tools/pdf/fill-form", data={"file": _upload(form_pdf_bytes), "values": "{nope"},
                       content_type="multipart/form-data")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Form values must be a JSON object."


def test_form_fields_route(client, form_pdf_bytes):
    resp = client.post("/tools/pdf/form-fields", data={"file": _upload(form_pdf_bytes)},
                       content_type="multipart/form-data")
    assert {f["name"] for f in resp.get_json()["fields"]} == {"full_name", "city"}


def test_rotate_route_opens_pdf_with_empty_password(client, pdf_bytes):
    writer = PdfWriter(clone_from=PdfReader(io.BytesIO(pdf_bytes)))
    writer.encrypt("", algorithm="RC4-128")
    locked = io.BytesIO()
    writer.write(locked)
    resp = client.post("/tools/pdf/rotate", data={"file": _upload(locked.getvalue()), "angle": "180"},
                       content_type="multipart/form-data")
    assert resp.status_code == 200
    assert page_texts(resp.data) == ["Page 1", "Page 2", "Page 3"]


def test_extract_pages_route_huge_range(client, pdf_bytes):
    resp = client.post("/tools/pdf/extract-pages", data={"file": _upload(pdf_bytes), "pages": "1-3000000"},
                       content_type="multipart/form-data")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Page 3000000 does not exist (the document has 3 pages)."
