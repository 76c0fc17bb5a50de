import io

import pytest
from PIL import Image
from pypdf import PdfReader
from reportlab.pdfgen import canvas

from koovlo import create_app
from koovlo.config import TestingConfig


@pytest.fixture
def app():
    return create_app(TestingConfig)


@pytest.fixture
def client(app):
    return app.test_client()


def build_pdf(pages=3, size=(612, 792), form=False) -> bytes:
    """PDF whose page n carries the text 'Page n'."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=size)
    for n in range(1, pages + 1):
        c.drawString(72, 720, f"Page {n}")
        if form and n == 1:
            c.acroForm.textfield(name="full_name", x=72, y=600, width=200, height=20, value="")
            c.acroForm.textfield(name="city", x=72, y=560, width=200, height=20, value="Paris")
        c.showPage()
    c.save()
    return buf.getvalue()


def build_image(fmt="PNG", size=(120, 80), color=(200, 30, 30), mode="RGB") -> bytes:
    if mode == "RGBA":
        color = color + (128,) if len(color) == 3 else color
    img = Image.new(mode, size, color)
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


def page_texts(data: bytes):
    return [page.extract_text().strip() for page in PdfReader(io.BytesIO(data)).pages]


@pytest.fixture
def pdf_bytes():
    return build_pdf()


@pytest.fixture
def form_pdf_bytes():
    return build_pdf(pages=1, form=True)


@pytest.fixture
def png_bytes():
    return build_image()


@pytest.fixture
def jpeg_bytes():
    return build_image("JPEG", size=(200, 100), color=(30, 120, 200))
