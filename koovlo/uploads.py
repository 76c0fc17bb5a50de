"""Request/response plumbing shared by the tool blueprints."""
import io
import math
import tempfile
import zipfile
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from flask import abort, request, send_file
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

PDF_MIME = "application/pdf"
ZIP_MIME = "application/zip"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


def is_pdf(name: str) -> bool:
    return name.lower().endswith(".pdf")


def stem_of(name: str) -> str:
    return Path(name).stem or "document"


def clean_name(f: FileStorage, fallback: str = "upload") -> str:
    return secure_filename(f.filename or "") or fallback


def require_file(field: str = "file", message: str = "Please upload a file.") -> FileStorage:
    f = request.files.get(field)
    if not f or not f.filename:
        abort(400, message)
    return f


def require_pdf(field: str = "file") -> Tuple[str, bytes]:
    """Return (safe_name, data) for an uploaded PDF or abort with 400."""
    f = require_file(field, "Please upload a PDF file.")
    name = clean_name(f, "document.pdf")
    if not is_pdf(name):
        abort(400, "Only PDF files are accepted.")
    return name, f.read()


def uploaded_files(field: str = "files") -> List[FileStorage]:
    """All non-empty uploads under `field` (falls back to a single `file`)."""
    files = [f for f in request.files.getlist(field) if f and f.filename]
    if not files:
        single = request.files.get("file")
        if single and single.filename:
            files = [single]
    return files


def form_str(name: str, default: str = "") -> str:
    value = request.form.get(name)
    if value is None:
        return default
    return value.strip()


def form_float(name: str, default: Optional[float] = None) -> Optional[float]:
    raw = (request.form.get(name) or "").strip()
    if not raw:
        return default
    message = f"{name.replace('_', ' ').capitalize()} must be a number."
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(message)
    if not math.isfinite(value):
        raise ValueError(message)
    return value


def form_int(name: str, default: Optional[int] = None) -> Optional[int]:
    value = form_float(name, None)
    if value is None:
        return default
    return int(value)


def form_bool(name: str, default: bool = False) -> bool:
    raw = request.form.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "on", "yes"}


def json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        abort(400, "Request body must be a JSON object.")
    return data


def json_bool(data: Dict[str, Any], key: str, default: bool = False) -> bool:
    value = data.get(key)
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "on", "yes"}
    return bool(value)


def send_bytes(data: bytes, download_name: str, mimetype: str):
    return send_file(
        io.BytesIO(data),
        as_attachment=True,
        download_name=download_name,
        mimetype=mimetype,
    )


def send_pdf(data: bytes, download_name: str):
    return send_bytes(data, download_name, PDF_MIME)


def unique_name(name: str, taken: set) -> str:
    """`report.pdf` -> `report (1).pdf` when the name is already in the archive."""
    if name not in taken:
        taken.add(name)
        return name
    p = Path(name)
    n = 1
    while True:
        candidate = f"{p.stem} ({n}){p.suffix}"
        if candidate not in taken:
            taken.add(candidate)
            return candidate
        n += 1


def send_zip(entries: Iterable[Tuple[str, bytes]], download_name: str):
    # 5MB in RAM then spills to disk
    spooled = tempfile.SpooledTemporaryFile(max_size=5 * 1024 * 1024)
    taken: set = set()
    with zipfile.ZipFile(spooled, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for arcname, data in entries:
            zf.writestr(unique_name(arcname, taken), data)
    spooled.seek(0)
    return send_file(
        spooled,
        as_attachment=True,
        download_name=download_name,
        mimetype=ZIP_MIME,
    )
