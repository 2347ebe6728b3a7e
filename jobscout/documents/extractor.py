"""Text extraction from CVs and other attached documents.

PDF support uses pymupdf (optional dependency).
"""

import base64
import binascii
from pathlib import Path
from typing import Any

TEXT_SUFFIXES = (".txt", ".md")


def _import_pymupdf() -> Any:
    try:
        import pymupdf
    except ImportError:
        msg = (
            "pymupdf is required for PDF extraction. "
            "Install with: pip install 'jobscout[pdf]'"
        )
        raise ImportError(msg) from None
    return pymupdf


def _pages_text(doc: Any) -> str:
    text_parts: list[str] = []
    for page in doc:
        text_parts.append(page.get_text())
    doc.close()
    return "\n".join(text_parts)


def extract_text_from_pdf(path: str | Path) -> str:
    """Extract plain text from a PDF file.

    Raises:
        FileNotFoundError: If the PDF file does not exist.
        ImportError: If pymupdf is not installed.
    """
    path = Path(path)
    if not path.exists():
        msg = f"PDF file not found: {path}"
        raise FileNotFoundError(msg)

    pymupdf = _import_pymupdf()
    return _pages_text(pymupdf.open(str(path)))


def extract_attachment_text(file_name: str, content_base64: str) -> str:
    """Decode a base64 attachment and return its text.

    Args:
        file_name: Original file name; its suffix selects the decoder.
        content_base64: File contents, base64-encoded.

    Raises:
        ValueError: If the payload is not valid base64 or the type is unsupported.
        ImportError: If a PDF is attached and pymupdf is not installed.
    """
    try:
        data = base64.b64decode(content_base64, validate=True)
    except binascii.Error as e:
        msg = f"Attachment '{file_name}' is not valid base64: {e}"
        raise ValueError(msg) from e

    suffix = Path(file_name).suffix.lower()
    if suffix == ".pdf":
        pymupdf = _import_pymupdf()
        return _pages_text(pymupdf.open(stream=data, filetype="pdf"))
    if suffix in TEXT_SUFFIXES:
        return data.decode("utf-8", errors="replace")

    msg = f"Unsupported attachment type '{suffix or file_name}'. Supported: .pdf, .txt, .md"
    raise ValueError(msg)
