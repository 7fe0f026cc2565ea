import logging
from pathlib import Path
from urllib.parse import unquote, urlparse

from PyPDF2 import PdfReader

from utils.errors import UnsupportedAttachmentError

logger = logging.getLogger(__name__)

TEXT_SUFFIXES = (".txt", ".md")
PDF_SUFFIX = ".pdf"


def extract_text_from_pdf(pdf_path) -> str:
    reader = PdfReader(str(pdf_path))
    pages = []
    for page in reader.pages:
        page_text = page.extract_text() or ""
        if page_text.strip():
            pages.append(page_text)
    return "\n".join(pages)


def _local_path(ref: str) -> Path:
    parsed = urlparse(ref)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    if parsed.scheme in ("", None) or len(parsed.scheme) == 1:
        # bare path, or a Windows drive letter parsed as a scheme
        return Path(ref)
    raise UnsupportedAttachmentError(f"Only local attachments are supported, got '{ref}'")


def load_attachment_text(ref: str) -> str:
    """
    Read the text of a local attachment (path or file:// URL).

    Raises UnsupportedAttachmentError for unknown types and unreadable files;
    callers treat that as an input problem, not an infrastructure failure.
    """
    if not ref or not ref.strip():
        raise UnsupportedAttachmentError("Empty attachment reference")

    path = _local_path(ref.strip())
    suffix = path.suffix.lower()
    if suffix not in TEXT_SUFFIXES + (PDF_SUFFIX,):
        raise UnsupportedAttachmentError(f"Unsupported attachment type '{suffix or path.name}'")
    if not path.is_file():
        raise UnsupportedAttachmentError(f"Attachment not found: {path}")

    try:
        if suffix == PDF_SUFFIX:
            text = extract_text_from_pdf(path)
        else:
            text = path.read_text(encoding="utf-8", errors="replace")
    except Exception as e:
        # PyPDF2 raises KeyError, TypeError and friends on malformed files
        raise UnsupportedAttachmentError(f"Could not read attachment {path}: {e}") from e

    logger.debug("Read %d characters from %s", len(text), path)
    return text
