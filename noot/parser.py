"""PDF to plain text, a thin wrapper around pypdf.

Each page contributes its text items joined by single spaces, followed by a
newline, so an N-page document yields N newline-terminated lines of text.
Nothing is cached here; ``controller.DocumentController`` keeps one
extraction per loaded document.
"""

import io
import logging

from pypdf import PdfReader

from noot.models import ParseError

logger = logging.getLogger(__name__)


def extract_text(data: bytes, name: str = "document.pdf") -> str:
    """Extract the text of every page of the PDF held in ``data``.

    Args:
        data: Raw PDF bytes.
        name: Display name used in log records and error messages.

    Returns:
        One string for the whole document: for each page, the page's text
        items joined with ``" "`` and terminated by ``"\\n"``.  Pages without
        a text layer contribute an empty line.

    Raises:
        ParseError: wrapping any exception raised by pypdf.
    """
    logger.info("Extracting text from %s (%s bytes)", name, f"{len(data):,}")
    try:
        reader = PdfReader(io.BytesIO(data))
        pages = [_page_text(page) for page in reader.pages]
    except Exception as e:
        raise ParseError(f"Failed to extract text from {name}: {e}") from e

    text = "".join(f"{page}\n" for page in pages)
    logger.info(
        "Extraction complete: %d pages, %s chars", len(pages), f"{len(text):,}"
    )
    return text


def _page_text(page) -> str:
    """Join the non-empty text items of one page with single spaces."""
    raw = page.extract_text() or ""
    items = (item.strip() for item in raw.splitlines())
    return " ".join(item for item in items if item)
