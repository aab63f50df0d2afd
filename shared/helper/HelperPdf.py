"""Plain-text extraction from PDF bytes."""

import io

from PyPDF2 import PdfReader
from PyPDF2.errors import PyPdfError

from shared.exceptions.errors import UnreadablePdfError


def extract_text(data: bytes) -> str:
    """Extract the text layer of every page, joined by blank lines.

    Args:
        data (bytes): Raw PDF bytes.

    Returns:
        str: The document text.

    Raises:
        UnreadablePdfError: If the bytes are not a readable PDF or carry no text layer.
    """
    if not data:
        raise UnreadablePdfError("PDF is empty.")
    try:
        reader = PdfReader(io.BytesIO(data))
        pages = [page.extract_text() or "" for page in reader.pages]
    except (PyPdfError, ValueError, KeyError, IndexError, TypeError, AttributeError, OSError) as e:
        raise UnreadablePdfError(f"PDF could not be parsed: {e}") from e

    text = "\n\n".join(page.strip() for page in pages if page.strip())
    if not text:
        raise UnreadablePdfError("PDF contains no extractable text.")
    return text
