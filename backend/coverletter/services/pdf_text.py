"""CV text extraction with pypdf."""

import io

from pypdf import PdfReader
from pypdf.errors import PyPdfError

from coverletter.core.errors import ExtractionError
from coverletter.core.logger import logger


def extract_cv_text(data: bytes) -> str:
    """Extract visible text from every page of a PDF.

    Images are ignored (no OCR), so a scanned CV yields an empty string.
    Raises ExtractionError if the document cannot be parsed.
    """
    try:
        reader = PdfReader(io.BytesIO(data))
        chunks = []
        for page in reader.pages:
            text = page.extract_text() or ""
            if text:
                chunks.append(text)
    except (PyPdfError, ValueError, KeyError, TypeError) as e:
        logger.warning(f"PDF extraction failed: {e}")
        raise ExtractionError(f"Could not read the CV file: {e}") from e

    text = "\n".join(chunks)
    logger.info(f"Extracted CV text length: {len(text)}")
    return text
