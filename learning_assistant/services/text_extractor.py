"""Text extraction from uploaded files"""

from pathlib import Path
import io
import logging

import docx
import PyPDF2

from learning_assistant.exceptions import ValidationException

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = ('.txt', '.pdf', '.docx')


def file_extension(filename: str) -> str:
    return Path(filename or "").suffix.lower()


def extract_text(filename: str, data: bytes) -> str:
    """
    Extract plain text from an uploaded file

    Args:
        filename: Original file name (extension selects the reader)
        data: File contents

    Returns:
        Extracted text

    Raises:
        ValidationException: Unsupported type or unreadable file
    """
    extension = file_extension(filename)
    if extension not in SUPPORTED_EXTENSIONS:
        raise ValidationException(
            f"File type {extension or 'unknown'} not supported. Allowed: {', '.join(SUPPORTED_EXTENSIONS)}"
        )

    try:
        if extension == '.pdf':
            return _read_pdf(data)
        if extension == '.docx':
            return _read_docx(data)
        return _read_text(data)
    except ValidationException:
        raise
    except Exception as e:
        logger.error(f"Error reading file {filename}: {e}")
        raise ValidationException(f"Could not read {extension} file: {e}") from e


def _read_pdf(data: bytes) -> str:
    pdf_reader = PyPDF2.PdfReader(io.BytesIO(data))
    pages = []
    for page_num, page in enumerate(pdf_reader.pages, 1):
        page_text = page.extract_text() or ""
        if page_text.strip():
            pages.append(page_text)
        else:
            logger.debug(f"PDF page {page_num} has no extractable text")
    return "\n\n".join(pages)


def _read_docx(data: bytes) -> str:
    document = docx.Document(io.BytesIO(data))
    return "\n".join(para.text for para in document.paragraphs)


def _read_text(data: bytes) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return data.decode("latin-1")
