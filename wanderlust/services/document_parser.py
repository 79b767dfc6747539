"""
Document Parser - Turns an uploaded PDF into page-marked plain text.
"""
import asyncio
import io
import logging
from typing import Optional

from pydantic import BaseModel, Field
from pypdf import PdfReader

from ..errors import IngestionError

logger = logging.getLogger(__name__)

PDF_MEDIA_TYPE = "application/pdf"
PDF_MAGIC = b"%PDF-"
# Browsers and curl often send this for files they cannot classify
GENERIC_MEDIA_TYPES = ("application/octet-stream", "", None)


class ExtractedText(BaseModel):
    """Text of every page, joined with page markers."""
    text: str = Field(..., description="Concatenated page text")
    page_count: int = Field(..., ge=0, description="Number of pages read")


def page_marker(page_number: int) -> str:
    return f"--- Page {page_number} ---"


def join_pages(page_texts: list[str]) -> str:
    """Concatenate page texts so answers can cite [Page X]."""
    return "".join(
        f"{page_marker(number)}\n{text}\n\n"
        for number, text in enumerate(page_texts, start=1)
    )


def check_upload(filename: str, content_type: Optional[str], data: bytes):
    """
    Reject anything that is not a PDF before trying to parse it.

    Raises:
        IngestionError: with unsupported_type set
    """
    named_pdf = (filename or "").lower().endswith(".pdf")
    if content_type != PDF_MEDIA_TYPE and not (named_pdf and content_type in GENERIC_MEDIA_TYPES):
        raise IngestionError(
            "Please upload a PDF file.",
            filename=filename,
            unsupported_type=True,
        )
    if not data.startswith(PDF_MAGIC):
        raise IngestionError(
            "The uploaded file is not a valid PDF document.",
            filename=filename,
            unsupported_type=True,
        )


def extract_text(data: bytes) -> ExtractedText:
    """
    Extract the text of every page of a PDF.

    Args:
        data: Raw PDF bytes

    Returns:
        ExtractedText with page markers and the page count

    Raises:
        IngestionError: the PDF could not be read
    """
    try:
        reader = PdfReader(io.BytesIO(data))
        if reader.is_encrypted:
            # Many itineraries are "encrypted" with an empty owner password
            reader.decrypt("")
        page_texts = [(page.extract_text() or "").strip() for page in reader.pages]
    except Exception as e:
        raise IngestionError(
            "Failed to extract text from PDF. Please ensure it is a valid PDF file.",
            cause=e,
        )

    if not page_texts:
        raise IngestionError("The PDF has no pages.")
    if not any(page_texts):
        logger.warning(f"No extractable text in {len(page_texts)}-page PDF")

    return ExtractedText(text=join_pages(page_texts), page_count=len(page_texts))


async def extract_text_async(data: bytes) -> ExtractedText:
    """Run extraction off the event loop; pypdf is CPU bound."""
    return await asyncio.to_thread(extract_text, data)
