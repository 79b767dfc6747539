"""
Grounding document - the uploaded file's text every answer must come from.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Callable, Optional


class GroundingDocument(BaseModel):
    """Extracted text and metadata of the active upload."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Uploaded file name")
    full_text: str = Field(..., description="Extracted text with page markers")
    byte_size: int = Field(..., ge=0, description="Size of the uploaded file in bytes")
    page_count: int = Field(..., ge=0, description="Number of pages in the document")

    def to_display_dict(self) -> dict:
        """Metadata without the (possibly very long) text."""
        return {
            "name": self.name,
            "byte_size": self.byte_size,
            "page_count": self.page_count,
            "char_count": len(self.full_text),
        }


class GroundingStore:
    """
    Holds the single document a session is grounded in.

    Setting a document replaces the previous one wholesale and notifies the
    owner so that anything derived from the old text can be dropped.
    """

    def __init__(self, on_replace: Optional[Callable[[], None]] = None):
        self._document: Optional[GroundingDocument] = None
        self._on_replace = on_replace

    def set_document(
        self,
        name: str,
        text: str,
        byte_size: int,
        page_count: int
    ) -> GroundingDocument:
        """Replace the current document unconditionally."""
        document = GroundingDocument(
            name=name,
            full_text=text,
            byte_size=byte_size,
            page_count=page_count,
        )
        if self._on_replace is not None:
            self._on_replace()
        self._document = document
        return document

    def get_document(self) -> Optional[GroundingDocument]:
        """Return the current document, or None if nothing was uploaded."""
        return self._document

    def clear(self):
        self._document = None
