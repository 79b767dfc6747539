"""Tests for PDF upload checks and text extraction."""
import pytest

from wanderlust.errors import IngestionError
from wanderlust.services import document_parser
from wanderlust.services.document_parser import check_upload, extract_text, extract_text_async, join_pages


class FakePage:
    def __init__(self, text):
        self._text = text

    def extract_text(self):
        return self._text


def fake_reader(*texts, encrypted=False):
    class FakeReader:
        def __init__(self, stream):
            self.is_encrypted = encrypted
            self.decrypted_with = None
            self.pages = [FakePage(t) for t in texts]

        def decrypt(self, password):
            self.decrypted_with = password

    return FakeReader


def build_pdf(*page_texts):
    """A minimal valid PDF with one line of Helvetica text per page."""
    font_number = 3 + 2 * len(page_texts)
    kids = " ".join(f"{3 + 2 * i} 0 R" for i in range(len(page_texts)))
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        f"<< /Type /Pages /Kids [{kids}] /Count {len(page_texts)} >>".encode("ascii"),
    ]
    for i, text in enumerate(page_texts):
        stream = f"BT /F1 12 Tf 72 720 Td ({text}) Tj ET".encode("ascii")
        objects.append(
            f"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
            f"/Resources << /Font << /F1 {font_number} 0 R >> >> "
            f"/Contents {4 + 2 * i} 0 R >>".encode("ascii")
        )
        objects.append(
            b"<< /Length " + str(len(stream)).encode("ascii") + b" >>\nstream\n" + stream + b"\nendstream"
        )
    objects.append(b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>")

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += f"{number} 0 obj\n".encode("ascii") + body + b"\nendobj\n"
    xref_offset = len(out)
    out += f"xref\n0 {len(objects) + 1}\n".encode("ascii")
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += f"{offset:010d} 00000 n \n".encode("ascii")
    out += f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\nstartxref\n{xref_offset}\n%%EOF\n".encode("ascii")
    return bytes(out)


class TestCheckUpload:
    """Only PDFs get through."""

    def test_pdf_accepted(self):
        check_upload("trip.pdf", "application/pdf", b"%PDF-1.7 ...")

    def test_generic_type_with_pdf_name_accepted(self):
        check_upload("trip.PDF", "application/octet-stream", b"%PDF-1.7 ...")

    def test_other_type_rejected(self):
        with pytest.raises(IngestionError) as excinfo:
            check_upload("trip.docx", "application/vnd.openxmlformats-officedocument.wordprocessingml.document", b"PK")
        assert excinfo.value.unsupported_type

    def test_pdf_type_with_wrong_bytes_rejected(self):
        with pytest.raises(IngestionError) as excinfo:
            check_upload("trip.pdf", "application/pdf", b"<html></html>")
        assert excinfo.value.unsupported_type


class TestExtractText:
    """Test page-marked text extraction."""

    def test_join_pages(self):
        assert join_pages(["one", "two"]) == "--- Page 1 ---\none\n\n--- Page 2 ---\ntwo\n\n"

    def test_pages_are_marked(self, monkeypatch):
        monkeypatch.setattr(document_parser, "PdfReader", fake_reader("Flight AF1234", "Hotel Lumiere"))

        extracted = extract_text(b"%PDF-1.4")

        assert extracted.page_count == 2
        assert extracted.text == "--- Page 1 ---\nFlight AF1234\n\n--- Page 2 ---\nHotel Lumiere\n\n"

    def test_page_without_text_kept(self, monkeypatch):
        monkeypatch.setattr(document_parser, "PdfReader", fake_reader(None, "Page two"))

        extracted = extract_text(b"%PDF-1.4")

        assert extracted.page_count == 2
        assert "--- Page 1 ---\n\n\n--- Page 2 ---\nPage two" in extracted.text

    def test_reader_error_wrapped(self, monkeypatch):
        def broken(stream):
            raise ValueError("xref table corrupt")

        monkeypatch.setattr(document_parser, "PdfReader", broken)

        with pytest.raises(IngestionError) as excinfo:
            extract_text(b"%PDF-1.4")
        assert isinstance(excinfo.value.cause, ValueError)
        assert not excinfo.value.unsupported_type

    def test_no_pages_rejected(self, monkeypatch):
        monkeypatch.setattr(document_parser, "PdfReader", fake_reader())
        with pytest.raises(IngestionError):
            extract_text(b"%PDF-1.4")

    def test_garbage_rejected(self):
        with pytest.raises(IngestionError):
            extract_text(b"%PDF-1.4\nthis is not a real pdf")

    @pytest.mark.asyncio
    async def test_async_wrapper(self, monkeypatch):
        monkeypatch.setattr(document_parser, "PdfReader", fake_reader("Only page"))

        extracted = await extract_text_async(b"%PDF-1.4")

        assert extracted.page_count == 1


class TestRealPdf:
    """Run pypdf on an actual document."""

    def test_two_page_pdf(self):
        data = build_pdf("Flight AF1234 Paris CDG 2024-10-12 09:00", "Hotel Lumiere Rue de Rivoli")

        check_upload("trip.pdf", "application/pdf", data)
        extracted = extract_text(data)

        assert extracted.page_count == 2
        first, second = extracted.text.split("--- Page 2 ---")
        assert first.startswith("--- Page 1 ---\n")
        assert "Flight AF1234 Paris CDG 2024-10-12 09:00" in first
        assert "Hotel Lumiere Rue de Rivoli" in second

    @pytest.mark.asyncio
    async def test_two_page_pdf_off_thread(self):
        extracted = await extract_text_async(build_pdf("Page one", "Page two"))

        assert extracted.page_count == 2
        assert "Page one" in extracted.text
        assert "Page two" in extracted.text
