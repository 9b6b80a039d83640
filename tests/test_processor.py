from decimal import Decimal

import pytest

from invoicebot.errors import ExtractionBackendError, UnsupportedTypeError
from invoicebot.models import ProcessingMethod, RawAttachment
from invoicebot.processor import AttachmentProcessor
from tests.helpers import FIXED_NOW


def _raw(mime_type, filename="doc", content=b"payload"):
    return RawAttachment(filename=filename, mime_type=mime_type, content=content, attachment_id="att-1")


class TestSelectBackend:
    def test_pdf_routes_to_pdf_backend(self, processor, pdf_backend):
        assert processor.select_backend("application/pdf") == (ProcessingMethod.PDF_EXTRACT, pdf_backend)

    def test_pdf_match_is_case_insensitive(self, processor):
        method, _ = processor.select_backend("Application/PDF")
        assert method is ProcessingMethod.PDF_EXTRACT

    @pytest.mark.parametrize("mime_type", ["image/png", "image/jpeg", "image/tiff", "image/anything"])
    def test_images_route_to_ocr(self, processor, ocr_backend, mime_type):
        assert processor.select_backend(mime_type) == (ProcessingMethod.OCR, ocr_backend)

    @pytest.mark.parametrize("mime_type", ["text/plain", "application/pdf-x", "application/zip", ""])
    def test_everything_else_is_unsupported(self, processor, mime_type):
        with pytest.raises(UnsupportedTypeError):
            processor.select_backend(mime_type)


def test_pdf_success(processor, pdf_backend, ocr_backend, sample_text):
    result = processor.process(_raw("application/pdf", "invoice.pdf"))

    pdf_backend.assert_called_once_with(b"payload")
    ocr_backend.assert_not_called()
    assert result.success is True
    assert result.processing_method is ProcessingMethod.PDF_EXTRACT
    assert result.extracted_text == sample_text
    assert result.invoice_data.total_amount == Decimal("117")
    assert result.warnings == ()
    assert result.error is None
    assert result.processed_at == FIXED_NOW
    assert result.attachment_id == "att-1"


def test_image_success_uses_ocr(processor, pdf_backend, ocr_backend):
    result = processor.process(_raw("image/jpeg", "scan.jpg"))

    ocr_backend.assert_called_once_with(b"payload")
    pdf_backend.assert_not_called()
    assert result.success is True
    assert result.processing_method is ProcessingMethod.OCR


def test_unsupported_type_is_a_failed_result(processor, pdf_backend, ocr_backend):
    result = processor.process(_raw("text/plain", "notes.txt"))

    assert result.success is False
    assert result.error == "Unsupported file type: text/plain"
    assert result.invoice_data is None
    assert result.processing_method is None
    pdf_backend.assert_not_called()
    ocr_backend.assert_not_called()


def test_backend_failure_is_captured(processor, pdf_backend):
    pdf_backend.side_effect = ExtractionBackendError("PDF processing failed: bad xref")

    result = processor.process(_raw("application/pdf", "broken.pdf"))

    assert result.success is False
    assert "PDF processing failed" in result.error
    assert result.extracted_text is None


def test_unexpected_exception_is_captured(processor, ocr_backend):
    ocr_backend.side_effect = RuntimeError("tesseract crashed")

    result = processor.process(_raw("image/png", "scan.png"))

    assert result.success is False
    assert result.error == "tesseract crashed"


def test_empty_text_is_success_with_warnings():
    processor = AttachmentProcessor(pdf_extract=lambda _: "", ocr_extract=lambda _: "", clock=lambda: FIXED_NOW)

    result = processor.process(_raw("application/pdf"))

    assert result.success is True
    assert result.invoice_data.total_amount is None
    assert result.warnings == ("לא נמצא שם חברה", "לא נמצא סכום תקין", "לא נמצא תאריך")
