"""
Shared fixtures for the invoicebot test suite.

Nothing here touches the network, Tesseract or a real PDF: text backends are
plain callables returning a fixed invoice text.
"""

from unittest.mock import MagicMock

import pytest

from invoicebot.processor import AttachmentProcessor
from tests.helpers import FIXED_NOW, SAMPLE_INVOICE_TEXT


@pytest.fixture
def sample_text():
    return SAMPLE_INVOICE_TEXT


@pytest.fixture
def pdf_backend():
    return MagicMock(return_value=SAMPLE_INVOICE_TEXT)


@pytest.fixture
def ocr_backend():
    return MagicMock(return_value=SAMPLE_INVOICE_TEXT)


@pytest.fixture
def processor(pdf_backend, ocr_backend):
    return AttachmentProcessor(pdf_extract=pdf_backend, ocr_extract=ocr_backend, clock=lambda: FIXED_NOW)
