"""
Vendor Adapters Module.

Normalizes OCR / layout output from six vendors into a common AdapterResult
with 0-1 top-left origin boxes:
    - AWS Textract
    - Google Document AI
    - Azure Document Intelligence
    - Tesseract (pytesseract and tesseract.js)
    - Unstructured.io
    - Docling
"""

from typing import Callable, Dict

from pdfquery.utils.exceptions import UnsupportedVendorError

from .types import (
    AdapterResult,
    ImageDimensions,
    NormalizedBlock,
    NormalizedTable,
    rows_to_markdown,
    vendor_confidence,
)
from .textract import from_textract
from .docai import from_docai
from .azure import from_azure
from .tesseract import from_pytesseract, from_tesseract_js
from .unstructured import from_unstructured
from .docling import from_docling

# Vendor name -> adapter function
ADAPTERS: Dict[str, Callable[..., AdapterResult]] = {
    'textract': from_textract,
    'docai': from_docai,
    'azure': from_azure,
    'tesseract': from_pytesseract,
    'tesseract_js': from_tesseract_js,
    'unstructured': from_unstructured,
    'docling': from_docling,
}


def get_adapter(vendor: str) -> Callable[..., AdapterResult]:
    """
    Look up an adapter by vendor name.

    Raises:
        UnsupportedVendorError: If the vendor is unknown.
    """
    try:
        return ADAPTERS[vendor.lower()]
    except KeyError:
        raise UnsupportedVendorError(vendor, sorted(ADAPTERS)) from None


__all__ = [
    'AdapterResult',
    'ImageDimensions',
    'NormalizedBlock',
    'NormalizedTable',
    'rows_to_markdown',
    'vendor_confidence',
    'from_textract',
    'from_docai',
    'from_azure',
    'from_pytesseract',
    'from_tesseract_js',
    'from_unstructured',
    'from_docling',
    'ADAPTERS',
    'get_adapter',
]
