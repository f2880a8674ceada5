"""
OCR functionality for receipt images and PDFs.
"""

import os
from pathlib import Path
from typing import Optional

from .utils import IMAGE_EXTS, PDF_EXTS


def _lazy_import_ocr_deps():
    """Lazy import heavy OCR dependencies."""
    global pytesseract, PIL_Image, fitz
    import importlib
    pytesseract = importlib.import_module("pytesseract")
    PIL_Image = importlib.import_module("PIL.Image")
    fitz = importlib.import_module("fitz")  # pymupdf


# Initialize on first use
pytesseract = None
PIL_Image = None
fitz = None


def ocr_image_to_text(img_path: Path, lang: Optional[str] = None) -> str:
    """OCR an image file to text."""
    if pytesseract is None:
        _lazy_import_ocr_deps()

    img = PIL_Image.open(img_path)
    # Tesseract does better on grayscale receipts
    if img.mode != "L":
        img = img.convert("L")
    lang = lang or os.getenv("TESSERACT_LANG")
    if lang:
        return pytesseract.image_to_string(img, lang=lang)
    return pytesseract.image_to_string(img)


def pdf_to_text(pdf_path: Path) -> str:
    """Extract the text layer of a PDF using PyMuPDF."""
    if fitz is None:
        _lazy_import_ocr_deps()

    doc = fitz.open(pdf_path.as_posix())
    chunks = []
    for page in doc:
        chunks.append(page.get_text())
    doc.close()
    return "\n".join(chunks)


def perform_ocr(path, lang: Optional[str] = None) -> str:
    """
    Best-effort transcript of a receipt file.

    Images go through Tesseract; PDFs are expected to carry a text layer.
    May return an empty string.
    """
    path = Path(path)
    ext = path.suffix.lower()
    if ext in IMAGE_EXTS:
        return ocr_image_to_text(path, lang=lang)
    if ext in PDF_EXTS:
        return pdf_to_text(path)
    raise ValueError(f"Unsupported file type: {path}")
