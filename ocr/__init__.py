"""
OCR package - upload classification and image text extraction
"""
from ocr.processor import OCRProcessor, ocr_processor

__all__ = [
    "OCRProcessor",
    "ocr_processor",
]
