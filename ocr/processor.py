"""
OCR Processor - classifies uploads and extracts text from images via Gemini
"""
import io
from pathlib import Path
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

from schemas.chain_schemas import OcrLanguage, SourceKind
from utils.exceptions import InvalidFileType, OcrFailure, RemoteError
from utils.llm_client import llm_client
from utils.logger import logger


class OCRProcessor:
    """
    OCR processor backed by the hosted Gemini OCR model

    Supports:
    - Images (PNG, JPG, JPEG, WEBP) sent inline to the model
    - Plain text files (.txt, .md) which bypass OCR entirely
    """

    SUPPORTED_TEXT_EXTENSIONS = {'.txt', '.md'}
    SUPPORTED_TEXT_MIME_TYPES = {'text/plain', 'text/markdown', 'text/x-markdown'}
    SUPPORTED_IMAGE_EXTENSIONS = {
        '.png': 'image/png',
        '.jpg': 'image/jpeg',
        '.jpeg': 'image/jpeg',
        '.webp': 'image/webp',
    }
    SUPPORTED_IMAGE_MIME_TYPES = {'image/png', 'image/jpeg', 'image/webp'}

    UNSUPPORTED_MESSAGE = (
        "Unsupported file type. Please upload a text file (.txt, .md) "
        "or an image file (.png, .jpg, .webp)."
    )

    EXTRACTION_INSTRUCTION = (
        "Extract all text content from this image. "
        "Preserve formatting like paragraphs and lists where possible."
    )
    LANGUAGE_HINTS = {
        OcrLanguage.TRADITIONAL_CHINESE: (
            "The language in the image is primarily Traditional Chinese. "
            "Please provide the output in Traditional Chinese."
        ),
        OcrLanguage.ENGLISH: "The language in the image is primarily English.",
    }

    def detect_source_kind(self, file_name: Optional[str], mime_type: Optional[str] = None) -> SourceKind:
        """
        Detect whether an upload is text or image

        The file extension decides; the MIME type is only consulted when the
        extension is missing or unknown.

        Raises:
            InvalidFileType if neither identifies a supported type
        """
        extension = Path(file_name).suffix.lower() if file_name else ""

        if extension in self.SUPPORTED_TEXT_EXTENSIONS:
            return SourceKind.TEXT
        if extension in self.SUPPORTED_IMAGE_EXTENSIONS:
            return SourceKind.IMAGE

        mime = (mime_type or "").split(";")[0].strip().lower()
        if mime in self.SUPPORTED_TEXT_MIME_TYPES:
            return SourceKind.TEXT
        if mime in self.SUPPORTED_IMAGE_MIME_TYPES:
            return SourceKind.IMAGE

        logger.warning(f"Rejected upload: {file_name}", mime_type=mime_type)
        raise InvalidFileType(self.UNSUPPORTED_MESSAGE)

    def resolve_image_mime_type(self, file_name: Optional[str], mime_type: Optional[str] = None) -> str:
        """MIME type sent with the inline image: the extension's, else the declared one"""
        extension = Path(file_name).suffix.lower() if file_name else ""
        if extension in self.SUPPORTED_IMAGE_EXTENSIONS:
            return self.SUPPORTED_IMAGE_EXTENSIONS[extension]

        mime = (mime_type or "").split(";")[0].strip().lower()
        if mime in self.SUPPORTED_IMAGE_MIME_TYPES:
            return mime
        raise InvalidFileType(self.UNSUPPORTED_MESSAGE)

    def verify_image(self, image_bytes: bytes) -> Tuple[int, int]:
        """
        Check that the bytes decode as an image

        Returns:
            (width, height)

        Raises:
            InvalidFileType if Pillow cannot identify the image
        """
        try:
            with Image.open(io.BytesIO(image_bytes)) as image:
                image.verify()
                return image.size
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            logger.warning(f"Uploaded image could not be decoded: {e}")
            raise InvalidFileType(f"Uploaded image could not be decoded: {e}") from e

    def build_prompt(self, language: OcrLanguage) -> str:
        """Extraction instruction with the language hint appended"""
        return f"{self.EXTRACTION_INSTRUCTION} {self.LANGUAGE_HINTS[OcrLanguage(language)]}"

    def extract_text(self, image_bytes: bytes, mime_type: str, language: OcrLanguage) -> str:
        """
        Extract text from an image using the hosted OCR model

        Args:
            image_bytes: Raw image bytes
            mime_type: Image MIME type
            language: Language hint

        Returns:
            Extracted text

        Raises:
            OcrFailure if the remote call fails
        """
        prompt = self.build_prompt(language)

        try:
            logger.info("Performing OCR on image", mime_type=mime_type, language=OcrLanguage(language).value)
            response = llm_client.extract_image_text(image_bytes, mime_type, prompt)
        except RemoteError as e:
            logger.error(f"OCR failed: {e}")
            raise OcrFailure(
                f"An error occurred during OCR processing: {e}. "
                "Please ensure your API key is valid."
            ) from e

        text = response["content"]
        logger.info(f"OCR completed: extracted {len(text)} characters", latency=response.get("latency"))
        return text


# Global OCR processor instance
ocr_processor = OCRProcessor()
