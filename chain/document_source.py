"""
Document Source - holds the active document text
"""
import time
from typing import TYPE_CHECKING, Optional

from config import settings
from ocr.processor import ocr_processor
from schemas.chain_schemas import ExecutionLogEntry, OcrLanguage, SourceKind
from utils.exceptions import ChainStateError, OcrFailure, OperationInProgress
from utils.logger import logger

if TYPE_CHECKING:
    from chain.session import ProcessingSession


class DocumentSource:
    """
    Produces Document.text from a text upload, an OCR call or a direct edit.

    Every write shares the session's busy lock with stage execution, so at
    most one remote call is outstanding per session and the text cannot
    change underneath a running stage. Once stage 0 has consumed the text
    it is frozen until the chain is started again.
    """

    def __init__(self, session: "ProcessingSession"):
        self.session = session

    @property
    def text(self) -> str:
        return self.session.document.text

    def _acquire_for_write(self) -> None:
        session = self.session
        if not session.busy_lock.acquire(blocking=False):
            raise OperationInProgress("Another remote call is in progress")

        if session.chain.started and session.results[0].is_done:
            session.busy_lock.release()
            raise ChainStateError(
                "Document was already used as stage 0 input; start the chain again to replace it"
            )

    def _write(self, content: str, source_kind: SourceKind, file_name: Optional[str] = None) -> None:
        document = self.session.document
        document.text = content
        document.source_kind = source_kind
        document.file_name = file_name

    def ingest_text(self, content: str, file_name: Optional[str] = None) -> None:
        """Replace the document text verbatim"""
        self._acquire_for_write()
        try:
            self._write(content, SourceKind.TEXT, file_name)
        finally:
            self.session.busy_lock.release()
        logger.info(f"Ingested text document ({len(content)} characters)")

    def edit_text(self, content: str) -> None:
        """Direct overwrite, used for corrections in the preview step"""
        self._acquire_for_write()
        try:
            self.session.document.text = content
        finally:
            self.session.busy_lock.release()
        logger.info(f"Document edited ({len(content)} characters)")

    def ingest_via_ocr(
        self,
        image_bytes: bytes,
        mime_type: str,
        language: OcrLanguage,
        file_name: Optional[str] = None
    ) -> str:
        """
        OCR an image and store the result as the document text

        Raises:
            OperationInProgress if another remote call is outstanding
            ChainStateError if stage 0 already consumed the document
            OcrFailure if the remote call fails; the document is unchanged
        """
        session = self.session
        self._acquire_for_write()

        session.ocr_running = True
        start_time = time.time()
        try:
            try:
                text = ocr_processor.extract_text(image_bytes, mime_type, language)
            except OcrFailure as e:
                session.trace_log.append(ExecutionLogEntry(
                    operation="ocr",
                    model=settings.OCR_MODEL,
                    latency_ms=(time.time() - start_time) * 1000,
                    input_chars=len(image_bytes),
                    error_occurred=True,
                    error_message=str(e),
                ))
                raise

            self._write(text, SourceKind.IMAGE, file_name)
            session.trace_log.append(ExecutionLogEntry(
                operation="ocr",
                model=settings.OCR_MODEL,
                latency_ms=(time.time() - start_time) * 1000,
                input_chars=len(image_bytes),
                output_chars=len(text),
            ))
        finally:
            session.ocr_running = False
            session.busy_lock.release()
        return text

    def ingest_upload(
        self,
        file_name: Optional[str],
        data: bytes,
        mime_type: Optional[str] = None,
        language: OcrLanguage = OcrLanguage.TRADITIONAL_CHINESE
    ) -> SourceKind:
        """
        Ingest an uploaded file: text is decoded directly, images go through OCR

        Raises:
            InvalidFileType for unsupported or undecodable uploads (no state change)
            ChainStateError, OperationInProgress if the document cannot be replaced now
            OcrFailure from the OCR path
        """
        kind = ocr_processor.detect_source_kind(file_name, mime_type)

        if kind == SourceKind.TEXT:
            self.ingest_text(data.decode("utf-8", errors="replace"), file_name)
            return kind

        image_mime = ocr_processor.resolve_image_mime_type(file_name, mime_type)
        width, height = ocr_processor.verify_image(data)
        logger.info(f"Processing image upload: {file_name}", width=width, height=height)

        self.ingest_via_ocr(data, image_mime, language, file_name)
        return kind
