"""
FastAPI Server for the Document Chain Processor
"""
import asyncio
from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from chain.session import session_store
from config import settings
from reports.assembler import assemble, report_filename
from schemas.chain_schemas import AgentDefinition, OcrLanguage, SessionSnapshot
from utils.exceptions import (
    AgentExecutionFailure,
    ChainStateError,
    InvalidFileType,
    InvalidSelection,
    OcrFailure,
    OperationInProgress,
    ProcessorError,
    SessionNotFound,
)
from utils.llm_client import llm_client
from utils.logger import logger


# Request/Response models
class DocumentUpdateRequest(BaseModel):
    """Direct edit of the document text"""
    text: str


class AgentUpdateRequest(BaseModel):
    """Replace one field of one agent"""
    field: str = Field(..., description="name, prompt_template, model, temperature or top_p")
    value: Any


class ChainStartRequest(BaseModel):
    """Enter the execution step with the first N agents"""
    agent_count: int = Field(..., description="Number of active agents (1..registry size)")


class ReportResponse(BaseModel):
    """Assembled report and its download filename"""
    filename: str
    content: str


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    version: str
    timestamp: str
    llm_available: bool


ERROR_STATUS_CODES = {
    SessionNotFound: 404,
    InvalidFileType: 415,
    InvalidSelection: 422,
    ChainStateError: 409,
    OperationInProgress: 409,
    OcrFailure: 502,
    AgentExecutionFailure: 502,
}


# Create FastAPI app
app = FastAPI(
    title="Agentic Document Chain Processor",
    description="Sequential prompt-agent chain over uploaded documents with Gemini",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ProcessorError)
async def processor_error_handler(request: Request, exc: ProcessorError):
    """Map the error taxonomy onto HTTP status codes"""
    status_code = ERROR_STATUS_CODES.get(type(exc), 500)
    body: Dict[str, Any] = {"error": type(exc).__name__, "detail": str(exc)}
    if isinstance(exc, AgentExecutionFailure):
        body["agent_name"] = exc.agent_name
    logger.warning(f"API: {request.method} {request.url.path} failed", error=body["error"], status=status_code)
    return JSONResponse(status_code=status_code, content=body)


@app.on_event("startup")
async def startup_event():
    """Initialize on startup"""
    logger.info("FastAPI server starting up", llm_available=llm_client.is_available())


@app.get("/", response_model=Dict[str, str])
async def root():
    """Root endpoint"""
    return {
        "service": "Agentic Document Chain Processor",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health"
    }


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint"""
    return HealthResponse(
        status="healthy",
        version="1.0.0",
        timestamp=datetime.utcnow().isoformat(),
        llm_available=llm_client.is_available()
    )


# ==================== Sessions ====================

@app.post("/sessions", response_model=SessionSnapshot, status_code=201)
async def create_session():
    """Create a session with the default agent registry"""
    return session_store.create().snapshot()


@app.get("/sessions/{session_id}", response_model=SessionSnapshot)
async def get_session(session_id: str):
    return session_store.get(session_id).snapshot()


@app.delete("/sessions/{session_id}", status_code=204)
async def delete_session(session_id: str):
    session_store.delete(session_id)
    return Response(status_code=204)


# ==================== Document Source ====================

@app.post("/sessions/{session_id}/document/upload", response_model=SessionSnapshot)
async def upload_document(
    session_id: str,
    file: UploadFile = File(...),
    ocr_language: OcrLanguage = Form(OcrLanguage.TRADITIONAL_CHINESE)
):
    """
    Upload a text or image file

    Text files become the document verbatim; images are sent to OCR.
    The OCR call is awaited without a deadline.
    """
    session = session_store.get(session_id)
    contents = await file.read()
    logger.info(f"API: Uploading file: {file.filename}", content_type=file.content_type, size=len(contents))

    loop = asyncio.get_running_loop()
    await loop.run_in_executor(
        None,
        session.source.ingest_upload,
        file.filename,
        contents,
        file.content_type,
        ocr_language
    )
    return session.snapshot()


@app.put("/sessions/{session_id}/document", response_model=SessionSnapshot)
async def update_document(session_id: str, request: DocumentUpdateRequest):
    """Overwrite the document text (preview edits)"""
    session = session_store.get(session_id)
    session.source.edit_text(request.text)
    return session.snapshot()


# ==================== Agent Registry ====================

@app.get("/sessions/{session_id}/agents", response_model=List[AgentDefinition])
async def list_agents(session_id: str, count: Optional[int] = None):
    """All agents, or the first `count` active ones"""
    registry = session_store.get(session_id).registry
    if count is None:
        return registry.definitions
    return registry.list_active(count)


@app.patch("/sessions/{session_id}/agents/{index}", response_model=AgentDefinition)
async def update_agent(session_id: str, index: int, request: AgentUpdateRequest):
    registry = session_store.get(session_id).registry
    return registry.update(index, request.field, request.value)


# ==================== Chain ====================

@app.post("/sessions/{session_id}/chain/start", response_model=SessionSnapshot)
async def start_chain(session_id: str, request: ChainStartRequest):
    session = session_store.get(session_id)
    session.chain.start(request.agent_count)
    return session.snapshot()


@app.post("/sessions/{session_id}/chain/stages/{index}/run", response_model=SessionSnapshot)
async def run_stage(session_id: str, index: int):
    """Run the stage under the cursor; awaited without a deadline"""
    session = session_store.get(session_id)
    loop = asyncio.get_running_loop()
    await loop.run_in_executor(None, session.chain.run_stage, index)
    return session.snapshot()


@app.post("/sessions/{session_id}/chain/advance", response_model=SessionSnapshot)
async def advance_chain(session_id: str):
    session = session_store.get(session_id)
    session.chain.advance()
    return session.snapshot()


# ==================== Report ====================

def _build_report(session_id: str) -> ReportResponse:
    session = session_store.get(session_id)
    count = len(session.results) or session.active_count
    content = assemble(
        session.document.text,
        session.registry.list_active(count),
        session.results
    )
    return ReportResponse(filename=report_filename(session.document.file_name), content=content)


@app.get("/sessions/{session_id}/report", response_model=ReportResponse)
async def get_report(session_id: str):
    return _build_report(session_id)


@app.get("/sessions/{session_id}/report/download")
async def download_report(session_id: str):
    """Report as a markdown attachment"""
    report = _build_report(session_id)
    return Response(
        content=report.content.encode("utf-8"),
        media_type="text/markdown; charset=utf-8",
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(report.filename)}"}
    )


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting FastAPI server on {settings.API_HOST}:{settings.API_PORT}")

    uvicorn.run(
        "api.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.API_RELOAD,
        log_level=settings.LOG_LEVEL.lower()
    )
