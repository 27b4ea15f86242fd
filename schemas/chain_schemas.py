"""
Pydantic schemas for the document chain
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class ModelId(str, Enum):
    """Hosted Gemini models an agent can run on"""
    GEMINI_FLASH = "gemini-2.5-flash"
    GEMINI_PRO = "gemini-2.5-pro"


class OcrLanguage(str, Enum):
    """Language hint appended to the OCR instruction"""
    ENGLISH = "english"
    TRADITIONAL_CHINESE = "traditional-chinese"


class SourceKind(str, Enum):
    """How the active document text was produced"""
    TEXT = "text"
    IMAGE = "image"


class StageStatus(str, Enum):
    """Per-stage execution state"""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"


class ChainStatus(str, Enum):
    """Global cursor state"""
    NOT_STARTED = "not_started"  # Execution screen not entered yet
    IDLE = "idle"
    STAGE_RUNNING = "stage_running"
    STAGE_READY = "stage_ready"  # Completed, awaiting manual advance
    ALL_COMPLETE = "all_complete"


# ==================== Chain State Schemas ====================

class Document(BaseModel):
    """The currently active document text"""
    text: str = ""
    file_name: Optional[str] = None
    source_kind: Optional[SourceKind] = None


class AgentDefinition(BaseModel):
    """A named prompt template plus generation parameters.

    temperature/top_p are deliberately not range-constrained; the UI clamps them.
    """
    name: str
    prompt_template: str
    model: ModelId
    temperature: float
    top_p: float


class StageResult(BaseModel):
    """Recorded execution of one stage. Empty output means not yet run."""
    input: str = ""
    output: str = ""
    duration_seconds: float = 0.0

    @property
    def is_done(self) -> bool:
        return self.output != ""


class ChainCursor(BaseModel):
    """Index of the stage eligible to run, and whether its call is outstanding"""
    position: int = 0
    running: bool = False


class ExecutionLogEntry(BaseModel):
    """Trace entry for one remote call attempt (OCR or stage execution)"""
    operation: str  # "ocr" or "stage"
    agent_name: Optional[str] = None
    stage_index: Optional[int] = None
    model: str
    latency_ms: float
    input_chars: int = 0
    output_chars: int = 0
    error_occurred: bool = False
    error_message: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)


# ==================== Snapshot Schema ====================

class SessionSnapshot(BaseModel):
    """Serialisable view of a processing session"""
    session_id: str
    document: Document
    agents: List[AgentDefinition]
    active_count: int
    results: List[StageResult]
    cursor: ChainCursor
    chain_status: ChainStatus
    stage_statuses: List[StageStatus]
    ocr_running: bool = False
    trace_log: List[ExecutionLogEntry] = Field(default_factory=list)
