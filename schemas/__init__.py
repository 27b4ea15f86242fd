"""
Pydantic schemas package
"""
from schemas.chain_schemas import (
    ModelId,
    OcrLanguage,
    SourceKind,
    StageStatus,
    ChainStatus,
    Document,
    AgentDefinition,
    StageResult,
    ChainCursor,
    ExecutionLogEntry,
    SessionSnapshot,
)

__all__ = [
    "ModelId",
    "OcrLanguage",
    "SourceKind",
    "StageStatus",
    "ChainStatus",
    "Document",
    "AgentDefinition",
    "StageResult",
    "ChainCursor",
    "ExecutionLogEntry",
    "SessionSnapshot",
]
