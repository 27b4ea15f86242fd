"""
Processing session - explicit owner of all per-user chain state
"""
import threading
import uuid
from typing import Dict, List, Optional

from agents.registry import AgentRegistry
from chain.document_source import DocumentSource
from chain.orchestrator import ChainOrchestrator
from schemas.chain_schemas import (
    ChainCursor,
    Document,
    ExecutionLogEntry,
    SessionSnapshot,
    StageResult,
)
from utils.exceptions import SessionNotFound
from utils.logger import logger


class ProcessingSession:
    """
    State of one user session: document, agent registry, stage results,
    cursor and trace log. Nothing is persisted; the session lives as long
    as the process (or the session store entry).
    """

    def __init__(self, session_id: Optional[str] = None, registry: Optional[AgentRegistry] = None):
        self.session_id = session_id or uuid.uuid4().hex
        self.document = Document()
        self.registry = registry or AgentRegistry()
        self.active_count = len(self.registry)
        self.results: List[StageResult] = []
        self.cursor = ChainCursor()
        self.ocr_running = False
        self.trace_log: List[ExecutionLogEntry] = []

        # Single-flight guard shared by OCR and stage execution
        self.busy_lock = threading.Lock()

        self.source = DocumentSource(self)
        self.chain = ChainOrchestrator(self)

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            session_id=self.session_id,
            document=self.document.model_copy(),
            agents=self.registry.definitions,
            active_count=self.active_count,
            results=[result.model_copy() for result in self.results],
            cursor=self.cursor.model_copy(),
            chain_status=self.chain.status,
            stage_statuses=[self.chain.stage_status(i) for i in range(len(self.results))],
            ocr_running=self.ocr_running,
            trace_log=list(self.trace_log),
        )


class SessionStore:
    """In-memory registry of live sessions keyed by id"""

    def __init__(self):
        self._sessions: Dict[str, ProcessingSession] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self) -> ProcessingSession:
        session = ProcessingSession()
        with self._lock:
            self._sessions[session.session_id] = session
        logger.info(f"Session created: {session.session_id}")
        return session

    def get(self, session_id: str) -> ProcessingSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(f"Session not found: {session_id}")
        return session

    def delete(self, session_id: str) -> None:
        with self._lock:
            if self._sessions.pop(session_id, None) is None:
                raise SessionNotFound(f"Session not found: {session_id}")
        logger.info(f"Session deleted: {session_id}")


# Global session store instance
session_store = SessionStore()
