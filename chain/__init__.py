"""
Chain package - document source, orchestrator and session state
"""
from chain.document_source import DocumentSource
from chain.orchestrator import ChainOrchestrator
from chain.session import ProcessingSession, SessionStore, session_store

__all__ = [
    "DocumentSource",
    "ChainOrchestrator",
    "ProcessingSession",
    "SessionStore",
    "session_store",
]
