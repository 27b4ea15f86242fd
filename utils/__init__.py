"""
Utility functions package
"""
from utils.logger import logger
from utils.llm_client import llm_client, LLMClient

__all__ = [
    "logger",
    "llm_client",
    "LLMClient",
]
