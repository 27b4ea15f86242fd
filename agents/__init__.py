"""
Agents package - agent registry and prompt execution
"""
from agents.registry import AgentRegistry, DEFAULT_AGENTS
from agents.prompt_agent import PromptAgent, prompt_agent

__all__ = [
    "AgentRegistry",
    "DEFAULT_AGENTS",
    "PromptAgent",
    "prompt_agent",
]
