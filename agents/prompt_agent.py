"""
Prompt Agent - executes one agent definition against an input text
"""
from typing import Dict, Any

from schemas.chain_schemas import AgentDefinition
from utils.llm_client import llm_client
from utils.logger import logger


class PromptAgent:
    """
    Runs a user-configured prompt template on the hosted LLM

    The prompt sent to the model is a fixed instruction-following preamble
    followed by two labelled sections: the agent's instruction and the
    document to work on.
    """

    PROMPT_TEMPLATE = (
        "You are an expert assistant. Follow the user's instruction precisely. "
        "Here is the instruction:\n\n"
        "[INSTRUCTION]: {instruction}\n\n"
        "Here is the document/text to work on:\n\n"
        "[DOCUMENT]:\n{document}"
    )

    def __init__(self):
        self.name = "PromptAgent"
        logger.info(f"{self.name} initialized")

    def build_prompt(self, instruction: str, document: str) -> str:
        return self.PROMPT_TEMPLATE.format(instruction=instruction, document=document)

    def execute(self, definition: AgentDefinition, input_text: str) -> Dict[str, Any]:
        """
        Execute an agent

        Args:
            definition: Agent prompt template and generation parameters
            input_text: Document text or the previous stage's output

        Returns:
            LLM response dict (content, model, latency, tokens)

        Raises:
            RemoteError if the hosted call fails
        """
        prompt = self.build_prompt(definition.prompt_template, input_text)
        logger.info(
            f"Executing agent: {definition.name}",
            model=definition.model.value,
            input_chars=len(input_text)
        )
        return llm_client.generate(
            prompt,
            model=definition.model.value,
            temperature=definition.temperature,
            top_p=definition.top_p
        )


prompt_agent = PromptAgent()
