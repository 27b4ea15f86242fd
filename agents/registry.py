"""
Agent Registry - ordered, user-editable set of prompt agents
"""
from typing import Any, List

from pydantic import ValidationError

from schemas.chain_schemas import AgentDefinition, ModelId
from utils.exceptions import InvalidSelection
from utils.logger import logger


DEFAULT_AGENTS: List[AgentDefinition] = [
    AgentDefinition(
        name="文件摘要器",
        prompt_template="請提供這份文件的簡要摘要，包含主要重點。",
        model=ModelId.GEMINI_PRO,
        temperature=0.7,
        top_p=0.9,
    ),
    AgentDefinition(
        name="關鍵詞提取器",
        prompt_template="從文件中提取最重要的關鍵詞和術語。",
        model=ModelId.GEMINI_FLASH,
        temperature=0.5,
        top_p=0.9,
    ),
    AgentDefinition(
        name="情感分析器",
        prompt_template="分析文件的整體情感傾向和語氣。",
        model=ModelId.GEMINI_PRO,
        temperature=0.6,
        top_p=0.9,
    ),
    AgentDefinition(
        name="實體識別器",
        prompt_template="識別文件中的所有命名實體（人名、地名、組織名）。",
        model=ModelId.GEMINI_FLASH,
        temperature=0.4,
        top_p=0.9,
    ),
    AgentDefinition(
        name="行動項目提取器",
        prompt_template="列出文件中提到的所有行動項目和待辦事項。",
        model=ModelId.GEMINI_PRO,
        temperature=0.7,
        top_p=0.9,
    ),
]


class AgentRegistry:
    """
    Ordered agent definitions; registry order is execution order.

    Entries are edited in place and truncated via the active count. There
    is no removal or reordering. Temperature and top-p are passed through
    without range checks; clamping is the caller's job.
    """

    EDITABLE_FIELDS = set(AgentDefinition.model_fields)

    def __init__(self, definitions: List[AgentDefinition] = None):
        source = definitions if definitions is not None else DEFAULT_AGENTS
        self._agents = [agent.model_copy() for agent in source]

    def __len__(self) -> int:
        return len(self._agents)

    @property
    def definitions(self) -> List[AgentDefinition]:
        return list(self._agents)

    def get(self, index: int) -> AgentDefinition:
        if not 0 <= index < len(self._agents):
            raise InvalidSelection(f"Agent index {index} out of range [0, {len(self._agents) - 1}]")
        return self._agents[index]

    def list_active(self, count: int) -> List[AgentDefinition]:
        """
        Return the first `count` agents in order

        Raises:
            InvalidSelection if count is outside [1, len(registry)]
        """
        if count <= 0 or count > len(self._agents):
            raise InvalidSelection(f"Agent count must be between 1 and {len(self._agents)}, got {count}")
        return self._agents[:count]

    def update(self, index: int, field: str, value: Any) -> AgentDefinition:
        """
        Replace one field of one agent

        Raises:
            InvalidSelection for an unknown index or field, or a value
            of the wrong type (e.g. an unknown model id)
        """
        current = self.get(index)
        if field not in self.EDITABLE_FIELDS:
            raise InvalidSelection(f"Unknown agent field: {field}")

        try:
            updated = AgentDefinition(**{**current.model_dump(), field: value})
        except ValidationError as e:
            raise InvalidSelection(f"Invalid value for {field}: {e.errors()[0]['msg']}") from e

        self._agents[index] = updated
        logger.info(f"Agent {index} updated", agent=updated.name, field=field)
        return updated
