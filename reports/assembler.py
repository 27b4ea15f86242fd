"""
Report Assembler - renders the document and completed stages as markdown
"""
from typing import List, Optional, Sequence

from schemas.chain_schemas import AgentDefinition, StageResult


REPORT_TITLE = "# Agentic AI Document Processing Report"
INPUT_PREVIEW_CHARS = 500
ELLIPSIS = "..."
DEFAULT_REPORT_STEM = "document"
REPORT_SUFFIX = "_processing_report.md"


def truncate_input(text: str, limit: int = INPUT_PREVIEW_CHARS) -> str:
    """First `limit` characters, with an ellipsis marker when anything was cut"""
    if len(text) > limit:
        return text[:limit] + ELLIPSIS
    return text


def assemble(
    document_text: str,
    agents: Sequence[AgentDefinition],
    results: Sequence[StageResult]
) -> str:
    """
    Build the processing report

    Stages whose output is empty never completed and are left out of the
    report entirely. The function is pure: identical arguments give
    identical text.

    Args:
        document_text: Original document text
        agents: Active agent definitions, in chain order
        results: Stage results aligned with `agents`

    Returns:
        Markdown report
    """
    parts: List[str] = [
        f"{REPORT_TITLE}\n\n",
        f"## 📄 Original Document/Text\n---\n{document_text}\n---\n\n",
    ]

    for idx, (agent, result) in enumerate(zip(agents, results)):
        if not result.is_done:
            continue
        parts.append(f"## 🤖 Agent {idx + 1}: {agent.name}\n\n")
        parts.append(f"### 📝 Prompt\n```\n{agent.prompt_template}\n```\n\n")
        parts.append(f"### 📥 Input (truncated)\n```\n{truncate_input(result.input)}\n```\n\n")
        parts.append(
            f"### 📤 Output (Execution Time: {result.duration_seconds:.2f}s)\n"
            f"---\n{result.output}\n---\n\n"
        )

    return "".join(parts)


def report_filename(file_name: Optional[str]) -> str:
    """<name up to its first dot>_processing_report.md, falling back to "document" for dotfiles"""
    stem = file_name.split(".")[0] if file_name else ""
    return f"{stem or DEFAULT_REPORT_STEM}{REPORT_SUFFIX}"
