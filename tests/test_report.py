"""
Unit Tests for the Report Assembler
"""
import pytest

from reports.assembler import assemble, report_filename, truncate_input
from schemas.chain_schemas import AgentDefinition, ModelId, StageResult


@pytest.fixture
def agents():
    return [
        AgentDefinition(name="Summariser", prompt_template="Summarise.", model=ModelId.GEMINI_PRO,
                        temperature=0.7, top_p=0.9),
        AgentDefinition(name="Keywords", prompt_template="List keywords.", model=ModelId.GEMINI_FLASH,
                        temperature=0.5, top_p=0.9),
        AgentDefinition(name="Entities", prompt_template="Find entities.", model=ModelId.GEMINI_FLASH,
                        temperature=0.4, top_p=0.9),
    ]


def test_report_layout_for_completed_stage(agents):
    results = [StageResult(input="Doc text", output="A summary", duration_seconds=1.234)]
    report = assemble("Doc text", agents[:1], results)

    assert report == (
        "# Agentic AI Document Processing Report\n\n"
        "## 📄 Original Document/Text\n---\nDoc text\n---\n\n"
        "## 🤖 Agent 1: Summariser\n\n"
        "### 📝 Prompt\n```\nSummarise.\n```\n\n"
        "### 📥 Input (truncated)\n```\nDoc text\n```\n\n"
        "### 📤 Output (Execution Time: 1.23s)\n---\nA summary\n---\n\n"
    )


def test_incomplete_stages_are_omitted(agents):
    results = [
        StageResult(input="Doc", output="first", duration_seconds=1.0),
        StageResult(),
        StageResult(input="ignored", output="third", duration_seconds=2.0),
    ]
    report = assemble("Doc", agents, results)
    assert "Agent 1: Summariser" in report
    assert "Keywords" not in report
    assert "Agent 3: Entities" in report


def test_report_with_no_completed_stages_has_only_document(agents):
    report = assemble("Just the document", agents, [StageResult(), StageResult(), StageResult()])
    assert "Just the document" in report
    assert "🤖" not in report


def test_long_input_truncated_to_500_characters(agents):
    long_input = "a" * 500 + "b" * 20
    results = [StageResult(input=long_input, output="out", duration_seconds=0.5)]
    report = assemble("Doc", agents[:1], results)
    assert "```\n" + "a" * 500 + "...\n```" in report
    assert "b" not in report.split("### 📥 Input (truncated)")[1].split("### 📤")[0]


def test_input_at_limit_has_no_ellipsis():
    assert truncate_input("x" * 500) == "x" * 500
    assert truncate_input("x" * 501) == "x" * 500 + "..."
    assert truncate_input("") == ""


def test_duration_formatted_to_two_decimals(agents):
    results = [StageResult(input="Doc", output="out", duration_seconds=12.0)]
    assert "(Execution Time: 12.00s)" in assemble("Doc", agents[:1], results)


def test_assemble_is_deterministic(agents):
    results = [
        StageResult(input="Doc", output="first", duration_seconds=1.0),
        StageResult(input="first", output="second", duration_seconds=0.25),
    ]
    assert assemble("Doc", agents[:2], results) == assemble("Doc", agents[:2], results)


@pytest.mark.parametrize("file_name, expected", [
    ("meeting_notes.txt", "meeting_notes_processing_report.md"),
    ("scan.jpeg", "scan_processing_report.md"),
    ("README", "README_processing_report.md"),
    ("minutes.2024.txt", "minutes_processing_report.md"),
    (".env", "document_processing_report.md"),
    (None, "document_processing_report.md"),
    ("", "document_processing_report.md"),
])
def test_report_filename(file_name, expected):
    assert report_filename(file_name) == expected
