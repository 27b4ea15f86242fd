"""
Unit Tests for the Agent Registry and Prompt Agent
"""
from unittest.mock import patch

import pytest

from agents import AgentRegistry, DEFAULT_AGENTS, prompt_agent
from schemas.chain_schemas import ModelId
from utils.exceptions import InvalidSelection
from utils.llm_client import llm_client


# ==================== Agent Registry Tests ====================

@pytest.mark.parametrize("count", range(1, len(DEFAULT_AGENTS) + 1))
def test_list_active_returns_prefix_in_order(count):
    registry = AgentRegistry()
    active = registry.list_active(count)
    assert [a.name for a in active] == [a.name for a in DEFAULT_AGENTS[:count]]


@pytest.mark.parametrize("count", [0, -3, len(DEFAULT_AGENTS) + 1])
def test_list_active_rejects_out_of_range(count):
    with pytest.raises(InvalidSelection):
        AgentRegistry().list_active(count)


def test_default_registry_contents():
    registry = AgentRegistry()
    assert len(registry) == 5
    assert registry.get(0).name == "文件摘要器"
    assert registry.get(1).model == ModelId.GEMINI_FLASH
    assert registry.get(4).prompt_template == "列出文件中提到的所有行動項目和待辦事項。"


def test_update_replaces_single_field():
    registry = AgentRegistry()
    updated = registry.update(2, "prompt_template", "Summarise in one line.")
    assert updated.prompt_template == "Summarise in one line."
    assert updated.name == "情感分析器"
    assert registry.get(2) == updated


def test_update_model_accepts_model_id_string():
    registry = AgentRegistry()
    registry.update(0, "model", "gemini-2.5-flash")
    assert registry.get(0).model == ModelId.GEMINI_FLASH


def test_update_does_not_clamp_sampling_parameters():
    """Out-of-range temperature/top-p are accepted as given"""
    registry = AgentRegistry()
    registry.update(0, "temperature", 1.7)
    registry.update(0, "top_p", -0.2)
    assert registry.get(0).temperature == 1.7
    assert registry.get(0).top_p == -0.2


def test_update_accepts_empty_prompt():
    registry = AgentRegistry()
    registry.update(1, "prompt_template", "")
    assert registry.get(1).prompt_template == ""


@pytest.mark.parametrize("index, field, value", [
    (5, "temperature", 0.5),
    (-1, "temperature", 0.5),
    (0, "color", "red"),
    (0, "model", "gpt-4"),
    (0, "temperature", "warm"),
])
def test_update_rejects_invalid_selection(index, field, value):
    registry = AgentRegistry()
    before = registry.definitions
    with pytest.raises(InvalidSelection):
        registry.update(index, field, value)
    assert registry.definitions == before


def test_edits_do_not_leak_into_defaults_or_other_registries():
    first = AgentRegistry()
    first.update(0, "name", "Renamed")
    assert DEFAULT_AGENTS[0].name == "文件摘要器"
    assert AgentRegistry().get(0).name == "文件摘要器"


# ==================== Prompt Agent Tests ====================

def test_prompt_has_instruction_and_document_sections():
    prompt = prompt_agent.build_prompt("List the keywords.", "Some text")
    assert prompt.startswith("You are an expert assistant. Follow the user's instruction precisely.")
    assert "[INSTRUCTION]: List the keywords.\n\n" in prompt
    assert prompt.endswith("[DOCUMENT]:\nSome text")


def test_prompt_agent_passes_parameters_through():
    definition = AgentRegistry().get(1)
    mock_response = {
        "content": "keywords",
        "provider": "gemini",
        "model": "gemini-2.5-flash",
        "latency": 0.2,
        "tokens": {"input": 20, "output": 3}
    }
    with patch.object(llm_client, "generate", return_value=mock_response) as mock_generate:
        response = prompt_agent.execute(definition, "input text")

    assert response["content"] == "keywords"
    mock_generate.assert_called_once_with(
        prompt_agent.build_prompt(definition.prompt_template, "input text"),
        model="gemini-2.5-flash",
        temperature=0.5,
        top_p=0.9
    )
