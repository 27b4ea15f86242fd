"""
API Tests for the FastAPI backend (LLM calls mocked)
"""
import io
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from api.main import app
from utils.exceptions import RemoteError
from utils.llm_client import llm_client


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def session_id(client):
    response = client.post("/sessions")
    assert response.status_code == 201
    return response.json()["session_id"]


def _response(content: str) -> dict:
    return {
        "content": content,
        "provider": "gemini",
        "model": "gemini-2.5-pro",
        "latency": 0.1,
        "tokens": {"input": 10, "output": 5}
    }


def _upload_text(client, session_id, text="Hello world", name="notes.txt"):
    return client.post(
        f"/sessions/{session_id}/document/upload",
        files={"file": (name, text.encode("utf-8"), "text/plain")}
    )


# ==================== Health & Sessions ====================

def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_new_session_has_default_agents(client, session_id):
    snapshot = client.get(f"/sessions/{session_id}").json()
    assert len(snapshot["agents"]) == 5
    assert snapshot["chain_status"] == "not_started"
    assert snapshot["results"] == []


def test_unknown_session_is_404(client):
    response = client.get("/sessions/does-not-exist")
    assert response.status_code == 404
    assert response.json()["error"] == "SessionNotFound"


def test_delete_session(client, session_id):
    assert client.delete(f"/sessions/{session_id}").status_code == 204
    assert client.get(f"/sessions/{session_id}").status_code == 404


# ==================== Document ====================

def test_text_upload_sets_document(client, session_id):
    with patch.object(llm_client, "extract_image_text") as mock_ocr:
        response = _upload_text(client, session_id, "a\nb\nc")
    assert response.status_code == 200
    assert response.json()["document"]["text"] == "a\nb\nc"
    mock_ocr.assert_not_called()


def test_unsupported_upload_is_415(client, session_id):
    response = client.post(
        f"/sessions/{session_id}/document/upload",
        files={"file": ("report.pdf", b"%PDF-1.4", "application/pdf")}
    )
    assert response.status_code == 415
    assert response.json()["error"] == "InvalidFileType"


def test_image_upload_ocr_failure_is_502(client, session_id):
    buffer = io.BytesIO()
    Image.new("RGB", (4, 4)).save(buffer, format="PNG")

    with patch.object(llm_client, "extract_image_text", side_effect=RemoteError("bad key")):
        response = client.post(
            f"/sessions/{session_id}/document/upload",
            files={"file": ("scan.png", buffer.getvalue(), "image/png")},
            data={"ocr_language": "english"}
        )
    assert response.status_code == 502
    assert response.json()["error"] == "OcrFailure"
    assert client.get(f"/sessions/{session_id}").json()["document"]["text"] == ""


def test_edit_document(client, session_id):
    _upload_text(client, session_id)
    response = client.put(f"/sessions/{session_id}/document", json={"text": "Edited"})
    assert response.json()["document"]["text"] == "Edited"


# ==================== Agents ====================

def test_list_active_agents(client, session_id):
    response = client.get(f"/sessions/{session_id}/agents", params={"count": 2})
    assert [a["name"] for a in response.json()] == ["文件摘要器", "關鍵詞提取器"]
    assert client.get(f"/sessions/{session_id}/agents", params={"count": 0}).status_code == 422


def test_update_agent(client, session_id):
    response = client.patch(f"/sessions/{session_id}/agents/0", json={"field": "temperature", "value": 0.1})
    assert response.status_code == 200
    assert response.json()["temperature"] == 0.1

    response = client.patch(f"/sessions/{session_id}/agents/0", json={"field": "model", "value": "unknown"})
    assert response.status_code == 422


# ==================== Chain ====================

def test_full_chain_and_report(client, session_id):
    _upload_text(client, session_id, "Hello world", name="meeting.txt")
    snapshot = client.post(f"/sessions/{session_id}/chain/start", json={"agent_count": 2}).json()
    assert snapshot["chain_status"] == "idle"

    with patch.object(llm_client, "generate", side_effect=[_response("Summary"), _response("Keywords")]):
        snapshot = client.post(f"/sessions/{session_id}/chain/stages/0/run").json()
        assert snapshot["results"][0]["input"] == "Hello world"
        assert snapshot["chain_status"] == "stage_ready"

        assert client.post(f"/sessions/{session_id}/chain/stages/1/run").status_code == 409

        snapshot = client.post(f"/sessions/{session_id}/chain/advance").json()
        assert snapshot["cursor"]["position"] == 1

        snapshot = client.post(f"/sessions/{session_id}/chain/stages/1/run").json()
        assert snapshot["results"][1]["input"] == "Summary"
        assert snapshot["chain_status"] == "all_complete"

    report = client.get(f"/sessions/{session_id}/report").json()
    assert report["filename"] == "meeting_processing_report.md"
    assert "## 🤖 Agent 2: 關鍵詞提取器" in report["content"]

    download = client.get(f"/sessions/{session_id}/report/download")
    assert download.status_code == 200
    assert download.headers["content-type"].startswith("text/markdown")
    assert "meeting_processing_report.md" in download.headers["content-disposition"]
    assert download.content.decode("utf-8") == report["content"]


def test_failed_stage_is_502_and_retryable(client, session_id):
    _upload_text(client, session_id)
    client.post(f"/sessions/{session_id}/chain/start", json={"agent_count": 1})

    with patch.object(llm_client, "generate", side_effect=RemoteError("timeout")):
        response = client.post(f"/sessions/{session_id}/chain/stages/0/run")
    assert response.status_code == 502
    assert response.json()["agent_name"] == "文件摘要器"

    snapshot = client.get(f"/sessions/{session_id}").json()
    assert snapshot["results"][0]["output"] == ""
    assert snapshot["cursor"]["position"] == 0

    with patch.object(llm_client, "generate", return_value=_response("Done")):
        snapshot = client.post(f"/sessions/{session_id}/chain/stages/0/run").json()
    assert snapshot["chain_status"] == "all_complete"


def test_advance_without_completed_stage_is_409(client, session_id):
    client.post(f"/sessions/{session_id}/chain/start", json={"agent_count": 2})
    assert client.post(f"/sessions/{session_id}/chain/advance").status_code == 409


def test_start_with_invalid_count_is_422(client, session_id):
    response = client.post(f"/sessions/{session_id}/chain/start", json={"agent_count": 9})
    assert response.status_code == 422
    assert response.json()["error"] == "InvalidSelection"


def test_document_edit_after_stage_zero_is_409(client, session_id):
    _upload_text(client, session_id, "original")
    client.post(f"/sessions/{session_id}/chain/start", json={"agent_count": 2})
    with patch.object(llm_client, "generate", return_value=_response("Summary")):
        client.post(f"/sessions/{session_id}/chain/stages/0/run")

    response = client.put(f"/sessions/{session_id}/document", json={"text": "rewritten later"})
    assert response.status_code == 409
    assert response.json()["error"] == "ChainStateError"
    assert _upload_text(client, session_id, "replacement").status_code == 409

    report = client.get(f"/sessions/{session_id}/report").json()["content"]
    assert "rewritten later" not in report
    assert "replacement" not in report
