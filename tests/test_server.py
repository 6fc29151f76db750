"""Tests for noot/server.py — the summary and annotation endpoints (mocked LLM)."""

from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from noot.models import Config
from noot.prompts import ANNOTATION_SYSTEM_PROMPT, SUMMARY_SYSTEM_PROMPT
from noot.server import create_app

ENDPOINTS = ["/api/summary", "/api/annotate"]


# ---------------------------------------------------------------------------
# App construction
# ---------------------------------------------------------------------------


def test_create_app_builds_client_from_config():
    with patch("noot.server.create_client") as mock_create:
        mock_create.return_value = MagicMock(model="gpt-4o-mini")
        app = create_app(Config(api_key="sk-test"))
    mock_create.assert_called_once()
    assert app.state.llm is mock_create.return_value


def test_create_app_reads_config_from_env(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    monkeypatch.setenv("NOOT_MODEL", "env-model")
    with patch("noot.server.create_client") as mock_create:
        app = create_app()
    config = mock_create.call_args[0][0]
    assert config.api_key == "sk-env"
    assert config.model == "env-model"
    assert app.state.config is config


def test_health(api):
    response = api.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "model": "test-model"}


# ---------------------------------------------------------------------------
# Validation — 400
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("endpoint", ENDPOINTS)
@pytest.mark.parametrize("body", [{}, {"text": ""}, {"text": None}, {"text": 42}])
def test_missing_or_empty_text_is_400(api, mock_llm, endpoint, body):
    response = api.post(endpoint, json=body)
    assert response.status_code == 400
    assert response.json() == {"error": "Text is required"}
    mock_llm.complete.assert_not_called()


@pytest.mark.parametrize("endpoint", ENDPOINTS)
def test_whitespace_only_text_is_forwarded(api, mock_llm, endpoint):
    mock_llm.complete.return_value = MagicMock(text="A")
    response = api.post(endpoint, json={"text": "   "})
    assert response.status_code == 200
    _, user = mock_llm.complete.call_args[0]
    assert user.endswith("   ")


@pytest.mark.parametrize("endpoint", ENDPOINTS)
def test_malformed_json_is_400(api, endpoint):
    response = api.post(
        endpoint, content=b"{not json", headers={"Content-Type": "application/json"}
    )
    assert response.status_code == 400
    assert "error" in response.json()


@pytest.mark.parametrize("endpoint", ENDPOINTS)
def test_missing_body_is_400(api, endpoint):
    assert api.post(endpoint).status_code == 400


# ---------------------------------------------------------------------------
# Upstream failure — 500
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("endpoint", ENDPOINTS)
def test_upstream_failure_is_500_without_leaking_details(api, mock_llm, endpoint):
    mock_llm.complete.side_effect = RuntimeError("sk-secret quota exceeded")
    response = api.post(endpoint, json={"text": "some text"})
    assert response.status_code == 500
    assert response.json() == {"error": "Internal Server Error"}
    assert "sk-secret" not in response.text


@pytest.mark.parametrize("endpoint", ENDPOINTS)
def test_upstream_failure_is_logged(api, mock_llm, endpoint, caplog):
    mock_llm.complete.side_effect = RuntimeError("quota exceeded")
    with caplog.at_level("ERROR", logger="noot"):
        api.post(endpoint, json={"text": "some text"})
    assert "quota exceeded" in caplog.text


# ---------------------------------------------------------------------------
# /api/summary
# ---------------------------------------------------------------------------


def test_summary_is_trimmed(api, mock_llm):
    mock_llm.complete.return_value = MagicMock(text="\n  A short summary.  \n")
    response = api.post("/api/summary", json={"text": "Some document text."})
    assert response.status_code == 200
    assert response.json() == {"summary": "A short summary."}


def test_summary_sends_fixed_prompts(api, mock_llm):
    api.post("/api/summary", json={"text": "Some document text."})
    system, user = mock_llm.complete.call_args[0]
    assert system == SUMMARY_SYSTEM_PROMPT
    assert user.endswith("Some document text.")


def test_summary_respects_max_chars(mock_llm):
    app = create_app(Config(api_key="sk-test", max_chars=5), client=mock_llm)
    with TestClient(app) as api:
        api.post("/api/summary", json={"text": "abcdefghij"})
    _, user = mock_llm.complete.call_args[0]
    assert user.endswith("\n\nabcde")


# ---------------------------------------------------------------------------
# /api/annotate
# ---------------------------------------------------------------------------


def test_annotate_splits_lines(api, mock_llm):
    mock_llm.complete.return_value = MagicMock(text="A\nB\nC")
    response = api.post("/api/annotate", json={"text": "Some document text."})
    assert response.status_code == 200
    assert response.json() == {"annotations": ["A", "B", "C"]}


def test_annotate_drops_blank_lines(api, mock_llm):
    mock_llm.complete.return_value = MagicMock(text="\n- A\n\n- B\n")
    response = api.post("/api/annotate", json={"text": "Some document text."})
    assert response.json() == {"annotations": ["- A", "- B"]}


def test_annotate_sends_fixed_prompts(api, mock_llm):
    mock_llm.complete.return_value = MagicMock(text="A")
    api.post("/api/annotate", json={"text": "Some document text."})
    system, user = mock_llm.complete.call_args[0]
    assert system == ANNOTATION_SYSTEM_PROMPT
    assert user.startswith("Please provide annotations")
