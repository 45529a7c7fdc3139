"""Shared fixtures."""

import json
import os
from unittest.mock import MagicMock

# keep the CLI's import-time logging setup on the console
os.environ.setdefault("LOG_FILE", "")

import pytest

from comment_insights.config.settings import Settings
from comment_insights.models.schemas import StoredRecord
from comment_insights.services.result_store import ResultStore


@pytest.fixture
def results_path(tmp_path):
    return tmp_path / "data" / "results.json"


@pytest.fixture
def settings(results_path):
    return Settings(
        gemini_api_key="test-key",
        results_path=str(results_path),
        log_file="",
    )


@pytest.fixture
def store(results_path):
    return ResultStore(results_path)


@pytest.fixture
def make_record():
    def _make(item_id, **overrides):
        data = {
            "id": item_id,
            "email": "someone@example.com",
            "source": "JSONPlaceholder Comments",
            "original": f"body {item_id}",
            "analysis": f"summary {item_id}",
            "sentiment": "positive",
            "stored": True,
            "timestamp": "2026-01-01T00:00:00.000Z",
        }
        data.update(overrides)
        return StoredRecord(**data)

    return _make


def http_response(status_code=200, payload=None, reason="OK", text=None, content=None):
    """Stand-in for requests.Response with the attributes the services read."""
    r = MagicMock()
    r.status_code = status_code
    r.ok = 200 <= status_code < 400
    r.reason = reason
    if isinstance(payload, Exception):
        r.json.side_effect = payload
    else:
        r.json.return_value = payload
    r.text = text if text is not None else ""
    if content is None:
        content = b"not json" if isinstance(payload, Exception) else json.dumps(payload).encode("utf-8")
    r.iter_content.side_effect = lambda chunk_size=1: (
        content[i:i + chunk_size] for i in range(0, len(content), chunk_size)
    )
    r.__enter__.return_value = r
    r.__exit__.return_value = False
    return r


@pytest.fixture(name="http_response")
def http_response_fixture():
    return http_response
