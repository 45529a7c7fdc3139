"""Tests for the comment source fetcher."""

from unittest.mock import patch

import pytest
import requests

from comment_insights.models.schemas import SourceItem
from comment_insights.services.comment_source import fetch_comments
from comment_insights.services.errors import FetchTimeoutError, UpstreamError

GET = "comment_insights.services.comment_source.requests.get"
MONOTONIC = "comment_insights.services.comment_source.time.monotonic"


def _comments(n):
    return [{"postId": 1, "id": i, "name": f"n{i}", "email": "a@b.c", "body": f"body {i}"} for i in range(1, n + 1)]


class TestFetchComments:
    @patch(GET)
    def test_truncates_to_max_items_in_source_order(self, mock_get, settings, http_response):
        mock_get.return_value = http_response(payload=_comments(5))

        result = fetch_comments(settings)

        assert [c.id for c in result] == [1, 2, 3]
        assert result[0] == SourceItem(id=1, body="body 1")

    @patch(GET)
    def test_uses_timeout_from_settings(self, mock_get, settings, http_response):
        mock_get.return_value = http_response(payload=[])

        fetch_comments(settings)

        mock_get.assert_called_once_with(settings.source_url, timeout=8.0, stream=True)

    @patch(GET)
    def test_non_list_payload_is_empty(self, mock_get, settings, http_response):
        mock_get.return_value = http_response(payload={"error": "nope"})

        assert fetch_comments(settings) == []

    @patch(GET)
    def test_non_success_status_raises_upstream_error(self, mock_get, settings, http_response):
        mock_get.return_value = http_response(status_code=503, reason="Service Unavailable")

        with pytest.raises(UpstreamError) as exc:
            fetch_comments(settings)

        assert exc.value.status == 503
        assert "503" in str(exc.value)

    @patch(GET)
    def test_timeout_raises_fetch_timeout(self, mock_get, settings):
        mock_get.side_effect = requests.Timeout("read timed out")

        with pytest.raises(FetchTimeoutError) as exc:
            fetch_comments(settings)

        assert isinstance(exc.value, TimeoutError)
        assert exc.value.status is None
        assert "8000 ms" in str(exc.value)

    @patch(GET)
    def test_connection_error_raises_upstream_error(self, mock_get, settings):
        mock_get.side_effect = requests.ConnectionError("dns failure")

        with pytest.raises(UpstreamError):
            fetch_comments(settings)

    @patch(GET)
    def test_invalid_json_raises_upstream_error(self, mock_get, settings, http_response):
        mock_get.return_value = http_response(payload=ValueError("Expecting value"))

        with pytest.raises(UpstreamError, match="invalid JSON"):
            fetch_comments(settings)

    @patch(GET)
    def test_skips_entries_without_id(self, mock_get, settings, http_response):
        mock_get.return_value = http_response(payload=[{"body": "orphan"}, "junk", {"id": 7, "body": "ok"}])

        result = fetch_comments(settings)

        assert result == [SourceItem(id=7, body="ok")]

    @patch(GET)
    def test_trickling_body_is_aborted_at_deadline(self, mock_get, settings, http_response):
        s = settings.model_copy(update={"request_timeout_ms": 500})
        body = b'[{"id": 1, "body": "slow slow"}]'
        clock = {"now": 0.0}
        sent = []

        def trickle(chunk_size=1):
            for i in range(len(body)):
                clock["now"] += 0.1
                sent.append(i)
                yield body[i:i + 1]

        r = http_response(content=body)
        r.iter_content.side_effect = trickle
        mock_get.return_value = r

        with patch(MONOTONIC, side_effect=lambda: clock["now"]):
            with pytest.raises(FetchTimeoutError, match="500 ms"):
                fetch_comments(s)

        assert len(sent) < len(body)

    @patch(GET)
    def test_deadline_spent_before_body_raises_timeout(self, mock_get, settings, http_response):
        mock_get.return_value = http_response(payload=_comments(1))

        with patch(MONOTONIC, side_effect=[0.0, 9.0]):
            with pytest.raises(FetchTimeoutError):
                fetch_comments(settings)

    @patch(GET)
    def test_reads_body_in_small_chunks(self, mock_get, settings, http_response):
        r = http_response(payload=_comments(2))
        mock_get.return_value = r

        assert [c.id for c in fetch_comments(settings)] == [1, 2]
        assert r.iter_content.call_args.kwargs == {"chunk_size": 1}

    @patch(GET)
    def test_body_is_closed_after_reading(self, mock_get, settings, http_response):
        r = http_response(payload=_comments(1))
        mock_get.return_value = r

        fetch_comments(settings)

        r.__exit__.assert_called_once()
