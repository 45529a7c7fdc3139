from __future__ import annotations

import json
import logging
import time

import requests
from pydantic import ValidationError

from comment_insights.config.settings import Settings, get_settings
from comment_insights.models.schemas import SourceItem
from comment_insights.services.errors import FetchTimeoutError, UpstreamError

logger = logging.getLogger(__name__)

# buffered reads of 1 return as soon as any byte is available
READ_CHUNK_BYTES = 1


def _to_items(rows: list) -> list[SourceItem]:
    items: list[SourceItem] = []
    for row in rows:
        if not isinstance(row, dict):
            logger.warning("Skipping non-object comment: %r", row)
            continue
        try:
            items.append(SourceItem.model_validate(row))
        except ValidationError as e:
            logger.warning("Skipping malformed comment %r: %s", row.get("id"), e)
    return items


def _read_body(r: requests.Response, deadline: float, timeout_ms: int) -> bytes:
    """Read the streamed body, giving up once the overall deadline has passed."""
    chunks: list[bytes] = []
    if time.monotonic() > deadline:
        raise FetchTimeoutError(f"Upstream API timed out after {timeout_ms} ms")
    for chunk in r.iter_content(chunk_size=READ_CHUNK_BYTES):
        if time.monotonic() > deadline:
            raise FetchTimeoutError(f"Upstream API timed out after {timeout_ms} ms")
        chunks.append(chunk)
    return b"".join(chunks)


def fetch_comments(settings: Settings | None = None) -> list[SourceItem]:
    s = settings or get_settings()
    # requests' timeout bounds each socket operation; the deadline bounds the whole fetch
    deadline = time.monotonic() + s.request_timeout_seconds

    try:
        with requests.get(s.source_url, timeout=s.request_timeout_seconds, stream=True) as r:
            if not r.ok:
                raise UpstreamError(
                    f"Upstream API failed with status {r.status_code}", status=r.status_code
                )
            status = r.status_code
            body = _read_body(r, deadline, s.request_timeout_ms)
    except requests.Timeout as e:
        raise FetchTimeoutError(
            f"Upstream API timed out after {s.request_timeout_ms} ms"
        ) from e
    except requests.RequestException as e:
        raise UpstreamError(f"Upstream API request failed: {e}") from e

    try:
        data = json.loads(body)
    except (ValueError, RecursionError) as e:
        raise UpstreamError("Upstream API returned invalid JSON", status=status) from e

    if not isinstance(data, list):
        return []

    items = _to_items(data[: s.max_items])
    logger.info("Fetched %d comment(s) from %s", len(items), s.source_url)
    return items
