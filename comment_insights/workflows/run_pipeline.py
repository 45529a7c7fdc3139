from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Protocol

from comment_insights.config.settings import Settings, get_settings
from comment_insights.models.schemas import (
    Enrichment,
    PipelineRequest,
    PipelineResponse,
    ResponseItem,
    SourceItem,
    StageError,
    StoredRecord,
)
from comment_insights.services.comment_source import fetch_comments
from comment_insights.services.enrichment import Enricher
from comment_insights.services.errors import is_quota_error
from comment_insights.services.result_store import ResultStore
from comment_insights.services.sentiment import normalize_sentiment

logger = logging.getLogger(__name__)

PLACEHOLDER_ANALYSIS = "Analysis unavailable for this comment."
QUOTA_MESSAGE = "Enrichment quota exceeded (rate limited); skipping analysis for remaining items"


class SupportsAnalyze(Protocol):
    def analyze(self, text: str) -> Enrichment: ...


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class QuotaState(str, Enum):
    NORMAL = "normal"
    QUOTA_EXCEEDED = "quota_exceeded"


@dataclass
class QuotaLatch:
    """One-way switch: once the provider rate-limits us, it stays tripped for the batch."""

    state: QuotaState = QuotaState.NORMAL

    @property
    def exceeded(self) -> bool:
        return self.state is QuotaState.QUOTA_EXCEEDED

    def trip(self) -> bool:
        """Returns True only for the NORMAL -> QUOTA_EXCEEDED transition."""
        if self.exceeded:
            return False
        self.state = QuotaState.QUOTA_EXCEEDED
        return True


@dataclass
class ReconcileResult:
    items: list[ResponseItem] = field(default_factory=list)
    records: list[StoredRecord] = field(default_factory=list)
    errors: list[StageError] = field(default_factory=list)
    latch: QuotaLatch = field(default_factory=QuotaLatch)


def _placeholder(item: SourceItem, timestamp: str) -> ResponseItem:
    return ResponseItem(
        original=item.body,
        analysis=PLACEHOLDER_ANALYSIS,
        sentiment="neutral",
        stored=False,
        timestamp=timestamp,
    )


def _from_cache(rec: StoredRecord) -> ResponseItem:
    return ResponseItem(
        original=rec.original,
        analysis=rec.analysis,
        sentiment=normalize_sentiment(rec.sentiment),
        stored=True,
        timestamp=rec.timestamp,
        source=rec.source or None,
    )


def reconcile_items(
    items: list[SourceItem],
    cached: list[StoredRecord],
    enricher: SupportsAnalyze,
    *,
    email: str,
    source_name: str,
    latch: QuotaLatch | None = None,
) -> ReconcileResult:
    """
    Walk the batch in fetch order: cached ids are served from storage, the rest
    go to the enricher until the provider reports a quota failure. Enrichment
    errors never escape; they become `analysis` stage errors.
    """
    result = ReconcileResult(records=list(cached), latch=latch or QuotaLatch())
    index: dict = {}
    for rec in cached:
        index.setdefault(rec.id, rec)

    for item in items:
        timestamp = _now_iso()

        hit = index.get(item.id)
        if hit is not None:
            result.items.append(_from_cache(hit))
            continue

        if result.latch.exceeded:
            result.items.append(_placeholder(item, timestamp))
            continue

        try:
            analysis = enricher.analyze(item.body)
        except Exception as e:
            if is_quota_error(e):
                if result.latch.trip():
                    logger.warning("Quota exceeded on item %s: %s", item.id, e)
                    result.errors.append(
                        StageError(stage="analysis", message=f"{QUOTA_MESSAGE}: {e}", item_id=item.id)
                    )
            else:
                logger.warning("Analysis failed for item %s: %s", item.id, e)
                result.errors.append(StageError(stage="analysis", message=str(e), item_id=item.id))
            result.items.append(_placeholder(item, timestamp))
            continue

        result.items.append(
            ResponseItem(
                original=item.body,
                analysis=analysis.summary,
                sentiment=analysis.sentiment,
                stored=True,
                timestamp=timestamp,
                source=source_name,
            )
        )
        rec = StoredRecord(
            id=item.id,
            email=email,
            source=source_name,
            original=item.body,
            analysis=analysis.summary,
            sentiment=analysis.sentiment,
            stored=True,
            timestamp=timestamp,
        )
        result.records.append(rec)
        index[item.id] = rec

    for it in result.items:
        it.stored = bool(it.stored)
    return result


def notify(email: str) -> None:
    # Intent only: no message is delivered.
    logger.info("Notification sent to: %s", email)


def run_pipeline(
    request: PipelineRequest | None = None,
    *,
    settings: Settings | None = None,
    enricher: SupportsAnalyze | None = None,
    store: ResultStore | None = None,
) -> PipelineResponse:
    """
    Fetch, reconcile against stored results, persist, and report.

    Stage failures end up in `errors`; nothing is raised to the caller.
    `notificationSent` is set to True once processing finishes, whatever the
    stage outcomes were. That mirrors the deployed behaviour and is kept as-is
    rather than tied to per-item success.
    """
    s = settings or get_settings()
    request = request or PipelineRequest()
    email = request.email or s.notification_email
    source_name = request.source or s.source_name

    response = PipelineResponse(processed_at=_now_iso())

    comments: list[SourceItem] = []
    try:
        comments = fetch_comments(s)
    except Exception as e:
        logger.error("Fetch failed: %s", e)
        response.errors.append(
            StageError(stage="fetch", message=str(e), status=getattr(e, "status", None) or 500)
        )

    store = store or ResultStore.from_settings(s)
    cached = store.load()

    result = reconcile_items(
        comments,
        cached,
        enricher or Enricher(s),
        email=email,
        source_name=source_name,
    )
    response.items = result.items
    response.errors.extend(result.errors)

    try:
        store.save(result.records)
    except Exception as e:
        logger.error("Saving results failed: %s", e)
        response.errors.append(StageError(stage="storage", message=str(e)))

    notify(email)
    response.notification_sent = True

    logger.info(
        "Processed %d item(s) with %d error(s), quota %s",
        len(response.items),
        len(response.errors),
        result.latch.state.value,
    )
    return response
