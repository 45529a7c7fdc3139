from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable

from pydantic import ValidationError

from comment_insights.config.settings import Settings, get_settings
from comment_insights.models.schemas import StoredRecord
from comment_insights.services.errors import ParseError, PersistenceError

logger = logging.getLogger(__name__)


def dedupe_records(records: Iterable[StoredRecord]) -> list[StoredRecord]:
    """
    Keep the first record seen for each id, in first-seen order.
    """
    seen: set = set()
    out: list[StoredRecord] = []
    for rec in records:
        if rec.id in seen:
            continue
        seen.add(rec.id)
        out.append(rec.model_copy(update={"stored": bool(rec.stored)}))
    return out


class ResultStore:
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "ResultStore":
        s = settings or get_settings()
        return cls(s.storage_path)

    def _read_raw(self) -> list:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (ValueError, RecursionError) as e:
            # ValueError covers JSONDecodeError and UnicodeDecodeError
            raise ParseError(f"Corrupt results file {self.path}: {e}") from e
        if not isinstance(data, list):
            raise ParseError(f"Results file {self.path} does not hold a list")
        return data

    def load(self) -> list[StoredRecord]:
        """
        Missing or unreadable storage counts as a first run: returns [].
        """
        if not self.path.exists():
            return []
        try:
            rows = self._read_raw()
        except (OSError, ParseError) as e:
            logger.warning("Ignoring stored results: %s", e)
            return []

        records: list[StoredRecord] = []
        for row in rows:
            try:
                records.append(StoredRecord.model_validate(row))
            except ValidationError:
                logger.warning("Skipping malformed stored record: %r", row)
        return dedupe_records(records)

    def save(self, records: Iterable[StoredRecord]) -> None:
        payload = [r.model_dump(mode="json") for r in dedupe_records(records)]
        data = json.dumps(payload, indent=2, ensure_ascii=False)

        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(data)
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as e:
            raise PersistenceError(f"Could not write {self.path}: {e}") from e
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)

        logger.info("Saved %d record(s) to %s", len(payload), self.path)
