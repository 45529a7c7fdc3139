from __future__ import annotations

import logging
from pathlib import Path

from comment_insights.config.settings import Settings, get_settings


def setup_logging(settings: Settings | None = None) -> None:
    s = settings or get_settings()

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    # serverless filesystems are read-only outside /tmp: console only there
    if s.log_file and not s.ephemeral_storage:
        Path(s.log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.insert(0, logging.FileHandler(s.log_file, encoding="utf-8"))

    logging.basicConfig(
        level=getattr(logging, s.log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(message)s",
        handlers=handlers,
    )
