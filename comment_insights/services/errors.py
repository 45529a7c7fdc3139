from __future__ import annotations

import re

_QUOTA_RE = re.compile(r"429|quota|rate[ -]?limit", re.IGNORECASE)
_MODEL_UNAVAILABLE_RE = re.compile(r"not found|not supported", re.IGNORECASE)


class PipelineError(Exception):
    """Base class for failures raised by pipeline stages."""


class UpstreamError(PipelineError):
    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class FetchTimeoutError(UpstreamError, TimeoutError):
    pass


class ConfigurationError(PipelineError):
    pass


class ProviderError(PipelineError):
    def __init__(self, message: str, status: int | None = None, model: str | None = None) -> None:
        super().__init__(message)
        self.status = status
        self.model = model


class QuotaError(ProviderError):
    pass


class ParseError(PipelineError):
    pass


class PersistenceError(PipelineError):
    pass


def is_quota_message(message: str) -> bool:
    return bool(_QUOTA_RE.search(message or ""))


def is_quota_error(exc: BaseException) -> bool:
    if isinstance(exc, QuotaError):
        return True
    return is_quota_message(str(exc))


def should_try_next_model(exc: BaseException) -> bool:
    """
    Fallback rule for model candidates: only "model not found" / "not supported"
    failures move on to the next model, everything else aborts the attempt.
    """
    return bool(_MODEL_UNAVAILABLE_RE.search(str(exc)))
