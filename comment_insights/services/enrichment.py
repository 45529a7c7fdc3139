from __future__ import annotations

import json
import re

from comment_insights.config.settings import Settings
from comment_insights.models.schemas import Enrichment
from comment_insights.services.gemini_client import GeminiClient
from comment_insights.services.sentiment import normalize_sentiment

_FENCE_OPEN_RE = re.compile(r"^```[a-zA-Z]*\s*")
_FENCE_CLOSE_RE = re.compile(r"\s*```$")

ANALYSIS_PROMPT = """You are a concise analyst.
Summarize the text in 2-3 sentences.
Classify sentiment as enthusiastic, critical, or objective.
Respond as JSON with keys: summary, sentiment.
Text:
"""


def build_prompt(text: str) -> str:
    return f"{ANALYSIS_PROMPT}{text}"


def strip_code_fences(text: str) -> str:
    text = (text or "").strip()
    text = _FENCE_OPEN_RE.sub("", text)
    return _FENCE_CLOSE_RE.sub("", text).strip()


def parse_enrichment(text: str) -> Enrichment:
    """
    Decode model output into summary + sentiment.

    Markdown fences are stripped before the JSON parse. When the output is not
    a JSON object with a summary, the raw trimmed text becomes the summary and
    the sentiment is guessed from that same text.
    """
    text = text or ""
    try:
        parsed = json.loads(strip_code_fences(text))
    except json.JSONDecodeError:
        parsed = None

    if not isinstance(parsed, dict) or not parsed.get("summary"):
        return Enrichment(summary=text.strip(), sentiment=normalize_sentiment(text))

    return Enrichment(
        summary=str(parsed["summary"]),
        sentiment=normalize_sentiment(str(parsed.get("sentiment") or "")),
    )


class Enricher:
    def __init__(self, settings: Settings | None = None, client: GeminiClient | None = None) -> None:
        self.client = client or GeminiClient(settings)

    def analyze(self, text: str) -> Enrichment:
        raw = self.client.generate(build_prompt(text))
        return parse_enrichment(raw)
