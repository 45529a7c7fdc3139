from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

Sentiment = Literal["positive", "negative", "neutral"]
Stage = Literal["fetch", "analysis", "storage"]
ItemId = int | str


class SourceItem(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: ItemId
    body: str = ""


class StoredRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: ItemId
    email: str = ""
    source: str = ""
    original: str = ""
    analysis: str = ""
    sentiment: str = "neutral"
    stored: bool = True
    timestamp: str = ""

    @field_validator("stored", mode="before")
    @classmethod
    def _strict_bool(cls, v: Any) -> bool:
        return bool(v)


class ResponseItem(BaseModel):
    original: str
    analysis: str
    sentiment: Sentiment
    stored: bool = False
    timestamp: str
    source: str | None = None


class StageError(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    stage: Stage
    message: str
    status: int | None = None
    item_id: ItemId | None = Field(default=None, alias="itemId")


class PipelineResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    items: list[ResponseItem] = Field(default_factory=list)
    notification_sent: bool = Field(default=False, alias="notificationSent")
    processed_at: str = Field(alias="processedAt")
    errors: list[StageError] = Field(default_factory=list)

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class PipelineRequest(BaseModel):
    email: str | None = None
    source: str | None = None


class Enrichment(BaseModel):
    summary: str
    sentiment: Sentiment
