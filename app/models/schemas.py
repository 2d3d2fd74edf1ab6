from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ValidationResult(BaseModel):
    is_valid: bool = Field(alias="isValid")
    error: str | None = None

    model_config = ConfigDict(populate_by_name=True)


class ExtractionResult(BaseModel):
    success: bool
    text: str | None = None
    page_count: int | None = Field(default=None, alias="pageCount", ge=1)
    error: str | None = None

    model_config = ConfigDict(populate_by_name=True)


class Insight(BaseModel):
    category: str
    summary: str
    impact_level: int = Field(ge=1, le=5)
    key_points: list[str] = Field(default_factory=list)
    action_items: list[str] = Field(default_factory=list)


class ForecastItem(BaseModel):
    category: str
    prediction: str
    confidence_score: float = Field(ge=0.0, le=1.0)
    timeframe: str
    impact_areas: list[str] = Field(default_factory=list)


class PublicComment(BaseModel):
    commenter_name: str
    comment_text: str
    sentiment_score: float
    sentiment_label: Literal["positive", "neutral", "negative"]


class SentimentBucket(BaseModel):
    sentiment_label: Literal["positive", "neutral", "negative"]
    count: int
    percentage: int


class SentimentResponse(BaseModel):
    sentiment_data: list[SentimentBucket]
    comments: list[PublicComment]


class DocumentMetadata(BaseModel):
    id: str
    title: str
    filename: str
    document_type: str
    zip_code: str | None = None
    interests: list[str] = Field(default_factory=list)
    page_count: int | None = None
    uploaded_at: datetime
    status: Literal["queued", "processing", "processed", "failed"] = "queued"
    processed: bool = False
    processed_at: datetime | None = None
    error_message: str | None = None


class DocumentDetail(DocumentMetadata):
    content: str
    insights: list[Insight] = Field(default_factory=list)


class DocumentStatus(BaseModel):
    document_id: str
    status: Literal["queued", "processing", "processed", "failed"]
    processed: bool


class UploadResponse(BaseModel):
    document: DocumentMetadata
    message: str = "Document uploaded successfully"


class DocumentsResponse(BaseModel):
    documents: list[DocumentMetadata]


class InsightsResponse(BaseModel):
    insights: list[Insight]


class ForecastsResponse(BaseModel):
    forecasts: list[ForecastItem]


class UserProfile(BaseModel):
    zip_code: str = Field(min_length=1)
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    interests: list[str] = Field(min_length=1)


class UserProfileResponse(BaseModel):
    profile: UserProfile | None = None


class ConversationRequest(BaseModel):
    document_id: str = Field(min_length=1)


class ConversationResponse(BaseModel):
    conversation_id: str
    document_id: str


class ChatRequest(BaseModel):
    message: str = Field(min_length=1)


class ChatResponse(BaseModel):
    response: str
    sources: list[str]


class SummarizeRequest(BaseModel):
    text: str = ""


class SummarizeResponse(BaseModel):
    summary: str
