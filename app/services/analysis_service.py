from __future__ import annotations

import json
import logging
import math
import re
from typing import Any

from app.config import get_settings
from app.models.schemas import ForecastItem, Insight, PublicComment, SentimentBucket
from app.services.llm_client import complete

logger = logging.getLogger(__name__)

_FENCE_JSON = re.compile(r"```json\s*")
_FENCE = re.compile(r"```\s*")
_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")

SENTIMENT_LABELS = ("positive", "neutral", "negative")

INSIGHTS_SYSTEM_PROMPT = (
    "You analyze government documents for local residents. "
    "Respond ONLY with JSON of the form "
    '{"insights": [{"category": str, "summary": str, "impact_level": 1-5, '
    '"key_points": [str], "action_items": [str]}]}.'
)

FORECASTS_SYSTEM_PROMPT = (
    "You forecast the local impact of government documents. "
    "Respond ONLY with JSON of the form "
    '{"forecasts": [{"category": str, "prediction": str, "confidence_score": 0.0-1.0, '
    '"timeframe": str, "impact_areas": [str]}]}.'
)

SUMMARY_SYSTEM_PROMPT = "You summarize civic news and documents for local residents in plain English."

FALLBACK_INSIGHT = Insight(
    category="general",
    summary="Document processed but AI analysis failed to generate proper JSON format",
    impact_level=3,
    key_points=["Document uploaded successfully"],
    action_items=["Review document manually for insights"],
)

FALLBACK_FORECAST = ForecastItem(
    category="general",
    prediction="Document processed but AI analysis failed to generate proper JSON format",
    confidence_score=0.5,
    timeframe="6 months",
    impact_areas=["general impact"],
)

# Placeholder public feedback attached to every processed document until a
# real comment feed exists.
SAMPLE_COMMENTS: tuple[tuple[str, float, str], ...] = (
    ("This is exactly what our community needs. Great proposal!", 0.8, "positive"),
    ("I have concerns about the traffic impact on our neighborhood.", -0.3, "negative"),
    ("The budget allocation seems reasonable for this project.", 0.4, "positive"),
    ("This will negatively impact our property values.", -0.7, "negative"),
    ("I support this initiative but have questions about implementation.", 0.2, "neutral"),
)


def clean_json_response(raw: str | None, default: str) -> str:
    """
    Strip markdown fences from an LLM reply and isolate its JSON object.

    Falls back to ``default`` when the reply is empty or holds no ``{...}`` span.
    """
    cleaned = raw or default
    cleaned = _FENCE_JSON.sub("", cleaned)
    cleaned = _FENCE.sub("", cleaned)
    cleaned = cleaned.strip()

    if not cleaned.startswith("{"):
        match = _JSON_OBJECT.search(cleaned)
        cleaned = match.group(0) if match else default
    return cleaned


def _as_float(value: Any) -> float | None:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number):
        return None
    return number


def clamp_impact_level(value: Any) -> int:
    """Clamp to 1..5; missing, zero or non-numeric values become 3."""
    number = _as_float(value)
    if not number:
        return 3
    return int(round(max(1.0, min(5.0, number))))


def clamp_confidence(value: Any) -> float:
    """Clamp to 0.0..1.0; missing, zero or non-numeric values become 0.5."""
    number = _as_float(value)
    if not number:
        return 0.5
    return max(0.0, min(1.0, number))


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item is not None]


def _load_items(raw: str | None, key: str) -> list[dict[str, Any]] | None:
    cleaned = clean_json_response(raw, default=json.dumps({key: []}))
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError:
        logger.warning("analysis.json_parse_failed", extra={"key": key, "raw_text": cleaned[:500]})
        return None

    items = payload.get(key) if isinstance(payload, dict) else None
    if not isinstance(items, list):
        logger.warning("analysis.json_missing_key", extra={"key": key})
        return None
    return [item for item in items if isinstance(item, dict)]


def parse_insights(raw: str | None) -> list[Insight]:
    items = _load_items(raw, "insights")
    if items is None:
        return [FALLBACK_INSIGHT.model_copy(deep=True)]

    return [
        Insight(
            category=str(item.get("category") or "general"),
            summary=str(item.get("summary") or ""),
            impact_level=clamp_impact_level(item.get("impact_level")),
            key_points=_str_list(item.get("key_points")),
            action_items=_str_list(item.get("action_items")),
        )
        for item in items
    ]


def parse_forecasts(raw: str | None) -> list[ForecastItem]:
    items = _load_items(raw, "forecasts")
    if items is None:
        return [FALLBACK_FORECAST.model_copy(deep=True)]

    return [
        ForecastItem(
            category=str(item.get("category") or "general"),
            prediction=str(item.get("prediction") or ""),
            confidence_score=clamp_confidence(item.get("confidence_score")),
            timeframe=str(item.get("timeframe") or ""),
            impact_areas=_str_list(item.get("impact_areas")),
        )
        for item in items
    ]


def build_insights_prompt(content: str, interests: list[str], char_limit: int) -> str:
    topics = ", ".join(interests) if interests else "general community impact"
    return (
        f"Analyze this government document and provide insights for residents interested in: {topics}.\n\n"
        f"Document content:\n{content[:char_limit]}\n\n"
        "Please provide:\n"
        "1. A summary of key points relevant to the specified interests\n"
        "2. Impact level (1-5 scale) for each relevant category\n"
        "3. Specific action items residents can take\n"
        "4. Key points that directly affect residents"
    )


def build_forecasts_prompt(insights: list[Insight]) -> str:
    payload = json.dumps([insight.model_dump() for insight in insights])
    return (
        "Based on this government document analysis, generate realistic forecasts for potential impacts:\n\n"
        f"Document insights: {payload}\n\n"
        "Generate 2-3 forecasts with:\n"
        "- Specific predictions with timeframes\n"
        "- Confidence scores (0.0-1.0)\n"
        "- Impact areas\n"
        "- Category (housing, transport, environment, etc.)"
    )


def generate_insights(content: str, interests: list[str]) -> list[Insight]:
    settings = get_settings()
    prompt = build_insights_prompt(content, interests, settings.analysis_char_limit)
    raw = complete(INSIGHTS_SYSTEM_PROMPT, prompt)
    return parse_insights(raw)


def generate_forecasts(insights: list[Insight]) -> list[ForecastItem]:
    raw = complete(FORECASTS_SYSTEM_PROMPT, build_forecasts_prompt(insights))
    return parse_forecasts(raw)


def summarize_text(text: str) -> str:
    cleaned = (text or "").strip()
    if not cleaned:
        raise ValueError("No text provided for summarization.")

    prompt = (
        "Summarize the following text from a news article in a few bullet points, "
        f"focusing on the key impacts for a local resident: {cleaned}"
    )
    return complete(SUMMARY_SYSTEM_PROMPT, prompt).strip()


def sample_public_comments() -> list[PublicComment]:
    return [
        PublicComment(
            commenter_name=f"Resident {index}",
            comment_text=text,
            sentiment_score=score,
            sentiment_label=label,  # type: ignore[arg-type]
        )
        for index, (text, score, label) in enumerate(SAMPLE_COMMENTS, start=1)
    ]


def sentiment_distribution(comments: list[PublicComment]) -> list[SentimentBucket]:
    """Count comments per label with whole-number percentages (half rounds up)."""
    total = len(comments)
    buckets: list[SentimentBucket] = []
    for label in SENTIMENT_LABELS:
        count = sum(1 for c in comments if c.sentiment_label == label)
        percentage = math.floor(count * 100 / total + 0.5) if total else 0
        buckets.append(SentimentBucket(sentiment_label=label, count=count, percentage=percentage))  # type: ignore[arg-type]
    return buckets
