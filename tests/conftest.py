from __future__ import annotations

import json
from collections.abc import AsyncIterator

import pytest
from httpx import ASGITransport, AsyncClient

from app.config import get_settings
from app.db.session import init_db
from app.main import app
from app.observability.metrics import reset_metrics
from app.services.llm_client import set_llm_client


INSIGHTS_REPLY = {
    "insights": [
        {
            "category": "housing",
            "summary": "Adds 120 affordable units near Main St.",
            "impact_level": 7,
            "key_points": ["120 units", "Public hearing on June 3"],
            "action_items": ["Attend the hearing"],
        },
        {
            "category": "transport",
            "summary": "New bus stop on Elm Ave.",
            "impact_level": 0,
            "key_points": ["Route 12 extended"],
            "action_items": [],
        },
    ]
}

FORECASTS_REPLY = {
    "forecasts": [
        {
            "category": "housing",
            "prediction": "Rents near Main St stabilize within two years.",
            "confidence_score": 1.4,
            "timeframe": "24 months",
            "impact_areas": ["rent", "property values"],
        }
    ]
}


class _Message:
    def __init__(self, content: str) -> None:
        self.content = content


class _Choice:
    def __init__(self, content: str) -> None:
        self.message = _Message(content)


class _ChatResponse:
    def __init__(self, content: str) -> None:
        self.choices = [_Choice(content)]


class MockChatCompletionsApi:
    def __init__(self) -> None:
        self.calls: list[list[dict]] = []

    def create(self, model: str, messages: list[dict], temperature: float) -> _ChatResponse:
        _ = model, temperature
        self.calls.append(messages)
        system = (messages[0].get("content") or "").lower()
        user = messages[-1].get("content") or ""

        if "analyze government documents" in system:
            # Fenced reply, as chat models often produce.
            return _ChatResponse(f"```json\n{json.dumps(INSIGHTS_REPLY)}\n```")

        if "forecast the local impact" in system:
            return _ChatResponse(f"Here are the forecasts: {json.dumps(FORECASTS_REPLY)} Hope this helps.")

        if "summarize" in system:
            return _ChatResponse("- Key impact for residents\n- Second point")

        question = user.split("User Question: ", 1)[-1].split("\n", 1)[0]
        return _ChatResponse(f"The document says this about '{question}'.")


class MockChatApi:
    def __init__(self) -> None:
        self.completions = MockChatCompletionsApi()


class MockOpenAIClient:
    def __init__(self) -> None:
        self.chat = MockChatApi()


@pytest.fixture
def llm_client() -> MockOpenAIClient:
    return MockOpenAIClient()


@pytest.fixture(autouse=True)
def test_environment(monkeypatch: pytest.MonkeyPatch, tmp_path, llm_client: MockOpenAIClient) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'civic.db'}")
    get_settings.cache_clear()

    set_llm_client(llm_client)
    reset_metrics()

    settings = get_settings()
    settings.upload_path.mkdir(parents=True, exist_ok=True)
    init_db()

    yield

    set_llm_client(None)
    get_settings.cache_clear()


@pytest.fixture
async def api_client() -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

