from __future__ import annotations

from typing import Any

from openai import OpenAI

from app.config import get_settings
from app.observability.openai import instrument_openai_call

_client: Any | None = None


def set_llm_client(client: Any | None) -> None:
    global _client
    _client = client


def get_llm_client() -> Any:
    global _client
    if _client is None:
        settings = get_settings()
        _client = OpenAI(api_key=settings.openai_api_key)
    return _client


def complete(system_prompt: str, user_prompt: str, temperature: float = 0.2, model: str | None = None) -> str:
    """Run a single system+user chat completion and return the message text ("" when absent)."""
    settings = get_settings()
    client = get_llm_client()
    actual_model = model or settings.openai_model

    response = instrument_openai_call(
        operation="chat.completions.create",
        model=actual_model,
        fn=lambda: client.chat.completions.create(
            model=actual_model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=temperature,
        ),
    )
    return response.choices[0].message.content or ""
