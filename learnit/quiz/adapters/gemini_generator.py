import json
from typing import Any

import requests
from pydantic import ValidationError as PydanticValidationError

from learnit.config import AppConfig
from learnit.quiz.domain.errors import ConfigurationError, GenerationError
from learnit.quiz.domain.models import GeneratedQuestion
from learnit.quiz.domain.ports import IQuestionGenerator
from learnit.shared.telemetry import Telemetry, measure_time

RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "question": {"type": "STRING"},
            "options": {"type": "ARRAY", "items": {"type": "STRING"}},
            "answer": {
                "type": "STRING",
                "description": "The correct option from the options array.",
            },
        },
        "required": ["question", "options", "answer"],
    },
}


def build_prompt(topic: str, purpose: str, count: int) -> str:
    return (
        f'Generate {count} multiple choice questions about "{topic}" '
        f'designed for "{purpose}". Return the result as a JSON array.'
    )


class GeminiQuestionGenerator(IQuestionGenerator):
    """Calls the Gemini generateContent REST endpoint with a JSON schema."""

    def __init__(
        self,
        api_key: str | None,
        model: str = AppConfig.GEMINI_MODEL,
        session: requests.Session | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.session = session or requests.Session()
        self.telemetry = Telemetry("GeminiQuestionGenerator")

    @measure_time("gemini_generate")
    def generate(
        self, topic: str, purpose: str, count: int = AppConfig.DEFAULT_GENERATED_COUNT
    ) -> list[GeneratedQuestion]:
        if not self.api_key:
            raise ConfigurationError(
                "Gemini API Key is missing. Please check your configuration."
            )

        url = f"{AppConfig.GEMINI_ENDPOINT}/{self.model}:generateContent"
        body = {
            "contents": [{"parts": [{"text": build_prompt(topic, purpose, count)}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": RESPONSE_SCHEMA,
            },
        }

        try:
            response = self.session.post(
                url,
                headers={"x-goog-api-key": self.api_key},
                json=body,
                timeout=AppConfig.GEMINI_TIMEOUT_S,
            )
        except requests.RequestException as e:
            self.telemetry.log_error("Gemini request failed", e)
            raise GenerationError(f"Gemini request failed: {e}") from e

        if response.status_code != 200:
            raise GenerationError(
                f"Gemini API error: {response.status_code} - {response.text[:200]}"
            )

        return self._parse(response.json())

    def _parse(self, payload: dict[str, Any]) -> list[GeneratedQuestion]:
        try:
            text = payload["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            self.telemetry.log_info("Gemini returned no content")
            return []

        if not text:
            return []

        try:
            items = json.loads(text)
        except json.JSONDecodeError as e:
            raise GenerationError(f"Gemini returned invalid JSON: {e}") from e
        if not isinstance(items, list):
            raise GenerationError("Gemini response is not a JSON array")

        questions: list[GeneratedQuestion] = []
        for item in items:
            try:
                q = GeneratedQuestion.model_validate(item)
            except PydanticValidationError as e:
                self.telemetry.log_warning("Dropping malformed item", error=str(e))
                continue
            if q.answer not in q.options:
                self.telemetry.log_warning(
                    "Dropping item whose answer is not an option", question=q.question
                )
                continue
            questions.append(q)

        self.telemetry.log_info("Generated questions", count=len(questions))
        return questions
