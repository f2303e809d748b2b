import json
from unittest.mock import Mock

import pytest
import requests

from learnit.quiz.adapters.gemini_generator import GeminiQuestionGenerator, build_prompt
from learnit.quiz.domain.errors import ConfigurationError, GenerationError


def gemini_payload(items) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": json.dumps(items)}]}}]}


def make_generator(status=200, payload=None, side_effect=None):
    session = Mock(spec=requests.Session)
    if side_effect is not None:
        session.post.side_effect = side_effect
    else:
        response = Mock()
        response.status_code = status
        response.text = "error body"
        response.json.return_value = payload
        session.post.return_value = response
    return GeminiQuestionGenerator("test-key", session=session), session


def test_missing_key_raises_configuration_error():
    generator = GeminiQuestionGenerator(None, session=Mock())
    with pytest.raises(ConfigurationError):
        generator.generate("Biology", "Exam")


def test_request_shape():
    generator, session = make_generator(payload=gemini_payload([]))

    generator.generate("Biology", "Midterm", 5)

    url = session.post.call_args.args[0]
    kwargs = session.post.call_args.kwargs
    assert url.endswith("/gemini-2.5-flash:generateContent")
    assert kwargs["headers"] == {"x-goog-api-key": "test-key"}
    body = kwargs["json"]
    assert body["contents"][0]["parts"][0]["text"] == build_prompt("Biology", "Midterm", 5)
    assert body["generationConfig"]["responseMimeType"] == "application/json"


def test_parses_and_filters_items():
    items = [
        {"question": "Q1", "options": ["a", "b"], "answer": "a"},
        {"question": "Q2", "options": ["a", "b"], "answer": "c"},
        {"question": "Q3"},
    ]
    generator, _ = make_generator(payload=gemini_payload(items))

    result = generator.generate("Topic", "Purpose")

    assert [q.question for q in result] == ["Q1"]


def test_empty_candidates_returns_empty_list():
    generator, _ = make_generator(payload={"candidates": []})
    assert generator.generate("T", "P") == []


def test_http_error_status():
    generator, _ = make_generator(status=500)
    with pytest.raises(GenerationError, match="500"):
        generator.generate("T", "P")


def test_network_error():
    generator, _ = make_generator(side_effect=requests.ConnectionError("down"))
    with pytest.raises(GenerationError):
        generator.generate("T", "P")


def test_invalid_json_text():
    payload = {"candidates": [{"content": {"parts": [{"text": "not json"}]}}]}
    generator, _ = make_generator(payload=payload)
    with pytest.raises(GenerationError):
        generator.generate("T", "P")
