"""
Gemini question generator: prompt handling and AI output validation.
The model is replaced with a stub exposing generate_content_async.
"""

import asyncio
import json

import pytest

from skillchain.exceptions import GenerationError
from skillchain.services.question_generator import GeminiQuestionGenerator, _extract_json, parse_questions


def _questions_payload(count=10):
    return {
        "questions": [
            {"question": f"Q{i}?", "options": ["a", "b", "c", "d"], "correctAnswer": i % 4}
            for i in range(count)
        ]
    }


class _Response:
    def __init__(self, text):
        self.text = text


class StubModel:
    def __init__(self, text="", delay=0.0):
        self.text = text
        self.delay = delay
        self.prompts = []

    async def generate_content_async(self, prompt):
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        return _Response(self.text)


def _generator(settings, model):
    generator = GeminiQuestionGenerator(settings)
    generator._model = model
    return generator


def test_extract_json_strips_markdown_fence():
    raw = "Here you go:\n```json\n{\"questions\": []}\n```"
    assert _extract_json(raw) == {"questions": []}


@pytest.mark.parametrize("raw", ["", "   ", "not json", "[1, 2]"])
def test_extract_json_rejects_unusable_output(raw):
    with pytest.raises(GenerationError):
        _extract_json(raw)


def test_parse_questions_assigns_ids_and_points():
    questions = parse_questions(_questions_payload(), count=10, points=10)

    assert [q.id for q in questions][:2] == ["q-1", "q-2"]
    assert all(q.points == 10 for q in questions)
    assert questions[3].correct_answer == 3


def test_parse_questions_requires_exact_count():
    with pytest.raises(GenerationError):
        parse_questions(_questions_payload(9), count=10, points=10)


@pytest.mark.parametrize("bad", [
    {"question": "Q?", "options": ["a", "b", "c"], "correctAnswer": 0},
    {"question": "Q?", "options": ["a", "b", "c", "d"], "correctAnswer": 4},
    {"options": ["a", "b", "c", "d"], "correctAnswer": 1},
])
def test_parse_questions_rejects_malformed_items(bad):
    payload = _questions_payload(1)
    payload["questions"][0] = bad

    with pytest.raises(GenerationError):
        parse_questions(payload, count=1, points=10)


@pytest.mark.asyncio
async def test_generate_questions_prompts_with_category_path(settings):
    model = StubModel(json.dumps(_questions_payload()))

    questions = await _generator(settings, model).generate_questions(("Programming", "Python", "Asyncio"))

    assert len(questions) == 10
    assert '"Asyncio"' in model.prompts[0]
    assert "Programming > Python > Asyncio" in model.prompts[0]


@pytest.mark.asyncio
async def test_generate_categories_deduplicates_names(settings):
    payload = {"categories": [{"name": "Web Dev"}, {"name": "web dev"}, {"name": "Data"}, {"name": ""}]}
    model = StubModel(json.dumps(payload))

    categories = await _generator(settings, model).generate_categories(2, "Programming")

    assert [(c.id, c.name, c.level) for c in categories] == [("web-dev", "Web Dev", 2), ("data", "Data", 2)]
    assert "Programming" in model.prompts[0]


@pytest.mark.asyncio
async def test_timeout_becomes_generation_error(settings):
    settings.GEMINI_TIMEOUT_SECONDS = 0.01
    model = StubModel(json.dumps(_questions_payload()), delay=1.0)

    with pytest.raises(GenerationError):
        await _generator(settings, model).generate_questions(("A", "B", "C"))


@pytest.mark.asyncio
async def test_missing_api_key_is_generation_error(settings):
    generator = GeminiQuestionGenerator(settings)

    with pytest.raises(GenerationError):
        await generator.generate_questions(("A", "B", "C"))
