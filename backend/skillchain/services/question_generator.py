"""
Question Generator — Google Gemini multiple-choice test and category generation.
Handles prompting, JSON extraction and shape validation of AI output.
"""
import asyncio
import json
from typing import Optional

import google.generativeai as genai

from skillchain.config import Settings, get_settings
from skillchain.exceptions import GenerationError
from skillchain.schemas.schemas import Category, Question
from skillchain.utils.logger import get_logger
from skillchain.utils.validators import slugify

logger = get_logger(__name__)


QUESTIONS_PROMPT = """You are an expert test creator. Generate exactly {count} multiple-choice questions about "{topic}".
The topic sits in this category path: {path}.

Each question should:
1. Be clear and specific
2. Have exactly 4 options
3. Have only one correct answer
4. Be challenging but fair
5. Test practical knowledge

Respond with JSON in this exact format:
{{
  "questions": [
    {{
      "question": "Question text here?",
      "options": ["Option 1", "Option 2", "Option 3", "Option 4"],
      "correctAnswer": 0
    }}
  ]
}}

The correctAnswer is the index (0-3) of the correct option. Return ONLY the JSON object."""


CATEGORY_PROMPTS = {
    1: "List {count} broad professional skill fields (for example Programming, Design, Finance).",
    2: "List {count} narrower skill areas within the field \"{parent}\".",
    3: "List {count} specific, testable topics within the skill area \"{parent}\".",
}

CATEGORY_FORMAT = """
Respond with JSON in this exact format:
{"categories": [{"name": "Category name"}]}
Return ONLY the JSON object."""


def _extract_json(raw_text: Optional[str]) -> dict:
    """Parse JSON from model output, tolerating markdown fences."""
    if not raw_text or not raw_text.strip():
        raise GenerationError("AI returned an empty response.")

    cleaned = raw_text.strip()
    if "```json" in cleaned:
        cleaned = cleaned.split("```json")[1].split("```")[0].strip()
    elif "```" in cleaned:
        cleaned = cleaned.split("```")[1].split("```")[0].strip()

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.error("ai_json_parse_failed", preview=cleaned[:200])
        raise GenerationError("AI returned invalid format.") from e
    if not isinstance(data, dict):
        raise GenerationError("AI returned invalid format.")
    return data


def parse_questions(data: dict, count: int, points: int) -> list[Question]:
    """Validate generated questions and convert them to Question records.

    Raises:
        GenerationError: wrong number of questions or a malformed question.
    """
    items = data.get("questions")
    if not isinstance(items, list) or len(items) != count:
        got = len(items) if isinstance(items, list) else 0
        raise GenerationError(f"Invalid number of questions generated: expected {count}, got {got}")

    questions = []
    for index, item in enumerate(items):
        try:
            questions.append(Question(
                id=f"q-{index + 1}",
                question=str(item["question"]).strip(),
                options=[str(o) for o in item["options"]],
                correct_answer=int(item["correctAnswer"]),
                points=points,
            ))
        except (KeyError, TypeError, ValueError) as e:
            raise GenerationError(f"Malformed question {index + 1}: {e}") from e
    return questions


class GeminiQuestionGenerator:
    """AI collaborator for tests and category suggestions."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self._model = None

    def _get_model(self):
        """Lazily initialize the Gemini model."""
        if self._model is None:
            if not self.settings.GEMINI_API_KEY:
                raise GenerationError(
                    "AI generation is not available: GEMINI_API_KEY is not configured."
                )
            genai.configure(api_key=self.settings.GEMINI_API_KEY)
            self._model = genai.GenerativeModel(
                model_name=self.settings.GEMINI_MODEL,
                generation_config={
                    "temperature": 0.7,
                    "response_mime_type": "application/json",
                },
            )
        return self._model

    async def _ask(self, prompt: str) -> dict:
        model = self._get_model()
        try:
            response = await asyncio.wait_for(
                model.generate_content_async(prompt),
                timeout=self.settings.GEMINI_TIMEOUT_SECONDS,
            )
        except asyncio.TimeoutError as e:
            logger.error("gemini_timeout", timeout=self.settings.GEMINI_TIMEOUT_SECONDS)
            raise GenerationError("AI generation timed out.") from e
        except Exception as e:
            logger.error("gemini_call_failed", error=str(e))
            raise GenerationError(f"AI processing failed: {e}") from e

        try:
            raw_text = response.text
        except (ValueError, AttributeError) as e:
            # Blocked or empty candidates
            raise GenerationError("AI failed to generate readable text.") from e
        return _extract_json(raw_text)

    async def generate_questions(self, category_path: tuple[str, str, str]) -> list[Question]:
        """Generate exactly QUESTIONS_PER_TEST questions for a category path."""
        count = self.settings.QUESTIONS_PER_TEST
        prompt = QUESTIONS_PROMPT.format(
            count=count,
            topic=category_path[-1],
            path=" > ".join(category_path),
        )
        data = await self._ask(prompt)
        questions = parse_questions(data, count, self.settings.POINTS_PER_QUESTION)
        logger.info("questions_generated", topic=category_path[-1], count=len(questions))
        return questions

    async def generate_categories(self, level: int, parent_category: Optional[str] = None, count: int = 8) -> list[Category]:
        """Suggest categories for the given level of the category tree."""
        prompt = CATEGORY_PROMPTS[level].format(count=count, parent=parent_category or "") + CATEGORY_FORMAT
        data = await self._ask(prompt)

        items = data.get("categories")
        if not isinstance(items, list) or not items:
            raise GenerationError("AI returned no categories.")

        categories = []
        seen = set()
        for item in items:
            name = str(item.get("name", "") if isinstance(item, dict) else item).strip()
            slug = slugify(name)
            if not slug or slug in seen:
                continue
            seen.add(slug)
            categories.append(Category(id=slug, name=name, level=level))
        return categories
