"""
Content generation.

Turns pasted study material into a summary, flashcards and a multiple-choice
quiz with a single Gemini JSON-mode call, and builds week-by-week teaching
schedules for educators. Anything that goes wrong upstream (unreachable
service, HTTP error, malformed or incomplete JSON) surfaces as
``ContentUnavailable`` so callers never start a quiz on bad data.
"""

from __future__ import annotations
import json
import logging
import re
import time
import uuid
from typing import Any, Dict, List

from pydantic import ValidationError

from .gemini_client import GeminiClient
from .models import Flashcard, LearningContent, QuizQuestion, TeacherScheduleWeek

log = logging.getLogger(__name__)

TITLE_MAX_CHARS = 50


class ContentUnavailable(Exception):
	"""Raised when generated study content cannot be obtained or trusted."""


# ============================================================================
# RESPONSE SCHEMAS
# ============================================================================

LEARNING_CONTENT_SCHEMA: Dict[str, Any] = {
	"type": "OBJECT",
	"properties": {
		"summary": {"type": "STRING"},
		"flashcards": {
			"type": "ARRAY",
			"items": {
				"type": "OBJECT",
				"properties": {
					"question": {"type": "STRING"},
					"answer": {"type": "STRING"},
				},
				"required": ["question", "answer"],
			},
		},
		"quiz": {
			"type": "ARRAY",
			"items": {
				"type": "OBJECT",
				"properties": {
					"question": {"type": "STRING"},
					"options": {"type": "ARRAY", "items": {"type": "STRING"}},
					"correctIndex": {"type": "INTEGER"},
					"explanation": {"type": "STRING"},
				},
				"required": ["question", "options", "correctIndex", "explanation"],
			},
		},
	},
	"required": ["summary", "flashcards", "quiz"],
}

SCHEDULE_SCHEMA: Dict[str, Any] = {
	"type": "ARRAY",
	"items": {
		"type": "OBJECT",
		"properties": {
			"week": {"type": "STRING"},
			"topic": {"type": "STRING"},
			"objectives": {"type": "ARRAY", "items": {"type": "STRING"}},
			"activities": {"type": "ARRAY", "items": {"type": "STRING"}},
		},
		"required": ["week", "topic", "objectives", "activities"],
	},
}


# ============================================================================
# PROMPTS
# ============================================================================

def _build_content_prompt(text: str) -> str:
	return (
		"Process this educational content. Provide a concise summary, 5 key flashcards (question/answer), "
		"and a 5-question multiple choice quiz. Each quiz question must have exactly 4 options, "
		"a correctIndex between 0 and 3, and a one-sentence explanation.\n"
		"Return ONLY JSON with keys: summary, flashcards, quiz.\n"
		f"Content: {text}"
	)


def _build_schedule_prompt(topic: str, weeks: int) -> str:
	return (
		f'Create a teaching schedule for "{topic}" spread over {weeks} weeks.\n'
		"Return ONLY a JSON array; each item has keys: week, topic, objectives (array), activities (array)."
	)


# ============================================================================
# PARSING
# ============================================================================

def _extract_json(text: str) -> Any:
	"""
	Pull a JSON value out of an LLM response.

	JSON mode normally returns bare JSON, but the OpenRouter fallback may wrap
	it in a markdown fence or surround it with prose.
	"""
	try:
		return json.loads(text)
	except (TypeError, ValueError):
		pass

	code_block = re.search(r"```(?:json)?\s*([\s\S]*?)\s*```", text or "")
	if code_block:
		try:
			return json.loads(code_block.group(1))
		except ValueError:
			pass

	for opener, closer in (("{", "}"), ("[", "]")):
		first = (text or "").find(opener)
		last = (text or "").rfind(closer)
		if first != -1 and last > first:
			try:
				return json.loads(text[first : last + 1])
			except ValueError:
				continue

	raise ContentUnavailable("model did not return valid JSON")


def derive_title(text: str) -> str:
	first_line = text.strip().split("\n")[0]
	return first_line[:TITLE_MAX_CHARS] + "..."


def parse_learning_content(raw: str, source_text: str) -> LearningContent:
	data = _extract_json(raw)
	if not isinstance(data, dict):
		raise ContentUnavailable("expected a JSON object with summary, flashcards and quiz")
	raw_flashcards = data.get("flashcards") or []
	raw_quiz = data.get("quiz") or []
	raw_summary = data.get("summary") or ""
	if not isinstance(raw_flashcards, list) or not isinstance(raw_quiz, list):
		raise ContentUnavailable("flashcards and quiz must be JSON arrays")
	if not isinstance(raw_summary, str):
		raise ContentUnavailable("summary must be a string")
	try:
		flashcards = [Flashcard.model_validate(f) for f in raw_flashcards]
		quiz = [QuizQuestion.model_validate(q) for q in raw_quiz]
	except ValidationError as err:
		raise ContentUnavailable(f"malformed study content: {err.error_count()} validation error(s)") from err
	summary = raw_summary.strip()
	if not summary or not quiz:
		raise ContentUnavailable("study content is missing a summary or quiz")
	return LearningContent(
		id=uuid.uuid4().hex[:9],
		title=derive_title(source_text),
		summary=summary,
		flashcards=flashcards,
		quiz=quiz,
		timestamp=int(time.time() * 1000),
	)


# ============================================================================
# PUBLIC API
# ============================================================================

async def generate_learning_content(client: GeminiClient, text: str) -> LearningContent:
	"""Generate summary, flashcards and quiz for ``text``.

	Raises ``ValueError`` for blank input and ``ContentUnavailable`` for every
	upstream failure.
	"""
	if not (text or "").strip():
		raise ValueError("text is required")
	try:
		raw = await client.generate_json(_build_content_prompt(text), LEARNING_CONTENT_SCHEMA)
	except Exception as err:
		log.warning("Content generation failed: %s", err)
		raise ContentUnavailable("content service unreachable") from err
	content = parse_learning_content(raw, text)
	log.info("Generated content %s with %d quiz questions", content.id, len(content.quiz))
	return content


async def generate_schedule(client: GeminiClient, topic: str, weeks: int) -> List[TeacherScheduleWeek]:
	if not (topic or "").strip():
		raise ValueError("topic is required")
	if weeks < 1:
		raise ValueError("weeks must be at least 1")
	try:
		raw = await client.generate_json(_build_schedule_prompt(topic.strip(), weeks), SCHEDULE_SCHEMA)
	except Exception as err:
		log.warning("Schedule generation failed: %s", err)
		raise ContentUnavailable("content service unreachable") from err
	data = _extract_json(raw)
	if not isinstance(data, list) or not data:
		raise ContentUnavailable("expected a non-empty JSON array of weeks")
	try:
		return [TeacherScheduleWeek.model_validate(w) for w in data]
	except ValidationError as err:
		raise ContentUnavailable("malformed schedule") from err
