import json
from typing import Callable, List, Optional

import pytest
from fastapi.testclient import TestClient

from studyroom import deps
from studyroom.library import history, library
from studyroom.main import app
from studyroom.models import QuizQuestion
from studyroom.narration import NarrationClip, pcm_to_wav
from studyroom.routers import content as content_router
from studyroom.routers import quiz as quiz_router


def make_questions(correct_indexes):
	return [
		QuizQuestion(
			question=f"Question about topic {n}?",
			options=(f"A{n}", f"B{n}", f"C{n}", f"D{n}"),
			correct_index=correct,
			explanation=f"Because option {correct + 1} is right.",
		)
		for n, correct in enumerate(correct_indexes)
	]


CONTENT_PAYLOAD = {
	"summary": "Photosynthesis turns light into chemical energy.",
	"flashcards": [
		{"question": "Where does photosynthesis happen?", "answer": "In chloroplasts."},
		{"question": "What gas is released?", "answer": "Oxygen."},
	],
	"quiz": [
		{
			"question": "Which organelle hosts photosynthesis?",
			"options": ["Nucleus", "Chloroplast", "Ribosome", "Vacuole"],
			"correctIndex": 1,
			"explanation": "Chloroplasts contain chlorophyll.",
		},
		{
			"question": "Which gas is consumed?",
			"options": ["Carbon dioxide", "Oxygen", "Nitrogen", "Helium"],
			"correctIndex": 0,
			"explanation": "CO2 is fixed into sugars.",
		},
	],
}

SCHEDULE_PAYLOAD = [
	{"week": "Week 1", "topic": "Light reactions", "objectives": ["Explain ATP"], "activities": ["Lab"]},
	{"week": "Week 2", "topic": "Calvin cycle", "objectives": ["Trace carbon"], "activities": ["Quiz"]},
]


class FakeGeminiClient:
	def __init__(self, responses=None, error: Optional[Exception] = None):
		self.responses = list(responses or [])
		self.error = error
		self.prompts: List[str] = []
		self.schemas: List[dict] = []

	async def generate_json(self, prompt, response_schema):
		self.prompts.append(prompt)
		self.schemas.append(response_schema)
		if self.error is not None:
			raise self.error
		return self.responses.pop(0)

	async def aclose(self):
		pass


class FakeNarrator:
	"""Records what it was asked to say and reports a fixed duration."""

	def __init__(self, duration_ms: Optional[float] = 10, sink: Optional[Callable[[NarrationClip], None]] = None, error=None):
		self.duration_ms = duration_ms
		self.sink = sink
		self.error = error
		self.spoken: List[str] = []

	async def speak(self, text):
		self.spoken.append(text)
		if self.error is not None:
			raise self.error
		if self.duration_ms is None:
			return None
		if self.sink is not None:
			self.sink(NarrationClip(text=text, wav=pcm_to_wav(b"\x00\x00" * 240), duration_ms=self.duration_ms))
		return self.duration_ms


@pytest.fixture(autouse=True)
def reset_state():
	library.clear()
	history.clear()
	quiz_router._sessions.clear()
	content_router._summary_gates.clear()
	yield
	library.clear()
	history.clear()
	quiz_router._sessions.clear()
	content_router._summary_gates.clear()
	app.dependency_overrides.clear()


@pytest.fixture()
def fake_gemini():
	fake = FakeGeminiClient(responses=[json.dumps(CONTENT_PAYLOAD)])

	async def _override():
		yield fake

	app.dependency_overrides[deps.get_gemini_client] = _override
	return fake


@pytest.fixture()
def narrators():
	created: List[FakeNarrator] = []

	def _factory(sink=None):
		narrator = FakeNarrator(duration_ms=10, sink=sink)
		created.append(narrator)
		return narrator

	app.dependency_overrides[deps.get_narrator_factory] = lambda: _factory
	return created


@pytest.fixture()
def client():
	with TestClient(app) as test_client:
		yield test_client
