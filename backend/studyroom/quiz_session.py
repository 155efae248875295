"""
Quiz session controller.

A session walks a fixed, ordered list of questions through three states:

    Presenting(i) --select(idx)--> Feedback(i, idx) --advance--> Presenting(i+1)
                                                    --advance--> Completed(score, total)

``select_answer`` and ``advance`` are pure: they return the next state or raise
a ``QuizSessionError`` without touching anything. ``QuizSessionController``
owns the running score, fires the caller's ``on_finish``/``on_exit`` callbacks,
routes numeric key presses to the same ``select`` entry point as pointer input,
and drives optional narration through a ``NarrationGate``.

Narration is fire-and-forget. It runs as detached asyncio tasks and talks back
only through the gate's ``is_speaking`` flag, so a slow or failing TTS service
never holds up a transition.
"""

from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence, Set, Union

from .content import ContentUnavailable
from .models import QuizQuestion
from .narration import Narrator
from .settings import settings

log = logging.getLogger(__name__)

OPTION_COUNT = 4
ANSWER_KEYS: Dict[str, int] = {"1": 0, "2": 1, "3": 2, "4": 3}
KEY_INSTRUCTION = "Please press 1, 2, 3, or 4 on your keyboard."


# ============================================================================
# ERRORS
# ============================================================================

class QuizSessionError(Exception):
	"""Base class for rejected quiz actions. State is never mutated."""


class InvalidSelection(QuizSessionError):
	pass


class AlreadyAnswered(QuizSessionError):
	pass


class NotAnswered(QuizSessionError):
	pass


class SessionCompleted(QuizSessionError):
	pass


class SessionInactive(QuizSessionError):
	"""The session was never started or has been exited."""


# ============================================================================
# STATES
# ============================================================================

@dataclass(frozen=True)
class Presenting:
	index: int


@dataclass(frozen=True)
class Feedback:
	index: int
	selected: int
	correct: bool


@dataclass(frozen=True)
class Completed:
	score: int
	total: int


QuizState = Union[Presenting, Feedback, Completed]


def select_answer(state: QuizState, question: QuizQuestion, idx: int) -> Feedback:
	if isinstance(state, Completed):
		raise SessionCompleted("quiz is already completed")
	if isinstance(state, Feedback):
		raise AlreadyAnswered(f"question {state.index + 1} was already answered")
	if isinstance(idx, bool) or not isinstance(idx, int) or not 0 <= idx < OPTION_COUNT:
		raise InvalidSelection(f"answer index must be in 0..{OPTION_COUNT - 1}, got {idx!r}")
	return Feedback(index=state.index, selected=idx, correct=idx == question.correct_index)


def advance(state: QuizState, score: int, total: int) -> Union[Presenting, Completed]:
	if isinstance(state, Completed):
		raise SessionCompleted("quiz is already completed")
	if isinstance(state, Presenting):
		raise NotAnswered(f"question {state.index + 1} has not been answered")
	if state.index + 1 < total:
		return Presenting(state.index + 1)
	return Completed(score=score, total=total)


# ============================================================================
# NARRATION
# ============================================================================

class NarrationGate:
	"""
	Issues narration as detached tasks and keeps a "currently speaking" flag.

	The flag goes up when a gated request is issued and comes down after the
	reported playback duration, or ``fallback_ms`` when none is reported.
	Gated requests arriving while it is up are dropped, not queued.
	"""

	def __init__(self, narrator: Optional[Narrator], *, on_reset: Optional[Callable[[], Any]] = None) -> None:
		self._narrator = narrator
		self._on_reset = on_reset
		self._speaking = False
		self._closed = False
		self._tasks: Set[asyncio.Task] = set()
		self._reset_handle: Optional[asyncio.TimerHandle] = None

	@property
	def is_speaking(self) -> bool:
		return self._speaking

	@property
	def available(self) -> bool:
		return self._narrator is not None and not self._closed

	def try_acquire(self) -> bool:
		if not self.available or self._speaking:
			return False
		self._speaking = True
		return True

	def release_after(self, duration_ms: Optional[float], fallback_ms: int) -> None:
		if self._closed:
			return
		delay = (duration_ms or fallback_ms) / 1000
		try:
			loop = asyncio.get_running_loop()
		except RuntimeError:
			self._reset()
			return
		if self._reset_handle is not None:
			self._reset_handle.cancel()
		self._reset_handle = loop.call_later(delay, self._reset)

	def request(self, text: str, *, fallback_ms: int, gated: bool = True) -> bool:
		"""Start narrating ``text`` in the background. Returns False if dropped."""
		if not self.available:
			return False
		try:
			loop = asyncio.get_running_loop()
		except RuntimeError:
			log.debug("No running event loop; skipping narration")
			return False
		if gated and not self.try_acquire():
			return False
		task = loop.create_task(self._run(text, fallback_ms, gated))
		self._tasks.add(task)
		task.add_done_callback(self._tasks.discard)
		return True

	def cancel(self) -> None:
		self._closed = True
		for task in list(self._tasks):
			task.cancel()
		self._tasks.clear()
		if self._reset_handle is not None:
			self._reset_handle.cancel()
			self._reset_handle = None
		self._speaking = False

	async def _run(self, text: str, fallback_ms: int, gated: bool) -> None:
		duration: Optional[float] = None
		try:
			duration = await self._narrator.speak(text)
		except Exception as err:
			log.warning("Narration failed: %s", err)
		if gated:
			self.release_after(duration, fallback_ms)

	def _reset(self) -> None:
		self._reset_handle = None
		self._speaking = False
		if self._on_reset is not None:
			self._on_reset()


# ============================================================================
# CONTROLLER
# ============================================================================

def question_script(number: int, question: QuizQuestion) -> str:
	options = " ".join(f"Option {i + 1}: {opt}." for i, opt in enumerate(question.options))
	return f"Question {number}: {question.question}. {options} {KEY_INSTRUCTION}"


def feedback_script(question: QuizQuestion, correct: bool) -> str:
	if correct:
		return "Correct!"
	return f"Incorrect. The correct answer was {question.correct_option}."


class QuizSessionController:
	def __init__(
		self,
		questions: Sequence[QuizQuestion],
		*,
		narrator: Optional[Narrator] = None,
		accessibility_mode: bool = False,
		on_finish: Optional[Callable[[int, int], Any]] = None,
		on_exit: Optional[Callable[[], Any]] = None,
		question_fallback_ms: Optional[int] = None,
	) -> None:
		if not questions:
			raise ContentUnavailable("quiz has no questions")
		self.questions = tuple(questions)
		self.accessibility_mode = accessibility_mode
		self.question_fallback_ms = question_fallback_ms or settings.narration_question_fallback_ms
		self._on_finish = on_finish
		self._on_exit = on_exit
		self._gate = NarrationGate(narrator)
		self.state: QuizState = Presenting(0)
		self.score = 0
		self._started = False
		self._exited = False
		self._finish_fired = False
		self._keys_registered = False

	@property
	def total(self) -> int:
		return len(self.questions)

	@property
	def current_question(self) -> Optional[QuizQuestion]:
		if isinstance(self.state, Completed):
			return None
		return self.questions[self.state.index]

	@property
	def is_narrating(self) -> bool:
		return self._gate.is_speaking

	@property
	def keys_registered(self) -> bool:
		return self._keys_registered

	@property
	def active(self) -> bool:
		return self._started and not self._exited

	def start(self) -> QuizState:
		if self._exited:
			raise SessionInactive("session has been exited")
		if not self._started:
			self._started = True
			self._keys_registered = True
			self._enter_presenting()
		return self.state

	def select(self, idx: int) -> Feedback:
		"""Record an answer. Pointer and key input both land here."""
		self._require_active()
		question = self.questions[self.state.index] if not isinstance(self.state, Completed) else None
		new_state = select_answer(self.state, question, idx)
		self.state = new_state
		if new_state.correct:
			self.score += 1
		if self.accessibility_mode:
			self._gate.request(
				feedback_script(question, new_state.correct),
				fallback_ms=self.question_fallback_ms,
				gated=False,
			)
		return new_state

	def handle_key(self, key: str) -> bool:
		"""Numeric key input. Returns True if the key produced a selection."""
		if not self._keys_registered or not self.active:
			return False
		if not isinstance(self.state, Presenting):
			return False
		idx = ANSWER_KEYS.get(key)
		if idx is None:
			return False
		self.select(idx)
		return True

	def advance(self) -> Union[Presenting, Completed]:
		self._require_active()
		new_state = advance(self.state, self.score, self.total)
		self.state = new_state
		if isinstance(new_state, Completed):
			self._finish()
		else:
			self._enter_presenting()
		return new_state

	def narrate_question(self) -> bool:
		"""Read the current question aloud. Dropped while already speaking."""
		if not self.active or isinstance(self.state, Completed):
			return False
		index = self.state.index
		return self._gate.request(
			question_script(index + 1, self.questions[index]),
			fallback_ms=self.question_fallback_ms,
		)

	def exit(self) -> None:
		"""Tear down. Fires ``on_exit`` only when the quiz was abandoned early."""
		if self._exited:
			return
		self._exited = True
		self._keys_registered = False
		self._gate.cancel()
		if not isinstance(self.state, Completed) and self._on_exit is not None:
			self._on_exit()

	def snapshot(self) -> Dict[str, Any]:
		state = self.state
		view: Dict[str, Any] = {
			"total": self.total,
			"score": self.score,
			"accessibility_mode": self.accessibility_mode,
			"is_narrating": self.is_narrating,
			"accepting_keys": self._keys_registered,
		}
		if isinstance(state, Completed):
			view.update({"status": "completed", "index": self.total - 1, "completed": True})
			return view
		question = self.questions[state.index]
		view.update({
			"status": "presenting" if isinstance(state, Presenting) else "feedback",
			"index": state.index,
			"completed": False,
			"question": question.question,
			"options": list(question.options),
			"selected_index": None,
			"feedback_visible": False,
		})
		if isinstance(state, Feedback):
			view.update({
				"selected_index": state.selected,
				"feedback_visible": True,
				"correct": state.correct,
				"correct_index": question.correct_index,
				"explanation": question.explanation,
				"is_last": state.index == self.total - 1,
			})
		return view

	def _require_active(self) -> None:
		if not self._started:
			raise SessionInactive("session has not been started")
		if self._exited:
			raise SessionInactive("session has been exited")

	def _enter_presenting(self) -> None:
		if self.accessibility_mode:
			self.narrate_question()

	def _finish(self) -> None:
		self._keys_registered = False
		if self._finish_fired:
			return
		self._finish_fired = True
		log.info("Quiz completed: %d/%d", self.score, self.total)
		if self._on_finish is not None:
			self._on_finish(self.score, self.total)
