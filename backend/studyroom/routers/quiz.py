"""
Quiz Session Router

HTTP surface for the quiz session controller. A session is started from a
saved piece of content and then driven by discrete events: option selection
(pointer), numeric key presses, "next", narration replay and exit. Each
event is handled to completion before the response goes out; narration runs
in the background and its latest clip can be fetched separately.
"""

from __future__ import annotations
import logging
import uuid
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel

from ..content import ContentUnavailable
from ..deps import NarratorFactory, get_history, get_library, get_narrator_factory
from ..library import ContentLibrary, ProgressHistory
from ..narration import NarrationClip
from ..quiz_session import (
	AlreadyAnswered,
	InvalidSelection,
	NotAnswered,
	QuizSessionController,
	QuizSessionError,
	SessionCompleted,
)

router = APIRouter(prefix="/quiz", tags=["quiz"])
log = logging.getLogger(__name__)


# ============================================================================
# REQUEST MODELS
# ============================================================================

class StartRequest(BaseModel):
	content_id: str
	accessibility_mode: bool = False


class SelectRequest(BaseModel):
	index: int


class KeyRequest(BaseModel):
	key: str


# ============================================================================
# SESSION STORAGE
# ============================================================================

class ActiveQuiz:
	def __init__(self, session_id: str, content_id: str) -> None:
		self.session_id = session_id
		self.content_id = content_id
		self.controller: Optional[QuizSessionController] = None
		self.last_clip: Optional[NarrationClip] = None

	def store_clip(self, clip: NarrationClip) -> None:
		self.last_clip = clip

	def view(self) -> Dict[str, Any]:
		return {"session_id": self.session_id, "content_id": self.content_id, **self.controller.snapshot()}


# Process-local; sessions are discarded on exit and never persisted
_sessions: Dict[str, ActiveQuiz] = {}


def _get_session(session_id: str) -> ActiveQuiz:
	quiz = _sessions.get(session_id)
	if quiz is None:
		raise HTTPException(status_code=404, detail="Session not found")
	return quiz


def _raise_for(err: QuizSessionError) -> None:
	if isinstance(err, InvalidSelection):
		raise HTTPException(status_code=400, detail=str(err))
	if isinstance(err, (AlreadyAnswered, NotAnswered, SessionCompleted)):
		raise HTTPException(status_code=409, detail=str(err))
	raise HTTPException(status_code=410, detail=str(err))


def close_all_sessions() -> None:
	for quiz in list(_sessions.values()):
		if quiz.controller is not None:
			quiz.controller.exit()
	_sessions.clear()


# ============================================================================
# API ENDPOINTS
# ============================================================================

@router.post("/sessions", status_code=201)
async def start_session(
	req: StartRequest,
	store: ContentLibrary = Depends(get_library),
	progress: ProgressHistory = Depends(get_history),
	make_narrator: NarratorFactory = Depends(get_narrator_factory),
):
	content = store.get(req.content_id)
	if content is None:
		raise HTTPException(status_code=404, detail="Content not found")

	quiz = ActiveQuiz(session_id=uuid.uuid4().hex, content_id=content.id)

	def _record(score: int, total: int) -> None:
		progress.record(content.title, score, total)

	def _forget() -> None:
		_sessions.pop(quiz.session_id, None)

	try:
		quiz.controller = QuizSessionController(
			content.quiz,
			narrator=make_narrator(quiz.store_clip),
			accessibility_mode=req.accessibility_mode,
			on_finish=_record,
			on_exit=_forget,
		)
	except ContentUnavailable as e:
		raise HTTPException(status_code=503, detail=f"content unavailable: {e}")
	_sessions[quiz.session_id] = quiz
	quiz.controller.start()
	log.info("Started quiz session %s for content %s", quiz.session_id, content.id)
	return quiz.view()


@router.get("/sessions/{session_id}")
async def get_session(session_id: str):
	return _get_session(session_id).view()


@router.post("/sessions/{session_id}/select")
async def select_option(session_id: str, req: SelectRequest):
	quiz = _get_session(session_id)
	try:
		quiz.controller.select(req.index)
	except QuizSessionError as err:
		_raise_for(err)
	return quiz.view()


@router.post("/sessions/{session_id}/keys")
async def press_key(session_id: str, req: KeyRequest):
	quiz = _get_session(session_id)
	accepted = quiz.controller.handle_key(req.key)
	return {"accepted": accepted, **quiz.view()}


@router.post("/sessions/{session_id}/next")
async def next_question(session_id: str):
	quiz = _get_session(session_id)
	try:
		quiz.controller.advance()
	except QuizSessionError as err:
		_raise_for(err)
	return quiz.view()


@router.post("/sessions/{session_id}/narrate")
async def narrate_question(session_id: str):
	quiz = _get_session(session_id)
	return {"requested": quiz.controller.narrate_question()}


@router.get("/sessions/{session_id}/narration")
async def latest_narration(session_id: str):
	quiz = _get_session(session_id)
	clip = quiz.last_clip
	if clip is None:
		return Response(status_code=204)
	return Response(
		content=clip.wav,
		media_type="audio/wav",
		headers={"X-Narration-Duration-Ms": f"{clip.duration_ms:.0f}"},
	)


@router.delete("/sessions/{session_id}")
async def exit_session(session_id: str):
	quiz = _get_session(session_id)
	completed = quiz.controller.snapshot()["completed"]
	quiz.controller.exit()
	_sessions.pop(session_id, None)
	return {"session_id": session_id, "exited": True, "completed": completed}

