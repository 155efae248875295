from __future__ import annotations
import logging
from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel

from ..content import ContentUnavailable, generate_learning_content
from ..deps import NarratorFactory, get_gemini_client, get_library, get_narrator_factory
from ..gemini_client import GeminiClient
from ..library import ContentLibrary
from ..models import LearningContent
from ..narration import NarrationClip
from ..quiz_session import NarrationGate
from ..settings import settings

router = APIRouter(prefix="/content", tags=["content"])
log = logging.getLogger(__name__)

# One "currently reading" indicator per content item
_summary_gates: Dict[str, NarrationGate] = {}


class ProcessRequest(BaseModel):
	text: str


@router.post("", response_model=LearningContent, status_code=201)
async def create_content(
	req: ProcessRequest,
	client: GeminiClient = Depends(get_gemini_client),
	store: ContentLibrary = Depends(get_library),
):
	try:
		content = await generate_learning_content(client, req.text)
	except ValueError as e:
		raise HTTPException(status_code=400, detail=str(e))
	except ContentUnavailable as e:
		raise HTTPException(status_code=503, detail=f"content unavailable: {e}")
	return store.add(content)


@router.get("", response_model=List[LearningContent])
async def list_content(store: ContentLibrary = Depends(get_library)):
	return store.list()


@router.get("/{content_id}", response_model=LearningContent)
async def get_content(content_id: str, store: ContentLibrary = Depends(get_library)):
	content = store.get(content_id)
	if content is None:
		raise HTTPException(status_code=404, detail="Content not found")
	return content


@router.post("/{content_id}/narration")
async def narrate_summary(
	content_id: str,
	store: ContentLibrary = Depends(get_library),
	make_narrator: NarratorFactory = Depends(get_narrator_factory),
):
	"""Read the title and summary aloud. 204 when speech is unavailable, 409 while already reading."""
	content = store.get(content_id)
	if content is None:
		raise HTTPException(status_code=404, detail="Content not found")
	clips: List[NarrationClip] = []
	narrator = make_narrator(clips.append)
	gate = _summary_gates.get(content_id)
	if gate is None:
		# Entry lives only while the reading indicator is up
		gate = NarrationGate(narrator, on_reset=lambda: _summary_gates.pop(content_id, None))
		_summary_gates[content_id] = gate
	if not gate.try_acquire():
		raise HTTPException(status_code=409, detail="narration already in progress")
	duration = None
	try:
		duration = await narrator.speak(f"Title: {content.title}. Summary: {content.summary}")
	except Exception as err:
		log.warning("Summary narration failed for %s: %s", content_id, err)
	gate.release_after(duration, settings.narration_long_fallback_ms)
	if not clips:
		return Response(status_code=204)
	clip = clips[-1]
	return Response(
		content=clip.wav,
		media_type="audio/wav",
		headers={"X-Narration-Duration-Ms": f"{clip.duration_ms:.0f}"},
	)
