from __future__ import annotations
import logging
from typing import AsyncIterator, Callable, Optional

from fastapi import HTTPException

from .gemini_client import GeminiClient
from .library import ContentLibrary, ProgressHistory, history, library
from .narration import GeminiNarrator, NarrationClip, Narrator

log = logging.getLogger(__name__)

NarratorFactory = Callable[[Optional[Callable[[NarrationClip], None]]], Narrator]


async def get_gemini_client() -> AsyncIterator[GeminiClient]:
	try:
		client = GeminiClient()
	except ValueError as err:
		log.warning("Gemini client unavailable: %s", err)
		raise HTTPException(status_code=503, detail="content unavailable: generation service is not configured")
	try:
		yield client
	finally:
		await client.aclose()


def _gemini_narrator(sink: Optional[Callable[[NarrationClip], None]] = None) -> Narrator:
	return GeminiNarrator(sink=sink)


def get_narrator_factory() -> NarratorFactory:
	return _gemini_narrator


def get_library() -> ContentLibrary:
	return library


def get_history() -> ProgressHistory:
	return history
