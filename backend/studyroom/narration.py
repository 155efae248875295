"""
Text-to-speech narration.

A narrator turns text into audio and reports how long playback takes, in
milliseconds, or ``None`` when it cannot. Narrators never raise: a missing
API key, an HTTP failure or an empty response all degrade to ``None``.
"""

from __future__ import annotations
import io
import logging
import wave
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from .gemini_client import GeminiClient

log = logging.getLogger(__name__)

PCM_SAMPLE_RATE = 24000
PCM_CHANNELS = 1
PCM_SAMPLE_WIDTH = 2


@dataclass(frozen=True)
class NarrationClip:
	text: str
	wav: bytes
	duration_ms: float


class Narrator(Protocol):
	async def speak(self, text: str) -> Optional[float]:
		...


def pcm_duration_ms(pcm: bytes) -> float:
	frames = len(pcm) / (PCM_SAMPLE_WIDTH * PCM_CHANNELS)
	return frames / PCM_SAMPLE_RATE * 1000


def pcm_to_wav(pcm: bytes) -> bytes:
	buffer = io.BytesIO()
	with wave.open(buffer, "wb") as wav_file:
		wav_file.setnchannels(PCM_CHANNELS)
		wav_file.setsampwidth(PCM_SAMPLE_WIDTH)
		wav_file.setframerate(PCM_SAMPLE_RATE)
		wav_file.writeframes(pcm)
	return buffer.getvalue()


class SilentNarrator:
	"""Used when speech output is unavailable."""

	async def speak(self, text: str) -> Optional[float]:
		return None


class GeminiNarrator:
	"""Gemini TTS narrator. Each synthesized clip is passed to ``sink``."""

	def __init__(
		self,
		*,
		sink: Optional[Callable[[NarrationClip], None]] = None,
		client_factory: Callable[[], GeminiClient] = GeminiClient,
	) -> None:
		self._sink = sink
		self._client_factory = client_factory

	async def speak(self, text: str) -> Optional[float]:
		clip = await self.synthesize(text)
		if clip is None:
			return None
		if self._sink is not None:
			self._sink(clip)
		return clip.duration_ms

	async def synthesize(self, text: str) -> Optional[NarrationClip]:
		cleaned = (text or "").strip()
		if not cleaned:
			return None
		try:
			client = self._client_factory()
		except ValueError as err:
			log.debug("Narration unavailable: %s", err)
			return None
		try:
			pcm = await client.synthesize_speech(cleaned)
		except Exception as err:
			log.warning("Narration failed: %s", err)
			return None
		finally:
			await client.aclose()
		if not pcm:
			return None
		return NarrationClip(text=cleaned, wav=pcm_to_wav(pcm), duration_ms=pcm_duration_ms(pcm))
