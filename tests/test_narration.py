import asyncio
import base64
import io
import json
import wave

import httpx

from studyroom.gemini_client import GeminiClient
from studyroom.narration import GeminiNarrator, SilentNarrator, pcm_duration_ms, pcm_to_wav

ONE_SECOND_PCM = b"\x01\x00" * 24000


class FakeTTSClient:
	def __init__(self, pcm=None, error=None):
		self.pcm = pcm
		self.error = error
		self.closed = False
		self.texts = []

	async def synthesize_speech(self, text):
		self.texts.append(text)
		if self.error is not None:
			raise self.error
		return self.pcm

	async def aclose(self):
		self.closed = True


def test_pcm_duration():
	assert pcm_duration_ms(ONE_SECOND_PCM) == 1000
	assert pcm_duration_ms(b"") == 0


def test_pcm_to_wav_header():
	wav = pcm_to_wav(ONE_SECOND_PCM)
	with wave.open(io.BytesIO(wav), "rb") as wav_file:
		assert wav_file.getframerate() == 24000
		assert wav_file.getnchannels() == 1
		assert wav_file.getsampwidth() == 2
		assert wav_file.getnframes() == 24000


def test_gemini_narrator_reports_duration_and_feeds_sink():
	clips = []
	fake = FakeTTSClient(pcm=ONE_SECOND_PCM)
	narrator = GeminiNarrator(sink=clips.append, client_factory=lambda: fake)

	duration = asyncio.run(narrator.speak("  Correct!  "))

	assert duration == 1000
	assert fake.texts == ["Correct!"]
	assert fake.closed
	assert clips[0].text == "Correct!"
	assert clips[0].wav.startswith(b"RIFF")


def test_gemini_narrator_degrades_to_none():
	def _no_key():
		raise ValueError("GEMINI_API_KEY is not configured")

	assert asyncio.run(GeminiNarrator(client_factory=_no_key).speak("hi")) is None

	failing = FakeTTSClient(error=httpx.ConnectError("offline"))
	assert asyncio.run(GeminiNarrator(client_factory=lambda: failing).speak("hi")) is None
	assert failing.closed

	silent = FakeTTSClient(pcm=None)
	assert asyncio.run(GeminiNarrator(client_factory=lambda: silent).speak("hi")) is None

	assert asyncio.run(GeminiNarrator(client_factory=lambda: silent).speak("   ")) is None


def test_silent_narrator():
	assert asyncio.run(SilentNarrator().speak("anything")) is None


def _client_with(handler):
	client = GeminiClient(api_key="test-key", model="text-model", tts_model="tts-model")
	client._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
	return client


def test_synthesize_speech_decodes_inline_audio():
	seen = {}

	def handler(request):
		seen["url"] = str(request.url)
		seen["body"] = json.loads(request.content)
		audio = base64.b64encode(ONE_SECOND_PCM).decode()
		return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"inlineData": {"mimeType": "audio/pcm", "data": audio}}]}}]})

	async def run():
		client = _client_with(handler)
		try:
			return await client.synthesize_speech("Hello", voice_name="Kore")
		finally:
			await client.aclose()

	pcm = asyncio.run(run())
	assert pcm == ONE_SECOND_PCM
	assert "tts-model:generateContent" in seen["url"]
	assert "key=test-key" in seen["url"]
	config = seen["body"]["generationConfig"]
	assert config["responseModalities"] == ["AUDIO"]
	assert config["speechConfig"]["voiceConfig"]["prebuiltVoiceConfig"]["voiceName"] == "Kore"


def test_synthesize_speech_without_audio_returns_none():
	def handler(request):
		return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": "no audio"}]}}]})

	async def run():
		client = _client_with(handler)
		try:
			return await client.synthesize_speech("Hello")
		finally:
			await client.aclose()

	assert asyncio.run(run()) is None


def test_generate_json_sends_schema():
	seen = {}

	def handler(request):
		seen["url"] = str(request.url)
		seen["body"] = json.loads(request.content)
		return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": "{\"ok\": true}"}]}}]})

	async def run():
		client = _client_with(handler)
		try:
			return await client.generate_json("prompt", {"type": "OBJECT"})
		finally:
			await client.aclose()

	assert asyncio.run(run()) == '{"ok": true}'
	assert "text-model:generateContent" in seen["url"]
	assert seen["body"]["generationConfig"] == {
		"responseMimeType": "application/json",
		"responseSchema": {"type": "OBJECT"},
	}
