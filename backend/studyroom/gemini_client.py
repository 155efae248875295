from __future__ import annotations
import base64
import binascii
import logging
import httpx
from typing import Any, Dict, Optional
from .settings import settings

log = logging.getLogger(__name__)

class GeminiClient:
	def __init__(self, api_key: Optional[str] = None, *, model: Optional[str] = None, tts_model: Optional[str] = None) -> None:
		self.api_key = api_key or settings.gemini_api_key
		if not self.api_key:
			raise ValueError("GEMINI_API_KEY is not configured")
		self.model = model or settings.gemini_model
		self.tts_model = tts_model or settings.gemini_tts_model
		self.provider = settings.gemini_provider
		self._auth_in_query = self.provider != "vertex"
		self._client = httpx.AsyncClient(timeout=30)
		self._fallback_client: Optional[httpx.AsyncClient] = None
		self._fallback_enabled = bool(settings.openrouter_api_key)
		self._openrouter_api_key = settings.openrouter_api_key
		self._openrouter_model = settings.openrouter_model
		self._openrouter_base_url = settings.openrouter_base_url
		self._openrouter_headers = {
			"Authorization": f"Bearer {self._openrouter_api_key}" if self._openrouter_api_key else "",
			"Content-Type": "application/json",
			"HTTP-Referer": settings.openrouter_referer,
			"X-Title": settings.openrouter_title,
		}
		if self._fallback_enabled:
			self._fallback_client = httpx.AsyncClient(timeout=30)

	def endpoint(self, model: str) -> str:
		if self.provider == "vertex":
			region = settings.vertex_region
			project = settings.vertex_project or "placeholder-project"
			# Vertex AI Generative REST endpoint (API key via header)
			return f"https://{region}-aiplatform.googleapis.com/v1/projects/{project}/locations/{region}/publishers/google/models/{model}:generateContent"
		# Google AI Studio (Generative Language API)
		return f"https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

	async def generate_json(self, prompt: str, response_schema: Dict[str, Any]) -> str:
		"""Ask for JSON constrained by ``response_schema``; returns the raw text part."""
		payload: Dict[str, Any] = {
			"contents": [{"parts": [{"text": prompt}]}],
			"generationConfig": {
				"responseMimeType": "application/json",
				"responseSchema": response_schema,
			},
		}
		return await self._post_payload(payload, fallback_prompt=prompt)

	async def synthesize_speech(self, text: str, *, voice_name: Optional[str] = None) -> Optional[bytes]:
		"""Return raw 24kHz 16-bit mono PCM for ``text``, or None when no audio came back."""
		payload: Dict[str, Any] = {
			"contents": [{"parts": [{"text": text}]}],
			"generationConfig": {
				"responseModalities": ["AUDIO"],
				"speechConfig": {
					"voiceConfig": {
						"prebuiltVoiceConfig": {"voiceName": voice_name or settings.gemini_tts_voice},
					},
				},
			},
		}
		r = await self._client.post(
			self.endpoint(self.tts_model),
			params=self._auth_params(),
			headers=self._auth_headers(),
			json=payload,
		)
		r.raise_for_status()
		data = r.json()
		try:
			parts = data["candidates"][0]["content"]["parts"]
		except (KeyError, IndexError, TypeError):
			return None
		for part in parts:
			inline = part.get("inlineData") or part.get("inline_data")
			if isinstance(inline, dict) and inline.get("data"):
				try:
					return base64.b64decode(inline["data"])
				except (binascii.Error, ValueError):
					log.warning("Discarding undecodable TTS payload")
					return None
		return None

	def _auth_params(self) -> Dict[str, Any]:
		return {"key": self.api_key} if self._auth_in_query else {}

	def _auth_headers(self) -> Dict[str, str]:
		return {} if self._auth_in_query else {"x-goog-api-key": self.api_key}

	async def _post_payload(
		self,
		payload: Dict[str, Any],
		*,
		fallback_prompt: str,
	) -> str:
		last_error: Optional[Exception] = None
		try:
			r = await self._client.post(
				self.endpoint(self.model),
				params=self._auth_params(),
				headers=self._auth_headers(),
				json=payload,
			)
			r.raise_for_status()
		except httpx.HTTPStatusError as http_err:
			last_error = http_err
		except httpx.RequestError as net_err:
			last_error = net_err
		if last_error is None:
			try:
				data = r.json()
				return data["candidates"][0]["content"]["parts"][0]["text"]
			except Exception:
				last_error = RuntimeError(f"Unexpected Gemini response: {r.text}")
		if not self._fallback_enabled:
			raise last_error or RuntimeError("Gemini call failed and no fallback configured")
		log.warning("Gemini call failed (%s); trying OpenRouter fallback", last_error)
		return await self._fallback_generate(fallback_prompt, last_error)

	async def aclose(self) -> None:
		await self._client.aclose()
		if self._fallback_client is not None:
			await self._fallback_client.aclose()

	async def _fallback_generate(self, prompt: str, primary_error: Optional[Exception]) -> str:
		if not self._fallback_client or not self._openrouter_api_key:
			raise primary_error or RuntimeError("Fallback requested but OpenRouter is not configured")
		headers = {k: v for k, v in self._openrouter_headers.items() if v}
		payload: Dict[str, Any] = {
			"model": self._openrouter_model,
			"messages": [{"role": "user", "content": prompt}],
		}
		try:
			r = await self._fallback_client.post(
				self._openrouter_base_url,
				headers=headers,
				json=payload,
			)
			r.raise_for_status()
			data = r.json()
			return data["choices"][0]["message"]["content"]
		except Exception as fallback_err:
			if primary_error is not None:
				raise RuntimeError(
					f"Gemini primary call failed ({primary_error}); fallback via OpenRouter also failed"
				) from fallback_err
			raise fallback_err
