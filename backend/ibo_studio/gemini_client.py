from __future__ import annotations
import logging
import httpx
from typing import Any, Dict, List, Optional
from .settings import settings

logger = logging.getLogger(__name__)


def provider_status() -> Dict[str, Any]:
	return {
		"default_provider": settings.gemini_provider,
		"model": settings.gemini_model,
		"configured": bool(settings.gemini_api_key),
		"fallback": {
			"provider": "openrouter",
			"configured": bool(settings.openrouter_api_key),
			"model": settings.openrouter_model,
		},
	}


def _endpoint(provider: str, model: str) -> str:
	if provider == "vertex":
		region = settings.vertex_region
		project = settings.vertex_project or "placeholder-project"
		return (
			f"https://{region}-aiplatform.googleapis.com/v1/projects/{project}"
			f"/locations/{region}/publishers/google/models/{model}:generateContent"
		)
	return f"https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"


class GeminiClient:
	"""Text generation against Gemini, optionally falling back to OpenRouter.

	AI Studio takes the key as a query parameter, Vertex AI Express as the
	``x-goog-api-key`` header.
	"""

	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		base_url: Optional[str] = None,
		model: Optional[str] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self.api_key = api_key or settings.gemini_api_key
		if not self.api_key:
			raise ValueError("GEMINI_API_KEY is not configured")
		self.model = model or settings.gemini_model
		self.provider = settings.gemini_provider
		self.base_url = base_url or _endpoint(self.provider, self.model)
		self._client = httpx.AsyncClient(timeout=settings.gemini_timeout_seconds, transport=transport)
		self._fallback_client: Optional[httpx.AsyncClient] = None
		if settings.openrouter_api_key:
			self._fallback_client = httpx.AsyncClient(timeout=settings.gemini_timeout_seconds, transport=transport)

	def _auth(self) -> Dict[str, Dict[str, str]]:
		if self.provider == "vertex":
			return {"params": {}, "headers": {"x-goog-api-key": self.api_key}}
		return {"params": {"key": self.api_key}, "headers": {}}

	async def generate(
		self,
		prompt: str,
		*,
		system: Optional[str] = None,
		temperature: Optional[float] = None,
		max_output_tokens: Optional[int] = None,
		json_mode: bool = False,
	) -> str:
		payload: Dict[str, Any] = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
		if system:
			payload["systemInstruction"] = {"parts": [{"text": system}]}
		config: Dict[str, Any] = {}
		if temperature is not None:
			config["temperature"] = temperature
		if max_output_tokens is not None:
			config["maxOutputTokens"] = max_output_tokens
		if json_mode:
			config["responseMimeType"] = "application/json"
		if config:
			payload["generationConfig"] = config
		try:
			return await self._primary(payload, json_mode=json_mode)
		except (httpx.HTTPError, RuntimeError) as primary_error:
			if self._fallback_client is None:
				raise
			logger.warning("Gemini call failed (%s); trying OpenRouter fallback", primary_error)
			messages: List[Dict[str, str]] = [{"role": "system", "content": system}] if system else []
			messages.append({"role": "user", "content": prompt})
			return await self._fallback_generate(messages, primary_error)

	async def _primary(self, payload: Dict[str, Any], *, json_mode: bool) -> str:
		auth = self._auth()
		r = await self._client.post(self.base_url, json=payload, **auth)
		if r.is_error and json_mode:
			# Some models reject responseMimeType; retry once without it
			config = {k: v for k, v in payload["generationConfig"].items() if k != "responseMimeType"}
			r = await self._client.post(self.base_url, json={**payload, "generationConfig": config}, **auth)
		r.raise_for_status()
		try:
			text = r.json()["candidates"][0]["content"]["parts"][0]["text"]
		except Exception:
			raise RuntimeError(f"Unexpected Gemini response: {r.text}")
		if not isinstance(text, str) or not text.strip():
			raise RuntimeError(f"Unexpected Gemini response: {r.text}")
		return text

	async def _fallback_generate(self, messages: List[Dict[str, str]], primary_error: Exception) -> str:
		headers = {
			"Authorization": f"Bearer {settings.openrouter_api_key}",
			"Content-Type": "application/json",
			"HTTP-Referer": settings.openrouter_referer,
			"X-Title": settings.openrouter_title,
		}
		payload: Dict[str, Any] = {"model": settings.openrouter_model, "messages": messages}
		try:
			r = await self._fallback_client.post(settings.openrouter_base_url, headers=headers, json=payload)
			r.raise_for_status()
			content = r.json()["choices"][0]["message"]["content"]
			if not isinstance(content, str) or not content.strip():
				raise RuntimeError(f"Unexpected OpenRouter response: {r.text}")
			return content
		except Exception as fallback_err:
			raise RuntimeError(
				f"Gemini primary call failed ({primary_error}); fallback via OpenRouter also failed"
			) from fallback_err

	async def aclose(self) -> None:
		await self._client.aclose()
		if self._fallback_client is not None:
			await self._fallback_client.aclose()
