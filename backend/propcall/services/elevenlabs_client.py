import httpx
from typing import Any, Dict, List, Optional
import logging

from ..errors import UpstreamError

# Set up logger
logger = logging.getLogger(__name__)


class ElevenLabsConfigError(RuntimeError):
    """Raised when the ElevenLabs API key is missing."""


class ElevenLabsClient:
    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://api.elevenlabs.io",
        model_id: str = "eleven_multilingual_v2",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model_id = model_id
        self.transport = transport

    def _headers(self) -> Dict[str, str]:
        if not self.api_key or not self.api_key.strip():
            logger.error("ElevenLabs API key is missing in server configuration")
            raise ElevenLabsConfigError("ELEVENLABS_API_KEY is not set")
        return {"xi-api-key": self.api_key}

    async def list_voices(self) -> List[Dict[str, Any]]:
        """Return the account's voices, reshaped for the client."""
        headers = self._headers()
        try:
            async with httpx.AsyncClient(base_url=self.base_url, transport=self.transport) as client:
                response = await client.get("/v1/voices", headers=headers, timeout=15.0)
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Error fetching ElevenLabs voices: {str(e)}")
            raise UpstreamError("Failed to fetch voices from ElevenLabs")
        voices = response.json().get("voices", [])
        return [
            {
                "id": v.get("voice_id"),
                "name": v.get("name"),
                "category": v.get("category"),
                "description": v.get("description"),
                "previewUrl": v.get("preview_url"),
                "settings": v.get("settings"),
                "labels": v.get("labels"),
            }
            for v in voices
        ]

    async def synthesize(self, text: str, voice_id: str) -> bytes:
        """Generate speech for text and return the mp3 bytes."""
        headers = {**self._headers(), "Accept": "audio/mpeg"}
        payload = {
            "text": text,
            "model_id": self.model_id,
            "voice_settings": {"stability": 0.5, "similarity_boost": 0.75},
        }
        logger.info(f"Synthesizing {len(text)} chars with voice {voice_id}")
        try:
            async with httpx.AsyncClient(base_url=self.base_url, transport=self.transport) as client:
                response = await client.post(
                    f"/v1/text-to-speech/{voice_id}",
                    headers=headers,
                    json=payload,
                    timeout=60.0,
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"ElevenLabs HTTP error: {e.response.status_code} - {e.response.text}")
            raise UpstreamError("Speech synthesis failed", status_code=e.response.status_code)
        except httpx.RequestError as e:
            logger.error(f"ElevenLabs request error: {str(e)}")
            raise UpstreamError("Failed to connect to ElevenLabs API")
        return response.content
