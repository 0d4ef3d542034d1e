"""
Standalone speech synthesis app, deployed apart from the main API.

    uvicorn propcall.edge.text_to_speech:app

Nothing here is imported by propcall.main, so a slow or failing synthesis call
never ties up the API process.
"""
from typing import Any, Dict
import json
import logging

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, Response

from ..config import Settings, get_settings
from ..errors import GENERIC_MESSAGE
from ..services.elevenlabs_client import ElevenLabsClient

# Set up logger
logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

app = FastAPI(title="Propcall text-to-speech")


def get_speech_client(settings: Settings = Depends(get_settings)) -> ElevenLabsClient:
    return ElevenLabsClient(
        settings.elevenlabs_api_key,
        base_url=settings.elevenlabs_base_url,
        model_id=settings.elevenlabs_model_id,
    )


def _error_message(exc: Exception) -> str:
    if isinstance(exc, HTTPException):
        return str(exc.detail)
    return str(exc) or GENERIC_MESSAGE


@app.options("/")
async def preflight():
    return Response(status_code=200, headers=CORS_HEADERS)


@app.post("/")
async def text_to_speech(
    request: Request,
    client: ElevenLabsClient = Depends(get_speech_client),
    settings: Settings = Depends(get_settings),
):
    try:
        try:
            body: Dict[str, Any] = await request.json()
        except json.JSONDecodeError:
            raise ValueError("Request body must be JSON")
        if not isinstance(body, dict):
            raise ValueError("Request body must be a JSON object")

        text = body.get("text")
        if not text:
            raise ValueError("Text is required")
        voice_id = body.get("voiceId") or settings.default_voice_id

        audio = await client.synthesize(str(text), voice_id)
    except Exception as e:
        logger.error(f"Text-to-speech error: {str(e)}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": _error_message(e)}, headers=CORS_HEADERS)

    return Response(
        content=audio,
        media_type="audio/mpeg",
        headers={**CORS_HEADERS, "Content-Length": str(len(audio))},
    )
