"""Speech synthesis and transcription routes."""

import base64
import json
import logging

import httpx
from fastapi import Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse

from ...core.exceptions import InvalidRequestError, PayloadTooLargeError
from ...core.registry import get_settings
from ...core.retry import RetryController
from ...core.upstream import format_httpx_error
from ...relay import clip_text, extract_audio
from .payloads import read_json_object, require_text_field

logger = logging.getLogger("voicerelay")

SPEECH_PATH = "/audio/speech"
TRANSCRIPTIONS_PATH = "/audio/transcriptions"
SPEECH_FORMAT = "wav"


async def tts_simple(request: Request) -> Response:
    """Synthesize speech and return it base64 encoded.

    POST /api/tts  {"text": "...", "voice": "alloy"}
    """
    payload = await read_json_object(request)
    text = require_text_field(payload, "text")
    settings = get_settings()

    voice = payload.get("voice")
    if not isinstance(voice, str) or not voice.strip():
        voice = settings.default_voice
    clipped = clip_text(text, settings.tts_max_input_bytes)
    if clipped != text:
        logger.info(f"Clipped TTS input from {len(text)} to {len(clipped)} chars")

    upstream = settings.upstream
    url = upstream.build_url(SPEECH_PATH)
    tts_request = {
        "model": settings.models.tts,
        "voice": voice,
        "input": clipped,
        "format": SPEECH_FORMAT,
    }

    controller = RetryController(settings.retry_schedule)
    async with upstream.open_client() as client:

        async def _call() -> httpx.Response:
            return await client.post(
                url, json=tts_request, headers={"Accept": f"audio/{SPEECH_FORMAT}"}
            )

        result = await controller.run(_call, label="tts")

    if result.ok:
        audio_b64 = base64.b64encode(result.response.content).decode("ascii")
        logger.info(
            f"TTS produced {len(result.response.content)} bytes "
            f"after {len(result.attempts)} attempt(s)"
        )
        return JSONResponse({"audio_base64": audio_b64})

    return PlainTextResponse(result.detail or "tts failed", status_code=502)


async def stt(request: Request) -> Response:
    """Transcribe the uploaded ``audio`` field.

    POST /api/stt  multipart/form-data
    """
    settings = get_settings()
    try:
        audio = await extract_audio(request, max_body_bytes=settings.max_body_bytes)
    except PayloadTooLargeError as exc:
        logger.warning(f"STT request rejected: {exc.message}")
        return PlainTextResponse(exc.message, status_code=413)
    except InvalidRequestError as exc:
        logger.warning(f"STT request rejected ({exc.code}): {exc.message}")
        return PlainTextResponse(exc.message, status_code=400)

    upstream = settings.upstream
    url = upstream.build_url(TRANSCRIPTIONS_PATH)
    logger.info(f"Forwarding {audio.size} bytes of audio ({audio.filename}) for transcription")

    try:
        async with upstream.open_client() as client:
            resp = await client.post(
                url,
                data={"model": settings.models.stt},
                files={"file": (audio.filename, audio.content, audio.content_type)},
            )
    except httpx.HTTPError as exc:
        detail = format_httpx_error(exc, upstream, url=url)
        logger.error(f"stt http error: {detail}")
        return PlainTextResponse(str(exc) or detail, status_code=502)

    if not resp.is_success:
        logger.error(f"stt error: status={resp.status_code} body={resp.text[:1000]}")
        return PlainTextResponse(resp.text, status_code=502)

    try:
        document = resp.json()
    except json.JSONDecodeError:
        logger.warning("Transcription response was not JSON; returning empty text")
        document = {"text": ""}
    return JSONResponse(document)
