"""Request body validation shared by the JSON routes."""

import json
import logging
from typing import Any, Mapping

from fastapi import HTTPException, Request

logger = logging.getLogger("voicerelay")


def _invalid(message: str, code: str) -> HTTPException:
    return HTTPException(
        status_code=400,
        detail={
            "error": {
                "message": message,
                "type": "invalid_request_error",
                "code": code,
            }
        },
    )


async def read_json_object(request: Request) -> Mapping[str, Any]:
    body = await request.body()
    try:
        payload = json.loads(body or b"{}")
    except json.JSONDecodeError as exc:
        logger.error(f"Invalid JSON payload on {request.url.path}: {exc}")
        raise _invalid("Invalid JSON payload", "invalid_json") from exc
    if not isinstance(payload, Mapping):
        logger.error("Payload must be a JSON object")
        raise _invalid("Request body must be a JSON object", "invalid_json_shape")
    return payload


def require_text_field(payload: Mapping[str, Any], field: str) -> str:
    value = payload.get(field)
    if not isinstance(value, str):
        logger.error(f"Request missing '{field}' field")
        raise _invalid(f"You must provide a '{field}' string", "missing_parameter")
    return value
