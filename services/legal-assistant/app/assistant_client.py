import time
from typing import Any

import httpx
import structlog
from langsmith import traceable

from app.config import settings
from app.observability import record_assistant_error, record_assistant_timing
from app.schemas.chat import UserContext
from app.utils import iso_timestamp

logger = structlog.get_logger("assistant_client")


class AssistantUnavailable(Exception):
    """The conversational webhook could not be reached or answered with an error."""


@traceable(name="assistant_webhook_call", run_type="llm")
async def send_message(message: str, user: UserContext) -> str | None:
    payload = {
        "chatInput": message,
        "user": {
            "id": user.id,
            "role": user.role,
            "organizationId": user.organization_id or user.tenant_id,
            "tenantId": user.tenant_id,
        },
        "timestamp": iso_timestamp(),
    }

    start = time.perf_counter()
    try:
        async with httpx.AsyncClient(timeout=settings.assistant_timeout_seconds) as client:
            response = await client.post(settings.n8n_webhook_url, json=payload)
            response.raise_for_status()
            body = _decode_body(response)
    except Exception as exc:
        record_assistant_error(exc.__class__.__name__)
        logger.exception("assistant_request_failed", error=str(exc))
        raise AssistantUnavailable(str(exc)) from exc
    finally:
        record_assistant_timing(time.perf_counter() - start)

    reply = reply_text(body)
    logger.info(
        "assistant_request_succeeded",
        duration_ms=round((time.perf_counter() - start) * 1000, 2),
        reply_chars=len(reply) if reply else 0,
    )
    return reply


def reply_text(body: Any) -> str | None:
    # n8n answers {"output": ...}; other workflow shapes are searched depth-first.
    if isinstance(body, dict) and isinstance(body.get("output"), str):
        return body["output"]
    return _first_string(body)


def _first_string(value: Any) -> str | None:
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        value = list(value.values())
    if isinstance(value, list):
        for item in value:
            found = _first_string(item)
            if found is not None:
                return found
    return None


def _decode_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text
