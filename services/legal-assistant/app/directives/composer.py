from typing import Any

from app.config import settings
from app.schemas.directives import ActionResult
from app.utils import iso_timestamp

FALLBACK_REPLY = "Lo siento, no pude procesar tu consulta en este momento."


def clean(reply: str, marker: str | None = None) -> str:
    """Cut the reply at the directive marker so the user never sees the internal block."""
    marker = marker or settings.directive_marker
    index = reply.find(marker)
    if index == -1:
        return reply
    return reply[:index].rstrip()


def chat_result(reply: str) -> ActionResult:
    return ActionResult(success=True, response=clean(reply) or FALLBACK_REPLY)


def build_envelope(result: ActionResult) -> dict[str, Any]:
    envelope: dict[str, Any] = {
        "success": result.success,
        "response": result.response,
        "timestamp": iso_timestamp(),
    }
    if result.payload_key and result.payload is not None:
        envelope[result.payload_key] = result.payload
    if result.error:
        envelope["error"] = result.error
    return envelope
