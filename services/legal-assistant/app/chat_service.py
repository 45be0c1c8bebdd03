from typing import Any

import structlog
from langsmith import traceable

from app.agents.pipeline import graph, unavailable_result
from app.directives.composer import build_envelope
from app.directory import Directory
from app.schemas.chat import UserContext
from app.schemas.directives import ActionResult
from app.state import PipelineState

logger = structlog.get_logger("chat_service")


@traceable(name="handle_message", run_type="chain")
async def handle_message(
    directory: Directory,
    message: str,
    user: UserContext,
) -> tuple[int, dict[str, Any]]:
    state: PipelineState = {
        "tenant_id": user.tenant_id,
        "message": message.strip(),
        "user": user,
        "directory": directory,
        "reply": None,
        "directive": None,
    }

    final: PipelineState = state
    try:
        final = await graph.ainvoke(state)
        result: ActionResult = final["result"]
    except Exception:
        logger.exception("pipeline_failed")
        result = unavailable_result()

    directive = final.get("directive")
    logger.info(
        "message_handled",
        tenant_id=user.tenant_id,
        action=directive.action.value if directive else None,
        success=result.success,
        status_code=result.status_code,
    )
    return result.status_code, build_envelope(result)
