import structlog
from langgraph.graph import END, StateGraph

from app.assistant_client import AssistantUnavailable, send_message
from app.directives.composer import chat_result
from app.directives.extractor import extract_directive
from app.directives.router import route
from app.schemas.directives import ActionResult
from app.state import PipelineState

logger = structlog.get_logger("pipeline")

APOLOGY = (
    "Lo siento, estoy experimentando dificultades técnicas. "
    "Por favor, intenta nuevamente en unos momentos."
)


def unavailable_result() -> ActionResult:
    return ActionResult(
        success=False,
        response=APOLOGY,
        status_code=500,
        error="Error interno del servidor",
    )


async def assistant_node(state: PipelineState) -> PipelineState:
    try:
        state["reply"] = await send_message(state["message"], state["user"])
    except AssistantUnavailable:
        state["result"] = unavailable_result()
    return state


async def extract_node(state: PipelineState) -> PipelineState:
    directive = extract_directive(state.get("reply"))
    state["directive"] = directive
    if directive:
        logger.info("directive_extracted", action=directive.action.value, fields=sorted(directive.data))
    return state


async def dispatch_node(state: PipelineState) -> PipelineState:
    state["result"] = route(state["directive"], state["directory"], state["tenant_id"])
    return state


async def compose_node(state: PipelineState) -> PipelineState:
    state["result"] = chat_result(state.get("reply") or "")
    return state


def _after_assistant(state: PipelineState) -> str:
    return "failed" if state.get("result") else "extract"


def _after_extract(state: PipelineState) -> str:
    return "dispatch" if state.get("directive") else "compose"


def build_graph() -> StateGraph:
    graph = StateGraph(PipelineState)
    graph.add_node("assistant", assistant_node)
    graph.add_node("extract", extract_node)
    graph.add_node("dispatch", dispatch_node)
    graph.add_node("compose", compose_node)

    graph.set_entry_point("assistant")
    graph.add_conditional_edges("assistant", _after_assistant, {"failed": END, "extract": "extract"})
    graph.add_conditional_edges("extract", _after_extract, {"dispatch": "dispatch", "compose": "compose"})
    graph.add_edge("dispatch", END)
    graph.add_edge("compose", END)

    return graph


graph = build_graph().compile()
