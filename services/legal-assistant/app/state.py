from typing import TypedDict

from app.directory import Directory
from app.schemas.chat import UserContext
from app.schemas.directives import ActionResult, Directive


class PipelineState(TypedDict, total=False):
    tenant_id: str
    message: str
    user: UserContext
    directory: Directory
    reply: str | None
    directive: Directive | None
    result: ActionResult
