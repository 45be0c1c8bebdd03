from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class DirectiveAction(str, Enum):
    CREATE_CLIENT = "createClient"
    CREATE_EXPEDIENTE = "createExpediente"
    AGENDAR_CITA = "agendarCita"


class Outcome(str, Enum):
    MISSING_FIELD = "missing_field"
    INVALID_FIELD = "invalid_field"
    ENTITY_NOT_FOUND = "entity_not_found"
    DISPATCHED = "dispatched"
    DISPATCH_FAILED = "dispatch_failed"


class Directive(BaseModel):
    action: DirectiveAction
    data: dict[str, str] = Field(default_factory=dict)

    @field_validator("data", mode="before")
    @classmethod
    def _stringify_values(cls, value: Any) -> Any:
        if value is None:
            return {}
        if not isinstance(value, dict):
            return value
        return {
            str(key): item if isinstance(item, str) else str(item)
            for key, item in value.items()
            if item is not None
        }


class ActionResult(BaseModel):
    success: bool
    response: str
    status_code: int = 200
    payload_key: str | None = None
    payload: dict[str, Any] | None = None
    error: str | None = None
    outcome: Outcome | None = None
