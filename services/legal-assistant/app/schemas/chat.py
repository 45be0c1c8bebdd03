from typing import Any

from pydantic import BaseModel, Field


class UserContext(BaseModel):
    id: str
    role: str
    tenant_id: str
    organization_id: str | None = None
    claims: dict[str, Any] = Field(default_factory=dict)


class MessageRequest(BaseModel):
    message: str | None = None
