from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlmodel import Session

from app.auth import get_current_user
from app.chat_service import handle_message
from app.db import get_session
from app.directory import Directory
from app.schemas.chat import MessageRequest, UserContext

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@router.post("/chat/message")
async def send_chat_message(
    payload: MessageRequest,
    session: Session = Depends(get_session),
    user: UserContext = Depends(get_current_user),
) -> JSONResponse:
    if not payload.message or not payload.message.strip():
        raise HTTPException(400, "Mensaje requerido")
    status_code, envelope = await handle_message(Directory(session), payload.message, user)
    return JSONResponse(status_code=status_code, content=envelope)
