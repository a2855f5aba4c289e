"""Chat turn routes: respond, inspect blocked topics."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from schemas import BlockedStateResponse, ChatRequest
from exclusion_store import SessionContext, exclusion_store
from knowledge_base import KnowledgeBaseError
from responder import AnswerNotFoundError, ChatResponder, ChatTurn, InvalidTurnError, coerce_question_id
from deps import error_response, get_db, get_session_context

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chat", tags=["chat"])


def _pick_message(req: ChatRequest):
    """``message`` wins over ``text``; an explicit empty string stays empty."""
    for value in (req.message, req.text):
        if value not in (None, ""):
            return value
    if "" in (req.message, req.text):
        return ""
    return None


@router.post("/respond")
async def respond(
    req: ChatRequest,
    db: Session = Depends(get_db),
    session: SessionContext = Depends(get_session_context),
):
    responder = ChatResponder(db, session)
    try:
        turn = ChatTurn(
            message=_pick_message(req),
            question_id=coerce_question_id(req.id),
            reset=bool(req.resetConversation),
        )
        result = await responder.respond(turn)
    except InvalidTurnError:
        return error_response(400, "Invalid payload")
    except AnswerNotFoundError:
        return error_response(404, "ไม่พบข้อมูล")
    except KnowledgeBaseError as exc:
        logger.error("[chat] knowledge base unavailable: %s", exc)
        return error_response(500, "เกิดข้อผิดพลาด")
    return result.model_dump()


@router.get("/blocked", response_model=BlockedStateResponse)
async def blocked_topics(session: SessionContext = Depends(get_session_context)):
    state = exclusion_store.load(session)
    return BlockedStateResponse(
        blockedKeywords=sorted(state.blocked_keywords),
        blockedDomains=sorted(state.blocked_domains),
        updatedAt=state.updated_at,
    )
