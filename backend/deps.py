"""Shared FastAPI dependencies used across route modules."""

from fastapi import Request
from fastapi.responses import JSONResponse

from database import SessionLocal
from exclusion_store import SessionContext, session_key_for
from schemas import ErrorResponse


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_context(request: Request) -> SessionContext:
    storage = request.session if "session" in request.scope else None
    return SessionContext(session_key=session_key_for(request), storage=storage)


def error_response(status_code: int, message: str) -> JSONResponse:
    """The ``{"success": false, "message": ...}`` body every route fails with."""
    return JSONResponse(status_code=status_code, content=ErrorResponse(message=message).model_dump())
