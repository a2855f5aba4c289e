import logging
import os

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

from database import engine, Base
import models  # noqa: F401  (registers tables on Base.metadata)
from deps import error_response
from routes import chat_router, catalog_router
from telemetry import read_retrieval_telemetry_summary


logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)


def _env_list(name: str, default: str) -> list[str]:
    return [v.strip() for v in (os.getenv(name, default) or "").split(",") if v.strip()]


# Create tables

Base.metadata.create_all(bind=engine)


app = FastAPI(
    title="PCRU Chatbot API",
    description="Q&A retrieval backend for the PCRU chatbot",
    version="1.0.0",
)


# CORS settings

app.add_middleware(
    CORSMiddleware,
    allow_origins=_env_list("CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000"),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Blocked topics live in the signed session cookie.
app.add_middleware(
    SessionMiddleware,
    secret_key=os.getenv("SESSION_SECRET_KEY", "change-me-in-production"),
    session_cookie="pcru_session",
    same_site="lax",
)

app.include_router(chat_router)
app.include_router(catalog_router)


@app.exception_handler(RequestValidationError)
async def invalid_payload_handler(request: Request, exc: RequestValidationError):
    return error_response(400, "Invalid payload")


@app.middleware("http")
async def utf8_charset_middleware(request: Request, call_next):
    response = await call_next(request)
    ct = response.headers.get("content-type", "")
    if "application/json" in ct and "charset" not in ct:
        response.headers["content-type"] = ct + "; charset=utf-8"
    return response


@app.get("/")
async def root():
    return {
        "message": "PCRU Chatbot API",
        "version": "1.0.0",
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


@app.get("/api/telemetry/summary")
async def get_retrieval_telemetry_summary(hours: int = 24, limit: int = 6):
    """Return telemetry counters and recent events for the retrieval pipeline."""
    return read_retrieval_telemetry_summary(hours=hours, limit=limit)


if __name__ == "__main__":

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
