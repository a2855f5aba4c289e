"""Public category listing and negation trigger words."""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import List

from models import NegativeKeyword
from schemas import CategoriesResponse, CategoryRow, NegativeKeywordCreate, NegativeKeywordResponse
from knowledge_base import KnowledgeBaseError, list_categories
from deps import error_response, get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["catalog"])


@router.get("/categories", response_model=CategoriesResponse)
async def public_categories(db: Session = Depends(get_db)):
    """All categories, children included, so the frontend can build the tree."""
    try:
        rows = list_categories(db)
    except KnowledgeBaseError as exc:
        logger.error("[catalog] categories unavailable: %s", exc)
        return error_response(500, "Internal Server Error")
    return CategoriesResponse(categories=[CategoryRow(**r) for r in rows], count=len(rows))


@router.get("/negative-keywords", response_model=List[NegativeKeywordResponse])
async def list_negative_keywords(db: Session = Depends(get_db)):
    try:
        rows = db.query(NegativeKeyword).order_by(NegativeKeyword.word.asc()).all()
    except SQLAlchemyError as exc:
        logger.error("[catalog] negative keywords unavailable: %s", exc)
        return error_response(500, "Internal Server Error")
    return [NegativeKeywordResponse.model_validate(r) for r in rows]


@router.post("/negative-keywords", response_model=NegativeKeywordResponse, status_code=status.HTTP_201_CREATED)
async def add_negative_keyword(data: NegativeKeywordCreate, db: Session = Depends(get_db)):
    word = (data.word or "").strip().lower()
    if not word:
        return error_response(400, "word is required")
    try:
        existing = db.query(NegativeKeyword).filter(NegativeKeyword.word == word).first()
        if existing:
            return error_response(400, "Negative keyword already exists")

        row = NegativeKeyword(word=word, weight=data.weight, is_active=True)
        db.add(row)
        db.commit()
        db.refresh(row)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("[catalog] could not add negative keyword %r: %s", word, exc)
        return error_response(500, "Internal Server Error")
    return NegativeKeywordResponse.model_validate(row)
