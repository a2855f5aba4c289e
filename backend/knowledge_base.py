"""Read-only access to the Q&A knowledge base and its contacts.

Records are fetched fresh on every ranking pass; nothing here caches.
"""

import logging
import os
from dataclasses import dataclass
from typing import Iterable, Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload, selectinload

from models import Category, CategoryContact, Officer, Organization, QuestionAnswer

logger = logging.getLogger(__name__)


def _env_int(name: str, default: int, min_value: int, max_value: int) -> int:
    raw = os.getenv(name)
    try:
        value = int(raw) if raw not in (None, "") else default
    except Exception:
        value = default
    return max(min_value, min(max_value, value))


DEFAULT_CONTACTS_LIMIT = _env_int("DEFAULT_CONTACTS_LIMIT", 5, 1, 50)


class KnowledgeBaseError(Exception):
    """The store could not be read; the turn cannot produce a partial answer."""


@dataclass(frozen=True)
class CandidateRecord:
    id: int
    title: str
    text: str
    keywords: tuple = ()
    category: Optional[str] = None
    category_pdf: Optional[str] = None
    officer_id: Optional[int] = None


def _to_record(row: QuestionAnswer) -> CandidateRecord:
    return CandidateRecord(
        id=row.id,
        title=row.title or "",
        text=row.text or "",
        keywords=tuple(k.text for k in (row.keywords or []) if k.text),
        category=row.category.name if row.category else None,
        category_pdf=row.category.pdf_url if row.category else None,
        officer_id=row.officer_id,
    )


def fetch_candidates(db: Session) -> list[CandidateRecord]:
    try:
        rows = (
            db.query(QuestionAnswer)
            .options(selectinload(QuestionAnswer.keywords), joinedload(QuestionAnswer.category))
            .order_by(QuestionAnswer.id.asc())
            .all()
        )
    except SQLAlchemyError as exc:
        raise KnowledgeBaseError(str(exc)) from exc
    return [_to_record(r) for r in rows]


def fetch_record(db: Session, qa_id: int) -> Optional[CandidateRecord]:
    try:
        row = (
            db.query(QuestionAnswer)
            .options(selectinload(QuestionAnswer.keywords), joinedload(QuestionAnswer.category))
            .filter(QuestionAnswer.id == qa_id)
            .first()
        )
    except SQLAlchemyError as exc:
        raise KnowledgeBaseError(str(exc)) from exc
    return _to_record(row) if row else None


def _dedupe_contacts(rows: Iterable[tuple]) -> list[dict]:
    seen: set = set()
    out: list[dict] = []
    for organization, category, contact in rows:
        key = (organization, category, contact)
        if key in seen:
            continue
        seen.add(key)
        out.append({"organization": organization, "category": category or None, "contact": contact or None})
    return out


def fetch_contacts_for(db: Session, qa_ids: Iterable[int]) -> list[dict]:
    """Contacts attached to the records' categories (or their parent category)."""
    ids = [i for i in qa_ids if i]
    if not ids:
        return []
    try:
        rows = (
            db.query(Organization.id, Organization.name, Category.name, CategoryContact.contact)
            .select_from(QuestionAnswer)
            .outerjoin(Officer, QuestionAnswer.officer_id == Officer.id)
            .outerjoin(Organization, Officer.org_id == Organization.id)
            .outerjoin(Category, QuestionAnswer.category_id == Category.id)
            .join(
                CategoryContact,
                or_(CategoryContact.category_id == Category.id, CategoryContact.category_id == Category.parent_id),
            )
            .filter(QuestionAnswer.id.in_(ids))
            .filter(func.trim(CategoryContact.contact) != "")
            .distinct()
            .order_by(Organization.id.asc(), Category.name.asc())
            .all()
        )
    except SQLAlchemyError as exc:
        logger.warning("[contacts] lookup failed for %s: %s", ids, exc)
        db.rollback()
        return []
    return _dedupe_contacts((org, cat, contact) for _, org, cat, contact in rows)


def fetch_default_contacts(db: Session, limit: int = DEFAULT_CONTACTS_LIMIT) -> list[dict]:
    """Contacts of the top-level categories, used when nothing matched."""
    try:
        rows = (
            db.query(Category.name, CategoryContact.contact)
            .join(CategoryContact, CategoryContact.category_id == Category.id)
            .filter(or_(Category.parent_id.is_(None), Category.parent_id == Category.id))
            .filter(func.trim(CategoryContact.contact) != "")
            .order_by(Category.id.asc(), CategoryContact.id.asc())
            .limit(limit)
            .all()
        )
    except SQLAlchemyError as exc:
        raise KnowledgeBaseError(str(exc)) from exc
    return _dedupe_contacts((None, name, contact) for name, contact in rows)


def list_categories(db: Session) -> list[dict]:
    try:
        categories = (
            db.query(Category)
            .options(selectinload(Category.contacts))
            .order_by(Category.name.asc())
            .all()
        )
    except SQLAlchemyError as exc:
        raise KnowledgeBaseError(str(exc)) from exc
    return [
        {
            "CategoriesID": c.id,
            "CategoriesName": c.name,
            "ParentCategoriesID": c.parent_id,
            "CategoriesPDF": c.pdf_url,
            "Contact": " ||| ".join(cc.contact for cc in c.contacts if cc.contact),
        }
        for c in categories
    ]
