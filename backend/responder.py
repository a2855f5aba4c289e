"""Chat-turn orchestration.

Order of a turn: reset -> lexicon load -> direct lookup by id -> input check
-> normalize -> repeated-blocked-topic short-circuit -> negation short-circuit
-> fetch records, rank, filter -> top alternatives with contacts.
"""

import logging
import os
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel
from sqlalchemy.orm import Session

from exclusion_store import ExclusionStore, SessionContext, exclusion_store
from knowledge_base import fetch_candidates, fetch_contacts_for, fetch_default_contacts, fetch_record
from lexicon import load_lexicon
from negation import NegationFinding, detect_negation
from normalizer import TextNormalizer
from ranker import CandidateRanker, ScoredCandidate, apply_post_filters
from schemas import (
    Alternative,
    AnswerResponse,
    ContactInfo,
    MatchResponse,
    NegationResponse,
    NoMatchResponse,
    ResetResponse,
)
from telemetry import append_retrieval_telemetry
from text_utils import simple_tokenize
from tokenizer_client import TokenizerClient, tokenizer_client

logger = logging.getLogger(__name__)

BOT_PRONOUN = os.getenv("BOT_PRONOUN", "หนู")
MAX_ALTERNATIVES = 3
PREVIEW_CHARS = 200


class InvalidTurnError(ValueError):
    """The turn carries no usable message."""


class AnswerNotFoundError(LookupError):
    pass


def coerce_question_id(value: Any) -> Optional[int]:
    """Falsy ids mean "no lookup"; anything else must be an integer."""
    if isinstance(value, bool):
        if value:
            raise InvalidTurnError("id must be an integer")
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        if not value.isdigit():
            raise InvalidTurnError("id must be an integer")
        value = int(value)
    if value is None:
        return None
    if not isinstance(value, int):
        raise InvalidTurnError("id must be an integer")
    return value or None


@dataclass
class ChatTurn:
    message: Any = None
    question_id: Optional[int] = None
    reset: bool = False

    @property
    def is_reset_only(self) -> bool:
        return self.reset and self.question_id is None and self.message in (None, "")


class ChatResponder:
    def __init__(
        self,
        db: Session,
        session: SessionContext,
        store: ExclusionStore = exclusion_store,
        tokenizer: Optional[TokenizerClient] = tokenizer_client,
    ):
        self.db = db
        self.session = session
        self.store = store
        self.tokenizer = tokenizer

    async def respond(self, turn: ChatTurn) -> BaseModel:
        if turn.reset:
            self.store.clear(self.session)
            if turn.is_reset_only:
                return ResetResponse()

        lexicon = load_lexicon(self.db)

        if turn.question_id is not None:
            return self.answer_by_id(turn.question_id)

        message = turn.message
        if not isinstance(message, str):
            raise InvalidTurnError("message must be a string")

        normalizer = TextNormalizer(lexicon, self.tokenizer)
        query_tokens = await normalizer.normalize(message)
        if not query_tokens:
            return self._no_match("ขออภัย ไม่เข้าใจคำถาม", message)

        repeated = self.store.is_blocked_message(self.session, message)
        if repeated:
            return self._already_blocked(repeated)

        finding = detect_negation(message, simple_tokenize(message), query_tokens, lexicon)
        if finding.actionable:
            return self._block(finding)

        candidates = fetch_candidates(self.db)
        if not candidates:
            return self._no_match("ฐานข้อมูลยังไม่พร้อม", message)

        ranked = await CandidateRanker(normalizer).rank(query_tokens, candidates)
        final = apply_post_filters(ranked, message, lexicon.generic_terms)
        if not final:
            return self._no_match("ไม่พบข้อมูลที่ตรงกัน", message)
        return self._matched(message, final[:MAX_ALTERNATIVES])

    def answer_by_id(self, question_id: int) -> AnswerResponse:
        record = fetch_record(self.db, question_id)
        if record is None:
            raise AnswerNotFoundError(question_id)
        return AnswerResponse(
            answer=record.text,
            title=record.title,
            questionId=record.id,
            categories=record.category,
            categoriesPDF=record.category_pdf,
        )

    def _no_match(self, text: str, message: str) -> NoMatchResponse:
        append_retrieval_telemetry("no_match", {"query": message[:200], "reason": text})
        contacts = fetch_default_contacts(self.db)
        return NoMatchResponse(message=text, contacts=[ContactInfo(**c) for c in contacts])

    def _already_blocked(self, keyword: str) -> NegationResponse:
        state = self.store.load(self.session)
        append_retrieval_telemetry("blocked_repeat", {"keyword": keyword})
        return NegationResponse(
            message=f'{BOT_PRONOUN}ได้ปิดเรื่อง "{keyword}" ไว้แล้วค่ะ',
            blockedDomains=sorted(state.blocked_domains),
            blockedKeywords=sorted(state.blocked_keywords),
            blockedKeywordsDisplay=[keyword],
        )

    def _block(self, finding: NegationFinding) -> NegationResponse:
        if finding.keywords:
            self.store.persist_keywords(self.session, finding.keywords)
        if finding.domains:
            self.store.persist_domains(self.session, finding.domains)
        state = self.store.load(self.session)
        logger.info(
            "[negation] session=%s trigger=%s keywords=%s domains=%s",
            self.session.session_key, finding.trigger_word, finding.keywords, finding.domains,
        )
        append_retrieval_telemetry(
            "negation_block",
            {"trigger": finding.trigger_word, "keywords": finding.keywords, "domains": finding.domains},
        )
        names = ", ".join(finding.display.get(k, k) for k in finding.keywords) or "หัวข้อที่คุณปฏิเสธ"
        return NegationResponse(
            message=f"รับทราบค่ะ จะไม่แนะนำ {names} แล้วนะคะ",
            blockedDomains=sorted(state.blocked_domains),
            blockedKeywords=sorted(state.blocked_keywords),
            blockedKeywordsDisplay=list(finding.keywords),
        )

    def _matched(self, message: str, top: list[ScoredCandidate]) -> MatchResponse:
        contacts = fetch_contacts_for(self.db, [r.record.id for r in top])
        append_retrieval_telemetry(
            "match",
            {"query": message[:200], "ids": [r.record.id for r in top], "top_score": round(top[0].total_score, 2)},
        )
        return MatchResponse(
            multipleResults=len(top) > 1,
            query=message,
            message=f"✨ พบ {len(top)} คำถามที่ใกล้เคียง",
            contacts=[ContactInfo(**c) for c in contacts],
            alternatives=[
                Alternative(
                    id=r.record.id,
                    title=r.record.title,
                    preview=r.record.text[:PREVIEW_CHARS],
                    text=r.record.text,
                    score=round(r.total_score, 2),
                    keywords=list(r.record.keywords),
                    categories=r.record.category,
                    categoriesPDF=r.record.category_pdf,
                )
                for r in top
            ],
        )
