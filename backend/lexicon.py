"""Per-turn lexicon: stopwords, synonyms, semantic similarity, negation words.

Everything here is reloaded at the start of each chat turn and handed to the
normalizer, detector and ranker as an immutable value. A table that cannot be
read degrades to an empty collection; the turn carries on without it.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Callable, Mapping, Optional

from sqlalchemy.orm import Session

from models import Keyword, KeywordSynonym, NegativeKeyword, SemanticSimilarity, Stopword
from telemetry import append_retrieval_telemetry

logger = logging.getLogger(__name__)


def _parse_terms(raw: str) -> frozenset:
    return frozenset(t.strip().lower() for t in (raw or "").split(",") if t.strip())


def _parse_domain_rules(raw: str) -> tuple:
    """Parse rules written as ``domain:needle|needle;domain:needle``."""
    rules = []
    for chunk in (raw or "").split(";"):
        if ":" not in chunk:
            continue
        domain, needles = chunk.split(":", 1)
        domain = domain.strip().lower()
        parts = tuple(n.strip().lower() for n in needles.split("|") if n.strip())
        if domain and parts:
            rules.append((domain, parts))
    return tuple(rules)


GENERIC_TERMS = _parse_terms(os.getenv("SPECIFICITY_GENERIC_TERMS", ""))
DOMAIN_RULES = _parse_domain_rules(os.getenv("NEGATION_DOMAIN_RULES", ""))


@dataclass(frozen=True)
class Lexicon:
    stopwords: frozenset = frozenset()
    synonyms: Mapping[str, str] = field(default_factory=dict)
    similarity: Mapping[tuple, float] = field(default_factory=dict)
    negation_words: frozenset = frozenset()
    generic_terms: frozenset = GENERIC_TERMS
    domain_rules: tuple = DOMAIN_RULES

    def canonical(self, token: str) -> str:
        key = str(token or "").lower().strip()
        return self.synonyms.get(key, token)

    def semantic_similarity(self, a: str, b: str) -> float:
        if not a or not b:
            return 0.0
        score = self.similarity.get((a, b))
        if score is None:
            # Pairs may be stored in one direction only.
            score = self.similarity.get((b, a), 0.0)
        return float(score)

    def domains_for(self, keyword: str) -> list[str]:
        kw = (keyword or "").lower()
        return [domain for domain, needles in self.domain_rules if any(n in kw for n in needles)]


def load_stopwords(db: Session) -> frozenset:
    rows = db.query(Stopword.word).all()
    return frozenset(str(w).strip().lower() for (w,) in rows if w and str(w).strip())


def load_synonyms(db: Session) -> dict:
    rows = (
        db.query(KeywordSynonym.input_word, Keyword.text)
        .join(Keyword, KeywordSynonym.target_keyword_id == Keyword.id)
        .filter(KeywordSynonym.is_active == True)
        .all()
    )
    mapping: dict[str, str] = {}
    for input_word, target in rows:
        if input_word and target:
            mapping[str(input_word).lower().strip()] = str(target).lower().strip()
    return mapping


def load_semantic_similarity(db: Session) -> dict:
    rows = db.query(SemanticSimilarity.word1, SemanticSimilarity.word2, SemanticSimilarity.score).all()
    mapping: dict[tuple, float] = {}
    for w1, w2, score in rows:
        if not w1 or not w2 or score is None:
            continue
        mapping[(str(w1).strip().lower(), str(w2).strip().lower())] = max(0.0, min(1.0, float(score)))
    return mapping


def load_negation_words(db: Session) -> frozenset:
    rows = db.query(NegativeKeyword.word).filter(NegativeKeyword.is_active == True).all()
    return frozenset(str(w).strip().lower() for (w,) in rows if w and str(w).strip())


def _safe_load(name: str, loader: Callable[[Session], object], db: Session, default):
    try:
        return loader(db)
    except Exception as exc:
        logger.warning("[lexicon] %s load failed, using empty: %s", name, exc)
        append_retrieval_telemetry("lexicon_degraded", {"source": name, "error": str(exc)[:200]})
        try:
            db.rollback()
        except Exception:
            pass
        return default


def load_lexicon(db: Session, generic_terms: Optional[frozenset] = None) -> Lexicon:
    return Lexicon(
        stopwords=_safe_load("stopwords", load_stopwords, db, frozenset()),
        synonyms=_safe_load("synonyms", load_synonyms, db, {}),
        similarity=_safe_load("semantic", load_semantic_similarity, db, {}),
        negation_words=_safe_load("negation_words", load_negation_words, db, frozenset()),
        generic_terms=GENERIC_TERMS if generic_terms is None else generic_terms,
    )
