"""Candidate scoring and post-filtering.

Each record is scored against the normalized query with six weighted signals:

    keyword overlap      x2.0   query tokens present in the keyword tokens
    semantic keyword     x2.5   sum of best semantic similarity per query token
    semantic body        x1.0
    semantic title       x2.0
    body similarity      x1.0   Jaccard(query, body)
    title similarity     x2.0   Jaccard(query, title)

After sorting, a confident top match (> 5.0) drops everything under 70 % of
its score, then results are narrowed to candidates sharing any unusually
specific keyword the raw query spells out.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from knowledge_base import CandidateRecord
from lexicon import Lexicon
from normalizer import TextNormalizer
from text_utils import compact_lower, jaccard_similarity, overlap_score

WEIGHT_KEYWORD_OVERLAP = 2.0
WEIGHT_SEMANTIC_KEYWORD = 2.5
WEIGHT_SEMANTIC_BODY = 1.0
WEIGHT_SEMANTIC_TITLE = 2.0
WEIGHT_BODY_SIMILARITY = 1.0
WEIGHT_TITLE_SIMILARITY = 2.0

CONFIDENT_SCORE = 5.0
RELATIVE_CUTOFF = 0.7
SPECIFIC_TERM_MIN_LEN = 5


@dataclass
class ScoredCandidate:
    record: CandidateRecord
    total_score: float
    components: dict = field(default_factory=dict)


def semantic_overlap_score(query_tokens: Sequence[str], target_tokens: Iterable[str], lexicon: Lexicon) -> float:
    targets = list(target_tokens)
    total = 0.0
    for q in query_tokens:
        best = 0.0
        for t in targets:
            sim = lexicon.semantic_similarity(q, t)
            if sim > best:
                best = sim
        total += best
    return total


class CandidateRanker:
    def __init__(self, normalizer: TextNormalizer):
        self.normalizer = normalizer
        self.lexicon = normalizer.lexicon

    async def score(self, query_tokens: Sequence[str], record: CandidateRecord) -> ScoredCandidate:
        kw_tokens = await self.normalizer.normalize(" ".join(record.keywords))
        body_tokens = await self.normalizer.normalize(record.text)
        title_tokens = await self.normalizer.normalize(record.title)

        components = {
            "overlap": overlap_score(query_tokens, kw_tokens) * WEIGHT_KEYWORD_OVERLAP,
            "semanticKw": semantic_overlap_score(query_tokens, kw_tokens, self.lexicon) * WEIGHT_SEMANTIC_KEYWORD,
            "semanticText": semantic_overlap_score(query_tokens, body_tokens, self.lexicon) * WEIGHT_SEMANTIC_BODY,
            "semanticTitle": semantic_overlap_score(query_tokens, title_tokens, self.lexicon) * WEIGHT_SEMANTIC_TITLE,
            "semantic": jaccard_similarity(query_tokens, body_tokens) * WEIGHT_BODY_SIMILARITY,
            "title": jaccard_similarity(query_tokens, title_tokens) * WEIGHT_TITLE_SIMILARITY,
        }
        return ScoredCandidate(record=record, total_score=sum(components.values()), components=components)

    async def rank(self, query_tokens: Sequence[str], candidates: Iterable[CandidateRecord]) -> list[ScoredCandidate]:
        scored = [await self.score(query_tokens, record) for record in candidates]
        return sorted(scored, key=lambda s: s.total_score, reverse=True)


def filter_by_confidence(ranked: list[ScoredCandidate]) -> list[ScoredCandidate]:
    if not ranked:
        return []
    best = ranked[0].total_score
    if best <= CONFIDENT_SCORE:
        return list(ranked)
    return [r for r in ranked if r.total_score >= best * RELATIVE_CUTOFF]


def find_specific_term(best: CandidateRecord, raw_query: str, generic_terms: Iterable[str] = ()) -> Optional[str]:
    compact_query = compact_lower(raw_query)
    generic = {compact_lower(t) for t in generic_terms}
    for kw in best.keywords:
        term = compact_lower(kw)
        if term and term in compact_query and len(term) >= SPECIFIC_TERM_MIN_LEN and term not in generic:
            return term
    return None


def narrow_by_specific_term(ranked: list[ScoredCandidate], term: str) -> list[ScoredCandidate]:
    out = []
    for r in ranked:
        keywords = [compact_lower(k) for k in r.record.keywords]
        if any(term in k for k in keywords) or term in compact_lower(r.record.title):
            out.append(r)
    return out


def apply_post_filters(
    ranked: list[ScoredCandidate],
    raw_query: str,
    generic_terms: Iterable[str] = (),
) -> list[ScoredCandidate]:
    """Confidence cut, then specificity narrowing. An empty result means no match."""
    if not ranked:
        return []
    best = ranked[0]
    results = filter_by_confidence(ranked)
    term = find_specific_term(best.record, raw_query, generic_terms)
    if term:
        results = narrow_by_specific_term(results, term)
    return results
