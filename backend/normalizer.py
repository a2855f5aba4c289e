"""Query/record text normalization into content tokens.

Pipeline: clean -> external segmenter (or local stopword segmentation) ->
stopword refinement -> synonym canonicalization. Normalization never raises;
an internal error degrades to the trimmed raw text as a single token.
"""

import logging
from typing import Iterable, Optional

from lexicon import Lexicon
from text_utils import clean_for_tokens, unique_preserving_order
from tokenizer_client import TokenizerClient

logger = logging.getLogger(__name__)

REFINE_MAX_ITERATIONS = 1000
SHORT_STOPWORD_MAX_LEN = 4
PREFIX_STOPWORD_MAX_LEN = 2


class TextNormalizer:
    """Turn free text into an ordered, deduplicated list of content tokens."""

    def __init__(self, lexicon: Lexicon, tokenizer: Optional[TokenizerClient] = None):
        self.lexicon = lexicon
        self.tokenizer = tokenizer
        stopwords = lexicon.stopwords
        self._longest_first = sorted((sw for sw in stopwords if sw), key=lambda s: (-len(s), s))
        self._short_shortest_first = sorted(
            (sw for sw in stopwords if sw and len(sw) <= SHORT_STOPWORD_MAX_LEN),
            key=lambda s: (len(s), s),
        )
        self._prefixes = [sw for sw in self._longest_first if len(sw) <= PREFIX_STOPWORD_MAX_LEN]

    async def normalize(self, text: str) -> list[str]:
        try:
            cleaned = clean_for_tokens(text)
            base = None
            if self.tokenizer is not None and cleaned.strip():
                base = await self.tokenizer.tokenize(cleaned)
            if not base:
                base = self.segment_locally(cleaned)
            return self.canonicalize(self.refine(base))
        except Exception as exc:
            logger.warning("[normalize] degraded to raw text: %s", exc)
            raw = str(text or "").strip()
            return [raw] if raw else []

    def segment_locally(self, cleaned: str) -> list[str]:
        stopwords = self.lexicon.stopwords
        segmented = cleaned
        for sw in self._short_shortest_first:
            segmented = segmented.replace(sw, " ")

        tokens: list[str] = []
        for tok in segmented.split():
            if tok in stopwords:
                continue
            stripped = tok
            for sw in self._prefixes:
                if stripped.startswith(sw) and len(stripped) > len(sw):
                    stripped = stripped[len(sw):]
                    break
            if stripped and stripped not in stopwords:
                tokens.append(stripped)
        return tokens

    def refine(self, tokens: Iterable[str]) -> list[str]:
        """Drop stopwords and split tokens that still hide a stopword inside them."""
        stopwords = self.lexicon.stopwords
        queue = list(tokens)
        seen: set[str] = set()
        result: list[str] = []
        iterations = 0
        while queue:
            iterations += 1
            if iterations > REFINE_MAX_ITERATIONS:
                logger.warning("[normalize] refinement ceiling hit with %d tokens queued", len(queue))
                break
            tok = str(queue.pop(0) or "").strip()
            if not tok or tok in seen:
                continue
            seen.add(tok)
            if tok in stopwords:
                continue
            split_on = next((sw for sw in self._longest_first if sw != tok and sw in tok), None)
            if split_on is None:
                result.append(tok)
                continue
            pieces = [p.strip() for p in tok.split(split_on) if p.strip()]
            queue[0:0] = pieces
        return result

    def canonicalize(self, tokens: Iterable[str]) -> list[str]:
        return unique_preserving_order(self.lexicon.canonical(t) for t in tokens)
