"""Topic-rejection detection ("ไม่เอาหอพัก", "I don't want dorm info").

Two strategies feed one finding:

* surface scan of the raw message for a known negation trigger, longest
  trigger first, taking the word right after it as the rejected keyword;
* structural pairing of negation-bearing raw tokens with the keyword they
  negate. The pairing heuristic also knows a few inline patterns that are not
  in the store, so its pairs are only trusted when the negation word itself is
  a known trigger.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from lexicon import Lexicon
from text_utils import first_word, unique_preserving_order

MIN_KEYWORD_LEN = 2

INLINE_NEGATION_PATTERNS = (
    "ไม่",
    "ไม่เอา",
    "ไม่ต้องการ",
    "ไม่อยาก",
    "ไม่สนใจ",
    "ไม่ใช่",
    "no",
    "not",
    "don't",
    "dont",
    "without",
)


@dataclass(frozen=True)
class NegationPair:
    negation_word: str
    keyword: str
    display: str


@dataclass
class NegationFinding:
    triggered: bool = False
    trigger_word: Optional[str] = None
    keywords: list[str] = field(default_factory=list)
    display: dict[str, str] = field(default_factory=dict)
    domains: list[str] = field(default_factory=list)

    @property
    def actionable(self) -> bool:
        return self.triggered and bool(self.keywords or self.domains)


def _longest_prefix(token: str, words: Sequence[str]) -> Optional[str]:
    for w in words:
        # Space-delimited scripts carry negations as whole words ("not" vs "notebook").
        if w.isascii():
            if token == w:
                return w
        elif token.startswith(w):
            return w
    return None


def _project_onto(keyword: str, normalized_tokens: Sequence[str]) -> str:
    """Prefer the normalized token hidden in a raw keyword ("หอพักครับ" -> "หอพัก")."""
    best = ""
    for nt in normalized_tokens:
        if len(nt) >= MIN_KEYWORD_LEN and nt in keyword and len(nt) > len(best):
            best = nt
    return best or keyword


def pair_negations(
    raw_tokens: Sequence[str],
    normalized_tokens: Sequence[str],
    negation_words: Iterable[str] = (),
) -> list[NegationPair]:
    """Pair each negation-bearing raw token with the keyword it negates.

    The keyword is the text glued after the negation word in the same token,
    else the next raw token that survived normalization, else simply the next
    raw token.
    """
    candidates = sorted(
        {w.lower() for w in list(negation_words) + list(INLINE_NEGATION_PATTERNS) if w},
        key=lambda s: (-len(s), s),
    )
    content = set(normalized_tokens)
    pairs: list[NegationPair] = []
    for i, tok in enumerate(raw_tokens):
        neg = _longest_prefix(tok, candidates)
        if neg is None:
            continue
        remainder = tok[len(neg):].strip()
        if len(remainder) >= MIN_KEYWORD_LEN:
            display = remainder
        else:
            following = list(raw_tokens[i + 1:])
            if not following:
                continue
            display = next(
                (t for t in following if t in content or any(nt in t for nt in content if len(nt) >= MIN_KEYWORD_LEN)),
                following[0],
            )
        keyword = _project_onto(display.lower(), normalized_tokens)
        pairs.append(NegationPair(negation_word=neg, keyword=keyword, display=display))
    return pairs


def detect_negation(
    raw_text: str,
    raw_tokens: Sequence[str],
    normalized_tokens: Sequence[str],
    lexicon: Lexicon,
) -> NegationFinding:
    negation_words = {w.strip().lower() for w in lexicon.negation_words if w and w.strip()}
    finding = NegationFinding()
    keywords: list[str] = []
    domains: list[str] = []

    msg_lower = (raw_text or "").lower()
    for trigger in sorted(negation_words, key=lambda s: (-len(s), s)):
        idx = msg_lower.find(trigger)
        if idx == -1:
            continue
        finding.triggered = True
        finding.trigger_word = trigger
        word = first_word(msg_lower[idx + len(trigger):])
        if len(word) >= MIN_KEYWORD_LEN:
            keywords.append(word)
            finding.display.setdefault(word, word)
        break

    for pair in pair_negations(raw_tokens, normalized_tokens, negation_words):
        if pair.negation_word not in negation_words:
            continue
        finding.triggered = True
        if finding.trigger_word is None:
            finding.trigger_word = pair.negation_word
        if len(pair.keyword) >= MIN_KEYWORD_LEN:
            keywords.append(pair.keyword)
            finding.display.setdefault(pair.keyword, pair.display or pair.keyword)
        domains.extend(lexicon.domains_for(pair.keyword))

    finding.keywords = [k for k in unique_preserving_order(keywords) if len(k) >= MIN_KEYWORD_LEN]
    finding.domains = unique_preserving_order(domains)
    return finding
