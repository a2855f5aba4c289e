"""Low-level text helpers used across the retrieval pipeline.

No dependency on schemas, models, or any other project module.
"""

import re
import unicodedata
from typing import Iterable


_WORD_SPLIT_RE = re.compile(r"[\s,.:;!?]+")


def normalize_whitespace(text: str) -> str:
    return " ".join((text or "").split()).strip()


def compact_lower(text: str) -> str:
    """Lower-case and drop every whitespace character ("ค่า เทอม" -> "ค่าเทอม")."""
    return re.sub(r"\s+", "", (text or "").lower())


def _is_letter(ch: str) -> bool:
    return unicodedata.category(ch).startswith("L")


def _is_number(ch: str) -> bool:
    return unicodedata.category(ch).startswith("N")


def clean_for_tokens(text: str) -> str:
    """Lower-case, blank out punctuation/symbols, split letter/digit runs.

    "Room3, ตึก5!" -> "room 3  ตึก 5 "
    """
    lowered = (text or "").lower().strip()
    out: list[str] = []
    prev = ""
    for ch in lowered:
        cat = unicodedata.category(ch)
        if cat[0] in ("P", "S"):
            out.append(" ")
            prev = " "
            continue
        if prev and ((_is_letter(prev) and _is_number(ch)) or (_is_number(prev) and _is_letter(ch))):
            out.append(" ")
        out.append(ch)
        prev = ch
    return "".join(out)


def simple_tokenize(text: str) -> list[str]:
    """Surface tokens of the raw message: lower-cased, split on blanks and punctuation."""
    return [t for t in _WORD_SPLIT_RE.split((text or "").lower()) if t]


def first_word(text: str) -> str:
    parts = _WORD_SPLIT_RE.split((text or "").strip())
    return parts[0] if parts else ""


def jaccard_similarity(a_tokens: Iterable[str], b_tokens: Iterable[str]) -> float:
    a = set(a_tokens)
    b = set(b_tokens)
    intersection = len(a & b)
    union = len(a) + len(b) - intersection
    if union == 0:
        return 0.0
    return intersection / float(union)


def overlap_score(a_tokens: Iterable[str], b_tokens: Iterable[str]) -> int:
    """How many of ``a_tokens`` (duplicates counted) occur in ``b_tokens``."""
    b = set(b_tokens)
    return sum(1 for t in a_tokens if t in b)


def unique_preserving_order(items: Iterable[str]) -> list[str]:
    seen: list[str] = []
    for item in items:
        if item not in seen:
            seen.append(item)
    return seen
