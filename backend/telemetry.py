"""Retrieval telemetry: one JSON object per line, plus a windowed summary.

Writing never raises; a broken log must not fail a chat turn.
"""

import json
import os
from collections import Counter, deque
from datetime import datetime, timezone, timedelta
from pathlib import Path
from typing import Iterator, Optional

from text_utils import normalize_whitespace

_BACKEND_DIR = Path(__file__).resolve().parent

# Events whose payload carries a "reason" worth breaking down.
_REASON_EVENTS = ("no_match", "tokenizer_fallback", "lexicon_degraded")


def telemetry_path() -> Path:
    name = os.getenv("RETRIEVAL_TELEMETRY_LOG", "retrieval_telemetry.log") or "retrieval_telemetry.log"
    return _BACKEND_DIR / name


def telemetry_enabled() -> bool:
    return (os.getenv("RETRIEVAL_TELEMETRY_ENABLED", "1") or "1").strip().lower() in (
        "1", "true", "yes", "on",
    )


def append_retrieval_telemetry(event: str, payload: Optional[dict] = None) -> None:
    if not telemetry_enabled():
        return
    try:
        line = json.dumps(
            {
                "ts": datetime.now(timezone.utc).isoformat(),
                "event": normalize_whitespace(event or "event"),
                "payload": payload or {},
            },
            ensure_ascii=False,
        )
        path = telemetry_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "a", encoding="utf-8") as f:
            f.write(line + "\n")
    except Exception:
        pass


def _parse_iso_utc(ts_raw: str) -> Optional[datetime]:
    try:
        return datetime.fromisoformat(str(ts_raw).replace("Z", "+00:00"))
    except Exception:
        return None


def _iter_events(path: Path, cutoff: datetime, errors: Counter) -> Iterator[tuple]:
    """Yield ``(ts, event, payload)`` newer than ``cutoff``; bad lines bump ``errors``."""
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            raw = (line or "").strip()
            if not raw:
                continue
            try:
                item = json.loads(raw)
            except ValueError:
                errors["parse"] += 1
                continue
            if not isinstance(item, dict):
                errors["parse"] += 1
                continue
            ts = _parse_iso_utc(str(item.get("ts") or ""))
            if not ts or ts < cutoff:
                continue
            event = normalize_whitespace(str(item.get("event") or "event")) or "event"
            payload = item.get("payload") if isinstance(item.get("payload"), dict) else {}
            yield ts, event, payload


def read_retrieval_telemetry_summary(hours: int = 24, limit: int = 6) -> dict:
    h = max(1, min(168, int(hours or 24)))
    n = max(1, min(25, int(limit or 6)))
    now_utc = datetime.now(timezone.utc)
    cutoff = now_utc - timedelta(hours=h)

    counts: Counter = Counter()
    reasons: dict[str, Counter] = {e: Counter() for e in _REASON_EVENTS}
    blocked: Counter = Counter()
    recent: deque = deque(maxlen=n)
    errors: Counter = Counter()
    path = telemetry_path()
    file_exists = path.exists()

    if file_exists:
        try:
            for ts, event, payload in _iter_events(path, cutoff, errors):
                counts[event] += 1
                if event in reasons:
                    reason = normalize_whitespace(str(payload.get("reason") or payload.get("source") or "")) or "UNKNOWN"
                    reasons[event][reason] += 1
                if event == "negation_block":
                    for kw in payload.get("keywords") or []:
                        blocked[str(kw)] += 1
                recent.append({"ts": ts.isoformat(), "event": event, "payload": payload})
        except OSError:
            errors["io"] += 1

    matches = counts.get("match", 0)
    answered = matches + counts.get("no_match", 0)
    match_rate = round((matches / answered) * 100.0, 2) if answered > 0 else 0.0

    return {
        "status": "ok",
        "now_utc": now_utc.isoformat(),
        "window_hours": h,
        "telemetry_enabled": telemetry_enabled(),
        "file_exists": file_exists,
        "file_path": str(path.name),
        "counts": dict(counts),
        "match_rate_percent": match_rate,
        "negation_block_count": counts.get("negation_block", 0),
        "blocked_repeat_count": counts.get("blocked_repeat", 0),
        "tokenizer_fallback_count": counts.get("tokenizer_fallback", 0),
        "no_match_reasons": dict(reasons["no_match"]),
        "tokenizer_fallback_reasons": dict(reasons["tokenizer_fallback"]),
        "degraded_sources": dict(reasons["lexicon_degraded"]),
        "top_blocked_keywords": [{"keyword": k, "count": c} for k, c in blocked.most_common(n)],
        "recent": list(recent),
        "parse_errors": errors.get("parse", 0),
    }
