"""Per-session blocked keywords/domains.

Two copies are kept behind one interface: the request's session mapping
(authoritative, sent back to the client in the session cookie) and a
process-wide map keyed by session key that serves sessions without usable
session storage. Blocking is a monotonic set union; only ``clear`` removes
from a live session. Process-tier entries expire with the session cookie
(14 days by default) and the map is capped at ``PROCESS_TIER_MAX_SESSIONS``.
"""

import os
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Iterable, MutableMapping, Optional

from text_utils import unique_preserving_order

BLOCKED_KEYWORDS_KEY = "blockedKeywords"
BLOCKED_DOMAINS_KEY = "blockedDomains"
SESSION_ID_KEY = "sid"


def _env_int(name: str, default: int, min_value: int, max_value: int) -> int:
    raw = os.getenv(name)
    try:
        value = int(raw) if raw not in (None, "") else default
    except Exception:
        value = default
    return max(min_value, min(max_value, value))


# Process-tier entries older than the session cookie are dead weight.
PROCESS_TIER_TTL_SEC = _env_int("EXCLUSION_TTL_SEC", 14 * 24 * 3600, 60, 365 * 24 * 3600)
PROCESS_TIER_MAX_SESSIONS = _env_int("EXCLUSION_MAX_SESSIONS", 10000, 1, 1000000)


def session_key_for(request) -> str:
    """Session id, else client address, else "anonymous"."""
    try:
        if "session" in request.scope:
            session = request.session
            sid = session.get(SESSION_ID_KEY)
            if not sid:
                sid = uuid.uuid4().hex
                session[SESSION_ID_KEY] = sid
            return str(sid)
    except Exception:
        pass
    client = getattr(request, "client", None)
    if client is not None and getattr(client, "host", None):
        return str(client.host)
    return "anonymous"


@dataclass
class SessionContext:
    session_key: str
    storage: Optional[MutableMapping] = None


@dataclass
class SessionExclusionState:
    session_key: str
    blocked_keywords: set = field(default_factory=set)
    blocked_domains: set = field(default_factory=set)
    updated_at: int = 0

    def copy(self) -> "SessionExclusionState":
        return SessionExclusionState(
            session_key=self.session_key,
            blocked_keywords=set(self.blocked_keywords),
            blocked_domains=set(self.blocked_domains),
            updated_at=self.updated_at,
        )


def _now_ms() -> int:
    return int(time.time() * 1000)


def _read_list(storage: Optional[MutableMapping], key: str) -> Optional[list]:
    if storage is None or key not in storage:
        return None
    value = storage.get(key)
    return [str(v) for v in value] if isinstance(value, list) else []


class ExclusionStore:
    def __init__(self, ttl_sec: int = PROCESS_TIER_TTL_SEC, max_sessions: int = PROCESS_TIER_MAX_SESSIONS):
        self.ttl_ms = int(ttl_sec) * 1000
        self.max_sessions = max(1, int(max_sessions))
        self._blocks: dict[str, SessionExclusionState] = {}
        self._lock = threading.Lock()

    def _live(self, session_key: str, now: int) -> Optional[SessionExclusionState]:
        entry = self._blocks.get(session_key)
        if entry is not None and now - entry.updated_at > self.ttl_ms:
            return None
        return entry

    def _evict(self, now: int, keep: str) -> None:
        """Drop expired entries, then the least recently updated ones over the cap."""
        for key in [k for k, s in self._blocks.items() if now - s.updated_at > self.ttl_ms]:
            del self._blocks[key]
        overflow = len(self._blocks) - self.max_sessions
        if overflow > 0:
            candidates = sorted((k for k in self._blocks if k != keep), key=lambda k: self._blocks[k].updated_at)
            for key in candidates[:overflow]:
                del self._blocks[key]

    def load(self, ctx: SessionContext) -> SessionExclusionState:
        keywords = _read_list(ctx.storage, BLOCKED_KEYWORDS_KEY)
        domains = _read_list(ctx.storage, BLOCKED_DOMAINS_KEY)
        with self._lock:
            cached = self._live(ctx.session_key, _now_ms())
            cached = cached.copy() if cached else None
        state = cached or SessionExclusionState(session_key=ctx.session_key)
        if keywords is not None:
            state.blocked_keywords = set(keywords)
        if domains is not None:
            state.blocked_domains = set(domains)
        return state

    def persist_keywords(self, ctx: SessionContext, keywords: Iterable[str]) -> SessionExclusionState:
        return self._persist(ctx, BLOCKED_KEYWORDS_KEY, keywords)

    def persist_domains(self, ctx: SessionContext, domains: Iterable[str]) -> SessionExclusionState:
        return self._persist(ctx, BLOCKED_DOMAINS_KEY, domains)

    def _persist(self, ctx: SessionContext, key: str, values: Iterable[str]) -> SessionExclusionState:
        incoming = [str(v).strip().lower() for v in (values or []) if str(v).strip()]
        if not incoming:
            return self.load(ctx)

        existing = _read_list(ctx.storage, key)
        if existing is None:
            current = self.load(ctx)
            existing = sorted(current.blocked_keywords if key == BLOCKED_KEYWORDS_KEY else current.blocked_domains)
        combined = unique_preserving_order(existing + incoming)
        if ctx.storage is not None:
            ctx.storage[key] = combined

        with self._lock:
            now = _now_ms()
            entry = self._live(ctx.session_key, now) or SessionExclusionState(session_key=ctx.session_key)
            if key == BLOCKED_KEYWORDS_KEY:
                entry.blocked_keywords |= set(combined)
            else:
                entry.blocked_domains |= set(combined)
            entry.updated_at = now
            self._blocks[ctx.session_key] = entry
            self._evict(now, keep=ctx.session_key)
        return self.load(ctx)

    def clear(self, ctx: SessionContext) -> None:
        if ctx.storage is not None:
            ctx.storage[BLOCKED_KEYWORDS_KEY] = []
            ctx.storage[BLOCKED_DOMAINS_KEY] = []
        with self._lock:
            self._blocks.pop(ctx.session_key, None)

    def is_blocked_message(self, ctx: SessionContext, message: str) -> Optional[str]:
        """Return the blocked keyword that the whole message repeats, if any."""
        msg = (message or "").lower().strip()
        if not msg:
            return None
        for blocked in self.load(ctx).blocked_keywords:
            if msg == blocked:
                return blocked
        return None


exclusion_store = ExclusionStore()
