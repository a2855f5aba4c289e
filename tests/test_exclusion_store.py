"""
Unit tests for the per-session blocked keyword/domain store.
"""

from exclusion_store import (
    BLOCKED_DOMAINS_KEY,
    BLOCKED_KEYWORDS_KEY,
    ExclusionStore,
    SessionContext,
)


class TestExclusionStore:
    def setup_method(self):
        self.store = ExclusionStore()

    def test_persist_is_idempotent(self):
        ctx = SessionContext("s1", {})
        self.store.persist_keywords(ctx, ["หอพัก"])
        state = self.store.persist_keywords(ctx, ["หอพัก"])
        assert state.blocked_keywords == {"หอพัก"}
        assert ctx.storage[BLOCKED_KEYWORDS_KEY] == ["หอพัก"]

    def test_blocking_is_a_union(self):
        ctx = SessionContext("s1", {})
        self.store.persist_keywords(ctx, ["หอพัก"])
        self.store.persist_domains(ctx, ["dorm"])
        state = self.store.persist_keywords(ctx, ["Tuition "])
        assert state.blocked_keywords == {"หอพัก", "tuition"}
        assert state.blocked_domains == {"dorm"}
        assert state.updated_at > 0

    def test_sessions_are_isolated(self):
        a = SessionContext("a", {})
        b = SessionContext("b", {})
        self.store.persist_keywords(a, ["หอพัก"])
        assert self.store.load(b).blocked_keywords == set()

    def test_clear_resets_only_that_session(self):
        a = SessionContext("a", {})
        b = SessionContext("b", {})
        self.store.persist_keywords(a, ["หอพัก"])
        self.store.persist_keywords(b, ["ค่าเทอม"])
        self.store.clear(a)
        assert self.store.load(a).blocked_keywords == set()
        assert a.storage[BLOCKED_KEYWORDS_KEY] == []
        assert a.storage[BLOCKED_DOMAINS_KEY] == []
        assert self.store.load(b).blocked_keywords == {"ค่าเทอม"}

    def test_process_tier_serves_sessions_without_storage(self):
        ctx = SessionContext("10.0.0.1", None)
        self.store.persist_keywords(ctx, ["หอพัก"])
        again = SessionContext("10.0.0.1", None)
        assert self.store.load(again).blocked_keywords == {"หอพัก"}

    def test_session_storage_is_authoritative(self):
        ctx = SessionContext("s1", {})
        self.store.persist_keywords(ctx, ["หอพัก"])
        ctx.storage[BLOCKED_KEYWORDS_KEY] = ["ค่าเทอม"]
        assert self.store.load(ctx).blocked_keywords == {"ค่าเทอม"}

    def test_empty_persist_is_a_no_op(self):
        ctx = SessionContext("s1", {})
        state = self.store.persist_keywords(ctx, ["", "  "])
        assert state.blocked_keywords == set()
        assert BLOCKED_KEYWORDS_KEY not in ctx.storage


class TestProcessTierEviction:
    def setup_method(self):
        self.store = ExclusionStore(ttl_sec=60, max_sessions=2)

    def test_expired_entry_is_ignored_and_evicted(self):
        old = SessionContext("old", None)
        self.store.persist_keywords(old, ["หอพัก"])
        self.store._blocks["old"].updated_at -= 61_000
        assert self.store.load(old).blocked_keywords == set()

        self.store.persist_keywords(SessionContext("new", None), ["ค่าเทอม"])
        assert "old" not in self.store._blocks

    def test_expired_entry_does_not_leak_into_new_blocks(self):
        ctx = SessionContext("s1", None)
        self.store.persist_keywords(ctx, ["หอพัก"])
        self.store._blocks["s1"].updated_at -= 61_000
        state = self.store.persist_keywords(ctx, ["ค่าเทอม"])
        assert state.blocked_keywords == {"ค่าเทอม"}

    def test_map_is_capped_by_least_recent_update(self):
        for key in ("a", "b", "c"):
            self.store.persist_keywords(SessionContext(key, None), ["หอพัก"])
            self.store._blocks[key].updated_at -= {"a": 3000, "b": 2000, "c": 0}[key]
        assert set(self.store._blocks) == {"b", "c"}

    def test_cookie_copy_survives_process_tier_eviction(self):
        ctx = SessionContext("s1", {})
        self.store.persist_keywords(ctx, ["หอพัก"])
        self.store._blocks.clear()
        assert self.store.load(ctx).blocked_keywords == {"หอพัก"}


class TestBlockedMessage:
    def setup_method(self):
        self.store = ExclusionStore()
        self.ctx = SessionContext("s1", {})
        self.store.persist_keywords(self.ctx, ["หอพัก", "dorm"])

    def test_exact_repeat_is_blocked(self):
        assert self.store.is_blocked_message(self.ctx, "หอพัก") == "หอพัก"

    def test_match_ignores_case_and_padding(self):
        assert self.store.is_blocked_message(self.ctx, "  DORM ") == "dorm"

    def test_substring_is_not_blocked(self):
        assert self.store.is_blocked_message(self.ctx, "หอพักราคาเท่าไหร่") is None
        assert self.store.is_blocked_message(self.ctx, "") is None
