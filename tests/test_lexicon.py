"""
Tests for the per-turn lexicon loaders and their degraded mode.
"""

from sqlalchemy.exc import OperationalError

import lexicon
from lexicon import _parse_domain_rules, _parse_terms, load_lexicon


def _broken(db):
    raise OperationalError("SELECT 1", {}, Exception("table unavailable"))


class TestLexiconConfig:
    def test_terms_are_trimmed_and_lowered(self):
        assert _parse_terms(" Info, ข้อมูล ,,") == frozenset({"info", "ข้อมูล"})

    def test_domain_rules(self):
        rules = _parse_domain_rules("dorm:หอ; admissions:รับสมัคร|สมัคร;broken;empty:")
        assert rules == (("dorm", ("หอ",)), ("admissions", ("รับสมัคร", "สมัคร")))

    def test_unset_configuration_is_empty(self):
        assert _parse_terms("") == frozenset()
        assert _parse_domain_rules("") == ()
        assert lexicon.Lexicon(domain_rules=()).domains_for("หอพัก") == []


class TestLoadLexicon:
    def test_tables_are_loaded(self, seeded_db):
        lex = load_lexicon(seeded_db)
        assert "ยังไง" in lex.stopwords
        assert lex.synonyms == {"หอใน": "หอพัก"}
        assert "ไม่เอา" in lex.negation_words
        assert lex.similarity == {}

    def test_failing_sources_degrade_to_empty(self, seeded_db, monkeypatch):
        monkeypatch.setattr(lexicon, "load_semantic_similarity", _broken)
        monkeypatch.setattr(lexicon, "load_synonyms", _broken)

        lex = load_lexicon(seeded_db)
        assert lex.similarity == {}
        assert lex.synonyms == {}
        assert "ยังไง" in lex.stopwords
        assert "ไม่เอา" in lex.negation_words

    def test_turn_still_answers_with_degraded_sources(self, client, monkeypatch):
        monkeypatch.setattr(lexicon, "load_semantic_similarity", _broken)
        monkeypatch.setattr(lexicon, "load_synonyms", _broken)

        res = client.post("/api/chat/respond", json={"message": "สมัครเรียนยังไง"})
        assert res.status_code == 200
        body = res.json()
        assert body["found"] is True
        assert body["alternatives"][0]["id"] == 1
